"""
UK Tax Constants for the take-home pay calculator.

All monetary values in GBP. Tax year 2025/26.
Sources: gov.uk/income-tax-rates, gov.scot (Scottish income tax rates
and bands), gov.uk/national-insurance-rates-letters.
"""

# ── General ──────────────────────────────────────────────────────────
TAX_YEAR = "2025/26"
MONTHS_PER_YEAR = 12
REGIONS = ("england", "scotland")   # england covers England, Wales and NI
DEFAULT_REGION = "england"

# Largest amount the input collaborators will pass through (£10m)
MAX_INPUT_AMOUNT = 10_000_000

# ── Personal Allowance ───────────────────────────────────────────────
PERSONAL_ALLOWANCE = 12_570
PA_TAPER_THRESHOLD = 100_000       # PA reduces £1 per £2 above this
PA_TAPER_END = 125_140             # PA fully withdrawn here

PERSONAL_ALLOWANCE_BAND = "Personal Allowance"

# ── Income Tax (England, Wales & Northern Ireland) ───────────────────
# Bands: (name, lower bound, upper bound, rate). Bounds are whole pounds,
# inclusive at both ends; the last band has no upper limit (inf).
INCOME_TAX_BANDS_ENGLAND = [
    (PERSONAL_ALLOWANCE_BAND, 0, 12_570, 0.00),
    ("Basic Rate", 12_571, 50_270, 0.20),
    ("Higher Rate", 50_271, 125_140, 0.40),
    ("Additional Rate", 125_141, float("inf"), 0.45),
]

# ── Income Tax (Scotland) ────────────────────────────────────────────
INCOME_TAX_BANDS_SCOTLAND = [
    (PERSONAL_ALLOWANCE_BAND, 0, 12_570, 0.00),
    ("Starter Rate", 12_571, 15_397, 0.19),
    ("Basic Rate", 15_398, 27_491, 0.20),
    ("Intermediate Rate", 27_492, 43_662, 0.21),
    ("Higher Rate", 43_663, 75_000, 0.42),
    ("Advanced Rate", 75_001, 125_140, 0.45),
    ("Top Rate", 125_141, float("inf"), 0.48),
]

# ── National Insurance (Employee Class 1) ────────────────────────────
# Thresholds touch: each band starts where the previous one ends.
NI_BANDS = [
    ("Below Primary Threshold", 0, 12_570, 0.00),
    ("Main Rate", 12_570, 50_270, 0.08),
    ("Upper Rate", 50_270, float("inf"), 0.02),
]

# ── Flat-rate tax codes ──────────────────────────────────────────────
# Every pound is taxed at one rate, no allowance. Scotland has two extra
# tiers (D2, D3) matching its advanced and top rates.
FLAT_RATES = {
    "england": {
        "BR": 0.20,    # basic
        "D0": 0.40,    # higher
        "D1": 0.45,    # additional
    },
    "scotland": {
        "BR": 0.20,    # basic
        "D0": 0.21,    # intermediate
        "D1": 0.42,    # higher
        "D2": 0.45,    # advanced
        "D3": 0.48,    # top
    },
}

# ── Marginal rate display ────────────────────────────────────────────
# Inside the taper each extra £1 also loses 50p of allowance.
TAPER_MARGINAL_MULTIPLIER = 1.5
