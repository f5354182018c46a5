"""
UK income tax and National Insurance calculation functions.

Everything here is a pure function of its arguments: band tables come
from ``config`` and are adjusted per call, never mutated in place.
Banded results are returned as ``(total, breakdown)`` where the
breakdown lists one :class:`BandRow` per band that received income.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import List, Literal, Tuple

import config as cfg
from tax_codes import FLAT_RATE_CODES, TaxCodeInfo, flat_rate

logger = logging.getLogger(__name__)


# ─── Data Classes ────────────────────────────────────────────────────

@dataclass(frozen=True)
class TaxBand:
    """One rate band. Bounds are in whole pounds; ``upper`` may be inf."""

    name: str
    lower: float
    upper: float
    rate: float


@dataclass(frozen=True)
class BandRow:
    """Income falling in one band and the charge on it."""

    name: str
    taxable_in_band: float
    rate: float
    tax: float

    def relabel(self, prefix: str) -> "BandRow":
        return replace(self, name=f"{prefix}{self.name}")

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "taxable_in_band": self.taxable_in_band,
            "rate": self.rate,
            "tax": self.tax,
        }


BandResult = Tuple[float, List[BandRow]]


def _table(rows) -> List[TaxBand]:
    return [TaxBand(name, lower, upper, rate) for name, lower, upper, rate in rows]


TAX_BANDS = {
    "england": _table(cfg.INCOME_TAX_BANDS_ENGLAND),
    "scotland": _table(cfg.INCOME_TAX_BANDS_SCOTLAND),
}
NI_BANDS = _table(cfg.NI_BANDS)


def band_table(region: str) -> List[TaxBand]:
    """Base income tax bands for *region* (``'england'`` or ``'scotland'``)."""
    return list(TAX_BANDS.get(region, TAX_BANDS[cfg.DEFAULT_REGION]))


# ─── Personal Allowance ─────────────────────────────────────────────

def personal_allowance(total_income: float) -> float:
    """Compute personal allowance after the £100k taper.

    For every £2 of income above £100,000 the allowance drops by £1
    (whole pounds only), reaching zero at £125,140.

    Parameters
    ----------
    total_income : float
        Total taxable income from all sources.

    Returns
    -------
    float
        Personal allowance in GBP.
    """
    if total_income <= cfg.PA_TAPER_THRESHOLD:
        return cfg.PERSONAL_ALLOWANCE
    reduction = (total_income - cfg.PA_TAPER_THRESHOLD) // 2
    return max(0, cfg.PERSONAL_ALLOWANCE - reduction)


def adjust_bands_for_allowance(bands: List[TaxBand], allowance: float) -> List[TaxBand]:
    """Move the allowance edge of a band table to *allowance*.

    The Personal Allowance band ends at *allowance*. Any other band whose
    lower bound is at or below the base allowance starts at
    ``allowance + 1``. Bands entirely above the base allowance keep their
    published bounds.
    """
    adjusted = []
    for band in bands:
        if band.name == cfg.PERSONAL_ALLOWANCE_BAND:
            adjusted.append(replace(band, upper=allowance))
        elif band.lower <= cfg.PERSONAL_ALLOWANCE:
            adjusted.append(replace(band, lower=allowance + 1))
        else:
            adjusted.append(band)
    return adjusted


# ─── Banded Computation ─────────────────────────────────────────────

def apply_bands(income: float, bands: List[TaxBand]) -> BandResult:
    """Charge *income* across an ascending band table.

    Walks the bands in order and stops at the first band that starts at
    or above *income*. Bands with no income in them are left out of the
    breakdown.

    Parameters
    ----------
    income : float
        Amount to charge.
    bands : list of TaxBand
        Ascending band table (already allowance-adjusted for income tax).

    Returns
    -------
    tuple
        ``(total, breakdown)``.
    """
    total = 0.0
    breakdown: List[BandRow] = []
    if income <= 0:
        return total, breakdown

    for band in bands:
        if income <= band.lower:
            break
        in_band = min(income, band.upper) - band.lower
        if in_band <= 0:
            continue
        charge = in_band * band.rate
        total += charge
        breakdown.append(BandRow(band.name, in_band, band.rate, charge))

    return total, breakdown


def income_tax(income: float, region: str, allowance: float) -> BandResult:
    """Income tax on *income* with the given personal allowance."""
    bands = adjust_bands_for_allowance(band_table(region), allowance)
    return apply_bands(income, bands)


def national_insurance(earnings: float) -> BandResult:
    """Employee Class 1 NI on employment *earnings*. No allowance applies."""
    return apply_bands(earnings, NI_BANDS)


# ─── Tax-Code Strategies ────────────────────────────────────────────

StrategyKind = Literal["no_tax", "flat_rate", "k_adjusted", "zero_allowance", "cumulative"]


@dataclass(frozen=True)
class TaxStrategy:
    """How one income source is taxed, resolved once from its code."""

    kind: StrategyKind
    code_type: str = "cumulative"
    allowance: float = 0
    k_adjustment: float = 0


def resolve_strategy(code: TaxCodeInfo) -> TaxStrategy:
    if code.type == "NT":
        return TaxStrategy("no_tax", code.type)
    if code.type in FLAT_RATE_CODES:
        return TaxStrategy("flat_rate", code.type)
    if code.type == "K":
        return TaxStrategy("k_adjusted", code.type, k_adjustment=code.k_adjustment)
    if code.type == "0T":
        return TaxStrategy("zero_allowance", code.type)
    return TaxStrategy("cumulative", code.type, allowance=code.personal_allowance)


def tax_with_code(income: float, code: TaxCodeInfo, region: str) -> BandResult:
    """Income tax on one income source using its own tax code.

    A Scottish (``S``-prefixed) code always uses Scottish bands and
    rates, whatever *region* says.

    Parameters
    ----------
    income : float
        Taxable income of this source.
    code : TaxCodeInfo
        A valid parsed tax code.
    region : str
        Region selected by the user.

    Returns
    -------
    tuple
        ``(total, breakdown)``.
    """
    if income <= 0:
        return 0.0, []

    effective_region = "scotland" if code.is_scottish else region
    strategy = resolve_strategy(code)
    logger.debug("Tax code %s -> %s (%s bands)", code.raw, strategy.kind, effective_region)

    if strategy.kind == "no_tax":
        return 0.0, [BandRow("NT (No Tax)", income, 0.0, 0.0)]

    if strategy.kind == "flat_rate":
        rate = flat_rate(strategy.code_type, effective_region)
        charge = income * rate
        return charge, [BandRow(f"{strategy.code_type} Flat Rate", income, rate, charge)]

    if strategy.kind == "k_adjusted":
        return income_tax(income + strategy.k_adjustment, effective_region, 0)

    if strategy.kind == "zero_allowance":
        return income_tax(income, effective_region, 0)

    return income_tax(income, effective_region, strategy.allowance)


# ─── Marginal Rate ──────────────────────────────────────────────────

def marginal_tax_rate(total_income: float, region: str) -> float:
    """Income tax rate on the next pound of *total_income*.

    Inside the taper zone (£100,000, £125,140] the band rate is scaled by
    1.5: the extra pound is taxed and also withdraws 50p of allowance.
    This is a display figure only, never a band in the breakdown.
    """
    bands = adjust_bands_for_allowance(band_table(region), personal_allowance(total_income))

    rate = bands[0].rate
    for band in bands[1:]:
        if total_income > band.lower - 1:
            rate = band.rate

    if cfg.PA_TAPER_THRESHOLD < total_income <= cfg.PA_TAPER_END:
        rate *= cfg.TAPER_MARGINAL_MULTIPLIER
    return rate
