"""
UK tax code parsing.

A tax code tells an employer or pension provider how much allowance to
give and whether to tax at a single flat rate. Examples::

    1257L, S1257L, C1257L, BR, SBR, D0, SD1, K100, 0T, NT, S1100M

Parsing never raises: anything unrecognised comes back with
``is_valid=False`` and zeroed numbers, and callers treat it as absent.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

import config as cfg

TaxCodeType = Literal["cumulative", "K", "BR", "D0", "D1", "D2", "D3", "NT", "0T"]

FLAT_CODES = ("NT", "BR", "D0", "D1", "D2", "D3", "0T")
FLAT_RATE_CODES = ("BR", "D0", "D1", "D2", "D3")

_K_CODE = re.compile(r"^K(\d+)$")
_STANDARD_CODE = re.compile(r"^(\d+)[LMNT]$")


@dataclass(frozen=True)
class TaxCodeInfo:
    """Structured meaning of a tax code string."""

    raw: str
    type: TaxCodeType = "cumulative"
    personal_allowance: int = 0   # allowance granted by the code
    k_adjustment: int = 0         # amount added to taxable income (K codes)
    is_scottish: bool = False     # S prefix present
    is_valid: bool = False

    def to_dict(self) -> dict:
        return {
            "raw": self.raw,
            "type": self.type,
            "personal_allowance": self.personal_allowance,
            "k_adjustment": self.k_adjustment,
            "is_scottish": self.is_scottish,
            "is_valid": self.is_valid,
        }


def parse_tax_code(code: str) -> TaxCodeInfo:
    """Parse a raw tax code into a :class:`TaxCodeInfo`.

    The code is trimmed and upper-cased. A leading ``S`` marks a Scottish
    code; a leading ``C`` marks a Welsh code, which is taxed the same as
    the default region. The remainder is matched in order against the
    flat tokens, the K pattern (``K`` + digits) and the standard pattern
    (digits + one of ``L``, ``M``, ``N``, ``T``).

    Parameters
    ----------
    code : str
        Tax code as typed by the user or printed on a payslip.

    Returns
    -------
    TaxCodeInfo
        Parsed code. ``is_valid`` is False for empty or unrecognised input.
    """
    raw = (code or "").strip().upper()
    invalid = TaxCodeInfo(raw=raw)
    if not raw:
        return invalid

    stripped = raw
    is_scottish = False
    if stripped.startswith("S"):
        is_scottish = True
        stripped = stripped[1:]
    elif stripped.startswith("C"):
        stripped = stripped[1:]

    if stripped in FLAT_CODES:
        return TaxCodeInfo(raw=raw, type=stripped, is_scottish=is_scottish, is_valid=True)

    k_match = _K_CODE.match(stripped)
    if k_match:
        return TaxCodeInfo(
            raw=raw,
            type="K",
            k_adjustment=int(k_match.group(1)) * 10,
            is_scottish=is_scottish,
            is_valid=True,
        )

    std_match = _STANDARD_CODE.match(stripped)
    if std_match:
        return TaxCodeInfo(
            raw=raw,
            type="cumulative",
            personal_allowance=int(std_match.group(1)) * 10,
            is_scottish=is_scottish,
            is_valid=True,
        )

    return invalid


def flat_rate(code_type: str, region: str) -> float:
    """Single rate applied to all income for a flat-rate code.

    NT and any type without a flat-rate meaning give 0.
    """
    if code_type == "NT":
        return 0.0
    rates = cfg.FLAT_RATES.get(region, cfg.FLAT_RATES[cfg.DEFAULT_REGION])
    return rates.get(code_type, 0.0)
