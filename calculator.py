"""
Take-home pay calculation for one UK tax year.

Combines tax code parsing, the personal allowance taper and the banded
tax/NI functions into a single call::

    result = calculate(CalculationInput(gross_salary=45_000, region="scotland"))

Tax is split between employment income and an optional pension income.
With no usable tax codes both are taxed together under one allowance
(combined mode). When either source has a valid code each is taxed on
its own terms (per-source mode). A pension without a code is always
taxed as the slice stacked on top of employment income.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

import config as cfg
import tax
from tax import BandRow
from tax_codes import TaxCodeInfo, parse_tax_code

logger = logging.getLogger(__name__)


# ─── Data Classes ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class PostTaxDeduction:
    """A named amount taken from net pay (e.g. union dues, GAYE)."""

    name: str
    amount: float


@dataclass
class CalculationInput:
    """Everything needed for one calculation. Amounts are annual GBP."""

    gross_salary: float = 0.0
    salary_sacrifice: float = 0.0        # non-pension sacrifice (cycle scheme, EV ...)
    pension_contribution: float = 0.0    # employee pension via salary sacrifice
    employer_pension: float = 0.0        # informational, not deducted
    pension_income: float = 0.0          # second income stream (e.g. military pension)
    post_tax_deductions: List[PostTaxDeduction] = field(default_factory=list)
    region: str = cfg.DEFAULT_REGION     # 'england' or 'scotland'
    employment_tax_code: str = ""
    pension_tax_code: str = ""

    def __post_init__(self) -> None:
        if self.region not in cfg.REGIONS:
            raise ValueError(f"Region must be one of {', '.join(cfg.REGIONS)}")


@dataclass(frozen=True)
class CalculationResult:
    """Every figure derived from one :class:`CalculationInput`."""

    # ── Annual figures ──
    gross_salary: float
    total_salary_sacrifice: float
    taxable_employment_income: float
    pension_income: float
    total_taxable_income: float
    personal_allowance: float
    income_tax: float
    national_insurance: float
    employment_income_tax: float
    pension_income_tax: float
    total_deductions: float
    net_annual_income: float

    # ── Employer pension (informational) ──
    employer_pension: float
    total_pension_pot: float

    # ── Post-tax deductions ──
    post_tax_deductions: List[PostTaxDeduction]
    total_post_tax_deductions: float

    # ── Tax codes (None unless in use) ──
    employment_tax_code_info: Optional[TaxCodeInfo]
    pension_tax_code_info: Optional[TaxCodeInfo]
    using_tax_codes: bool

    # ── Monthly figures ──
    gross_monthly_salary: float
    monthly_take_home: float
    monthly_tax: float
    monthly_ni: float
    monthly_salary_sacrifice: float
    monthly_pension_income: float
    monthly_post_tax_deductions: float
    monthly_employer_pension: float

    # ── Breakdowns and rates ──
    tax_breakdown: List[BandRow]
    ni_breakdown: List[BandRow]
    employment_tax_breakdown: List[BandRow]
    pension_tax_breakdown: List[BandRow]
    effective_tax_rate: float
    marginal_tax_rate: float

    def to_dict(self) -> Dict[str, Any]:
        """Plain JSON-serialisable view of the result."""
        out: Dict[str, Any] = {}
        for name in self.__dataclass_fields__:
            value = getattr(self, name)
            if isinstance(value, TaxCodeInfo):
                value = value.to_dict()
            elif name.endswith("_breakdown"):
                value = [row.to_dict() for row in value]
            elif name == "post_tax_deductions":
                value = [{"name": d.name, "amount": d.amount} for d in value]
            out[name] = value
        return out


# ─── Helpers ─────────────────────────────────────────────────────────

def _code_in_use(raw: str, label: str) -> Optional[TaxCodeInfo]:
    """Parse *raw*; return the code only if present and valid."""
    if not raw:
        return None
    info = parse_tax_code(raw)
    if not info.is_valid:
        logger.warning("Ignoring invalid %s tax code %r; using standard rules", label, raw)
        return None
    return info


def _stacked_rows(income: float, stacked_tax: float) -> List[BandRow]:
    """Single breakdown row for income taxed on top of employment."""
    if income <= 0:
        return []
    return [BandRow("Marginal Rate", income, stacked_tax / income, stacked_tax)]


def _stacked_tax(total_tax: float, employment_tax: float) -> float:
    remainder = total_tax - employment_tax
    if remainder < 0:
        logger.warning(
            "Pension income tax remainder is negative (%.2f = %.2f - %.2f)",
            remainder, total_tax, employment_tax,
        )
    return remainder


# ─── Calculation ─────────────────────────────────────────────────────

def calculate(inputs: CalculationInput) -> CalculationResult:
    """Compute take-home pay, tax and NI for one tax year.

    Parameters
    ----------
    inputs : CalculationInput
        Sanitised, non-negative annual amounts.

    Returns
    -------
    CalculationResult
        Annual and monthly figures plus line-item breakdowns.
    """
    region = inputs.region
    pension_income = inputs.pension_income

    emp_code = _code_in_use(inputs.employment_tax_code, "employment")
    pen_code = _code_in_use(inputs.pension_tax_code, "pension") if pension_income > 0 else None
    using_tax_codes = emp_code is not None or pen_code is not None

    # Pension contributions and other sacrifice both come off pay before tax and NI
    total_salary_sacrifice = inputs.salary_sacrifice + inputs.pension_contribution
    taxable_employment_income = max(0.0, inputs.gross_salary - total_salary_sacrifice)
    total_taxable_income = taxable_employment_income + pension_income

    if using_tax_codes:
        logger.debug("Per-source mode (employment code=%s, pension code=%s)",
                     emp_code and emp_code.raw, pen_code and pen_code.raw)

        if emp_code is not None:
            employment_tax, employment_rows = tax.tax_with_code(
                taxable_employment_income, emp_code, region)
            allowance = emp_code.personal_allowance if emp_code.type == "cumulative" else 0
        else:
            allowance = tax.personal_allowance(total_taxable_income)
            employment_tax, employment_rows = tax.income_tax(
                taxable_employment_income, region, allowance)

        if pen_code is not None:
            pension_tax, pension_rows = tax.tax_with_code(pension_income, pen_code, region)
        elif pension_income > 0:
            combined_tax, _ = tax.income_tax(total_taxable_income, region, allowance)
            pension_tax = _stacked_tax(combined_tax, employment_tax)
            pension_rows = _stacked_rows(pension_income, pension_tax)
        else:
            pension_tax, pension_rows = 0.0, []

        total_income_tax = employment_tax + pension_tax
        tax_rows = (
            [row.relabel("Employment: ") for row in employment_rows]
            + [row.relabel("Pension: ") for row in pension_rows]
        )
    else:
        logger.debug("Combined mode on total taxable income %.2f", total_taxable_income)
        allowance = tax.personal_allowance(total_taxable_income)
        total_income_tax, tax_rows = tax.income_tax(total_taxable_income, region, allowance)
        employment_tax, employment_rows = tax.income_tax(
            taxable_employment_income, region, allowance)
        pension_tax = _stacked_tax(total_income_tax, employment_tax) if pension_income > 0 else 0.0
        pension_rows = _stacked_rows(pension_income, pension_tax)

    # NI on employment only; pension income never attracts employee NI
    ni_total, ni_rows = tax.national_insurance(taxable_employment_income)

    total_post_tax = sum(d.amount for d in inputs.post_tax_deductions)
    total_deductions = employment_tax + ni_total + total_salary_sacrifice
    net_from_employment = inputs.gross_salary - total_deductions
    net_from_pension = pension_income - pension_tax
    net_annual_income = net_from_employment + net_from_pension - total_post_tax

    if total_taxable_income > 0:
        effective_rate = (total_income_tax + ni_total) / (inputs.gross_salary + pension_income)
    else:
        effective_rate = 0.0

    months = cfg.MONTHS_PER_YEAR
    return CalculationResult(
        gross_salary=inputs.gross_salary,
        total_salary_sacrifice=total_salary_sacrifice,
        taxable_employment_income=taxable_employment_income,
        pension_income=pension_income,
        total_taxable_income=total_taxable_income,
        personal_allowance=allowance,
        income_tax=total_income_tax,
        national_insurance=ni_total,
        employment_income_tax=employment_tax,
        pension_income_tax=pension_tax,
        total_deductions=total_deductions,
        net_annual_income=net_annual_income,
        employer_pension=inputs.employer_pension,
        total_pension_pot=inputs.pension_contribution + inputs.employer_pension,
        post_tax_deductions=list(inputs.post_tax_deductions),
        total_post_tax_deductions=total_post_tax,
        employment_tax_code_info=emp_code,
        pension_tax_code_info=pen_code,
        using_tax_codes=using_tax_codes,
        gross_monthly_salary=inputs.gross_salary / months,
        monthly_take_home=net_annual_income / months,
        monthly_tax=total_income_tax / months,
        monthly_ni=ni_total / months,
        monthly_salary_sacrifice=total_salary_sacrifice / months,
        monthly_pension_income=pension_income / months,
        monthly_post_tax_deductions=total_post_tax / months,
        monthly_employer_pension=inputs.employer_pension / months,
        tax_breakdown=tax_rows,
        ni_breakdown=ni_rows,
        employment_tax_breakdown=employment_rows,
        pension_tax_breakdown=pension_rows,
        effective_tax_rate=effective_rate,
        marginal_tax_rate=tax.marginal_tax_rate(total_taxable_income, region),
    )


# ─── Salary Sweep ────────────────────────────────────────────────────

SWEEP_SALARIES = np.arange(0, 200_001, 1_000, dtype=float)


def salary_sweep(
    inputs: CalculationInput,
    salaries: Optional[np.ndarray] = None,
) -> Dict[str, np.ndarray]:
    """Re-run :func:`calculate` across a grid of gross salaries.

    Every other input (sacrifice, pension, codes, region) is held fixed.

    Parameters
    ----------
    inputs : CalculationInput
        Base scenario.
    salaries : array_like, optional
        Gross salaries to evaluate. Defaults to £0-£200k in £1k steps.

    Returns
    -------
    dict
        Keys: ``'salary'``, ``'take_home'``, ``'income_tax'``,
        ``'national_insurance'``, ``'marginal_rate'``; each an array
        aligned with *salaries*.
    """
    salaries = np.asarray(SWEEP_SALARIES if salaries is None else salaries, dtype=float)
    take_home = np.zeros_like(salaries)
    income_tax = np.zeros_like(salaries)
    ni = np.zeros_like(salaries)
    marginal = np.zeros_like(salaries)

    for i, salary in enumerate(salaries):
        scenario = CalculationInput(
            gross_salary=float(salary),
            salary_sacrifice=inputs.salary_sacrifice,
            pension_contribution=inputs.pension_contribution,
            employer_pension=inputs.employer_pension,
            pension_income=inputs.pension_income,
            post_tax_deductions=inputs.post_tax_deductions,
            region=inputs.region,
            employment_tax_code=inputs.employment_tax_code,
            pension_tax_code=inputs.pension_tax_code,
        )
        r = calculate(scenario)
        take_home[i] = r.net_annual_income
        income_tax[i] = r.income_tax
        ni[i] = r.national_insurance
        marginal[i] = r.marginal_tax_rate

    return {
        "salary": salaries,
        "take_home": take_home,
        "income_tax": income_tax,
        "national_insurance": ni,
        "marginal_rate": marginal,
    }
