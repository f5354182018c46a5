"""
CLI interface and shared display-data computation for the
UK take-home pay calculator.
"""

from __future__ import annotations

import re
import sys
from typing import Any, Dict, List, Optional

import config as cfg
from calculator import CalculationInput, CalculationResult, PostTaxDeduction, calculate
from tax import BandRow
from tax_codes import parse_tax_code
import report


# ═══════════════════════════════════════════════════════════════════
# Formatting helpers
# ═══════════════════════════════════════════════════════════════════

def fmt(val: float, decimals: int = 2) -> str:
    """Format number as £X,XXX.XX (negative as -£X)."""
    sign = "-" if val < 0 else ""
    return f"{sign}£{abs(val):,.{decimals}f}"


def pct(rate: float, decimals: int = 1) -> str:
    """Format a fractional rate (0.2 -> '20.0%')."""
    return f"{rate * 100:.{decimals}f}%"


# ═══════════════════════════════════════════════════════════════════
# Input sanitisation
# ═══════════════════════════════════════════════════════════════════

_NON_NUMERIC = re.compile(r"[^0-9.]")
_NEGATIVE = re.compile(r"^[^0-9.]*-")
_LEADING_NUMBER = re.compile(r"\d*\.?\d*")


def sanitize_number(value: Any) -> float:
    """Turn user text into a non-negative amount capped at £10m.

    Currency symbols, commas and spaces are dropped. A minus sign ahead
    of the digits gives 0, as does anything that still fails to parse.
    Only the leading number is read, so "1.2.3" gives 1.2.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        parsed = float(value)
    else:
        text = str(value if value is not None else "")
        if _NEGATIVE.match(text):
            return 0.0
        cleaned = _NON_NUMERIC.sub("", text)
        try:
            parsed = float(_LEADING_NUMBER.match(cleaned).group())
        except ValueError:
            return 0.0
    if not parsed >= 0:
        return 0.0
    return min(parsed, float(cfg.MAX_INPUT_AMOUNT))


def percent_of_salary(salary: float, percent: float) -> float:
    """Whole-pound amount for a percentage of salary (pension sliders)."""
    return float(round(salary * percent / 100))


def build_input(
    salary: Any,
    region: str = cfg.DEFAULT_REGION,
    salary_sacrifice: Any = 0,
    pension_contribution: Any = 0,
    employer_pension: Any = 0,
    pension_pct: Any = None,
    employer_pension_pct: Any = None,
    has_pension_income: bool = False,
    pension_income: Any = 0,
    employment_tax_code: str = "",
    pension_tax_code: str = "",
    deductions: Optional[List[tuple]] = None,
) -> CalculationInput:
    """Sanitise raw user values into a :class:`CalculationInput`.

    Percentages, when given and positive, override the matching amount.
    Pension income and its code only count when *has_pension_income*.
    """
    gross = sanitize_number(salary)

    pension = sanitize_number(pension_contribution)
    if pension_pct not in (None, "") and sanitize_number(pension_pct) > 0:
        pension = percent_of_salary(gross, min(sanitize_number(pension_pct), 100.0))

    employer = sanitize_number(employer_pension)
    if employer_pension_pct not in (None, "") and sanitize_number(employer_pension_pct) > 0:
        employer = percent_of_salary(gross, min(sanitize_number(employer_pension_pct), 100.0))

    post_tax = [
        PostTaxDeduction(name=(name or "").strip() or "Deduction", amount=sanitize_number(amount))
        for name, amount in (deductions or [])
    ]

    return CalculationInput(
        gross_salary=gross,
        salary_sacrifice=sanitize_number(salary_sacrifice),
        pension_contribution=pension,
        employer_pension=employer,
        pension_income=sanitize_number(pension_income) if has_pension_income else 0.0,
        post_tax_deductions=post_tax,
        region=region if region in cfg.REGIONS else cfg.DEFAULT_REGION,
        employment_tax_code=(employment_tax_code or "").strip(),
        pension_tax_code=(pension_tax_code or "").strip() if has_pension_income else "",
    )


# ═══════════════════════════════════════════════════════════════════
# Input collection (CLI)
# ═══════════════════════════════════════════════════════════════════

def _prompt_amount(label: str, default: str) -> float:
    raw = input(f"  {label} [{default}]: ").strip()
    return sanitize_number(raw or default)


def _prompt_choice(label: str, options: list[str], default: str) -> str:
    opts = "/".join(options)
    while True:
        raw = input(f"  {label} ({opts}) [{default}]: ").strip().lower()
        if not raw:
            return default
        if raw in options:
            return raw
        print(f"    Choose from: {opts}")


def _prompt_tax_code(label: str) -> str:
    while True:
        raw = input(f"  {label} [none]: ").strip()
        if not raw:
            return ""
        info = parse_tax_code(raw)
        if info.is_valid:
            print(f"    {describe_tax_code(info)}")
            return raw
        print("    Not a recognised tax code (e.g. 1257L, S1257L, BR, D0, K100, 0T, NT).")


def collect_inputs() -> CalculationInput:
    """Prompt the user for all calculation parameters."""
    print("\n  Enter your details (press Enter for defaults):\n")

    salary = _prompt_amount("Annual gross salary", "£45,000")
    region = _prompt_choice("Region", list(cfg.REGIONS), "scotland")
    sacrifice = _prompt_amount("Other salary sacrifice (annual)", "£0")
    pension = _prompt_amount("Pension contribution via salary sacrifice (annual)", "£0")
    employer = _prompt_amount("Employer pension contribution (annual)", "£0")
    emp_code = _prompt_tax_code("Employment tax code")

    has_pension = _prompt_choice("Do you receive a pension income?", ["yes", "no"], "no") == "yes"
    pension_income = 0.0
    pension_code = ""
    if has_pension:
        pension_income = _prompt_amount("Annual pension income", "£0")
        pension_code = _prompt_tax_code("Pension tax code")

    deductions = []
    while _prompt_choice("Add a post-tax deduction?", ["yes", "no"], "no") == "yes":
        name = input("  Deduction name [Deduction]: ").strip()
        amount = _prompt_amount("Annual amount", "£0")
        deductions.append((name, amount))

    return build_input(
        salary,
        region=region,
        salary_sacrifice=sacrifice,
        pension_contribution=pension,
        employer_pension=employer,
        has_pension_income=has_pension,
        pension_income=pension_income,
        employment_tax_code=emp_code,
        pension_tax_code=pension_code,
        deductions=deductions,
    )


# ═══════════════════════════════════════════════════════════════════
# Shared display-data computation (used by CLI and web app)
# ═══════════════════════════════════════════════════════════════════

def describe_tax_code(info) -> str:
    """One-line human description of a parsed tax code."""
    if not info.is_valid:
        return "Invalid tax code"
    prefix = "Scottish " if info.is_scottish else ""
    if info.type == "NT":
        return f"{prefix}NT: no tax deducted"
    if info.type == "0T":
        return f"{prefix}0T: no personal allowance"
    if info.type == "K":
        return f"{prefix}K code: adds {fmt(info.k_adjustment, 0)} to taxable income"
    if info.type in ("BR", "D0", "D1", "D2", "D3"):
        return f"{prefix}{info.type}: all income at a single flat rate"
    return f"{prefix}Personal allowance {fmt(info.personal_allowance, 0)}"


def compute_display_data(inputs: CalculationInput, result: CalculationResult) -> Dict[str, Any]:
    """Bundle the result with the derived figures both front ends show."""
    total_gross = inputs.gross_salary + result.pension_income
    net_pension = result.pension_income - result.pension_income_tax
    # Sacrificed pension escapes tax at the marginal rate
    pension_saving = inputs.pension_contribution * (
        result.marginal_tax_rate if result.effective_tax_rate > 0 else 0.0)

    bars = [("Take Home", result.net_annual_income, "take-home"),
            ("Income Tax", result.income_tax, "tax"),
            ("NI", result.national_insurance, "ni")]
    if result.total_salary_sacrifice > 0:
        bars.append(("Sacrifice", result.total_salary_sacrifice, "sacrifice"))
    if result.total_post_tax_deductions > 0:
        bars.append(("Post-Tax", result.total_post_tax_deductions, "post-tax"))
    if result.pension_income > 0:
        bars.append(("Pension (net)", net_pension, "pension"))

    return {
        "region": inputs.region,
        "region_label": "Scotland" if inputs.region == "scotland" else "England, Wales & NI",
        "tax_year": cfg.TAX_YEAR,
        "result": result,
        "total_gross": total_gross,
        "net_pension": net_pension,
        "pension_contribution": inputs.pension_contribution,
        "pension_saving": pension_saving,
        "deduction_rows": [
            {"name": p.name, "annual": p.amount, "monthly": p.amount / cfg.MONTHS_PER_YEAR}
            for p in result.post_tax_deductions if p.amount > 0
        ],
        "bars": [
            {
                "label": label,
                "value": value,
                "css": css,
                "share": (value / total_gross) if total_gross > 0 else 0.0,
            }
            for label, value, css in bars
        ],
        "employment_code_text": (
            describe_tax_code(result.employment_tax_code_info)
            if result.employment_tax_code_info else None
        ),
        "pension_code_text": (
            describe_tax_code(result.pension_tax_code_info)
            if result.pension_tax_code_info else None
        ),
    }


# ═══════════════════════════════════════════════════════════════════
# Box-drawing CLI output
# ═══════════════════════════════════════════════════════════════════

W = 78  # box width (characters)
_H = "═"


def _box_top(title: str) -> str:
    inner = W - 2
    return (
        f"╔{_H * inner}╗\n"
        f"║  {title:<{inner - 2}}║\n"
        f"╠{_H * inner}╣"
    )


def _box_line(text: str = "") -> str:
    inner = W - 4
    if len(text) > inner:
        text = text[:inner]
    return f"║  {text:<{inner}}║"


def _box_row(label: str, value: str, lw: int = 46) -> str:
    return _box_line(f"{label:<{lw}}{value}")


def _box_bottom() -> str:
    return f"╚{_H * (W - 2)}╝"


def _print_section(title: str, rows: List[str]) -> None:
    """Print a titled box with content rows."""
    print(_box_top(title))
    for r in rows:
        print(r)
    print(_box_bottom())
    print()


def _band_lines(rows: List[BandRow]) -> List[str]:
    h = f"{'Band':<34}{'Amount':>14}{'Rate':>8}{'Charge':>14}"
    lines = [_box_line(h), _box_line("─" * (W - 6))]
    for row in rows:
        lines.append(_box_line(
            f"{row.name[:33]:<34}{fmt(row.taxable_in_band):>14}"
            f"{pct(row.rate):>8}{fmt(row.tax):>14}"
        ))
    if not rows:
        lines.append(_box_line("Nothing to pay."))
    return lines


# ═══════════════════════════════════════════════════════════════════
# CLI Section Printers
# ═══════════════════════════════════════════════════════════════════

def _print_summary(d: Dict[str, Any]) -> None:
    r: CalculationResult = d["result"]
    rows = [
        _box_row("Region", d["region_label"]),
        _box_row("Gross salary", fmt(r.gross_salary)),
        _box_row("Salary sacrifice (incl. pension)", fmt(r.total_salary_sacrifice)),
        _box_row("Taxable employment income", fmt(r.taxable_employment_income)),
    ]
    if r.pension_income > 0:
        rows.append(_box_row("Pension income", fmt(r.pension_income)))
    rows += [
        _box_row("Personal allowance", fmt(r.personal_allowance)),
        _box_line(),
        _box_row("Income tax", fmt(r.income_tax)),
        _box_row("National Insurance", fmt(r.national_insurance)),
    ]
    if r.total_post_tax_deductions > 0:
        rows.append(_box_row("Post-tax deductions", fmt(r.total_post_tax_deductions)))
    rows += [
        _box_line(),
        _box_row("Take-home pay (annual)", fmt(r.net_annual_income)),
        _box_row("Take-home pay (monthly)", fmt(r.monthly_take_home)),
        _box_row("Effective rate (tax + NI)", pct(r.effective_tax_rate)),
        _box_row("Marginal income tax rate", pct(r.marginal_tax_rate)),
    ]
    _print_section(f"YOUR TAKE-HOME PAY {d['tax_year']}", rows)


def _print_tax_codes(d: Dict[str, Any]) -> None:
    r: CalculationResult = d["result"]
    if not r.using_tax_codes:
        return
    rows = []
    if r.employment_tax_code_info:
        rows.append(_box_row("Employment code " + r.employment_tax_code_info.raw,
                             d["employment_code_text"], lw=26))
    if r.pension_tax_code_info:
        rows.append(_box_row("Pension code " + r.pension_tax_code_info.raw,
                             d["pension_code_text"], lw=26))
    rows.append(_box_row("Employment income tax", fmt(r.employment_income_tax)))
    if r.pension_income > 0:
        rows.append(_box_row("Pension income tax", fmt(r.pension_income_tax)))
    _print_section("TAX CODES", rows)


def _print_breakdowns(d: Dict[str, Any]) -> None:
    r: CalculationResult = d["result"]
    _print_section("INCOME TAX BREAKDOWN", _band_lines(r.tax_breakdown))
    _print_section("NATIONAL INSURANCE BREAKDOWN", _band_lines(r.ni_breakdown))


def _print_monthly(d: Dict[str, Any]) -> None:
    r: CalculationResult = d["result"]
    rows = [
        _box_row("Gross salary", fmt(r.gross_monthly_salary)),
        _box_row("Income tax", fmt(r.monthly_tax)),
        _box_row("National Insurance", fmt(r.monthly_ni)),
        _box_row("Salary sacrifice", fmt(r.monthly_salary_sacrifice)),
    ]
    if r.pension_income > 0:
        rows.append(_box_row("Pension income", fmt(r.monthly_pension_income)))
    if r.total_post_tax_deductions > 0:
        rows.append(_box_row("Post-tax deductions", fmt(r.monthly_post_tax_deductions)))
    rows.append(_box_row("Take-home", fmt(r.monthly_take_home)))
    _print_section("MONTHLY", rows)


def _print_pension(d: Dict[str, Any]) -> None:
    r: CalculationResult = d["result"]
    if r.total_pension_pot <= 0:
        return
    rows = [
        _box_row("Your contribution", fmt(r.total_pension_pot - r.employer_pension)),
        _box_row("Employer contribution", fmt(r.employer_pension)),
        _box_row("Total annual pension pot", fmt(r.total_pension_pot)),
    ]
    if d["pension_contribution"] > 0:
        rows += [
            _box_line(),
            _box_line(f"Your {fmt(d['pension_contribution'])}/year goes in before tax, saving you"),
            _box_line(f"{fmt(d['pension_saving'])} in tax and NI. Employer contributions are on top."),
        ]
    _print_section("PENSION", rows)


def _print_deductions(d: Dict[str, Any]) -> None:
    r: CalculationResult = d["result"]
    if r.total_post_tax_deductions <= 0:
        return
    lines = [
        _box_line(f"{'Deduction':<40}{'Annual':>16}{'Monthly':>16}"),
        _box_line("─" * (W - 6)),
    ]
    for row in d["deduction_rows"]:
        lines.append(_box_line(
            f"{row['name'][:39]:<40}{fmt(row['annual']):>16}{fmt(row['monthly']):>16}"))
    lines.append(_box_line(
        f"{'Total':<40}{fmt(r.total_post_tax_deductions):>16}"
        f"{fmt(r.monthly_post_tax_deductions):>16}"))
    _print_section("POST-TAX DEDUCTIONS", lines)


# ═══════════════════════════════════════════════════════════════════
# Main CLI entry point
# ═══════════════════════════════════════════════════════════════════

def run_cli(pdf_path: Optional[str] = "take_home_report.pdf") -> None:
    """Run the full CLI workflow."""
    # Ensure box-drawing characters render on Windows
    try:
        sys.stdout.reconfigure(encoding="utf-8")
    except (AttributeError, OSError):
        pass
    print()
    print("=" * W)
    print(f"  UK Take-Home Pay Calculator ({cfg.TAX_YEAR})")
    print("=" * W)

    inputs = collect_inputs()
    result = calculate(inputs)
    d = compute_display_data(inputs, result)

    print()
    _print_summary(d)
    _print_tax_codes(d)
    _print_breakdowns(d)
    _print_monthly(d)
    _print_pension(d)
    _print_deductions(d)

    if pdf_path:
        print("  Generating PDF report...")
        path = report.generate_pdf(inputs, d, pdf_path)
        print(f"  Saved to {path}\n")


if __name__ == "__main__":
    run_cli()
