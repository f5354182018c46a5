"""End-to-end scenarios for calculate() and salary_sweep()."""
from __future__ import annotations

import json
import logging

import numpy as np
import pytest

import calculator
import tax
from calculator import CalculationInput, PostTaxDeduction, calculate, salary_sweep


# ─── Combined mode ───────────────────────────────────────────────────

def test_scotland_45k_no_codes():
    r = calculate(CalculationInput(gross_salary=45_000, region="scotland"))

    assert r.using_tax_codes is False
    assert r.employment_tax_code_info is None
    assert r.pension_tax_code_info is None
    assert r.personal_allowance == 12_570
    assert [b.name for b in r.tax_breakdown] == [
        "Personal Allowance", "Starter Rate", "Basic Rate", "Intermediate Rate", "Higher Rate",
    ]
    assert r.income_tax == pytest.approx(
        2_826 * 0.19 + 12_093 * 0.20 + 16_170 * 0.21 + 1_337 * 0.42)
    assert r.income_tax == pytest.approx(6_912.78)
    assert r.employment_income_tax == pytest.approx(r.income_tax)
    assert r.pension_income_tax == 0
    assert r.pension_tax_breakdown == []

    assert [b.name for b in r.ni_breakdown] == ["Below Primary Threshold", "Main Rate"]
    assert r.national_insurance == pytest.approx(2_594.40)

    assert r.net_annual_income == pytest.approx(45_000 - 6_912.78 - 2_594.40)
    assert r.monthly_take_home == pytest.approx(r.net_annual_income / 12)
    assert r.gross_monthly_salary == pytest.approx(3_750)
    assert r.effective_tax_rate == pytest.approx((6_912.78 + 2_594.40) / 45_000)
    assert r.marginal_tax_rate == pytest.approx(0.42)


def test_pension_income_without_code_is_stacked():
    r = calculate(CalculationInput(gross_salary=40_000, pension_income=10_000, region="scotland"))

    allowance = tax.personal_allowance(50_000)
    combined, _ = tax.income_tax(50_000, "scotland", allowance)
    employment, _ = tax.income_tax(40_000, "scotland", allowance)

    assert r.using_tax_codes is False
    assert r.income_tax == pytest.approx(combined)
    assert r.employment_income_tax == pytest.approx(employment)
    assert r.pension_income_tax == pytest.approx(combined - employment)
    assert r.pension_income_tax == pytest.approx(3_430.56)
    assert len(r.pension_tax_breakdown) == 1
    row = r.pension_tax_breakdown[0]
    assert row.name == "Marginal Rate"
    assert row.taxable_in_band == 10_000
    assert row.rate == pytest.approx(r.pension_income_tax / 10_000)

    # NI on employment only
    assert r.national_insurance == pytest.approx((40_000 - 12_570) * 0.08)
    assert r.net_annual_income == pytest.approx(
        40_000 - r.employment_income_tax - r.national_insurance
        + 10_000 - r.pension_income_tax)
    assert r.monthly_pension_income == pytest.approx(10_000 / 12)


def test_taper_reduces_allowance_and_scales_marginal_rate():
    r = calculate(CalculationInput(gross_salary=110_000, region="england"))
    assert r.personal_allowance == 7_570
    assert r.income_tax == pytest.approx(37_699 * 0.20 + 59_729 * 0.40)
    assert r.income_tax == pytest.approx(31_431.40)
    assert r.marginal_tax_rate == pytest.approx(0.60)


def test_salary_sacrifice_and_pension_reduce_taxable_pay():
    r = calculate(CalculationInput(
        gross_salary=50_000, salary_sacrifice=1_000, pension_contribution=5_000,
        employer_pension=2_500, region="england",
    ))
    assert r.total_salary_sacrifice == 6_000
    assert r.taxable_employment_income == 44_000
    assert r.income_tax == pytest.approx((44_000 - 12_571) * 0.20)
    assert r.national_insurance == pytest.approx((44_000 - 12_570) * 0.08)
    assert r.total_deductions == pytest.approx(r.income_tax + r.national_insurance + 6_000)
    assert r.net_annual_income == pytest.approx(50_000 - r.total_deductions)
    assert r.employer_pension == 2_500
    assert r.total_pension_pot == 7_500
    assert r.monthly_employer_pension == pytest.approx(2_500 / 12)
    assert r.monthly_salary_sacrifice == pytest.approx(500)


def test_sacrifice_larger_than_salary_clamps_taxable_income():
    r = calculate(CalculationInput(gross_salary=10_000, salary_sacrifice=12_000))
    assert r.taxable_employment_income == 0
    assert r.income_tax == 0
    assert r.national_insurance == 0
    assert r.net_annual_income == pytest.approx(-2_000)


def test_post_tax_deductions():
    deductions = [PostTaxDeduction("Union", 240), PostTaxDeduction("Charity", 360)]
    base = calculate(CalculationInput(gross_salary=30_000))
    r = calculate(CalculationInput(gross_salary=30_000, post_tax_deductions=deductions))
    assert r.total_post_tax_deductions == 600
    assert r.monthly_post_tax_deductions == pytest.approx(50)
    assert r.net_annual_income == pytest.approx(base.net_annual_income - 600)
    assert r.income_tax == base.income_tax
    assert r.post_tax_deductions == deductions


def test_zero_income():
    r = calculate(CalculationInput())
    assert r.income_tax == 0
    assert r.national_insurance == 0
    assert r.employment_income_tax == 0
    assert r.pension_income_tax == 0
    assert r.net_annual_income == 0
    assert r.monthly_take_home == 0
    assert r.effective_tax_rate == 0
    assert r.marginal_tax_rate == 0
    assert r.tax_breakdown == []
    assert r.ni_breakdown == []
    assert r.pension_tax_breakdown == []


# ─── Per-source mode ─────────────────────────────────────────────────

def test_br_employment_code():
    r = calculate(CalculationInput(gross_salary=30_000, region="england", employment_tax_code="BR"))
    assert r.using_tax_codes is True
    assert r.employment_tax_code_info.type == "BR"
    assert r.employment_income_tax == 30_000 * 0.20
    assert len(r.employment_tax_breakdown) == 1
    assert [b.name for b in r.tax_breakdown] == ["Employment: BR Flat Rate"]
    assert r.personal_allowance == 0
    assert r.national_insurance == pytest.approx((30_000 - 12_570) * 0.08)


def test_k_code_scenario():
    r = calculate(CalculationInput(gross_salary=20_000, region="england", employment_tax_code="K100"))
    expected, _ = tax.income_tax(21_000, "england", 0)
    assert r.employment_income_tax == pytest.approx(expected)
    assert r.employment_income_tax == pytest.approx(8_429 * 0.20)
    assert r.employment_income_tax == pytest.approx(1_685.80)
    assert r.personal_allowance == 0


def test_cumulative_code_reports_its_allowance():
    r = calculate(CalculationInput(gross_salary=40_000, employment_tax_code="1100L"))
    assert r.personal_allowance == 11_000
    assert r.income_tax == pytest.approx((40_000 - 12_571) * 0.20)


def test_both_sources_with_codes():
    r = calculate(CalculationInput(
        gross_salary=40_000, pension_income=10_000, region="england",
        employment_tax_code="1257L", pension_tax_code="BR",
    ))
    employment, employment_rows = tax.income_tax(40_000, "england", 12_570)
    assert r.employment_income_tax == pytest.approx(employment)
    assert r.pension_income_tax == pytest.approx(2_000)
    assert r.income_tax == pytest.approx(employment + 2_000)
    names = [b.name for b in r.tax_breakdown]
    assert names == [f"Employment: {b.name}" for b in employment_rows] + ["Pension: BR Flat Rate"]
    assert r.pension_tax_code_info.type == "BR"


def test_pension_code_only_uses_combined_allowance_for_employment():
    r = calculate(CalculationInput(
        gross_salary=95_000, pension_income=15_000, region="england", pension_tax_code="BR",
    ))
    allowance = tax.personal_allowance(110_000)
    employment, _ = tax.income_tax(95_000, "england", allowance)
    assert r.using_tax_codes is True
    assert r.employment_tax_code_info is None
    assert r.personal_allowance == allowance
    assert r.employment_income_tax == pytest.approx(employment)
    assert r.pension_income_tax == pytest.approx(3_000)


def test_employment_code_with_uncoded_pension_stacks_under_code_allowance():
    r = calculate(CalculationInput(
        gross_salary=30_000, pension_income=10_000, region="england", employment_tax_code="BR",
    ))
    combined, _ = tax.income_tax(40_000, "england", 0)
    assert r.employment_income_tax == pytest.approx(6_000)
    assert r.pension_income_tax == pytest.approx(combined - 6_000)
    assert [b.name for b in r.tax_breakdown] == [
        "Employment: BR Flat Rate", "Pension: Marginal Rate",
    ]


def test_nt_pension_code():
    r = calculate(CalculationInput(
        gross_salary=30_000, pension_income=8_000, pension_tax_code="NT",
    ))
    assert r.pension_income_tax == 0
    assert r.pension_tax_breakdown[0].name == "NT (No Tax)"
    assert r.net_annual_income == pytest.approx(
        30_000 - r.employment_income_tax - r.national_insurance + 8_000)


def test_scottish_code_overrides_region_only_for_tax():
    r = calculate(CalculationInput(gross_salary=45_000, region="england", employment_tax_code="S1257L"))
    assert r.employment_income_tax == pytest.approx(6_912.78)
    # marginal rate follows the selected region
    assert r.marginal_tax_rate == pytest.approx(0.20)


def test_pension_code_ignored_without_pension_income():
    r = calculate(CalculationInput(gross_salary=30_000, pension_tax_code="BR"))
    assert r.using_tax_codes is False
    assert r.pension_tax_code_info is None


def test_invalid_code_falls_back_to_standard_rules(caplog):
    base = calculate(CalculationInput(gross_salary=52_000))
    with caplog.at_level(logging.WARNING, logger="calculator"):
        r = calculate(CalculationInput(gross_salary=52_000, employment_tax_code="XYZ"))
    assert r.using_tax_codes is False
    assert r.employment_tax_code_info is None
    assert r.income_tax == base.income_tax
    assert r.tax_breakdown == base.tax_breakdown
    assert "XYZ" in caplog.text


def test_negative_stacked_remainder_is_kept_and_logged(caplog):
    with caplog.at_level(logging.WARNING, logger="calculator"):
        assert calculator._stacked_tax(100, 150) == -50
    assert "negative" in caplog.text
    assert "-50.00" in caplog.text


def test_flat_employment_code_can_leave_negative_pension_tax(caplog):
    with caplog.at_level(logging.WARNING, logger="calculator"):
        r = calculate(CalculationInput(
            gross_salary=30_000, pension_income=10_000, region="england", employment_tax_code="BR",
        ))
    assert r.pension_income_tax == pytest.approx((40_000 - 12_571) * 0.20 - 6_000)
    assert r.pension_income_tax < 0
    assert "negative" in caplog.text


# ─── Properties ──────────────────────────────────────────────────────

@pytest.mark.parametrize("region, code", [
    ("england", ""), ("scotland", ""), ("england", "1257L"),
    ("scotland", "S1100M"), ("england", "K300"), ("scotland", "SD0"),
])
def test_tax_and_ni_never_fall_as_salary_rises(region, code):
    last = None
    for salary in range(0, 200_001, 2_500):
        r = calculate(CalculationInput(gross_salary=salary, region=region, employment_tax_code=code))
        if last is not None:
            assert r.income_tax >= last.income_tax
            assert r.national_insurance >= last.national_insurance
        last = r


def test_calculation_is_deterministic():
    inputs = CalculationInput(
        gross_salary=87_123.45, pension_income=12_000, salary_sacrifice=1_200,
        pension_contribution=4_000, region="scotland",
        post_tax_deductions=[PostTaxDeduction("Gym", 300)],
    )
    assert calculate(inputs) == calculate(inputs)


def test_unknown_region_rejected():
    with pytest.raises(ValueError):
        CalculationInput(gross_salary=30_000, region="wales")


def test_to_dict_is_json_serialisable():
    r = calculate(CalculationInput(
        gross_salary=60_000, pension_income=5_000, pension_tax_code="BR",
        post_tax_deductions=[PostTaxDeduction("Union", 120)],
    ))
    data = json.loads(json.dumps(r.to_dict()))
    assert data["pension_tax_code_info"]["type"] == "BR"
    assert data["employment_tax_code_info"] is None
    assert data["post_tax_deductions"] == [{"name": "Union", "amount": 120}]
    assert data["ni_breakdown"][1]["name"] == "Main Rate"
    assert data["net_annual_income"] == pytest.approx(r.net_annual_income)


# ─── Salary sweep ────────────────────────────────────────────────────

def test_salary_sweep_matches_calculate():
    base = CalculationInput(gross_salary=1, pension_contribution=2_000, region="scotland")
    salaries = np.array([0, 20_000, 60_000, 110_000])
    sweep = salary_sweep(base, salaries)

    assert set(sweep) == {"salary", "take_home", "income_tax", "national_insurance", "marginal_rate"}
    for key, values in sweep.items():
        assert values.shape == salaries.shape
    r = calculate(CalculationInput(gross_salary=60_000, pension_contribution=2_000, region="scotland"))
    assert sweep["take_home"][2] == pytest.approx(r.net_annual_income)
    assert sweep["income_tax"][2] == pytest.approx(r.income_tax)
    assert sweep["marginal_rate"][3] == pytest.approx(0.675)


def test_default_sweep_take_home_rises():
    sweep = salary_sweep(CalculationInput(region="england"))
    assert sweep["salary"][0] == 0
    assert sweep["salary"][-1] == 200_000
    assert np.all(np.diff(sweep["take_home"]) > 0)
