"""Flask routes: HTML form, JSON API and PDF download."""
from __future__ import annotations

import pytest

import app as web


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(web, "PDF_PATH", str(tmp_path / "report.pdf"))
    web.app.config["TESTING"] = True
    with web.app.test_client() as c:
        yield c


def test_index_get(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert b"UK Take-Home Pay Calculator" in resp.data
    assert b"Monthly take-home pay" not in resp.data


def test_index_post_renders_results(client):
    resp = client.post("/", data={
        "salary": "£45,000",
        "region": "scotland",
        "employment_tax_code": "S1257L",
        "has_pension_income": "no",
        "deduction_name": ["Union", ""],
        "deduction_amount": ["120", ""],
    })
    assert resp.status_code == 200
    body = resp.data.decode()
    assert "Monthly take-home pay" in body
    assert "Employment: Starter Rate" in body
    assert "Scottish Personal allowance £12,570" in body
    assert "data:image/png;base64," in body


def test_index_post_flags_bad_code(client):
    resp = client.post("/", data={"salary": "30000", "employment_tax_code": "12Q"})
    assert b"Not recognised, standard rules used" in resp.data


def test_download_pdf_missing(client):
    assert client.get("/download-pdf").status_code == 404


def test_download_pdf_after_calculation(client):
    client.post("/", data={"salary": "30000", "region": "england"})
    resp = client.get("/download-pdf")
    assert resp.status_code == 200
    assert resp.data[:4] == b"%PDF"


def test_api_calculate(client):
    resp = client.post("/api/calculate", json={
        "gross_salary": 30_000,
        "region": "england",
        "employment_tax_code": "BR",
        "post_tax_deductions": [{"name": "Gym", "amount": 300}],
    })
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["employment_income_tax"] == pytest.approx(6_000)
    assert data["personal_allowance"] == 0
    assert data["using_tax_codes"] is True
    assert data["total_post_tax_deductions"] == 300
    assert data["tax_breakdown"][0]["name"] == "Employment: BR Flat Rate"


def test_api_calculate_pension_income(client):
    resp = client.post("/api/calculate", json={
        "gross_salary": 40_000, "pension_income": 10_000, "region": "scotland",
    })
    data = resp.get_json()
    assert data["pension_income_tax"] == pytest.approx(3_430.56)


@pytest.mark.parametrize("kwargs", [
    {"json": [1, 2, 3]},
    {"data": "not json", "content_type": "application/json"},
    {"json": {"gross_salary": 30_000, "region": "wales"}},
    {"json": {"gross_salary": 30_000, "post_tax_deductions": 5}},
    {"json": {"gross_salary": 30_000, "post_tax_deductions": "Gym"}},
])
def test_api_calculate_rejects_bad_requests(client, kwargs):
    resp = client.post("/api/calculate", **kwargs)
    assert resp.status_code == 400
    assert "error" in resp.get_json()


def test_api_tax_code(client):
    data = client.get("/api/tax-code/s1257l").get_json()
    assert data["is_valid"] is True
    assert data["is_scottish"] is True
    assert data["personal_allowance"] == 12_570
    assert data["description"] == "Scottish Personal allowance £12,570"

    data = client.get("/api/tax-code/nope").get_json()
    assert data["is_valid"] is False
    assert data["description"] == "Invalid tax code"


def test_api_calculate_null_deductions(client):
    resp = client.post("/api/calculate", json={"gross_salary": 30_000, "post_tax_deductions": None})
    assert resp.status_code == 200
    assert resp.get_json()["total_post_tax_deductions"] == 0


@pytest.mark.parametrize("salary", [-30_000, "-30000"])
def test_api_calculate_negative_salary_is_zero(client, salary):
    data = client.post("/api/calculate", json={"gross_salary": salary}).get_json()
    assert data["gross_salary"] == 0
    assert data["income_tax"] == 0


def test_index_post_shows_pension_note_and_deductions(client):
    resp = client.post("/", data={
        "salary": "50000",
        "region": "england",
        "pension_contribution": "5000",
        "deduction_name": ["Union", "Gym"],
        "deduction_amount": ["240", "600"],
    })
    body = resp.data.decode()
    assert "saving you £1,000.00 in tax and NI" in body
    assert "Post-tax deductions" in body
    assert "Union" in body and "£20.00" in body
    assert "£840.00" in body and "£70.00" in body


def test_index_post_runs_salary_sweep_once(client, monkeypatch):
    calls = []
    real_sweep = web.salary_sweep

    def counting_sweep(inputs, *args, **kwargs):
        calls.append(inputs)
        return real_sweep(inputs, *args, **kwargs)

    monkeypatch.setattr(web, "salary_sweep", counting_sweep)
    monkeypatch.setattr(web.report, "salary_sweep", counting_sweep)
    client.post("/", data={"salary": "30000", "region": "england"})
    assert len(calls) == 1
