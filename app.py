"""
Flask web application for the UK take-home pay calculator.

Single-file app using render_template_string.  Run via ``python main.py``
which starts the dev server on localhost:5000.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict

from flask import Flask, jsonify, render_template_string, request, send_file

import config as cfg
from calculator import CalculationInput, calculate, salary_sweep
from cli import build_input, compute_display_data, describe_tax_code, fmt, pct
from tax_codes import parse_tax_code
import report

logger = logging.getLogger(__name__)

app = Flask(__name__)

PDF_PATH = os.environ.get("TAKE_HOME_PDF_PATH", "take_home_report.pdf")

# ═══════════════════════════════════════════════════════════════════
# Form parsing
# ═══════════════════════════════════════════════════════════════════

def parse_form(form) -> CalculationInput:
    """Parse the HTML form (a MultiDict) into CalculationInput."""
    names = form.getlist("deduction_name")
    amounts = form.getlist("deduction_amount")
    deductions = [(n, a) for n, a in zip(names, amounts) if (n or "").strip() or (a or "").strip()]
    return build_input(
        form.get("salary", "45000"),
        region=form.get("region", "scotland"),
        salary_sacrifice=form.get("salary_sacrifice", "0"),
        pension_contribution=form.get("pension_contribution", "0"),
        employer_pension=form.get("employer_pension", "0"),
        pension_pct=form.get("pension_pct"),
        employer_pension_pct=form.get("employer_pension_pct"),
        has_pension_income=form.get("has_pension_income") == "yes",
        pension_income=form.get("pension_income", "0"),
        employment_tax_code=form.get("employment_tax_code", ""),
        pension_tax_code=form.get("pension_tax_code", ""),
        deductions=deductions,
    )


def parse_json(payload: Dict[str, Any]) -> CalculationInput:
    """Parse a JSON request body into CalculationInput.

    Raises
    ------
    ValueError
        If the region is not a supported one, or post_tax_deductions is
        not a list.
    """
    region = payload.get("region", cfg.DEFAULT_REGION)
    if region not in cfg.REGIONS:
        raise ValueError(f"Region must be one of {', '.join(cfg.REGIONS)}")
    raw_deductions = payload.get("post_tax_deductions") or []
    if not isinstance(raw_deductions, list):
        raise ValueError("post_tax_deductions must be a list")
    deductions = [
        (d.get("name", ""), d.get("amount", 0))
        for d in raw_deductions
        if isinstance(d, dict)
    ]
    pension_income = payload.get("pension_income", 0)
    return build_input(
        payload.get("gross_salary", 0),
        region=region,
        salary_sacrifice=payload.get("salary_sacrifice", 0),
        pension_contribution=payload.get("pension_contribution", 0),
        employer_pension=payload.get("employer_pension", 0),
        pension_pct=payload.get("pension_pct"),
        employer_pension_pct=payload.get("employer_pension_pct"),
        has_pension_income=bool(pension_income),
        pension_income=pension_income,
        employment_tax_code=str(payload.get("employment_tax_code") or ""),
        pension_tax_code=str(payload.get("pension_tax_code") or ""),
        deductions=deductions,
    )


# ═══════════════════════════════════════════════════════════════════
# HTML Template
# ═══════════════════════════════════════════════════════════════════

HTML_TEMPLATE = r"""
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>UK Take-Home Pay Calculator {{ tax_year }}</title>
<style>
  *{margin:0;padding:0;box-sizing:border-box}
  :root{
    --bg-deep:#050816;
    --bg-surface:rgba(15,23,42,0.55);
    --bg-input:rgba(8,11,22,0.85);
    --border-subtle:rgba(99,102,241,0.1);
    --text-primary:#f1f5f9;
    --text-secondary:#94a3b8;
    --indigo:#818cf8;
    --indigo-deep:#6366f1;
    --emerald:#34d399;
    --amber:#fbbf24;
    --red:#f87171;
    --radius-lg:16px;
    --radius-md:10px;
  }
  body{
    background:var(--bg-deep);color:var(--text-primary);
    font-family:'Inter',system-ui,-apple-system,sans-serif;line-height:1.6;
  }
  .container{max-width:1040px;margin:0 auto;padding:2rem 1.5rem}
  .hero{text-align:center;padding:1rem 0 2rem}
  .hero h1{font-size:clamp(1.5rem,4vw,2.2rem);font-weight:800;letter-spacing:-.03em}
  .hero-sub{color:var(--text-secondary);font-size:.9rem}
  .card{
    background:var(--bg-surface);border:1px solid var(--border-subtle);
    border-radius:var(--radius-lg);padding:1.6rem;margin-bottom:1.3rem;
  }
  h2{font-size:1.05rem;font-weight:700;margin-bottom:1rem}
  .form-grid{display:grid;grid-template-columns:repeat(auto-fill,minmax(240px,1fr));gap:1rem 1.5rem}
  .form-group{display:flex;flex-direction:column}
  .form-group label{font-size:.78rem;color:var(--text-secondary);margin-bottom:.3rem;font-weight:500}
  .form-group input,.form-group select{
    background:var(--bg-input);border:1px solid rgba(71,85,105,.35);border-radius:var(--radius-md);
    color:var(--text-primary);padding:.55rem .8rem;font-size:.88rem;font-family:inherit;
  }
  .hint{font-size:.74rem;margin-top:.25rem;color:var(--text-secondary)}
  .hint.bad{color:var(--red)}
  .btn{
    padding:.7rem 1.8rem;border:none;border-radius:var(--radius-md);font-size:.95rem;
    font-weight:600;cursor:pointer;text-decoration:none;display:inline-block;
    background:linear-gradient(135deg,var(--indigo-deep),#8b5cf6);color:#fff;
  }
  .hero-figure{font-size:2.4rem;font-weight:800;color:var(--emerald);text-align:center}
  .hero-label{text-align:center;color:var(--text-secondary);font-size:.85rem}
  .stat-row{display:flex;justify-content:space-between;padding:.45rem 0;border-bottom:1px solid rgba(51,65,85,.3)}
  .stat-row:last-child{border-bottom:none}
  .stat-label{color:var(--text-secondary);font-size:.86rem}
  .stat-value{font-weight:600;font-size:.86rem;font-variant-numeric:tabular-nums}
  .grid-2{display:grid;grid-template-columns:1fr 1fr;gap:1.3rem}
  @media(max-width:768px){.grid-2{grid-template-columns:1fr}}
  table{width:100%;border-collapse:collapse;font-size:.84rem}
  th{text-align:left;padding:.5rem;color:var(--text-secondary);font-size:.74rem;text-transform:uppercase}
  td{padding:.45rem .5rem;border-top:1px solid rgba(51,65,85,.2)}
  td.num,th.num{text-align:right;font-variant-numeric:tabular-nums}
  .chart-img{width:100%;border-radius:var(--radius-md);margin-top:.5rem}
  .footer{text-align:center;color:var(--text-secondary);font-size:.75rem;padding:2rem 0}
</style>
</head>
<body>
<div class="container">

<div class="hero">
  <h1>UK Take-Home Pay Calculator</h1>
  <p class="hero-sub">Income tax, National Insurance, salary sacrifice and tax codes for {{ tax_year }}</p>
</div>

<div class="card">
  <h2>Your details</h2>
  <form method="post" action="/">
    <div class="form-grid">
      <div class="form-group">
        <label>Annual gross salary</label>
        <input type="text" name="salary" value="{{ form.salary or '45000' }}">
      </div>
      <div class="form-group">
        <label>Region</label>
        <select name="region">
          <option value="scotland" {{ 'selected' if (form.region or 'scotland')=='scotland' }}>Scotland</option>
          <option value="england" {{ 'selected' if form.region=='england' }}>England, Wales &amp; NI</option>
        </select>
      </div>
      <div class="form-group">
        <label>Other salary sacrifice (annual)</label>
        <input type="text" name="salary_sacrifice" value="{{ form.salary_sacrifice or '0' }}">
      </div>
      <div class="form-group">
        <label>Pension contribution via salary sacrifice (annual)</label>
        <input type="text" name="pension_contribution" value="{{ form.pension_contribution or '0' }}">
      </div>
      <div class="form-group">
        <label>&hellip;or pension as % of salary</label>
        <input type="number" step="0.5" min="0" max="100" name="pension_pct" value="{{ form.pension_pct or '' }}">
      </div>
      <div class="form-group">
        <label>Employer pension (annual)</label>
        <input type="text" name="employer_pension" value="{{ form.employer_pension or '0' }}">
      </div>
      <div class="form-group">
        <label>&hellip;or employer pension as % of salary</label>
        <input type="number" step="0.5" min="0" max="100" name="employer_pension_pct" value="{{ form.employer_pension_pct or '' }}">
      </div>
      <div class="form-group">
        <label>Employment tax code (optional)</label>
        <input type="text" name="employment_tax_code" value="{{ form.employment_tax_code or '' }}" placeholder="e.g. S1257L">
        {% if code_hints.employment %}<span class="hint {{ 'bad' if not code_hints.employment.valid }}">{{ code_hints.employment.text }}</span>{% endif %}
      </div>
      <div class="form-group">
        <label>Do you receive a pension income?</label>
        <select name="has_pension_income">
          <option value="no" {{ 'selected' if (form.has_pension_income or 'no')=='no' }}>No</option>
          <option value="yes" {{ 'selected' if form.has_pension_income=='yes' }}>Yes</option>
        </select>
      </div>
      <div class="form-group">
        <label>Annual pension income</label>
        <input type="text" name="pension_income" value="{{ form.pension_income or '0' }}">
      </div>
      <div class="form-group">
        <label>Pension tax code (optional)</label>
        <input type="text" name="pension_tax_code" value="{{ form.pension_tax_code or '' }}" placeholder="e.g. BR">
        {% if code_hints.pension %}<span class="hint {{ 'bad' if not code_hints.pension.valid }}">{{ code_hints.pension.text }}</span>{% endif %}
      </div>
      {% for i in range(3) %}
      <div class="form-group">
        <label>Post-tax deduction {{ i + 1 }} (name / annual amount)</label>
        <input type="text" name="deduction_name" value="{{ deductions[i][0] if deductions|length > i else '' }}" placeholder="Name">
        <input type="text" name="deduction_amount" value="{{ deductions[i][1] if deductions|length > i else '' }}" placeholder="0" style="margin-top:.3rem">
      </div>
      {% endfor %}
    </div>
    <div style="margin-top:1.2rem">
      <button type="submit" class="btn">Calculate</button>
    </div>
  </form>
</div>

{% if d %}
{% set r = d.result %}
<div class="card">
  <div class="hero-label">Monthly take-home pay</div>
  <div class="hero-figure">{{ fmt(r.monthly_take_home) }}</div>
  <div class="hero-label">{{ fmt(r.net_annual_income) }} a year &middot; {{ d.region_label }}</div>
</div>

<div class="grid-2">
  <div class="card">
    <h2>Annual summary</h2>
    <div class="stat-row"><span class="stat-label">Gross salary</span><span class="stat-value">{{ fmt(r.gross_salary) }}</span></div>
    <div class="stat-row"><span class="stat-label">Salary sacrifice (incl. pension)</span><span class="stat-value">{{ fmt(r.total_salary_sacrifice) }}</span></div>
    <div class="stat-row"><span class="stat-label">Taxable income</span><span class="stat-value">{{ fmt(r.total_taxable_income) }}</span></div>
    <div class="stat-row"><span class="stat-label">Personal allowance</span><span class="stat-value">{{ fmt(r.personal_allowance) }}</span></div>
    <div class="stat-row"><span class="stat-label">Income tax</span><span class="stat-value">{{ fmt(r.income_tax) }}</span></div>
    <div class="stat-row"><span class="stat-label">National Insurance</span><span class="stat-value">{{ fmt(r.national_insurance) }}</span></div>
    {% if r.total_post_tax_deductions > 0 %}
    <div class="stat-row"><span class="stat-label">Post-tax deductions</span><span class="stat-value">{{ fmt(r.total_post_tax_deductions) }}</span></div>
    {% endif %}
    {% if r.pension_income > 0 %}
    <div class="stat-row"><span class="stat-label">Pension income (net)</span><span class="stat-value">{{ fmt(d.net_pension) }}</span></div>
    {% endif %}
    <div class="stat-row"><span class="stat-label">Effective rate</span><span class="stat-value">{{ pct(r.effective_tax_rate) }}</span></div>
    <div class="stat-row"><span class="stat-label">Marginal rate</span><span class="stat-value">{{ pct(r.marginal_tax_rate) }}</span></div>
  </div>
  <div class="card">
    <h2>Monthly</h2>
    <div class="stat-row"><span class="stat-label">Gross salary</span><span class="stat-value">{{ fmt(r.gross_monthly_salary) }}</span></div>
    <div class="stat-row"><span class="stat-label">Income tax</span><span class="stat-value">{{ fmt(r.monthly_tax) }}</span></div>
    <div class="stat-row"><span class="stat-label">National Insurance</span><span class="stat-value">{{ fmt(r.monthly_ni) }}</span></div>
    <div class="stat-row"><span class="stat-label">Salary sacrifice</span><span class="stat-value">{{ fmt(r.monthly_salary_sacrifice) }}</span></div>
    <div class="stat-row"><span class="stat-label">Pension income</span><span class="stat-value">{{ fmt(r.monthly_pension_income) }}</span></div>
    <div class="stat-row"><span class="stat-label">Post-tax deductions</span><span class="stat-value">{{ fmt(r.monthly_post_tax_deductions) }}</span></div>
    <div class="stat-row"><span class="stat-label">Employer pension</span><span class="stat-value">{{ fmt(r.monthly_employer_pension) }}</span></div>
    <div class="stat-row"><span class="stat-label">Total annual pension pot</span><span class="stat-value">{{ fmt(r.total_pension_pot) }}</span></div>
  </div>
</div>

<div class="grid-2">
  <div class="card">
    <h2>Income tax breakdown</h2>
    <table>
      <tr><th>Band</th><th class="num">Amount</th><th class="num">Rate</th><th class="num">Tax</th></tr>
      {% for row in r.tax_breakdown %}
      <tr><td>{{ row.name }}</td><td class="num">{{ fmt(row.taxable_in_band) }}</td><td class="num">{{ pct(row.rate) }}</td><td class="num">{{ fmt(row.tax) }}</td></tr>
      {% endfor %}
    </table>
  </div>
  <div class="card">
    <h2>National Insurance breakdown</h2>
    <table>
      <tr><th>Band</th><th class="num">Earnings</th><th class="num">Rate</th><th class="num">NI</th></tr>
      {% for row in r.ni_breakdown %}
      <tr><td>{{ row.name }}</td><td class="num">{{ fmt(row.taxable_in_band) }}</td><td class="num">{{ pct(row.rate) }}</td><td class="num">{{ fmt(row.tax) }}</td></tr>
      {% endfor %}
    </table>
  </div>
</div>

{% if r.total_pension_pot > 0 or r.total_post_tax_deductions > 0 %}
<div class="grid-2">
  {% if r.total_pension_pot > 0 %}
  <div class="card">
    <h2>Pension</h2>
    <div class="stat-row"><span class="stat-label">Your contribution</span><span class="stat-value">{{ fmt(d.pension_contribution) }}</span></div>
    <div class="stat-row"><span class="stat-label">Employer contribution</span><span class="stat-value">{{ fmt(r.employer_pension) }}</span></div>
    <div class="stat-row"><span class="stat-label">Total annual pension pot</span><span class="stat-value">{{ fmt(r.total_pension_pot) }}</span></div>
    {% if d.pension_contribution > 0 %}
    <p class="hint pension-note">Your contribution of {{ fmt(d.pension_contribution) }}/year is via salary sacrifice (pre-tax), saving you {{ fmt(d.pension_saving) }} in tax and NI. Employer contributions are paid on top of your salary.</p>
    {% endif %}
  </div>
  {% endif %}
  {% if r.total_post_tax_deductions > 0 %}
  <div class="card">
    <h2>Post-tax deductions</h2>
    <table>
      <tr><th>Deduction</th><th class="num">Annual</th><th class="num">Monthly</th></tr>
      {% for row in d.deduction_rows %}
      <tr><td>{{ row.name }}</td><td class="num">{{ fmt(row.annual) }}</td><td class="num">{{ fmt(row.monthly) }}</td></tr>
      {% endfor %}
      <tr><td><strong>Total</strong></td><td class="num"><strong>{{ fmt(r.total_post_tax_deductions) }}</strong></td><td class="num"><strong>{{ fmt(r.monthly_post_tax_deductions) }}</strong></td></tr>
    </table>
  </div>
  {% endif %}
</div>
{% endif %}

{% for img in charts %}
<div class="card"><img class="chart-img" src="data:image/png;base64,{{ img }}" alt="Chart {{ loop.index }}"></div>
{% endfor %}

<div style="text-align:center"><a href="/download-pdf" class="btn">Download PDF Report</a></div>
{% endif %}

<div class="footer">Estimates only for the {{ tax_year }} tax year. Not financial or tax advice.</div>
</div>
</body>
</html>
"""


def _code_hints(form: Dict[str, str]) -> Dict[str, Any]:
    hints = {}
    for key, field_name in (("employment", "employment_tax_code"), ("pension", "pension_tax_code")):
        raw = (form.get(field_name) or "").strip()
        if raw:
            info = parse_tax_code(raw)
            text = describe_tax_code(info) if info.is_valid else "Not recognised, standard rules used"
            hints[key] = {"valid": info.is_valid, "text": text}
    return hints


def _render(form: Dict[str, str], deductions=None, d=None, charts=None) -> str:
    return render_template_string(
        HTML_TEMPLATE,
        form=form,
        deductions=deductions or [],
        code_hints=_code_hints(form),
        d=d,
        charts=charts or [],
        tax_year=cfg.TAX_YEAR,
        fmt=fmt,
        pct=pct,
    )


# ═══════════════════════════════════════════════════════════════════
# Routes
# ═══════════════════════════════════════════════════════════════════

@app.route("/", methods=["GET", "POST"])
def index():
    if request.method == "GET":
        return _render(form={})

    # POST: run calculation
    form = request.form.to_dict()
    deductions = list(zip(request.form.getlist("deduction_name"),
                          request.form.getlist("deduction_amount")))
    inputs = parse_form(request.form)
    result = calculate(inputs)
    d = compute_display_data(inputs, result)

    sweep = salary_sweep(inputs)
    chart_images = report.get_web_charts(inputs, d, sweep=sweep)
    report.generate_pdf(inputs, d, PDF_PATH, sweep=sweep)

    return _render(form=form, deductions=deductions, d=d, charts=chart_images)


@app.route("/download-pdf")
def download_pdf():
    if os.path.exists(PDF_PATH):
        return send_file(os.path.abspath(PDF_PATH), as_attachment=True,
                         download_name="take_home_report.pdf")
    return "No report generated yet. Run a calculation first.", 404


@app.route("/api/calculate", methods=["POST"])
def api_calculate():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Request body must be a JSON object"}), 400
    try:
        inputs = parse_json(payload)
    except ValueError as e:
        logger.info("Rejected calculation request: %s", e)
        return jsonify({"error": str(e)}), 400
    return jsonify(calculate(inputs).to_dict())


@app.route("/api/tax-code/<path:code>")
def api_tax_code(code: str):
    info = parse_tax_code(code)
    body = info.to_dict()
    body["description"] = describe_tax_code(info)
    return jsonify(body)


# ═══════════════════════════════════════════════════════════════════
# Entry point
# ═══════════════════════════════════════════════════════════════════

def run_web(debug: bool = True, port: int = 5000, open_browser: bool = True) -> None:
    """Start the Flask development server and open browser."""
    import webbrowser
    import threading

    url = f"http://localhost:{port}"
    print(f"Starting web app at {url}")
    if open_browser:
        threading.Timer(1.0, lambda: webbrowser.open(url)).start()
    app.run(host="127.0.0.1", port=port, debug=debug)


if __name__ == "__main__":
    run_web()
