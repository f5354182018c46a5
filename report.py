"""
PDF report generation and reusable chart rendering for the
UK take-home pay calculator.

Provides:
  - Multi-page PDF report (generate_pdf)
  - Base64-encoded chart images for web embedding (get_web_charts)
"""

from __future__ import annotations

import base64
import io
from typing import Any, Dict, List, Optional

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.backends.backend_pdf import PdfPages
from matplotlib.ticker import FuncFormatter
import numpy as np

import config as cfg
from calculator import CalculationInput, CalculationResult, salary_sweep

# ═══════════════════════════════════════════════════════════════════
# Style constants
# ═══════════════════════════════════════════════════════════════════

BG = "#0a101f"
CARD = "#131b2e"
TEXT = "#f1f5f9"
TEXT2 = "#cbd5e1"
INDIGO = "#818cf8"
EMERALD = "#34d399"
AMBER = "#fbbf24"
RED = "#f87171"
SLATE = "#94a3b8"
BORDER = "#1e293b"
VIOLET = "#a78bfa"
SKY = "#38bdf8"

BAR_COLOURS = {
    "take-home": EMERALD,
    "tax": RED,
    "ni": AMBER,
    "sacrifice": INDIGO,
    "post-tax": SLATE,
    "pension": SKY,
}

A4W, A4H = 8.27, 11.69
WEB_W, WEB_H = 10, 6


# ═══════════════════════════════════════════════════════════════════
# Axis formatters
# ═══════════════════════════════════════════════════════════════════

def _gbp_fmt(x, _):
    if abs(x) >= 1e6:
        return f"£{x / 1e6:.1f}M"
    if abs(x) >= 1e3:
        return f"£{x / 1e3:.0f}k"
    return f"£{x:.0f}"


def _pct_fmt(x, _):
    return f"{x:.0f}%"


GBP_FMT = FuncFormatter(_gbp_fmt)
PCT_FMT = FuncFormatter(_pct_fmt)


# ═══════════════════════════════════════════════════════════════════
# Style helpers
# ═══════════════════════════════════════════════════════════════════

def _style(fig, *axes):
    """Apply dark theme to figure and all axes."""
    fig.patch.set_facecolor(BG)
    for ax in axes:
        ax.set_facecolor(CARD)
        ax.tick_params(colors=TEXT, labelsize=8)
        ax.xaxis.label.set_color(TEXT)
        ax.yaxis.label.set_color(TEXT)
        ax.title.set_color(TEXT)
        for spine in ax.spines.values():
            spine.set_color(BORDER)
        ax.grid(True, alpha=0.15, color=SLATE)


def _money(val: float) -> str:
    return f"£{val:,.2f}"


# ═══════════════════════════════════════════════════════════════════
# Charts
# ═══════════════════════════════════════════════════════════════════

def _chart_take_home_split(d: Dict[str, Any], figsize=(WEB_W, WEB_H - 2)) -> plt.Figure:
    """Where each pound of gross income goes."""
    bars = d["bars"]
    fig, ax = plt.subplots(figsize=figsize)
    _style(fig, ax)

    labels = [b["label"] for b in bars]
    values = np.array([b["value"] for b in bars], dtype=float)
    colours = [BAR_COLOURS.get(b["css"], SLATE) for b in bars]
    y = np.arange(len(bars))

    ax.barh(y, values, color=colours, height=0.6)
    ax.set_yticks(y)
    ax.set_yticklabels(labels)
    ax.invert_yaxis()
    ax.xaxis.set_major_formatter(GBP_FMT)
    for yi, b in zip(y, bars):
        ax.text(max(b["value"], 0), yi, f"  {_money(b['value'])} ({b['share'] * 100:.1f}%)",
                va="center", color=TEXT2, fontsize=8)
    ax.set_xlim(0, max(float(values.max(initial=0)), 1.0) * 1.35)
    ax.set_title("Where your money goes (annual)", fontsize=11, fontweight="bold")
    fig.tight_layout()
    return fig


def _chart_band_breakdown(result: CalculationResult, figsize=(WEB_W, WEB_H - 1)) -> plt.Figure:
    """Income tax and NI charged in each band."""
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=figsize)
    _style(fig, ax1, ax2)

    for ax, rows, colour, title in (
        (ax1, result.tax_breakdown, RED, "Income tax by band"),
        (ax2, result.ni_breakdown, AMBER, "National Insurance by band"),
    ):
        if rows:
            y = np.arange(len(rows))
            ax.barh(y, [r.tax for r in rows], color=colour, height=0.6)
            ax.set_yticks(y)
            ax.set_yticklabels([f"{r.name} ({r.rate * 100:.0f}%)" for r in rows], fontsize=7)
            ax.invert_yaxis()
        else:
            ax.text(0.5, 0.5, "Nothing to pay", ha="center", va="center",
                    color=SLATE, transform=ax.transAxes)
            ax.set_yticks([])
        ax.xaxis.set_major_formatter(GBP_FMT)
        ax.set_title(title, fontsize=10, fontweight="bold")

    fig.tight_layout()
    return fig


def _chart_salary_sweep(inputs: CalculationInput, sweep: Dict[str, np.ndarray],
                        figsize=(WEB_W, WEB_H)) -> plt.Figure:
    """Take-home and marginal rate across salaries, current salary marked."""
    fig, ax = plt.subplots(figsize=figsize)
    _style(fig, ax)

    s = sweep["salary"]
    ax.plot(s, sweep["take_home"], color=EMERALD, linewidth=2.2, label="Take-home pay")
    ax.plot(s, sweep["income_tax"], color=RED, linewidth=1.6, label="Income tax")
    ax.plot(s, sweep["national_insurance"], color=AMBER, linewidth=1.6, label="National Insurance")
    ax.axvspan(cfg.PA_TAPER_THRESHOLD, cfg.PA_TAPER_END, color=VIOLET, alpha=0.10,
               label="Allowance taper")
    ax.axvline(inputs.gross_salary, color=INDIGO, linestyle="--", linewidth=1.2,
               label="Your salary")
    ax.xaxis.set_major_formatter(GBP_FMT)
    ax.yaxis.set_major_formatter(GBP_FMT)
    ax.set_xlabel("Gross salary")
    ax.set_ylabel("Annual amount")

    ax2 = ax.twinx()
    ax2.step(s, sweep["marginal_rate"] * 100, where="post", color=SLATE,
             linewidth=1.0, alpha=0.8, label="Marginal income tax rate")
    ax2.yaxis.set_major_formatter(PCT_FMT)
    ax2.set_ylim(0, 100)
    ax2.tick_params(colors=SLATE, labelsize=8)
    for spine in ax2.spines.values():
        spine.set_color(BORDER)

    lines, labels = ax.get_legend_handles_labels()
    lines2, labels2 = ax2.get_legend_handles_labels()
    ax.legend(lines + lines2, labels + labels2, loc="upper left", fontsize=8,
              facecolor=CARD, edgecolor=BORDER, labelcolor=TEXT)
    ax.set_title("Take-home pay by salary", fontsize=11, fontweight="bold")
    fig.tight_layout()
    return fig


# ═══════════════════════════════════════════════════════════════════
# Page 1: Summary (text only, dark background)
# ═══════════════════════════════════════════════════════════════════

def _page_summary(d: Dict[str, Any]) -> plt.Figure:
    r: CalculationResult = d["result"]
    fig = plt.figure(figsize=(A4W, A4H))
    fig.patch.set_facecolor(BG)

    fig.text(0.08, 0.94, f"UK Take-Home Pay {d['tax_year']}", fontsize=18,
             color=TEXT, fontweight="bold")
    fig.text(0.08, 0.915, d["region_label"], fontsize=10, color=SLATE)

    lines = [
        ("Gross salary", _money(r.gross_salary)),
        ("Salary sacrifice (incl. pension)", _money(r.total_salary_sacrifice)),
        ("Taxable employment income", _money(r.taxable_employment_income)),
        ("Pension income", _money(r.pension_income)),
        ("Personal allowance", _money(r.personal_allowance)),
        ("", ""),
        ("Income tax", _money(r.income_tax)),
        ("  on employment", _money(r.employment_income_tax)),
        ("  on pension income", _money(r.pension_income_tax)),
        ("National Insurance", _money(r.national_insurance)),
        ("Post-tax deductions", _money(r.total_post_tax_deductions)),
        ("", ""),
        ("Take-home (annual)", _money(r.net_annual_income)),
        ("Take-home (monthly)", _money(r.monthly_take_home)),
        ("Effective rate (tax + NI)", f"{r.effective_tax_rate * 100:.1f}%"),
        ("Marginal income tax rate", f"{r.marginal_tax_rate * 100:.1f}%"),
        ("", ""),
        ("Employer pension", _money(r.employer_pension)),
        ("Total annual pension pot", _money(r.total_pension_pot)),
    ]
    if d.get("employment_code_text"):
        lines.append(("Employment tax code", d["employment_code_text"]))
    if d.get("pension_code_text"):
        lines.append(("Pension tax code", d["pension_code_text"]))

    y = 0.86
    for label, value in lines:
        if label:
            fig.text(0.08, y, label, fontsize=10, color=TEXT2)
            fig.text(0.92, y, value, fontsize=10, color=TEXT, ha="right", fontweight="bold")
        y -= 0.032

    fig.text(0.08, 0.04, "Estimates only. Not financial or tax advice.",
             fontsize=8, color=SLATE)
    return fig


# ═══════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════

def figure_to_base64(fig: plt.Figure) -> str:
    """Convert a matplotlib figure to a base64-encoded PNG string."""
    buf = io.BytesIO()
    fig.savefig(buf, format="png", facecolor=fig.get_facecolor(),
                dpi=120, bbox_inches="tight")
    buf.seek(0)
    b64 = base64.b64encode(buf.read()).decode()
    buf.close()
    return b64


def generate_pdf(
    inputs: CalculationInput,
    d: Dict[str, Any],
    path: str = "take_home_report.pdf",
    sweep: Optional[Dict[str, np.ndarray]] = None,
) -> str:
    """Generate the full PDF report. Returns the file path."""
    if sweep is None:
        sweep = salary_sweep(inputs)
    pages = [
        _page_summary(d),
        _chart_take_home_split(d, figsize=(A4W, A4H * 0.4)),
        _chart_band_breakdown(d["result"], figsize=(A4W, A4H * 0.45)),
        _chart_salary_sweep(inputs, sweep, figsize=(A4W, A4H * 0.5)),
    ]

    with PdfPages(path) as pdf:
        for fig in pages:
            pdf.savefig(fig, facecolor=fig.get_facecolor())
    for fig in pages:
        plt.close(fig)
    return path


def get_web_charts(
    inputs: CalculationInput,
    d: Dict[str, Any],
    sweep: Optional[Dict[str, np.ndarray]] = None,
) -> List[str]:
    """Return base64-encoded PNG chart images for web embedding.

    Returns 3 charts:
      [0] Take-home split  (where the money goes)
      [1] Band breakdown   (tax and NI per band)
      [2] Salary sweep     (take-home and marginal rate by salary)
    """
    if sweep is None:
        sweep = salary_sweep(inputs)
    chart_figs = [
        _chart_take_home_split(d),
        _chart_band_breakdown(d["result"]),
        _chart_salary_sweep(inputs, sweep),
    ]

    images = [figure_to_base64(f) for f in chart_figs]
    for f in chart_figs:
        plt.close(f)
    return images
