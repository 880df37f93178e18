"""Plausibility checks over a company's finalized metrics.

Warnings are informational: they are attached to the run result and never
block a write.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable

from insurintel.models import CanonicalPeriod, ParsedMetric, PeriodType, ValidationWarning

log = logging.getLogger(__name__)

COMBINED_RATIO_RANGE = (50.0, 150.0)
MLR_RANGE = (50.0, 110.0)
MAX_ABS_ROE = 100.0
ACCOUNTING_TOLERANCE = 0.05


def _fmt(v: float) -> str:
    """Format a currency value for warning messages."""
    a = abs(v)
    if a >= 1e9:
        return f"${v / 1e9:,.2f}B"
    if a >= 1e6:
        return f"${v / 1e6:,.1f}M"
    return f"${v:,.0f}"


def _validate_period(period: CanonicalPeriod, m: dict[str, float]) -> list[ValidationWarning]:
    warnings: list[ValidationWarning] = []
    fy = period.fiscal_year

    # Rule 1: combined ratio in a plausible band
    cr = m.get("combined_ratio")
    if cr is not None and not COMBINED_RATIO_RANGE[0] <= cr <= COMBINED_RATIO_RANGE[1]:
        warnings.append(ValidationWarning(
            rule="combined_ratio_range",
            severity="warning",
            message=f"{period} combined ratio {cr:.1f}% outside {COMBINED_RATIO_RANGE[0]:.0f}–{COMBINED_RATIO_RANGE[1]:.0f}%",
            metric_name="combined_ratio",
            fiscal_year=fy,
        ))

    # Rule 2: losses cannot be negative
    lr = m.get("loss_ratio")
    if lr is not None and lr < 0:
        warnings.append(ValidationWarning(
            rule="negative_loss_ratio",
            severity="error",
            message=f"{period} loss ratio is negative ({lr:.1f}%). Sign convention of the losses tag may be inverted.",
            metric_name="loss_ratio",
            fiscal_year=fy,
        ))

    # Rule 3: medical loss ratio in a plausible band
    mlr = m.get("medical_loss_ratio")
    if mlr is not None and not MLR_RANGE[0] <= mlr <= MLR_RANGE[1]:
        warnings.append(ValidationWarning(
            rule="medical_loss_ratio_range",
            severity="warning",
            message=f"{period} medical loss ratio {mlr:.1f}% outside {MLR_RANGE[0]:.0f}–{MLR_RANGE[1]:.0f}%",
            metric_name="medical_loss_ratio",
            fiscal_year=fy,
        ))

    # Rule 4: ROE magnitude
    roe = m.get("roe")
    if roe is not None and abs(roe) > MAX_ABS_ROE:
        warnings.append(ValidationWarning(
            rule="roe_magnitude",
            severity="warning",
            message=f"{period} ROE {roe:.1f}% exceeds ±{MAX_ABS_ROE:.0f}%",
            metric_name="roe",
            fiscal_year=fy,
        ))

    # Rule 5: accounting equation A = L + E (within 5% tolerance), annual only
    if period.period_type is PeriodType.ANNUAL:
        ta = m.get("total_assets")
        tl = m.get("total_liabilities")
        eq = m.get("stockholders_equity")
        if ta and tl is not None and eq is not None:
            expected = tl + eq
            diff_pct = abs(ta - expected) / abs(ta)
            if diff_pct > ACCOUNTING_TOLERANCE:
                warnings.append(ValidationWarning(
                    rule="accounting_equation",
                    severity="warning",
                    message=(
                        f"{period} assets ({_fmt(ta)}) != liabilities ({_fmt(tl)}) + "
                        f"equity ({_fmt(eq)}) = {_fmt(expected)}. Difference: {diff_pct:.1%}"
                    ),
                    metric_name="total_assets",
                    fiscal_year=fy,
                ))

    return warnings


def validate_metrics(metrics: Iterable[ParsedMetric]) -> list[ValidationWarning]:
    """Run every rule against each period's metrics, oldest period first."""
    by_period: dict[CanonicalPeriod, dict[str, float]] = defaultdict(dict)
    for metric in metrics:
        by_period[metric.period][metric.metric_name] = metric.value

    warnings: list[ValidationWarning] = []
    for period in sorted(by_period, key=lambda p: (p.sort_key, p.period_type.value)):
        warnings.extend(_validate_period(period, by_period[period]))
    return warnings
