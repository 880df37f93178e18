"""Derived-metric and YoY growth calculation.

The calculators only ever read a MetricSnapshot: an immutable view over the
deduplicated base metrics of exactly one CanonicalPeriod. Snapshots come from
BaseMetricIndex, which refuses two base metrics for one (name, period), so
the value stored as ``losses_incurred`` for FY2024 is by construction the
value ``loss_ratio`` for FY2024 was computed from.

All percentages are stored on a 0–100 scale (95.2 means 95.2 %).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date

from insurintel.errors import MixedPeriodError
from insurintel.models import (
    DERIVED_SOURCE,
    CanonicalPeriod,
    MetricUnit,
    ParsedMetric,
    PeriodType,
)
from insurintel.xbrl_mappings import GROWTH_METRICS, UNDERWRITING_SEGMENTS, Segment

log = logging.getLogger(__name__)

# Cover-page share counts below this are class-A-only and inflate BVPS
MIN_SHARES_FOR_BVPS = 1_000_000


# ═══════════════════════════════════════════════════════════════════════════
#  Snapshots
# ═══════════════════════════════════════════════════════════════════════════

class MetricSnapshot:
    """metric_name → value for one exact CanonicalPeriod."""

    __slots__ = ("period", "_metrics")

    def __init__(self, period: CanonicalPeriod, metrics: Iterable[ParsedMetric]):
        by_name: dict[str, ParsedMetric] = {}
        for m in metrics:
            if m.period != period:
                raise MixedPeriodError(
                    f"{m.metric_name} belongs to {m.period}, snapshot is {period}"
                )
            if m.metric_name in by_name:
                raise MixedPeriodError(f"{m.metric_name} appears twice in {period}")
            by_name[m.metric_name] = m
        self.period = period
        self._metrics = by_name

    def get(self, name: str) -> float | None:
        m = self._metrics.get(name)
        return m.value if m is not None else None

    def metric(self, name: str) -> ParsedMetric | None:
        return self._metrics.get(name)

    def names(self) -> list[str]:
        return list(self._metrics)

    def __contains__(self, name: object) -> bool:
        return name in self._metrics

    def __len__(self) -> int:
        return len(self._metrics)

    def latest_end(self, names: Iterable[str]) -> date | None:
        """Latest period end among the named inputs present."""
        ends = [self._metrics[n].period_end for n in names if n in self._metrics]
        ends = [e for e in ends if e is not None]
        return max(ends) if ends else None

    def latest_filed(self, names: Iterable[str]) -> date | None:
        """Latest filing date among the named inputs present."""
        dates = [self._metrics[n].filed for n in names if n in self._metrics]
        return max(dates) if dates else None


class BaseMetricIndex:
    """Deduplicated base metrics indexed by (metric_name, period).

    The single source of truth for derivation: it rejects duplicates rather
    than letting "last one wins" pick a value silently.
    """

    def __init__(self, metrics: Iterable[ParsedMetric]):
        self._index: dict[CanonicalPeriod, dict[str, ParsedMetric]] = {}
        for m in metrics:
            bucket = self._index.setdefault(m.period, {})
            if m.metric_name in bucket:
                raise ValueError(f"duplicate base metric {m.metric_name} for {m.period}")
            bucket[m.metric_name] = m

    def periods(self) -> list[CanonicalPeriod]:
        """Every period with at least one base metric, oldest first."""
        return sorted(self._index, key=lambda p: (p.sort_key, p.period_type.value))

    def annual_years(self) -> list[int]:
        return sorted(p.fiscal_year for p in self._index if p.period_type is PeriodType.ANNUAL)

    def snapshot(self, period: CanonicalPeriod) -> MetricSnapshot:
        return MetricSnapshot(period, self._index.get(period, {}).values())

    def get(self, name: str, period: CanonicalPeriod) -> ParsedMetric | None:
        return self._index.get(period, {}).get(name)


# ═══════════════════════════════════════════════════════════════════════════
#  Safe numeric helpers
# ═══════════════════════════════════════════════════════════════════════════

def _div(a: float | None, b: float | None) -> float | None:
    """Safe division: returns None if either operand is None or divisor is zero."""
    if a is None or b is None or b == 0:
        return None
    return a / b


def _pct(a: float | None, b: float | None) -> float | None:
    q = _div(a, b)
    return q * 100 if q is not None else None


def _positive(v: float | None) -> float | None:
    return v if v is not None and v > 0 else None


# ═══════════════════════════════════════════════════════════════════════════
#  Derived metrics
# ═══════════════════════════════════════════════════════════════════════════

def calculate_derived_metrics(snapshot: MetricSnapshot, segment: Segment) -> list[ParsedMetric]:
    """Compute ratio metrics for the snapshot's single period.

    Zero or missing denominators suppress the metric. Underwriting ratios are
    gated to UNDERWRITING_SEGMENTS, medical loss ratio to Health.
    """
    if not isinstance(snapshot, MetricSnapshot):
        raise TypeError("derived metrics are computed from a MetricSnapshot only")

    derived: list[ParsedMetric] = []

    def emit(name: str, value: float | None, unit: MetricUnit, inputs: tuple[str, ...]) -> float | None:
        if value is None:
            return None
        derived.append(ParsedMetric(
            metric_name=name,
            value=value,
            unit=unit,
            period=snapshot.period,
            period_start=None,
            period_end=snapshot.latest_end(inputs),
            source_id=DERIVED_SOURCE,
            filed=snapshot.latest_filed(inputs),
            is_derived=True,
        ))
        return value

    npe = snapshot.get("net_premiums_earned")
    ni = snapshot.get("net_income")
    eq = snapshot.get("stockholders_equity")
    ta = snapshot.get("total_assets")

    # ── Underwriting ratios ────
    if segment in UNDERWRITING_SEGMENTS:
        loss_ratio = emit(
            "loss_ratio",
            _pct(snapshot.get("losses_incurred"), npe),
            MetricUnit.PERCENT,
            ("losses_incurred", "net_premiums_earned"),
        )

        acq = snapshot.get("acquisition_costs")
        uw = snapshot.get("underwriting_expenses")
        expenses = (acq or 0.0) + (uw or 0.0)
        expense_ratio = None
        if expenses > 0:
            expense_ratio = emit(
                "expense_ratio",
                _pct(expenses, npe),
                MetricUnit.PERCENT,
                ("acquisition_costs", "underwriting_expenses", "net_premiums_earned"),
            )

        if loss_ratio is not None and expense_ratio is not None:
            emit(
                "combined_ratio",
                loss_ratio + expense_ratio,
                MetricUnit.PERCENT,
                ("losses_incurred", "acquisition_costs", "underwriting_expenses", "net_premiums_earned"),
            )

    # ── Universal ratios ────
    # Equity ratios need positive equity
    positive_eq = _positive(eq)
    emit("roe", _pct(ni, positive_eq), MetricUnit.PERCENT, ("net_income", "stockholders_equity"))
    emit("roa", _pct(ni, ta), MetricUnit.PERCENT, ("net_income", "total_assets"))

    shares = snapshot.get("shares_outstanding")
    if shares is not None and shares >= MIN_SHARES_FOR_BVPS:
        emit(
            "book_value_per_share",
            _div(positive_eq, shares),
            MetricUnit.PER_SHARE,
            ("stockholders_equity", "shares_outstanding"),
        )

    emit(
        "debt_to_equity",
        _div(snapshot.get("total_debt"), positive_eq),
        MetricUnit.RATIO,
        ("total_debt", "stockholders_equity"),
    )

    # Accounting identity fills a missing liabilities tag
    if "total_liabilities" not in snapshot and ta is not None and eq is not None:
        emit(
            "total_liabilities",
            ta - eq,
            MetricUnit.CURRENCY,
            ("total_assets", "stockholders_equity"),
        )

    # ── Medical loss ratio ────
    # Denominator is premiums when reported, revenue otherwise
    if segment is Segment.HEALTH:
        denominator = npe if npe is not None else snapshot.get("revenue")
        emit(
            "medical_loss_ratio",
            _pct(snapshot.get("medical_claims_expense"), denominator),
            MetricUnit.PERCENT,
            ("medical_claims_expense", "net_premiums_earned" if npe is not None else "revenue"),
        )

    return derived


# ═══════════════════════════════════════════════════════════════════════════
#  YoY growth
# ═══════════════════════════════════════════════════════════════════════════

def calculate_yoy_growth(
    current: MetricSnapshot,
    prior: MetricSnapshot,
    segment: Segment,
) -> list[ParsedMetric]:
    """Year-over-year growth of the segment's volume metric.

    Both snapshots must be annual and one fiscal year apart. Returns zero or
    one metric carrying the current year's period.
    """
    for snap in (current, prior):
        if not isinstance(snap, MetricSnapshot):
            raise TypeError("growth is computed from MetricSnapshots only")
        if snap.period.period_type is not PeriodType.ANNUAL:
            raise ValueError(f"growth needs annual periods, got {snap.period}")
    if current.period.fiscal_year - prior.period.fiscal_year != 1:
        raise ValueError(f"{prior.period} and {current.period} are not adjacent")

    tracked = GROWTH_METRICS.get(segment)
    if tracked is None:
        return []
    base_name, growth_name = tracked

    cur = current.metric(base_name)
    prev = prior.metric(base_name)
    if cur is None or prev is None or prev.value == 0:
        return []

    return [ParsedMetric(
        metric_name=growth_name,
        value=(cur.value - prev.value) / abs(prev.value) * 100,
        unit=MetricUnit.PERCENT,
        period=current.period,
        period_start=cur.period_start,
        period_end=cur.period_end,
        source_id=DERIVED_SOURCE,
        filed=max(cur.filed, prev.filed),
        is_derived=True,
    )]
