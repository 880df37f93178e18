"""Observation deduplication: one winner per (metric, canonical period).

Two passes, each with an explicit ordering so the outcome never depends on
dict or list iteration incidentals:

1. Window pass. Observations sharing a true reporting window
   ``(period_start, period_end)`` are re-filings of the same number; the
   latest ``filed`` wins, ties go to the last one in source order.
2. Period pass. Distinct windows that still land on one CanonicalPeriod are a
   period collision; the most recent window wins, ordered by
   ``(period_end, filed, accession, source position)``. Filing recency alone
   must never decide here: a later filing's comparative column would
   otherwise beat the current-year figure.
"""

from __future__ import annotations

import logging
from datetime import date

from insurintel.models import CanonicalPeriod, MetricUnit, ParsedMetric, RawObservation

log = logging.getLogger(__name__)

_UNIT_MAP = {
    "USD": MetricUnit.CURRENCY,
    "USD/shares": MetricUnit.PER_SHARE,
    "shares": MetricUnit.SHARES,
    "pure": MetricUnit.RATIO,
}


def storage_unit(unit_key: str) -> MetricUnit:
    """Map a companyfacts unit key to the stored unit."""
    return _UNIT_MAP.get(unit_key, MetricUnit.CURRENCY)


def _window_rank(item: tuple[int, RawObservation, CanonicalPeriod]) -> tuple[date, int]:
    position, obs, _ = item
    return (obs.filed, position)


def _period_rank(item: tuple[int, RawObservation, CanonicalPeriod]) -> tuple[date, date, str, int]:
    position, obs, _ = item
    return (obs.period_end, obs.filed, obs.accession, position)


def deduplicate_observations(
    metric_name: str,
    labelled: list[tuple[RawObservation, CanonicalPeriod]],
) -> list[ParsedMetric]:
    """Collapse classified observations to at most one ParsedMetric per period.

    Output is ordered by period (oldest first, annual before quarters).
    """
    # -- Pass 1: one survivor per true reporting window
    by_window: dict[tuple[date | None, date], list[tuple[int, RawObservation, CanonicalPeriod]]] = {}
    for position, (obs, period) in enumerate(labelled):
        by_window.setdefault(obs.window, []).append((position, obs, period))
    window_winners = [max(group, key=_window_rank) for group in by_window.values()]

    # -- Pass 2: one survivor per canonical period
    by_period: dict[CanonicalPeriod, list[tuple[int, RawObservation, CanonicalPeriod]]] = {}
    for item in window_winners:
        by_period.setdefault(item[2], []).append(item)

    metrics: list[ParsedMetric] = []
    for period, group in by_period.items():
        _, obs, _ = max(group, key=_period_rank)
        if len(group) > 1:
            log.debug(
                "%s %s: %d reporting windows collide, keeping window ending %s",
                metric_name, period, len(group), obs.period_end,
            )
        metrics.append(ParsedMetric(
            metric_name=metric_name,
            value=obs.value,
            unit=storage_unit(obs.unit),
            period=period,
            period_start=obs.period_start,
            period_end=obs.period_end,
            source_id=obs.accession,
            filed=obs.filed,
            is_derived=False,
        ))

    metrics.sort(key=lambda m: (m.period.sort_key, m.period.period_type.value))
    return metrics
