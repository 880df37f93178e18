"""Company fact ingestion: companyfacts payload → stored metric rows.

Data flow per company:
  1. SECClient.get_company_facts()      → raw payload
  2. extract → classify → deduplicate   → base ParsedMetrics (one per period)
  3. BaseMetricIndex snapshots          → derived ratios + YoY growth
  4. reconcile_metrics()                → at most one row per storage key
  5. MetricStore.upsert_metrics()       → batched idempotent upserts

run_ingestion() drives a bounded thread pool over the companies that have
waited longest for a refresh, within a wall-clock budget.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Any

from insurintel.calculator import BaseMetricIndex, calculate_derived_metrics, calculate_yoy_growth
from insurintel.config import Settings
from insurintel.dedup import deduplicate_observations
from insurintel.errors import SourceUnavailable, StorageBatchFailure
from insurintel.extractor import extract_concept
from insurintel.models import (
    DERIVED_SOURCE,
    CanonicalPeriod,
    CompanyRecord,
    CompanyResult,
    IngestRunResult,
    ParsedMetric,
)
from insurintel.periods import classify_observations
from insurintel.validation import validate_metrics
from insurintel.xbrl_mappings import BASE_METRICS, PERIODIC_FORMS, Segment, concepts_for

log = logging.getLogger(__name__)

EDGAR_SOURCE = "edgar"


# ═══════════════════════════════════════════════════════════════════════════
#  Payload → metrics
# ═══════════════════════════════════════════════════════════════════════════

def parse_company_facts(payload: dict, *, min_fiscal_year: int | None = None) -> list[ParsedMetric]:
    """Deduplicated base metrics for every mapped concept in *payload*.

    When several concept entries feed one metric, an earlier entry's value
    for a period is kept and later entries only fill periods it lacks.
    """
    metrics: list[ParsedMetric] = []
    for metric_name in BASE_METRICS:
        taken: set[CanonicalPeriod] = set()
        for concept in concepts_for(metric_name):
            labelled = []
            for form in PERIODIC_FORMS:
                observations = extract_concept(
                    payload, concept, form_type=form, min_fiscal_year=min_fiscal_year,
                )
                if observations:
                    labelled.extend(classify_observations(observations, cover_page=concept.cover_page))

            for metric in deduplicate_observations(metric_name, labelled):
                if metric.period not in taken:
                    taken.add(metric.period)
                    metrics.append(metric)
    return metrics


def build_company_metrics(
    payload: dict,
    segment: Segment,
    *,
    min_fiscal_year: int | None = None,
) -> list[ParsedMetric]:
    """Base, derived and growth metrics for one company, reconciled."""
    base = parse_company_facts(payload, min_fiscal_year=min_fiscal_year)
    index = BaseMetricIndex(base)

    derived: list[ParsedMetric] = []
    for period in index.periods():
        derived.extend(calculate_derived_metrics(index.snapshot(period), segment))

    growth: list[ParsedMetric] = []
    years = set(index.annual_years())
    for year in sorted(years):
        if year - 1 in years:
            growth.extend(calculate_yoy_growth(
                index.snapshot(CanonicalPeriod.annual(year)),
                index.snapshot(CanonicalPeriod.annual(year - 1)),
                segment,
            ))

    log.debug(
        "Built %d base, %d derived, %d growth metrics across %d periods",
        len(base), len(derived), len(growth), len(index.periods()),
    )
    return reconcile_metrics([*base, *derived, *growth])


def reconcile_metrics(metrics: Iterable[ParsedMetric]) -> list[ParsedMetric]:
    """Keep one metric per storage key: latest filed, ties to the last seen."""
    winners: dict[tuple, ParsedMetric] = {}
    for metric in metrics:
        current = winners.get(metric.storage_key)
        if current is None or metric.filed >= current.filed:
            winners[metric.storage_key] = metric
    return list(winners.values())


def metric_to_row(company_id: str, metric: ParsedMetric) -> dict[str, Any]:
    """Flatten a ParsedMetric into a financial_metrics document."""
    period = metric.period
    return {
        "company_id": company_id,
        "metric_name": metric.metric_name,
        "metric_value": metric.value,
        "unit": metric.unit.value,
        "period_type": period.period_type.value,
        "fiscal_year": period.fiscal_year,
        "fiscal_quarter": period.fiscal_quarter,
        "period_start_date": metric.period_start.isoformat() if metric.period_start else None,
        "period_end_date": metric.period_end.isoformat() if metric.period_end else None,
        "is_derived": metric.is_derived,
        "source": DERIVED_SOURCE if metric.is_derived else EDGAR_SOURCE,
        "accession_number": None if metric.is_derived else metric.source_id,
        "filed_at": metric.filed.isoformat(),
    }


def _chunks(rows: list, size: int) -> Iterator[list]:
    for i in range(0, len(rows), size):
        yield rows[i:i + size]


# ═══════════════════════════════════════════════════════════════════════════
#  Per-company pipeline
# ═══════════════════════════════════════════════════════════════════════════

def ingest_company(
    company: CompanyRecord,
    client: Any,
    store: Any,
    settings: Settings,
    *,
    deadline: float | None = None,
) -> CompanyResult:
    """Fetch, build and upsert one company's metrics.

    Never raises: every failure lands in ``CompanyResult.errors``. The company
    is marked ingested only when nothing went wrong, so a failed company is
    first in line on the next run.
    """
    result = CompanyResult(ticker=company.ticker)
    try:
        payload = client.get_company_facts(company.cik)

        entity_name = payload.get("entityName")
        if entity_name and entity_name != company.entity_name:
            store.set_entity_name(company.id, entity_name)

        min_fy = date.today().year - settings.lookback_years
        metrics = build_company_metrics(payload, company.segment, min_fiscal_year=min_fy)
        result.warnings = [
            f"[{w.severity}] {w.rule}: {w.message}" for w in validate_metrics(metrics)
        ]

        rows = [metric_to_row(company.id, m) for m in metrics]
        batches = list(_chunks(rows, settings.upsert_batch_size))
        for n, batch in enumerate(batches):
            if deadline is not None and time.monotonic() >= deadline:
                result.errors.append(
                    f"Time budget exhausted after {n} of {len(batches)} upsert batches"
                )
                break
            try:
                result.metrics_written += store.upsert_metrics(batch)
            except StorageBatchFailure as exc:
                log.warning("%s: upsert batch %d/%d failed: %s", company.ticker, n + 1, len(batches), exc)
                result.errors.append(str(exc))

        if not result.errors:
            store.mark_ingested(company.id)
        log.info(
            "%s: %d metrics written, %d errors, %d warnings",
            company.ticker, result.metrics_written, len(result.errors), len(result.warnings),
        )
    except SourceUnavailable as exc:
        log.warning("%s: %s", company.ticker, exc)
        result.errors.append(str(exc))
    except Exception as exc:
        log.exception("%s: ingestion failed", company.ticker)
        result.errors.append(f"Fatal: {exc}")
    return result


# ═══════════════════════════════════════════════════════════════════════════
#  Run
# ═══════════════════════════════════════════════════════════════════════════

def run_ingestion(
    store: Any,
    client: Any,
    settings: Settings,
    *,
    batch_size: int | None = None,
    budget_seconds: float | None = None,
) -> IngestRunResult:
    """Ingest the companies that have waited longest for a refresh.

    Uses a thread pool sized by ``settings.max_workers``; the SEC client's
    rate limiter is shared by all workers. A company not started before the
    budget runs out is skipped and reported.
    """
    batch_size = batch_size or settings.ingest_batch_size
    budget = budget_seconds if budget_seconds is not None else settings.ingest_budget_seconds

    companies = store.companies_needing_refresh(batch_size)
    if not companies:
        return IngestRunResult(message="No companies need refresh")

    deadline = time.monotonic() + budget

    def _run(company: CompanyRecord) -> CompanyResult:
        if time.monotonic() >= deadline:
            log.info("%s: skipped, time budget exhausted", company.ticker)
            return CompanyResult(ticker=company.ticker, errors=["Skipped: time budget exhausted"])
        return ingest_company(company, client, store, settings, deadline=deadline)

    with ThreadPoolExecutor(max_workers=max(1, settings.max_workers)) as executor:
        futures = [executor.submit(_run, c) for c in companies]
        results = [f.result() for f in futures]

    written = sum(r.metrics_written for r in results)
    failed = sum(1 for r in results if r.errors)
    message = f"Processed {len(results)} companies: {written} metrics written, {failed} with errors"
    log.info("Ingestion run finished. %s", message)
    return IngestRunResult(message=message, results=results)
