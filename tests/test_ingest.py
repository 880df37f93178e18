"""Tests for the ingestion orchestrator."""

from datetime import date, datetime, timezone

import pytest

from insurintel import ingest
from insurintel.errors import SourceUnavailable
from insurintel.ingest import (
    build_company_metrics,
    ingest_company,
    metric_to_row,
    parse_company_facts,
    reconcile_metrics,
    run_ingestion,
)
from insurintel.models import CanonicalPeriod, MetricUnit, ParsedMetric
from insurintel.xbrl_mappings import Segment

from conftest import FakeClient, FakeStore, annual, balance, company, fact, payload


def _values(metrics, name):
    return {m.period.fiscal_year: m.value for m in metrics if m.metric_name == name and m.period.fiscal_quarter is None}


# ── Building metrics ───────────────────────────────────────────────────────

def test_build_company_metrics_end_to_end(pc_payload):
    metrics = build_company_metrics(pc_payload, Segment.PROPERTY_CASUALTY)

    assert _values(metrics, "net_premiums_earned") == {2023: 1000.0, 2024: 1100.0}
    assert _values(metrics, "loss_ratio") == pytest.approx({2023: 65.0, 2024: 65.0})
    assert _values(metrics, "expense_ratio") == pytest.approx({2023: 15.0, 2024: 15.0})
    assert _values(metrics, "combined_ratio") == pytest.approx({2023: 80.0, 2024: 80.0})
    assert _values(metrics, "premium_growth_yoy") == pytest.approx({2024: 10.0})
    assert "premium_growth_yoy" not in {m.metric_name for m in metrics if m.period.fiscal_year == 2023}


def test_at_most_one_metric_per_storage_key(pc_payload):
    metrics = build_company_metrics(pc_payload, Segment.PROPERTY_CASUALTY)
    keys = [m.storage_key for m in metrics]
    assert len(keys) == len(set(keys))


def test_stored_base_value_is_the_one_ratios_used():
    # FY2024 10-K carries current year and two comparative years under fy=2024
    p = payload({
        "PolicyholderBenefitsAndClaimsIncurredNet": [
            annual(600.0, 2022, fy=2024, accn="k24"),
            annual(640.0, 2023, fy=2024, accn="k24"),
            annual(715.0, 2024, fy=2024, accn="k24"),
        ],
        "PremiumsEarnedNet": [
            annual(950.0, 2022, fy=2024, accn="k24"),
            annual(1000.0, 2023, fy=2024, accn="k24"),
            annual(1100.0, 2024, fy=2024, accn="k24"),
        ],
    })
    metrics = build_company_metrics(p, Segment.PROPERTY_CASUALTY)
    losses = _values(metrics, "losses_incurred")
    premiums = _values(metrics, "net_premiums_earned")
    ratios = _values(metrics, "loss_ratio")
    assert losses[2024] == 715.0
    for year in (2022, 2023, 2024):
        assert ratios[year] == pytest.approx(losses[year] / premiums[year] * 100)


def test_cover_page_shares_beat_balance_sheet_shares():
    p = payload(
        {"CommonStockSharesOutstanding": [balance(9_000_000, 2024), balance(8_000_000, 2023)]},
        dei={"EntityCommonStockSharesOutstanding": [
            fact(10_000_000, "2025-02-10", fy=2024, filed="2025-02-20", accn="k24"),
        ]},
    )
    shares = _values(parse_company_facts(p), "shares_outstanding")
    assert shares == {2024: 10_000_000, 2023: 8_000_000}


def test_min_fiscal_year_limits_history(pc_payload):
    metrics = parse_company_facts(pc_payload, min_fiscal_year=2024)
    # the FY2024 10-K's comparative 2023 column passes the fy filter
    assert _values(metrics, "net_premiums_earned") == {2023: 1000.0, 2024: 1100.0}
    assert _values(metrics, "net_income") == {2024: 140.0}


def test_quarterly_and_annual_do_not_collide():
    p = payload({"PremiumsEarnedNet": [
        annual(1100.0, 2024),
        fact(300.0, "2024-12-31", start="2024-10-01", fy=2024, fp="Q4", form="10-Q",
             filed="2025-02-20", accn="q4"),
    ]})
    metrics = parse_company_facts(p)
    periods = {m.period for m in metrics}
    assert periods == {CanonicalPeriod.annual(2024), CanonicalPeriod.quarterly(2024, 4)}


def test_build_never_offers_calculator_a_mixed_snapshot(pc_payload, monkeypatch):
    seen = []
    real = ingest.calculate_derived_metrics

    def spy(snapshot, segment):
        seen.append({snapshot.metric(n).period for n in snapshot.names()})
        return real(snapshot, segment)

    monkeypatch.setattr(ingest, "calculate_derived_metrics", spy)
    build_company_metrics(pc_payload, Segment.PROPERTY_CASUALTY)
    assert seen
    assert all(len(periods) == 1 for periods in seen)


# ── Reconciliation & rows ──────────────────────────────────────────────────

def _pm(value, filed, period=CanonicalPeriod.annual(2024), derived=False):
    return ParsedMetric(
        metric_name="net_income",
        value=value,
        unit=MetricUnit.CURRENCY,
        period=period,
        period_end=date(2024, 12, 31),
        source_id="derived" if derived else "acc-1",
        filed=filed,
        is_derived=derived,
    )


def test_reconcile_latest_filed_wins():
    out = reconcile_metrics([_pm(2.0, date(2025, 6, 1)), _pm(1.0, date(2025, 2, 1))])
    assert [m.value for m in out] == [2.0]


def test_reconcile_tie_goes_to_last_seen():
    out = reconcile_metrics([_pm(1.0, date(2025, 2, 1)), _pm(2.0, date(2025, 2, 1))])
    assert [m.value for m in out] == [2.0]


def test_metric_to_row_base_and_derived():
    row = metric_to_row("CB", _pm(5.0, date(2025, 2, 1)))
    assert row == {
        "company_id": "CB",
        "metric_name": "net_income",
        "metric_value": 5.0,
        "unit": "currency",
        "period_type": "annual",
        "fiscal_year": 2024,
        "fiscal_quarter": None,
        "period_start_date": None,
        "period_end_date": "2024-12-31",
        "is_derived": False,
        "source": "edgar",
        "accession_number": "acc-1",
        "filed_at": "2025-02-01",
    }
    derived = metric_to_row("CB", _pm(5.0, date(2025, 2, 1), derived=True))
    assert derived["source"] == "derived"
    assert derived["accession_number"] is None


# ── ingest_company ─────────────────────────────────────────────────────────

def test_ingest_company_is_idempotent(pc_payload, settings):
    co = company()
    store = FakeStore([co])
    client = FakeClient({co.cik: pc_payload})

    first = ingest_company(co, client, store, settings)
    snapshot = {k: dict(v) for k, v in store.rows.items()}
    second = ingest_company(store.companies[co.id], client, store, settings)

    assert first.errors == [] and second.errors == []
    assert first.metrics_written == second.metrics_written == len(snapshot)
    assert store.rows == snapshot


def test_ingest_company_updates_entity_name_and_marks_ingested(pc_payload, settings):
    co = company()
    store = FakeStore([co])
    result = ingest_company(co, FakeClient({co.cik: pc_payload}), store, settings)
    assert result.errors == []
    assert store.companies[co.id].entity_name == "Test Insurance Co"
    assert store.companies[co.id].last_ingested_at is not None


def test_failed_batch_recorded_and_next_batch_attempted(pc_payload, settings):
    co = company()
    store = FakeStore([co])
    store.fail_batches = {0}
    small_batches = settings.model_copy(update={"upsert_batch_size": 5})

    result = ingest_company(co, FakeClient({co.cik: pc_payload}), store, small_batches)

    assert store.batch_calls > 1
    assert len(result.errors) == 1
    assert "batch 0 rejected" in result.errors[0]
    assert result.metrics_written > 0
    assert co.id not in store.ingested


def test_source_unavailable_recorded(settings):
    co = company()
    store = FakeStore([co])
    result = ingest_company(co, FakeClient(), store, settings)
    assert result.metrics_written == 0
    assert "companyfacts unavailable" in result.errors[0]
    assert store.ingested == []


def test_unexpected_error_recorded_as_fatal(settings):
    co = company()
    client = FakeClient(errors={co.cik: RuntimeError("boom")})
    result = ingest_company(co, client, FakeStore([co]), settings)
    assert result.errors == ["Fatal: boom"]


def test_validation_warnings_attached(settings):
    co = company()
    p = payload({
        "PremiumsEarnedNet": [annual(1000.0, 2024)],
        "PolicyholderBenefitsAndClaimsIncurredNet": [annual(1800.0, 2024)],
        "DeferredPolicyAcquisitionCostAmortizationExpense": [annual(200.0, 2024)],
    })
    result = ingest_company(co, FakeClient({co.cik: p}), FakeStore([co]), settings)
    assert any("combined_ratio_range" in w for w in result.warnings)
    assert result.errors == []


# ── run_ingestion ──────────────────────────────────────────────────────────

def test_run_ingestion_processes_stalest_first_in_order(pc_payload, settings):
    stale = company("OLD", cik="1", last_ingested_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
    fresh = company("NEW", cik="2", last_ingested_at=datetime(2025, 1, 1, tzinfo=timezone.utc))
    never = company("NVR", cik="3")
    store = FakeStore([fresh, stale, never])
    client = FakeClient({"1": pc_payload, "2": pc_payload, "3": pc_payload})

    run = run_ingestion(store, client, settings, batch_size=2, budget_seconds=60)

    assert [r.ticker for r in run.results] == ["NVR", "OLD"]
    assert all(r.errors == [] for r in run.results)
    assert "2 companies" in run.message
    assert sorted(client.calls) == ["1", "3"]


def test_one_company_failure_does_not_stop_the_run(pc_payload, settings):
    good = company("GOOD", cik="1")
    bad = company("BAD", cik="2")
    store = FakeStore([good, bad])
    client = FakeClient({"1": pc_payload}, errors={"2": SourceUnavailable("2", "HTTP 404")})

    run = run_ingestion(store, client, settings, batch_size=10)

    by_ticker = {r.ticker: r for r in run.results}
    assert by_ticker["GOOD"].errors == []
    assert by_ticker["GOOD"].metrics_written > 0
    assert by_ticker["BAD"].errors
    assert store.ingested == ["GOOD"]


def test_budget_exhausted_skips_companies(pc_payload, settings):
    store = FakeStore([company("A", cik="1"), company("B", cik="2")])
    client = FakeClient({"1": pc_payload, "2": pc_payload})

    run = run_ingestion(store, client, settings, batch_size=10, budget_seconds=0)

    assert all(r.errors == ["Skipped: time budget exhausted"] for r in run.results)
    assert client.calls == []
    assert store.rows == {}


def test_no_companies(settings):
    run = run_ingestion(FakeStore(), FakeClient(), settings)
    assert run.results == []
    assert run.message == "No companies need refresh"
