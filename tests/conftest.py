"""Shared fixtures: companyfacts payload builders and in-memory fakes."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from insurintel.config import Settings
from insurintel.db import METRIC_KEY_FIELDS
from insurintel.errors import SourceUnavailable, StorageBatchFailure
from insurintel.models import CompanyRecord
from insurintel.xbrl_mappings import Segment


# ── Payload builders ───────────────────────────────────────────────────────

def fact(val, end, *, start=None, fy, fp="FY", form="10-K", filed, accn):
    entry = {"end": end, "val": val, "accn": accn, "fy": fy, "fp": fp, "form": form, "filed": filed}
    if start is not None:
        entry["start"] = start
    return entry


def annual(val, year, *, filed=None, accn=None, fy=None):
    """A calendar-year 10-K duration fact."""
    return fact(
        val, f"{year}-12-31",
        start=f"{year}-01-01",
        fy=fy or year,
        filed=filed or f"{year + 1}-02-20",
        accn=accn or f"0000000000-{(year + 1) % 100:02d}-000001",
    )


def balance(val, year, *, filed=None, accn=None, fy=None):
    """A calendar-year-end 10-K instant fact."""
    return fact(
        val, f"{year}-12-31",
        fy=fy or year,
        filed=filed or f"{year + 1}-02-20",
        accn=accn or f"0000000000-{(year + 1) % 100:02d}-000001",
    )


def payload(us_gaap: dict[str, list[dict]] | None = None, *, dei=None, entity="Test Insurance Co"):
    """companyfacts JSON with one USD bucket per us-gaap tag."""
    facts: dict = {}
    if us_gaap:
        facts["us-gaap"] = {tag: {"units": {"USD": entries}} for tag, entries in us_gaap.items()}
    if dei:
        facts["dei"] = {tag: {"units": {"shares": entries}} for tag, entries in dei.items()}
    return {"cik": 123, "entityName": entity, "facts": facts}


# ── Fakes ──────────────────────────────────────────────────────────────────

class FakeStore:
    """In-memory stand-in for MetricStore with the same uniqueness key."""

    def __init__(self, companies=()):
        self.companies = {c.id: c for c in companies}
        self.rows: dict[tuple, dict] = {}
        self.fail_batches: set[int] = set()
        self.batch_calls = 0
        self.ingested: list[str] = []

    def companies_needing_refresh(self, limit):
        ordered = sorted(
            (c for c in self.companies.values() if c.is_active),
            key=lambda c: (c.last_ingested_at is not None, c.last_ingested_at or datetime.min, c.ticker),
        )
        return ordered[:limit]

    def seed_companies(self, records):
        records = list(records)
        for rec in records:
            self.companies.setdefault(rec.id, rec)
        return len(records)

    def ensure_indexes(self):
        pass

    def is_available(self):
        return True

    def set_entity_name(self, company_id, entity_name):
        c = self.companies[company_id]
        self.companies[company_id] = c.model_copy(update={"entity_name": entity_name})

    def mark_ingested(self, company_id, when=None):
        c = self.companies[company_id]
        when = when or datetime.now(timezone.utc)
        self.companies[company_id] = c.model_copy(update={"last_ingested_at": when})
        self.ingested.append(company_id)

    def upsert_metrics(self, rows):
        n = self.batch_calls
        self.batch_calls += 1
        if n in self.fail_batches:
            raise StorageBatchFailure(f"batch {n} rejected")
        for row in rows:
            self.rows[tuple(row[f] for f in METRIC_KEY_FIELDS)] = dict(row)
        return len(rows)


class FakeClient:
    def __init__(self, payloads: dict[str, dict] | None = None, errors: dict[str, Exception] | None = None):
        self.payloads = payloads or {}
        self.errors = errors or {}
        self.calls: list[str] = []

    def get_company_facts(self, cik):
        self.calls.append(cik)
        if cik in self.errors:
            raise self.errors[cik]
        if cik not in self.payloads:
            raise SourceUnavailable(cik, "HTTP 404")
        return self.payloads[cik]


def company(ticker="TST", cik="0000000123", segment=Segment.PROPERTY_CASUALTY, **kw):
    return CompanyRecord(id=ticker, cik=cik, ticker=ticker, name=f"{ticker} Corp", segment=segment, **kw)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        cron_secret="",
        lookback_years=100,
        upsert_batch_size=500,
        max_workers=2,
    )


@pytest.fixture
def pc_payload():
    """Two years of a P&C carrier with comparative columns in the later 10-K."""
    return payload({
        "PremiumsEarnedNet": [
            annual(1000.0, 2023),
            annual(1100.0, 2024, accn="0000000000-25-000001"),
            # FY2024 10-K restates FY2023 as a comparative column
            annual(1000.0, 2023, fy=2024, filed="2025-02-20", accn="0000000000-25-000001"),
        ],
        "PolicyholderBenefitsAndClaimsIncurredNet": [
            annual(650.0, 2023),
            annual(715.0, 2024, accn="0000000000-25-000001"),
        ],
        "DeferredPolicyAcquisitionCostAmortizationExpense": [
            annual(150.0, 2023),
            annual(165.0, 2024, accn="0000000000-25-000001"),
        ],
        "NetIncomeLoss": [
            annual(120.0, 2023),
            annual(140.0, 2024, accn="0000000000-25-000001"),
        ],
        "StockholdersEquity": [
            balance(1000.0, 2023),
            balance(1200.0, 2024, accn="0000000000-25-000001"),
        ],
        "Assets": [
            balance(5000.0, 2023),
            balance(5600.0, 2024, accn="0000000000-25-000001"),
        ],
        "Liabilities": [
            balance(4000.0, 2023),
            balance(4400.0, 2024, accn="0000000000-25-000001"),
        ],
    })
