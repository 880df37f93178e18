"""MongoDB persistence for companies and financial metrics.

Two collections:
  companies          one document per tracked insurer, unique on ticker
  financial_metrics  one document per (company_id, metric_name, period_type,
                       fiscal_year, fiscal_quarter), enforced by a unique index

Metric writes are unordered bulk upserts keyed on that compound key, so
re-running ingestion over unchanged source data leaves the collection as it
was. The store takes an explicit database handle; nothing here is a
module-level singleton.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from pymongo import ASCENDING, MongoClient, UpdateOne
from pymongo.errors import PyMongoError

from insurintel.config import Settings, get_config
from insurintel.errors import StorageBatchFailure
from insurintel.models import CompanyRecord
from insurintel.xbrl_mappings import detect_segment

log = logging.getLogger(__name__)

METRIC_KEY_FIELDS = ("company_id", "metric_name", "period_type", "fiscal_year", "fiscal_quarter")


class MetricStore:
    """Companies and financial_metrics over one pymongo Database."""

    def __init__(self, db: Any):
        self.db = db
        self.companies = db.companies
        self.metrics = db.financial_metrics

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> MetricStore:
        settings = settings or get_config()
        client = MongoClient(settings.mongodb_uri, serverSelectionTimeoutMS=5000, tz_aware=True)
        log.info("MongoDB store on database %s", settings.mongodb_database)
        return cls(client[settings.mongodb_database])

    def is_available(self) -> bool:
        """Check if MongoDB is reachable."""
        try:
            self.db.command("ping")
            return True
        except PyMongoError as exc:
            log.warning("MongoDB unavailable: %s", exc)
            return False

    def ensure_indexes(self) -> None:
        self.companies.create_index("ticker", unique=True)
        self.companies.create_index([("is_active", ASCENDING), ("last_ingested_at", ASCENDING)])
        self.metrics.create_index(
            [(f, ASCENDING) for f in METRIC_KEY_FIELDS],
            unique=True,
            name="metric_period_unique",
        )

    # ── Companies ──────────────────────────────────────────────────────────

    def seed_companies(self, records: Iterable[CompanyRecord]) -> int:
        """Insert or refresh reference data; ingestion state is left untouched."""
        ops = []
        for rec in records:
            doc = rec.model_dump(mode="json", exclude={"last_ingested_at", "entity_name"})
            ops.append(UpdateOne(
                {"ticker": rec.ticker},
                {"$set": doc, "$setOnInsert": {"last_ingested_at": None, "entity_name": None}},
                upsert=True,
            ))
        if not ops:
            return 0
        result = self.companies.bulk_write(ops, ordered=False)
        log.info(
            "Seeded companies: %d inserted, %d updated",
            result.upserted_count, result.modified_count,
        )
        return len(ops)

    def companies_needing_refresh(self, limit: int) -> list[CompanyRecord]:
        """Active companies, never-ingested first, then stalest first."""
        cursor = (
            self.companies.find({"is_active": True}, {"_id": 0})
            .sort([("last_ingested_at", ASCENDING), ("ticker", ASCENDING)])
            .limit(limit)
        )
        records = []
        for doc in cursor:
            if not doc.get("segment"):
                doc["segment"] = detect_segment(doc.get("sic_code"))
            records.append(CompanyRecord.model_validate(doc))
        return records

    def set_entity_name(self, company_id: str, entity_name: str) -> None:
        self.companies.update_one({"id": company_id}, {"$set": {"entity_name": entity_name}})

    def mark_ingested(self, company_id: str, when: datetime | None = None) -> None:
        when = when or datetime.now(timezone.utc)
        self.companies.update_one({"id": company_id}, {"$set": {"last_ingested_at": when}})

    # ── Metrics ────────────────────────────────────────────────────────────

    def upsert_metrics(self, rows: list[dict]) -> int:
        """Upsert one batch of metric rows. Raises StorageBatchFailure."""
        if not rows:
            return 0
        ops = [
            UpdateOne({f: row[f] for f in METRIC_KEY_FIELDS}, {"$set": row}, upsert=True)
            for row in rows
        ]
        try:
            result = self.metrics.bulk_write(ops, ordered=False)
        except PyMongoError as exc:
            raise StorageBatchFailure(f"upsert of {len(rows)} metric rows failed: {exc}") from exc
        return result.upserted_count + result.matched_count
