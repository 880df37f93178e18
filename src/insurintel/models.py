"""Pydantic models for observations, metrics, companies and run results."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, model_validator

from insurintel.xbrl_mappings import Segment

DERIVED_SOURCE = "derived"


# ---------------------------------------------------------------------------
# Raw facts
# ---------------------------------------------------------------------------

class RawObservation(BaseModel):
    """One fact exactly as reported in a companyfacts unit bucket."""
    tag: str
    taxonomy: str
    value: float
    unit: str                       # source unit key, e.g. "USD", "USD/shares"
    form: str
    fiscal_year_tag: int | None = None
    fiscal_period_tag: str | None = None
    period_start: date | None = None
    period_end: date
    filed: date
    accession: str

    model_config = {"frozen": True}

    @property
    def window(self) -> tuple[date | None, date]:
        """The true calendar reporting window."""
        return (self.period_start, self.period_end)


# ---------------------------------------------------------------------------
# Period identity
# ---------------------------------------------------------------------------

class PeriodType(str, Enum):
    ANNUAL = "annual"
    QUARTERLY = "quarterly"


class CanonicalPeriod(BaseModel):
    """Fiscal period identity; half of the storage uniqueness key."""
    fiscal_year: int
    fiscal_quarter: int | None = None
    period_type: PeriodType

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_quarter(self) -> CanonicalPeriod:
        if self.period_type is PeriodType.ANNUAL and self.fiscal_quarter is not None:
            raise ValueError("annual periods carry no fiscal quarter")
        if self.period_type is PeriodType.QUARTERLY and self.fiscal_quarter not in (1, 2, 3, 4):
            raise ValueError(f"quarterly period needs a quarter in 1..4, got {self.fiscal_quarter!r}")
        return self

    @classmethod
    def annual(cls, fiscal_year: int) -> CanonicalPeriod:
        return cls(fiscal_year=fiscal_year, period_type=PeriodType.ANNUAL)

    @classmethod
    def quarterly(cls, fiscal_year: int, fiscal_quarter: int) -> CanonicalPeriod:
        return cls(
            fiscal_year=fiscal_year,
            fiscal_quarter=fiscal_quarter,
            period_type=PeriodType.QUARTERLY,
        )

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.fiscal_year, self.fiscal_quarter or 0)

    def __str__(self) -> str:
        if self.period_type is PeriodType.ANNUAL:
            return f"FY{self.fiscal_year}"
        return f"Q{self.fiscal_quarter} FY{self.fiscal_year}"


# ---------------------------------------------------------------------------
# Finalized metrics
# ---------------------------------------------------------------------------

class MetricUnit(str, Enum):
    CURRENCY = "currency"
    PERCENT = "percent"
    RATIO = "ratio"
    PER_SHARE = "per_share"
    SHARES = "shares"


class ParsedMetric(BaseModel):
    """A finalized value bound to one metric name and one canonical period."""
    metric_name: str
    value: float
    unit: MetricUnit
    period: CanonicalPeriod
    period_start: date | None = None
    period_end: date | None = None
    source_id: str                  # accession number, or "derived"
    filed: date
    is_derived: bool = False

    model_config = {"frozen": True}

    @property
    def storage_key(self) -> tuple[str, str, int, int | None]:
        """Mirror of the store's uniqueness constraint (minus company id)."""
        return (
            self.metric_name,
            self.period.period_type.value,
            self.period.fiscal_year,
            self.period.fiscal_quarter,
        )


# ---------------------------------------------------------------------------
# Companies & run results
# ---------------------------------------------------------------------------

class CompanyRecord(BaseModel):
    id: str                         # ticker; scopes every metric row
    cik: str
    ticker: str
    name: str
    segment: Segment
    sub_segment: str | None = None
    sic_code: str | None = None
    entity_name: str | None = None
    is_active: bool = True
    last_ingested_at: datetime | None = None


class ValidationWarning(BaseModel):
    """One plausibility check result."""
    rule: str
    severity: str                # "error" | "warning" | "info"
    message: str
    metric_name: str | None = None
    fiscal_year: int | None = None


class CompanyResult(BaseModel):
    ticker: str
    metrics_written: int = 0
    errors: list[str] = []
    warnings: list[str] = []


class IngestRunResult(BaseModel):
    message: str
    results: list[CompanyResult] = []
