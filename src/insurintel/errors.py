"""Exception taxonomy for the ingestion pipeline.

Every failure here is recoverable at company or batch granularity:
  SourceUnavailable: companyfacts fetch failed; company recorded, run continues
  ClassificationAmbiguous: observation fits neither annual nor quarterly; dropped
  FiscalYearMismatch: fy tag contradicts the window; dropped with a warning
  MixedPeriodError: refused to build a snapshot spanning two periods
  StorageBatchFailure: one upsert batch rejected; next batch still attempted
"""

from __future__ import annotations


class IngestError(Exception):
    """Base class for pipeline errors."""


class SourceUnavailable(IngestError):
    """The external fact payload could not be fetched or decoded."""

    def __init__(self, cik: str, reason: str):
        self.cik = cik
        self.reason = reason
        super().__init__(f"companyfacts unavailable for CIK {cik}: {reason}")


class ClassificationAmbiguous(IngestError):
    """An observation's window/tag combination is neither annual nor quarterly."""


class MixedPeriodError(IngestError):
    """Metrics from more than one canonical period were offered to one snapshot."""


class StorageBatchFailure(IngestError):
    """The metric store rejected an upsert batch."""


class FiscalYearMismatch(ClassificationAmbiguous):
    """The source fy tag contradicts the reporting window by more than a filing's comparative span."""
