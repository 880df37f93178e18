"""Period classification: reporting window → CanonicalPeriod.

Identity is keyed off the reporting window, not the source ``fy`` tag. A 10-K
carries comparative prior-year columns that all share the filing's ``fy``;
deriving the fiscal year from ``period_end`` keeps those years apart.

Durational facts (income statement) are classified by window length:
  350–380 days + ``fp == "FY"``   → annual
   80–100 days + ``fp`` in Q1..Q4 → quarterly (quarter from the tag)
Instant facts (balance sheet, no start date) take their type from ``fp``.

The source ``fy`` is still checked for consistency: it may lead the derived
year by the number of comparative years a filing legitimately carries, and
trail it by one (fiscal years ending early in the next calendar year).
"""

from __future__ import annotations

import logging

from insurintel.errors import ClassificationAmbiguous, FiscalYearMismatch
from insurintel.models import CanonicalPeriod, RawObservation

log = logging.getLogger(__name__)

ANNUAL_DAYS = (350, 380)
QUARTER_DAYS = (80, 100)

_QUARTER_TAGS = {"Q1": 1, "Q2": 2, "Q3": 3, "Q4": 4}

# Allowed (fy tag − derived fiscal year)
_ANNUAL_LAG = (-1, 2)             # current year + two comparative years
_QUARTERLY_DURATION_LAG = (-1, 1)  # same quarter, prior year
_QUARTERLY_INSTANT_LAG = (-1, 0)   # a 10-Q's prior year-end balance is not quarterly


def _within(value: int, bounds: tuple[int, int]) -> bool:
    return bounds[0] <= value <= bounds[1]


def classify_observation(obs: RawObservation, *, cover_page: bool = False) -> CanonicalPeriod:
    """Return the CanonicalPeriod for *obs* or raise ClassificationAmbiguous.

    ``cover_page`` facts (dei share counts) are dated at the cover page, so
    their fiscal year comes from the source ``fy`` tag instead of the date.
    """
    fp = (obs.fiscal_period_tag or "").upper()

    if obs.period_start is None:
        if fp == "FY":
            quarter, lag_bounds = None, _ANNUAL_LAG
        elif fp in _QUARTER_TAGS:
            quarter, lag_bounds = _QUARTER_TAGS[fp], _QUARTERLY_INSTANT_LAG
        else:
            raise ClassificationAmbiguous(f"instant fact ending {obs.period_end} tagged fp={fp or None}")
    else:
        days = (obs.period_end - obs.period_start).days
        if _within(days, ANNUAL_DAYS):
            if fp != "FY":
                raise ClassificationAmbiguous(f"{days}-day window tagged fp={fp or None}")
            quarter, lag_bounds = None, _ANNUAL_LAG
        elif _within(days, QUARTER_DAYS):
            if fp not in _QUARTER_TAGS:
                raise ClassificationAmbiguous(f"{days}-day window tagged fp={fp or None}")
            quarter, lag_bounds = _QUARTER_TAGS[fp], _QUARTERLY_DURATION_LAG
        else:
            raise ClassificationAmbiguous(f"{days}-day window is neither annual nor quarterly")

    if cover_page:
        if obs.fiscal_year_tag is None:
            raise ClassificationAmbiguous("cover-page fact without an fy tag")
        fiscal_year = obs.fiscal_year_tag
    else:
        fiscal_year = obs.period_end.year
        if obs.fiscal_year_tag is not None:
            lag = obs.fiscal_year_tag - fiscal_year
            if not _within(lag, lag_bounds):
                detail = f"fy={obs.fiscal_year_tag} inconsistent with period ending {obs.period_end}"
                # a 10-Q repeats the prior year-end balance sheet
                if quarter is not None and obs.period_start is None and lag == 1:
                    raise ClassificationAmbiguous(detail)
                raise FiscalYearMismatch(detail)

    if quarter is None:
        return CanonicalPeriod.annual(fiscal_year)
    return CanonicalPeriod.quarterly(fiscal_year, quarter)


def classify_observations(
    observations: list[RawObservation],
    *,
    cover_page: bool = False,
) -> list[tuple[RawObservation, CanonicalPeriod]]:
    """Label each observation and drop the ones that cannot be classified.

    Year-to-date and comparative columns are routine and logged at debug;
    fiscal-year tag contradictions point at bad source data and are warned.
    """
    labelled: list[tuple[RawObservation, CanonicalPeriod]] = []
    dropped = 0
    for obs in observations:
        try:
            labelled.append((obs, classify_observation(obs, cover_page=cover_page)))
        except FiscalYearMismatch as exc:
            dropped += 1
            log.warning("Dropped %s %s (%s): %s", obs.tag, obs.accession, obs.form, exc)
        except ClassificationAmbiguous as exc:
            dropped += 1
            log.debug("Dropped %s %s (%s): %s", obs.tag, obs.accession, obs.form, exc)

    if dropped:
        log.debug(
            "Classification dropped %d of %d %s observations",
            dropped, len(observations), observations[0].tag,
        )
    return labelled
