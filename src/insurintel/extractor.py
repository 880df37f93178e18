"""Fact extraction from a companyfacts payload.

Turns ``facts[taxonomy][tag].units[unit_key] = [...]`` into RawObservations
for one base metric. Alias resolution is first-match-wins: the first alias
that yields any observation after filtering is the metric's source, and later
aliases are not consulted even if they carry more history.

Extraction never raises. A missing taxonomy, an unknown tag or a malformed
entry all degrade to "no data", which every downstream stage accepts.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from insurintel.models import RawObservation
from insurintel.xbrl_mappings import ConceptEntry

log = logging.getLogger(__name__)


def _unit_bucket(tag_data: Any, unit_key: str) -> tuple[str, list]:
    """(unit, observations) under *unit_key*, else the first unit bucket present."""
    if not isinstance(tag_data, dict):
        return unit_key, []
    units = tag_data.get("units")
    if not isinstance(units, dict) or not units:
        return unit_key, []
    unit = unit_key if unit_key in units else next(iter(units))
    bucket = units[unit]
    return unit, bucket if isinstance(bucket, list) else []


def _to_observation(tag: str, taxonomy: str, unit: str, entry: Any) -> RawObservation | None:
    if not isinstance(entry, dict):
        return None
    try:
        return RawObservation(
            tag=tag,
            taxonomy=taxonomy,
            value=entry["val"],
            unit=unit,
            form=entry["form"],
            fiscal_year_tag=entry.get("fy"),
            fiscal_period_tag=entry.get("fp"),
            period_start=entry.get("start"),
            period_end=entry["end"],
            filed=entry["filed"],
            accession=entry["accn"],
        )
    except (KeyError, ValidationError) as exc:
        log.debug("Skipping malformed %s:%s entry: %s", taxonomy, tag, exc)
        return None


def extract_observations(
    tag_facts: dict | None,
    aliases: list[str] | tuple[str, ...],
    *,
    unit_key: str,
    form_type: str,
    min_fiscal_year: int | None = None,
    taxonomy: str = "us-gaap",
) -> list[RawObservation]:
    """Return the first alias's observations for one filing type.

    Args:
        tag_facts: one taxonomy's ``tag → {units: {...}}`` mapping
        aliases: XBRL tags, most authoritative first
        unit_key: preferred unit bucket (falls back to the first bucket)
        form_type: keep only this filing type, e.g. "10-K"
        min_fiscal_year: drop observations whose source ``fy`` is older

    Source order is preserved; nothing is sorted here.
    """
    if not isinstance(tag_facts, dict):
        return []

    for alias in aliases:
        unit, bucket = _unit_bucket(tag_facts.get(alias), unit_key)
        if not bucket:
            continue

        matched: list[RawObservation] = []
        for entry in bucket:
            obs = _to_observation(alias, taxonomy, unit, entry)
            if obs is None or obs.form != form_type:
                continue
            if min_fiscal_year is not None and (
                obs.fiscal_year_tag is None or obs.fiscal_year_tag < min_fiscal_year
            ):
                continue
            matched.append(obs)

        if matched:
            log.debug("%s: %d %s observations from %s", alias, len(matched), form_type, taxonomy)
            return matched

    return []


def extract_concept(
    facts_payload: dict | None,
    concept: ConceptEntry,
    *,
    form_type: str,
    min_fiscal_year: int | None = None,
) -> list[RawObservation]:
    """Resolve *concept*'s taxonomy in a full companyfacts payload, then extract."""
    if not isinstance(facts_payload, dict):
        return []
    all_facts = facts_payload.get("facts")
    if not isinstance(all_facts, dict):
        return []
    return extract_observations(
        all_facts.get(concept.taxonomy),
        concept.aliases,
        unit_key=concept.unit_key,
        form_type=form_type,
        min_fiscal_year=min_fiscal_year,
        taxonomy=concept.taxonomy,
    )
