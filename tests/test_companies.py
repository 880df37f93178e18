"""Tests for the seeded company list, segment mapping and settings."""

from insurintel.companies import seed_companies
from insurintel.config import Settings
from insurintel.xbrl_mappings import BASE_METRICS, Segment, concepts_for, detect_segment


def test_seed_list_unique_and_well_formed():
    companies = seed_companies()
    assert len(companies) == 69
    assert len({c.ticker for c in companies}) == len(companies)
    assert len({c.cik for c in companies}) == len(companies)
    assert all(len(c.cik) == 10 and c.cik.isdigit() for c in companies)
    assert all(c.id == c.ticker for c in companies)


def test_every_segment_is_seeded():
    assert {c.segment for c in seed_companies()} == set(Segment)


def test_detect_segment():
    assert detect_segment("6324") is Segment.HEALTH
    assert detect_segment(6311) is Segment.LIFE
    assert detect_segment("6411") is Segment.BROKERS
    assert detect_segment(None) is Segment.PROPERTY_CASUALTY
    assert detect_segment("n/a") is Segment.PROPERTY_CASUALTY


def test_shares_prefer_cover_page():
    first, second = concepts_for("shares_outstanding")
    assert first.cover_page and first.taxonomy == "dei"
    assert not second.cover_page
    assert len(BASE_METRICS) == len(set(BASE_METRICS))


def test_settings_strip_whitespace(monkeypatch):
    monkeypatch.setenv("CRON_SECRET", '  "abc"  ')
    monkeypatch.setenv("INGEST_BATCH_SIZE", "3")
    s = Settings(_env_file=None)
    assert s.cron_secret == "abc"
    assert s.ingest_batch_size == 3
    assert s.upsert_batch_size == 500
