"""SEC EDGAR companyfacts client.

Uses the public SEC endpoint (no API key needed, just User-Agent header):
  - api/xbrl/companyfacts/CIK{cik}.json  (all XBRL facts for a company)

Rate limited to 8 req/sec per SEC guidelines. One client instance is shared
by all worker threads of a run; the pacing lock is the only shared state.
"""

from __future__ import annotations

import logging
import threading
import time

import requests

from insurintel.errors import SourceUnavailable

log = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════
#  Constants
# ═══════════════════════════════════════════════════════════════════════════

DATA_BASE = "https://data.sec.gov"
COMPANY_FACTS_URL = f"{DATA_BASE}/api/xbrl/companyfacts/CIK{{cik}}.json"

# SEC requires a descriptive User-Agent with contact email
DEFAULT_USER_AGENT = "InsurIntel admin@insurintel.com"

# Rate limiting: SEC allows up to 10 req/s; we use 8 to stay safe
MAX_REQUESTS_PER_SECOND = 8.0
MIN_REQUEST_INTERVAL = 1.0 / MAX_REQUESTS_PER_SECOND

_RETRYABLE_STATUS = (429, 500, 502, 503, 504)


def pad_cik(cik: str | int) -> str:
    """Normalize a CIK to the 10-digit zero-padded form the API expects."""
    digits = str(cik).strip().lstrip("0") or "0"
    return digits.zfill(10)


# ═══════════════════════════════════════════════════════════════════════════
#  SEC EDGAR Client
# ═══════════════════════════════════════════════════════════════════════════

class SECClient:
    """HTTP client for the companyfacts API.

    Thread-safe with rate limiting and automatic retry.
    """

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        session: requests.Session | None = None,
        retries: int = 3,
    ):
        self.user_agent = user_agent
        self.headers = {
            "User-Agent": user_agent,
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
        }
        # None: one requests.get per call, safe across worker threads
        self.session = session
        self.retries = retries
        # Rate limiter state
        self._last_request_time = 0.0
        self._rate_lock = threading.Lock()

    # ── Rate-limited HTTP request ─────────────────────────────────────

    def _pace(self) -> None:
        with self._rate_lock:
            elapsed = time.monotonic() - self._last_request_time
            if elapsed < MIN_REQUEST_INTERVAL:
                time.sleep(MIN_REQUEST_INTERVAL - elapsed)
            self._last_request_time = time.monotonic()

    def _request(self, url: str, timeout: int = 60) -> requests.Response:
        """Make a GET request with rate limiting and automatic retry.

        Retries on 429 (rate-limit), 500/502/503/504 (server errors),
        connection errors and timeouts, backing off exponentially.
        """
        for attempt in range(1 + self.retries):
            self._pace()
            last = attempt == self.retries
            try:
                get = self.session.get if self.session is not None else requests.get
                resp = get(url, headers=self.headers, timeout=timeout)
            except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as exc:
                if last:
                    raise
                wait = min(2 ** attempt, 8)
                log.warning("Network error on %s, retrying in %ds: %s", url, wait, exc)
                time.sleep(wait)
                continue

            if resp.status_code in _RETRYABLE_STATUS and not last:
                wait = min(2 ** attempt, 8)
                log.warning(
                    "SEC %d on %s, retrying in %ds (attempt %d/%d)",
                    resp.status_code, url, wait, attempt + 1, self.retries,
                )
                time.sleep(wait)
                continue
            resp.raise_for_status()
            return resp

        # Unreachable: the final attempt either returns or raises
        raise requests.exceptions.ConnectionError(f"Failed after {self.retries + 1} attempts: {url}")

    # ── Company facts ─────────────────────────────────────────────────

    def get_company_facts(self, cik: str | int) -> dict:
        """Fetch ALL XBRL facts for a company.

        Structure: {
            "cik": 896159,
            "entityName": "Chubb Limited",
            "facts": {
                "us-gaap": {
                    "PremiumsEarnedNet": {
                        "label": "Premiums Earned, Net",
                        "units": {
                            "USD": [
                                {"start": "2024-01-01", "end": "2024-12-31",
                                 "val": 49000000000, "accn": "0000896159-25-000004",
                                 "fy": 2024, "fp": "FY", "form": "10-K",
                                 "filed": "2025-02-27"},
                                ...
                            ]
                        }
                    },
                    ...
                }
            }
        }

        Raises SourceUnavailable on any HTTP, network or decoding failure.
        """
        cik_padded = pad_cik(cik)
        url = COMPANY_FACTS_URL.format(cik=cik_padded)
        log.info("Fetching XBRL companyfacts for CIK %s", cik_padded)
        try:
            data = self._request(url).json()
        except requests.exceptions.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else 0
            raise SourceUnavailable(cik_padded, f"HTTP {status}") from exc
        except requests.exceptions.RequestException as exc:
            raise SourceUnavailable(cik_padded, str(exc)) from exc
        except ValueError as exc:
            raise SourceUnavailable(cik_padded, f"invalid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise SourceUnavailable(cik_padded, "unexpected payload shape")
        return data
