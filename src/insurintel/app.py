"""InsurIntel ingestion service.

Endpoints:
  GET  /health                  liveness and MongoDB reachability
  GET  /api/cron/ingest-facts   scheduled trigger, refreshes the stalest companies
  POST /api/seed                load the tracked-company list

Both /api routes require ``Authorization: Bearer <CRON_SECRET>`` when a
secret is configured.

Run:  python -m insurintel.app
"""

from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from insurintel.companies import seed_companies
from insurintel.config import Settings, get_config
from insurintel.db import MetricStore
from insurintel.ingest import run_ingestion
from insurintel.sec_client import SECClient

log = logging.getLogger(__name__)

app = FastAPI(title="InsurIntel Ingest")

_store: MetricStore | None = None
_client: SECClient | None = None


# ═══════════════════════════════════════════════════════════════════════════
#  Dependencies
# ═══════════════════════════════════════════════════════════════════════════

def get_settings() -> Settings:
    return get_config()


def get_store() -> MetricStore:
    """Lazy-init the shared MongoDB store."""
    global _store
    if _store is None:
        _store = MetricStore.from_settings(get_config())
    return _store


def get_client() -> SECClient:
    """Lazy-init the shared SEC client (one rate limiter per process)."""
    global _client
    if _client is None:
        _client = SECClient(user_agent=get_config().edgar_identity)
    return _client


def require_cron_secret(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    if settings.cron_secret and authorization != f"Bearer {settings.cron_secret}":
        raise HTTPException(status_code=401, detail="Unauthorized")


@app.exception_handler(PyMongoError)
async def storage_error(request: Request, exc: PyMongoError) -> JSONResponse:
    log.error("Storage error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": str(exc)})


# ═══════════════════════════════════════════════════════════════════════════
#  Routes
# ═══════════════════════════════════════════════════════════════════════════

@app.get("/health")
def health(store: MetricStore = Depends(get_store)):
    return {
        "status": "ok",
        "mongodb": "connected" if store.is_available() else "unavailable",
    }


@app.get("/api/cron/ingest-facts", dependencies=[Depends(require_cron_secret)])
def ingest_facts(
    batch_size: int | None = Query(default=None, ge=1, le=100),
    budget_seconds: float | None = Query(default=None, gt=0),
    store: MetricStore = Depends(get_store),
    client: SECClient = Depends(get_client),
    settings: Settings = Depends(get_settings),
) -> dict:
    result = run_ingestion(
        store, client, settings,
        batch_size=batch_size,
        budget_seconds=budget_seconds,
    )
    return result.model_dump()


@app.post("/api/seed", dependencies=[Depends(require_cron_secret)])
def seed(store: MetricStore = Depends(get_store)) -> dict:
    store.ensure_indexes()
    count = store.seed_companies(seed_companies())
    return {"message": f"Seeded {count} companies", "count": count}


if __name__ == "__main__":
    import uvicorn

    port = get_config().port
    print(f"\n  InsurIntel ingest → http://localhost:{port}\n")
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")
