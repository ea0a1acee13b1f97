"""FastAPI service exposing the merged regional market records."""

from __future__ import annotations

import asyncio
import os
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Sequence

import duckdb
from dotenv import load_dotenv
from fastapi import BackgroundTasks, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse

from jobs.config import (
    FeedConfigError,
    FeedSettings,
    parse_granularity,
    parse_region,
    settings_from_env,
)
from pipelines.analytics import (
    MONTHLY_WINDOW,
    WEEKLY_WINDOW,
    latest_by_region,
    market_summary,
    recent_window,
    sort_newest_first,
    status_banner,
)
from pipelines.model import Granularity, MarketRecord, Region
from pipelines.orchestrator import MarketDataStore, load_market_data
from storage.exports import export_records

DEFAULT_LIMIT = 200
MAX_LIMIT = 5000
ALLOWED_FORMATS = {"json", "csv", "parquet"}
load_dotenv()


def create_app(settings: FeedSettings | None = None, *, autoload: bool = True) -> FastAPI:
    """Build the API around a fresh store; ``autoload`` starts a load cycle on startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        task = None
        if autoload:
            resolved = settings or settings_from_env()
            task = asyncio.create_task(
                load_market_data(
                    resolved.feeds,
                    app.state.store,
                    priority_region=resolved.priority_region,
                    timeout=resolved.timeout,
                )
            )
        yield
        if task is not None and not task.done():
            task.cancel()

    app = FastAPI(title="Regional Market Feeds API", version="0.1.0", lifespan=lifespan)
    app.state.store = MarketDataStore()
    _configure_cors(app)
    _register_routes(app)
    return app


def _configure_cors(app: FastAPI) -> None:
    raw_origins = os.getenv("API_CORS_ORIGINS", "*")
    origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )


def _store(request: Request) -> MarketDataStore:
    return request.app.state.store


def _granularity_or_404(name: str) -> Granularity:
    try:
        return parse_granularity(name)
    except FeedConfigError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


def _region_or_404(name: str) -> Region:
    try:
        return parse_region(name)
    except FeedConfigError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


def _serialize_records(records: Sequence[MarketRecord]) -> list[dict[str, Any]]:
    return [record.model_dump(mode="json") for record in records]


def _register_routes(app: FastAPI) -> None:
    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/status")
    def status(request: Request) -> dict[str, Any]:
        state = _store(request).state
        banner = status_banner(state)
        return {
            "loading": state.loading,
            "error": state.error,
            "banner": None if banner is None else {"severity": banner.severity, "message": banner.message},
            "weekly_count": len(state.weekly),
            "monthly_count": len(state.monthly),
        }

    @app.get("/records/{granularity}")
    def get_records(
        request: Request,
        granularity: str,
        background_tasks: BackgroundTasks,
        format: str = Query("json", description="Response format: json, csv, or parquet"),
        region: str | None = Query(None, description="Region name to filter on"),
        recent: bool = Query(False, description="Limit to the recent window (52 weeks / 24 months)"),
        limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Maximum records returned"),
    ):
        fmt = format.lower()
        if fmt not in ALLOWED_FORMATS:
            raise HTTPException(status_code=400, detail=f"Unsupported format '{format}'.")

        resolved = _granularity_or_404(granularity)
        records: Sequence[MarketRecord] = _store(request).state.records(resolved)
        if region:
            wanted = _region_or_404(region)
            records = [record for record in records if record.region == wanted]
        if recent:
            size = WEEKLY_WINDOW if resolved is Granularity.WEEKLY else MONTHLY_WINDOW
            records = recent_window(records, size)
        records = sort_newest_first(records)[:limit]

        if fmt == "json":
            return JSONResponse(
                content={"count": len(records), "items": _serialize_records(records)}
            )

        suffix = f".{fmt}"
        media_type = "text/csv" if fmt == "csv" else "application/vnd.apache.parquet"
        with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as tmp:
            dest = Path(tmp.name)

        try:
            export_records(records, resolved, dest, fmt=fmt)
        except duckdb.Error as exc:  # pragma: no cover - defensive
            dest.unlink(missing_ok=True)
            raise HTTPException(status_code=500, detail="Export failed") from exc

        def _cleanup(path: Path) -> None:
            path.unlink(missing_ok=True)

        background_tasks.add_task(_cleanup, dest)
        return FileResponse(
            dest,
            media_type=media_type,
            filename=f"{resolved.value}{suffix}",
            background=background_tasks,
        )

    @app.get("/latest/{granularity}")
    def get_latest(request: Request, granularity: str) -> dict[str, Any]:
        resolved = _granularity_or_404(granularity)
        records = sort_newest_first(_store(request).state.records(resolved))
        latest = latest_by_region(records)
        return {"count": len(latest), "items": _serialize_records(latest)}

    @app.get("/summary/{granularity}/{region}")
    def get_summary(request: Request, granularity: str, region: str) -> dict[str, Any]:
        resolved = _granularity_or_404(granularity)
        wanted = _region_or_404(region)
        summary = market_summary(_store(request).state.records(resolved), wanted)
        if not summary:
            raise HTTPException(
                status_code=404, detail=f"No {resolved.value} data for '{wanted.value}'."
            )
        return {
            "region": wanted.value,
            "granularity": resolved.value,
            "metrics": [
                {
                    "metric": item.metric,
                    "label": item.label,
                    "value": item.value,
                    "previous": item.previous,
                    "change_pct": item.change_pct,
                    "trend": item.trend,
                }
                for item in summary
            ],
        }


app = create_app()
