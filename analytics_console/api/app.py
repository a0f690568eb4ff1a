"""
HTTP request/response boundary for the analytics console.

The console is constructed by the caller and attached to the application,
so each app (and each test) owns an isolated store.
"""

import logging
import os
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from analytics_console.config.loader import ConsoleConfig, load_console_config
from analytics_console.core.errors import AnalyticsError, PolicyError, ValidationError
from analytics_console.core.facade import DEFAULT_DAILY_WINDOW, AnalyticsConsole
from .schemas import (
    AppendRequest,
    breakdown_to_dict,
    daily_to_dict,
    record_to_dict,
    records_to_list,
    summary_to_dict,
)

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "ANALYTICS_CONSOLE_CONFIG"

STATUS_BY_ERROR = {
    ValidationError: 422,
    PolicyError: 403,
}

router = APIRouter(prefix="/api/analytics")


def get_console(request: Request) -> AnalyticsConsole:
    return request.app.state.console


@router.post("/log", status_code=201)
def log_event(body: AppendRequest, console: AnalyticsConsole = Depends(get_console)):
    record = console.append(body.to_event_input())
    return {"entry": record_to_dict(record)}


@router.get("/recent")
def get_recent(
    limit: Optional[int] = Query(None),
    console: AnalyticsConsole = Depends(get_console),
):
    entries = records_to_list(console.get_recent(limit))
    return {"entries": entries, "count": len(entries)}


@router.get("/daily")
def get_daily(
    days: int = Query(DEFAULT_DAILY_WINDOW),
    dense: bool = Query(False),
    breakdown: Optional[str] = Query(None),
    console: AnalyticsConsole = Depends(get_console),
):
    summaries = [
        daily_to_dict(s) for s in console.get_daily(days, dense=dense, breakdown=breakdown)
    ]
    return {"summaries": summaries, "count": len(summaries)}


@router.get("/range")
def get_range(
    start: datetime = Query(...),
    end: datetime = Query(...),
    console: AnalyticsConsole = Depends(get_console),
):
    entries = records_to_list(console.get_between(start, end))
    return {"entries": entries, "count": len(entries)}


@router.get("/summary")
def get_summary(console: AnalyticsConsole = Depends(get_console)):
    return summary_to_dict(console.get_summary())


@router.get("/breakdown")
def get_breakdown(
    key: str = Query(...),
    console: AnalyticsConsole = Depends(get_console),
):
    return {"key": key, "groups": breakdown_to_dict(console.get_breakdown(key))}


@router.delete("/clear")
def clear_all(console: AnalyticsConsole = Depends(get_console)):
    console.clear_all()
    return {"success": True}


async def _analytics_error_handler(request: Request, exc: AnalyticsError) -> JSONResponse:
    status = STATUS_BY_ERROR.get(type(exc), 400)
    return JSONResponse(status_code=status, content={"error": exc.kind, "detail": str(exc)})


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"error": ValidationError.kind, "detail": jsonable_encoder(exc.errors())}
    )


def create_app(console: AnalyticsConsole) -> FastAPI:
    """Build the FastAPI application around an existing console.

    Args:
        console: The store every request handler reads and writes

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(title="Analytics Console")
    app.state.console = console
    app.include_router(router)
    app.add_exception_handler(AnalyticsError, _analytics_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    return app


def app_factory() -> FastAPI:
    """Application factory for ASGI servers (``uvicorn --factory``).

    Reads the YAML path from ANALYTICS_CONSOLE_CONFIG when set.
    """
    config_path = os.environ.get(CONFIG_ENV_VAR)
    config = load_console_config(config_path) if config_path else ConsoleConfig()
    logger.info(
        "Starting analytics console (environment=%s, timezone=%s)",
        config.environment.value,
        config.timezone
    )
    return create_app(AnalyticsConsole.from_config(config))
