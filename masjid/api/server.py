"""
FastAPI server for the masjid API. Run with run_api_server(app) in a background thread.
Central endpoint: GET /api/tasks. Prayer routes are mounted from
masjid.prayer.api (get_router(masjid_app)) under /api/prayer/.
Docs when enabled: http://<host>:<port>/docs
"""
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI

from masjid.prayer.api import get_router as get_prayer_router

logger = logging.getLogger(__name__)


def _serialize_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Serialize datetime to ISO string (UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def create_app(masjid_app: Any) -> FastAPI:
    """Create FastAPI app with routes that use the given MasjidApp instance."""
    app = FastAPI(title="Masjid API", description="Prayer times, iqamah schedule and refresh tasks")

    @app.get("/api/tasks")
    def list_tasks() -> Dict[str, Any]:
        """List active refresh timers and the state of the last refresh."""
        active_timers = masjid_app.task_manager.get_active_timers()
        active_list = [
            {"name": t["name"], "next_run_at": _serialize_datetime(t["next_run_at"])}
            for t in active_timers
        ]
        refresh = getattr(masjid_app, "refresh", None)
        status = {
            "running": bool(refresh and refresh.running),
            "schedule_date": refresh.schedule.date.isoformat() if refresh and refresh.schedule else None,
            "last_error": refresh.last_error if refresh else None,
            "discrepancy": bool(refresh and refresh.discrepancy),
        }
        return {"active_timers": active_list, "refresh": status}

    app.include_router(get_prayer_router(masjid_app), prefix="/api/prayer")
    return app


def run_api_server(masjid_app: Any) -> Optional[threading.Thread]:
    """
    Serve the API from a daemon thread when api.enabled is true.
    Host and port come from api.host (127.0.0.1) and api.port (8765).
    Returns the thread, or None when the API is disabled.
    """
    api_config = masjid_app.config.get_section("api")
    if not api_config.get("enabled", False):
        logger.info(f"API disabled; set api.enabled: true in {masjid_app.config.config_file} to serve it")
        return None

    host = api_config.get("host", "127.0.0.1")
    port = int(api_config.get("port", 8765))
    fastapi_app = create_app(masjid_app)

    def serve() -> None:
        try:
            logger.info(f"API server listening at http://{host}:{port} (docs at /docs)")
            uvicorn.run(fastapi_app, host=host, port=port, log_config=None)
        except Exception as e:
            logger.exception(f"API server stopped: {e}")

    thread = threading.Thread(target=serve, name="masjid-api", daemon=True)
    thread.start()
    return thread
