from __future__ import annotations

import time

from fastapi import APIRouter, Request

router = APIRouter()

_start_time = time.time()
_VERSION = "1.0.0"


@router.get("/healthz")
async def healthz(request: Request):
    settings = request.app.state.settings
    return {
        "status": "ok",
        "version": _VERSION,
        "uptime_seconds": round(time.time() - _start_time),
        "cache": request.app.state.cache.stats(),
        "steam_configured": bool(settings.STEAM_API_KEY),
        "ggdeals_configured": bool(settings.GGDEALS_API_KEY),
    }
