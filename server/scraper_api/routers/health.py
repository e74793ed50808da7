"""Health check endpoint."""

import platform
import sys
from datetime import datetime, timezone
from fastapi import APIRouter, Request

from .. import __version__

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request):
    """Health check and cache status endpoint."""
    context = request.app.state.context

    return {
        "status": "healthy",
        "service": "shujia-scraper-api",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "caches": {c.name: c.size() for c in context.caches},
        "platform": platform.system().lower(),
        "pythonVersion": sys.version,
    }
