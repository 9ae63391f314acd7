from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe for load balancers and monitors.

    Never rate limited, so probes keep working while clients are throttled.

    Returns:
        dict: ``status`` set to "ok" and the current UTC time in ISO-8601.
    """

    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
