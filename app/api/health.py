"""Health and readiness endpoints.

/health (liveness): the process answers.  Always 200; the body reports
whether the console has finished mounting and whether its last list load
ended empty, which is the visible symptom of an upstream outage.

/ready (readiness): 503 until the console has mounted, so a load balancer
does not route page views to an instance still doing its first fetch.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, Response, status

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request) -> dict:
    console = getattr(request.app.state, "console", None)
    if console is None:
        return {"status": "ok", "console": "not_mounted"}
    return {
        "status": "ok",
        "console": "mounted" if console.mounted else "not_mounted",
        "users": len(console.store.users),
    }


@router.get("/ready")
async def ready(request: Request) -> Response:
    console = getattr(request.app.state, "console", None)
    if console is None or not console.mounted:
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)
