"""Readiness endpoint."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health(request: Request) -> dict:
    """Report VAPID readiness and subscriber count."""
    return {
        "ok": True,
        "vapidReady": request.app.state.push_dispatcher.ready,
        "subs": request.app.state.subscription_store.count(),
    }
