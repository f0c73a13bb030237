"""Subscription registration endpoints."""

from fastapi import APIRouter, Request

from pushfanout.notifications.models import SubscribeRequest

router = APIRouter()


@router.get("/subscribers")
async def subscribers(request: Request) -> dict:
    """Return the number of stored subscriptions."""
    return {"total": request.app.state.subscription_store.count()}


@router.post("/subscribe")
async def subscribe(body: SubscribeRequest, request: Request) -> dict:
    """Register a push subscription (no-op if endpoint is known)."""
    store = request.app.state.subscription_store
    result = store.register(body.subscription)
    return {"ok": result.ok, "total": result.total}
