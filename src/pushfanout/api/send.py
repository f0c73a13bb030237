"""Fan-out endpoints."""

from fastapi import APIRouter, Request

from pushfanout.notifications.models import NotificationPayload
from pushfanout.notifications.push import demo_payload

router = APIRouter()


@router.post("/send")
async def send(
    request: Request,
    payload: NotificationPayload | None = None,
) -> dict:
    """Send a notification to every subscriber."""
    dispatcher = request.app.state.push_dispatcher
    report = await dispatcher.send_to_all(payload or NotificationPayload())
    return report.model_dump(exclude_none=True)


@router.get("/send-test")
async def send_test(request: Request) -> dict:
    """Send a fixed demo notification, handy from a browser."""
    dispatcher = request.app.state.push_dispatcher
    report = await dispatcher.send_to_all(demo_payload(dispatcher.defaults))
    return report.model_dump(exclude_none=True)
