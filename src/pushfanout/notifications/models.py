"""Pydantic models for notification payloads and dispatch reports."""

from typing import Any

from pydantic import BaseModel, Field

from pushfanout.config import Settings


class PayloadDefaults(BaseModel):
    """Fallback values for fields a sender leaves empty."""

    title: str
    body: str
    url: str
    icon: str

    @classmethod
    def from_settings(cls, settings: Settings) -> "PayloadDefaults":
        return cls(
            title=settings.default_title,
            body=settings.default_body,
            url=settings.default_url,
            icon=settings.default_icon,
        )


def _pick(value: str | None, default: str) -> str:
    return (value or default).strip()


class NotificationPayload(BaseModel):
    """Notification content supplied by a caller of /api/send."""

    title: str | None = None
    body: str | None = None
    url: str | None = None
    icon: str | None = None

    def resolve(self, defaults: PayloadDefaults) -> dict[str, str]:
        """Explicit non-empty values win over defaults, then trim."""
        return {
            "title": _pick(self.title, defaults.title),
            "body": _pick(self.body, defaults.body),
            "url": _pick(self.url, defaults.url),
            "icon": _pick(self.icon, defaults.icon),
        }


class SubscribeRequest(BaseModel):
    """Body of POST /api/subscribe.

    The subscription is validated by the store so a missing
    endpoint maps to a 400 rather than a schema error.
    """

    subscription: Any = None


class DeliveryOutcome(BaseModel):
    """Result of one delivery attempt."""

    endpoint: str
    ok: bool
    status: int | None = None
    msg: str | None = None


class DispatchReport(BaseModel):
    """Aggregated result of a fan-out."""

    ok: bool = True
    success: int = 0
    failed: int = 0
    total: int = 0
    details: list[DeliveryOutcome] = Field(default_factory=list)
