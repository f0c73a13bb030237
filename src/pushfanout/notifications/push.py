"""Web Push delivery and fan-out to every stored subscription."""

import asyncio
import json
from abc import ABC, abstractmethod
from datetime import datetime

import requests
import structlog
from pywebpush import WebPushException, webpush

from pushfanout.notifications.models import (
    DeliveryOutcome,
    DispatchReport,
    NotificationPayload,
    PayloadDefaults,
)
from pushfanout.notifications.store import (
    Subscription,
    SubscriptionStore,
)
from pushfanout.notifications.vapid import VapidCredentials

logger = structlog.get_logger()

# Provider says the subscription will never accept deliveries again.
GONE_STATUSES = frozenset({404, 410})


class DeliveryError(Exception):
    """A push provider rejected or never received a delivery."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message

    @property
    def gone(self) -> bool:
        return self.status in GONE_STATUSES


class PushNotConfiguredError(RuntimeError):
    """Delivery requested while VAPID credentials are unusable."""

    status = 500
    message = "push delivery not configured"

    def __init__(self) -> None:
        super().__init__(self.message)


class PushSender(ABC):
    """Delivers one serialized payload to one subscription."""

    @abstractmethod
    def send(self, subscription: Subscription, data: str) -> None:
        """Deliver ``data`` or raise DeliveryError."""


def _error_from_webpush(exc: WebPushException) -> DeliveryError:
    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None) or 0
    body = getattr(response, "text", None)
    if not isinstance(body, str):
        body = None
    msg = body or getattr(exc, "message", None) or str(exc)
    return DeliveryError(int(status), msg)


class WebPushSender(PushSender):
    """PushSender backed by pywebpush and VAPID signing."""

    def __init__(
        self,
        credentials: VapidCredentials,
        ttl: int = 2_419_200,
        timeout: float | None = 10.0,
    ) -> None:
        self._credentials = credentials
        self._ttl = ttl
        self._timeout = timeout

    def send(self, subscription: Subscription, data: str) -> None:
        try:
            webpush(
                subscription_info=subscription.to_info(),
                data=data,
                vapid_private_key=self._credentials.vapid,
                vapid_claims=dict(self._credentials.claims),
                ttl=self._ttl,
                timeout=self._timeout,
            )
        except WebPushException as e:
            raise _error_from_webpush(e) from e
        except requests.RequestException as e:
            raise DeliveryError(0, str(e)) from e
        except (ValueError, TypeError, KeyError) as e:
            # malformed keys fail inside payload encryption
            raise DeliveryError(0, str(e)) from e


def demo_payload(
    defaults: PayloadDefaults,
    now: datetime | None = None,
) -> NotificationPayload:
    """Fixed demo notification for /api/send-test."""
    now = now or datetime.now()
    return NotificationPayload(
        title=f"{defaults.title} ✅",
        body=f"Test notification at {now.strftime('%Y-%m-%d %H:%M:%S')}",
        url=defaults.url,
        icon=defaults.icon,
    )


class PushDispatcher:
    """Fan a notification out to every stored subscription.

    Deliveries run on a snapshot of the store, so removals
    made while the batch is in flight never skip or repeat
    a recipient. Endpoints reported gone (404/410) are
    removed as soon as their failure comes back; any other
    failure leaves the subscription for the next send.
    """

    def __init__(
        self,
        store: SubscriptionStore,
        sender: PushSender | None,
        defaults: PayloadDefaults,
        concurrency: int = 8,
    ) -> None:
        self._store = store
        self._sender = sender
        self._defaults = defaults
        self._concurrency = max(1, concurrency)

    @property
    def ready(self) -> bool:
        return self._sender is not None

    @property
    def defaults(self) -> PayloadDefaults:
        return self._defaults

    async def send_to_all(self, payload: NotificationPayload) -> DispatchReport:
        """Deliver ``payload`` once to each subscription.

        Raises:
            PushNotConfiguredError: if no sender is configured.
                The store is not touched.
        """
        sender = self._sender
        if sender is None:
            raise PushNotConfiguredError()

        subs = self._store.snapshot()
        if not subs:
            return DispatchReport()

        data = json.dumps(payload.resolve(self._defaults))
        sem = asyncio.Semaphore(self._concurrency)

        async def deliver(sub: Subscription) -> DeliveryOutcome:
            async with sem:
                return await self._send_one(sender, sub, data)

        details = list(await asyncio.gather(*(deliver(s) for s in subs)))
        success = sum(1 for d in details if d.ok)
        report = DispatchReport(
            success=success,
            failed=len(details) - success,
            total=self._store.count(),
            details=details,
        )
        logger.info(
            "dispatch_complete",
            success=report.success,
            failed=report.failed,
            total=report.total,
        )
        return report

    async def _send_one(
        self,
        sender: PushSender,
        sub: Subscription,
        data: str,
    ) -> DeliveryOutcome:
        """Deliver a single push and classify the result."""
        try:
            await asyncio.to_thread(sender.send, sub, data)
        except DeliveryError as e:
            if e.gone:
                logger.info(
                    "push_endpoint_gone",
                    endpoint=sub.endpoint,
                    status=e.status,
                )
                self._store.remove_endpoint(sub.endpoint)
            else:
                logger.warning(
                    "push_failed",
                    endpoint=sub.endpoint,
                    status=e.status,
                    error=e.message,
                )
            return DeliveryOutcome(
                endpoint=sub.endpoint,
                ok=False,
                status=e.status,
                msg=e.message,
            )
        except Exception as e:
            logger.exception("push_error", endpoint=sub.endpoint)
            return DeliveryOutcome(
                endpoint=sub.endpoint,
                ok=False,
                status=0,
                msg=str(e),
            )
        logger.debug("push_sent", endpoint=sub.endpoint)
        return DeliveryOutcome(endpoint=sub.endpoint, ok=True)
