"""In-memory push subscription registry."""

import threading
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog

logger = structlog.get_logger()


class InvalidSubscription(ValueError):
    """Registration payload is missing an endpoint."""


@dataclass(frozen=True)
class Subscription:
    """A single Web Push subscription.

    ``keys`` holds the client's encryption material
    (``p256dh``/``auth``) and is passed through verbatim.
    """

    endpoint: str
    keys: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "Subscription":
        if not isinstance(data, Mapping):
            raise InvalidSubscription("subscription must be an object")
        endpoint = data.get("endpoint")
        if not endpoint or not isinstance(endpoint, str):
            raise InvalidSubscription("subscription endpoint missing")
        keys = data.get("keys") or {}
        if not isinstance(keys, Mapping):
            raise InvalidSubscription("subscription keys must be an object")
        return cls(endpoint=endpoint, keys=dict(keys))

    def to_info(self) -> dict:
        """Shape expected by pywebpush's ``subscription_info``."""
        return {"endpoint": self.endpoint, "keys": dict(self.keys)}


@dataclass(frozen=True)
class RegisterResult:
    ok: bool
    total: int


class SubscriptionStore(ABC):
    """Registry of subscriptions keyed by endpoint."""

    @abstractmethod
    def register(self, data: Any) -> RegisterResult:
        """Insert a subscription unless its endpoint is known.

        Raises:
            InvalidSubscription: if ``data`` has no endpoint.
        """

    @abstractmethod
    def count(self) -> int:
        """Number of stored subscriptions."""

    @abstractmethod
    def remove_endpoint(self, endpoint: str) -> None:
        """Drop the subscription for ``endpoint`` if present."""

    @abstractmethod
    def snapshot(self) -> list[Subscription]:
        """Point-in-time copy of all subscriptions."""


class InMemorySubscriptionStore(SubscriptionStore):
    """Process-local store; contents are lost on restart.

    Deliveries run in worker threads, so every access
    goes through a lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        # dict keeps insertion order
        self._subs: dict[str, Subscription] = {}

    def register(self, data: Any) -> RegisterResult:
        sub = Subscription.from_dict(data)
        with self._lock:
            added = sub.endpoint not in self._subs
            if added:
                self._subs[sub.endpoint] = sub
            total = len(self._subs)
        if added:
            logger.info("subscriber_added", endpoint=sub.endpoint, total=total)
        else:
            logger.debug("subscriber_known", endpoint=sub.endpoint)
        return RegisterResult(ok=True, total=total)

    def count(self) -> int:
        with self._lock:
            return len(self._subs)

    def remove_endpoint(self, endpoint: str) -> None:
        with self._lock:
            removed = self._subs.pop(endpoint, None)
        if removed is not None:
            logger.info("subscriber_removed", endpoint=endpoint)

    def snapshot(self) -> list[Subscription]:
        with self._lock:
            return list(self._subs.values())
