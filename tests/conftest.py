from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio

from pushfanout.config import Settings, override_settings
from pushfanout.main import app
from pushfanout.notifications.models import PayloadDefaults
from pushfanout.notifications.push import (
    DeliveryError,
    PushDispatcher,
    PushSender,
)
from pushfanout.notifications.store import (
    InMemorySubscriptionStore,
    Subscription,
)
from pushfanout.notifications.vapid import generate_vapid_keys

_DEFAULTS = PayloadDefaults(
    title="Sender",
    body="You received a new message.",
    url="https://app.example.com/",
    icon="https://app.example.com/icon.png",
)


class FakeSender(PushSender):
    """Records deliveries; fails endpoints listed in ``statuses``."""

    def __init__(self, statuses: dict[str, int] | None = None) -> None:
        self.statuses = statuses or {}
        self.calls: list[tuple[str, str]] = []

    def send(self, subscription: Subscription, data: str) -> None:
        self.calls.append((subscription.endpoint, data))
        status = self.statuses.get(subscription.endpoint)
        if status is not None:
            raise DeliveryError(status, f"push service returned {status}")


def _sub(endpoint: str) -> dict:
    return {"endpoint": endpoint, "keys": {"p256dh": "k", "auth": "a"}}


@pytest.fixture(autouse=True)
def _test_settings():
    """Override settings so tests never read a developer's .env."""
    override_settings(Settings(_env_file=None))
    yield
    override_settings(None)


@pytest.fixture
def defaults() -> PayloadDefaults:
    return _DEFAULTS


@pytest.fixture
def make_sub():
    """Build a subscription dict for an endpoint."""
    return _sub


@pytest.fixture
def fake_sender_cls() -> type[FakeSender]:
    """FakeSender class, for tests that subclass it."""
    return FakeSender


@pytest.fixture
def vapid_keys() -> tuple[str, str]:
    return generate_vapid_keys()


@pytest.fixture
def store() -> InMemorySubscriptionStore:
    return InMemorySubscriptionStore()


@pytest.fixture
def sender() -> FakeSender:
    return FakeSender()


@pytest.fixture
def dispatcher(store, sender, defaults) -> PushDispatcher:
    return PushDispatcher(store=store, sender=sender, defaults=defaults)


@pytest_asyncio.fixture
async def client(store, dispatcher) -> AsyncGenerator[httpx.AsyncClient]:
    """Async test client with a real store and fake sender on app.state."""
    app.state.subscription_store = store
    app.state.push_dispatcher = dispatcher
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
