"""Unit tests for Dramatiq sync dispatch and broker selection."""

from __future__ import annotations

import dramatiq
import pytest
from dramatiq.brokers.redis import RedisBroker
from dramatiq.brokers.stub import StubBroker
from dramatiq.message import Message

from dockmap.sync import DramatiqSyncDispatcher, _broker

DATABASE_URL = "sqlite+aiosqlite:///dockmap.db"


@pytest.fixture(autouse=True)
def stub_broker() -> StubBroker:
    """Provide a stub Dramatiq broker for dispatch tests."""
    broker = StubBroker()
    dramatiq.set_broker(broker)
    return broker


class TestDramatiqSyncDispatcher:
    """Tests for DramatiqSyncDispatcher."""

    def test_submit_enqueues_account_job(self, stub_broker: StubBroker) -> None:
        """Each submission becomes one message carrying the account and DB."""

        @dramatiq.actor(broker=stub_broker)
        def fake_sync(database_url: str, account_id: str) -> None:
            return None

        dispatcher = DramatiqSyncDispatcher(DATABASE_URL, actor=fake_sync)

        message = dispatcher.submit("acc-1")

        queue = stub_broker.queues[fake_sync.queue_name]
        assert queue.qsize() == 1
        decoded = Message.decode(queue.get_nowait())
        assert decoded.message_id == message.message_id
        assert decoded.kwargs == {
            "database_url": DATABASE_URL,
            "account_id": "acc-1",
        }

    @pytest.mark.asyncio
    async def test_shutdown_leaves_queue_alone(self, stub_broker: StubBroker) -> None:
        """Queued messages survive the API process shutting down."""

        @dramatiq.actor(broker=stub_broker)
        def fake_sync(database_url: str, account_id: str) -> None:
            return None

        dispatcher = DramatiqSyncDispatcher(DATABASE_URL, actor=fake_sync)
        dispatcher.submit("acc-1")

        await dispatcher.shutdown(cancel=True)

        assert stub_broker.queues[fake_sync.queue_name].qsize() == 1


class TestBuildBroker:
    """Tests for broker selection from the configured URL."""

    @pytest.mark.parametrize(
        "url", ["redis://localhost:6379/0", "rediss://cache.internal:6380/1"]
    )
    def test_redis_url_builds_redis_broker(self, url: str) -> None:
        """Redis URLs select the Redis broker."""
        assert isinstance(_broker._build_broker(url), RedisBroker)

    def test_other_scheme_is_rejected(self) -> None:
        """Non-Redis brokers are not supported."""
        with pytest.raises(ValueError, match="redis://"):
            _broker._build_broker("amqp://guest@localhost//")

    def test_missing_url_outside_tests_is_an_error(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Production processes must name a broker."""
        monkeypatch.setattr(_broker, "_under_pytest", lambda: False)
        monkeypatch.delenv("DOCKMAP_ALLOW_STUB_BROKER", raising=False)

        with pytest.raises(RuntimeError, match="DOCKMAP_BROKER_URL"):
            _broker._build_broker("")

    def test_missing_url_with_opt_in_uses_stub(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Local runs may opt into the in-memory broker."""
        monkeypatch.setattr(_broker, "_under_pytest", lambda: False)
        monkeypatch.setenv("DOCKMAP_ALLOW_STUB_BROKER", "1")

        assert isinstance(_broker._build_broker(""), StubBroker)


class TestEnsureBrokerConfigured:
    """Tests for the once-per-process broker installation."""

    def test_installs_once(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Later calls keep the first broker."""
        installed: list[dramatiq.Broker] = []
        monkeypatch.setattr(_broker, "_configured_url", None)
        monkeypatch.setattr(dramatiq, "set_broker", installed.append)

        _broker.ensure_broker_configured("")
        _broker.ensure_broker_configured("redis://localhost:6379/0")

        assert len(installed) == 1
        assert isinstance(installed[0], StubBroker)

    def test_reads_url_from_environment(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Without an argument the URL comes from DOCKMAP_BROKER_URL."""
        installed: list[dramatiq.Broker] = []
        monkeypatch.setattr(_broker, "_configured_url", None)
        monkeypatch.setattr(dramatiq, "set_broker", installed.append)
        monkeypatch.setenv("DOCKMAP_BROKER_URL", "redis://localhost:6379/2")

        _broker.ensure_broker_configured()

        assert isinstance(installed[0], RedisBroker)
