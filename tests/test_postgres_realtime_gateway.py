import asyncio
import json

import psycopg2
import pytest

from src.Domain import ChangeNotificationEntity
from src.Infrastructure.data.postgres.realtime.PostgresRealtimeGateway import PostgresRealtimeGateway


class _Notify:

    def __init__(self, payload: str):
        self.payload = payload


class _ListenConnection:
    """Conexão de LISTEN mínima: `poll()` entrega o que estiver em `queued`"""

    def __init__(self):
        self.notifies = []
        self.queued = []
        self.fail_poll = False

    def poll(self):
        if self.fail_poll:
            raise psycopg2.OperationalError("conexão perdida")
        self.notifies.extend(self.queued)
        self.queued = []


@pytest.fixture
def listen_gateway(monkeypatch):
    gateway = PostgresRealtimeGateway(dsn="postgresql://test@localhost/test", channel="realtime_changes")
    gateway.listens = 0
    gateway.releases = 0

    def fake_listen():
        gateway.listens += 1
        gateway._connection = _ListenConnection()

    def fake_release():
        if gateway._connection is None:
            return
        gateway.releases += 1
        gateway._connection = None

    monkeypatch.setattr(gateway, "_listen", fake_listen)
    monkeypatch.setattr(gateway, "_release", fake_release)
    return gateway


def _trigger_payload(table, event, record):
    # mesmo formato do json_build_object do trigger notify_realtime_change
    return json.dumps({"table": table, "event": event, "record": record})


def test_channel_is_opened_once_and_released_after_last_unsubscribe(listen_gateway):
    async def noop(notification):
        pass

    async def scenario():
        first = await listen_gateway.subscribe("messages", {"conversation_id": "c1"}, noop)
        second = await listen_gateway.subscribe("instances", {"user_id": "u1"}, noop)
        opened = listen_gateway.listens
        await listen_gateway.unsubscribe(first)
        released_early = listen_gateway.releases
        await listen_gateway.unsubscribe(second)
        return opened, released_early

    opened, released_early = asyncio.run(scenario())

    assert opened == 1
    assert released_early == 0
    assert listen_gateway.releases == 1
    assert listen_gateway.subscription_count == 0


def test_dispatch_honours_table_and_row_filter(listen_gateway):
    received = []

    def collector(name):
        async def callback(notification):
            received.append((name, notification.event))
        return callback

    async def scenario():
        await listen_gateway.subscribe("messages", {"conversation_id": "c1", "user_id": "u1"}, collector("c1"))
        await listen_gateway.subscribe("messages", {"conversation_id": "c2", "user_id": "u1"}, collector("c2"))
        await listen_gateway.subscribe("conversations", {"user_id": "u1"}, collector("lista"))

        payload = _trigger_payload("messages", "INSERT", {"conversation_id": "c1", "user_id": "u1", "seq": 7})
        listen_gateway.dispatch(ChangeNotificationEntity(**json.loads(payload)))
        await asyncio.gather(*list(listen_gateway._pending))

    asyncio.run(scenario())

    assert received == [("c1", "INSERT")]


def test_malformed_payloads_are_skipped(listen_gateway, caplog):
    received = []

    async def callback(notification):
        received.append(notification.record["user_id"])

    async def scenario():
        await listen_gateway.subscribe("instances", {"user_id": "u1"}, callback)
        listen_gateway._connection.queued = [
            _Notify("isso não é json"),
            _Notify("[1, 2]"),
            _Notify(json.dumps({"event": "UPDATE"})),
            _Notify(_trigger_payload("instances", "UPDATE", {"user_id": "u1"})),
        ]
        listen_gateway._on_readable()
        await asyncio.gather(*list(listen_gateway._pending))

    asyncio.run(scenario())

    assert received == ["u1"]
    assert caplog.text.count("Payload de notificação ignorado") == 3


def test_failed_poll_reconnects_while_subscriptions_remain(listen_gateway):
    async def noop(notification):
        pass

    async def scenario():
        await listen_gateway.subscribe("instances", {"user_id": "u1"}, noop)
        listen_gateway._connection.fail_poll = True
        listen_gateway._on_readable()

    asyncio.run(scenario())

    assert listen_gateway.releases == 1
    assert listen_gateway.listens == 2
    assert listen_gateway.subscription_count == 1


def test_close_deactivates_subscriptions_and_cancels_pending_callbacks(listen_gateway):
    async def stuck(notification):
        await asyncio.Event().wait()

    async def scenario():
        subscription = await listen_gateway.subscribe("instances", {"user_id": "u1"}, stuck)
        listen_gateway.dispatch(ChangeNotificationEntity(table="instances", event="UPDATE", record={"user_id": "u1"}))
        pending = list(listen_gateway._pending)
        await asyncio.sleep(0)
        await listen_gateway.close()
        await asyncio.gather(*pending, return_exceptions=True)
        return subscription, pending

    subscription, pending = asyncio.run(scenario())

    assert not subscription.active
    assert len(pending) == 1
    assert pending[0].cancelled()
    assert listen_gateway.releases == 1
    assert listen_gateway.subscription_count == 0
