# tests/test_broadcast.py — Broadcast hub tests
import pytest

from broadcast import BroadcastHub

from tests.fakes import FakeWebSocket


@pytest.mark.asyncio
async def test_connect_acknowledges_and_registers(hub: BroadcastHub):
    ws = FakeWebSocket()
    info = await hub.connect(ws, user="alice")
    assert ws.accepted
    assert ws in hub
    assert info.user == "alice"
    assert ws.sent == [{"type": "connected", "timestamp": info.connected_at}]


@pytest.mark.asyncio
async def test_disconnect_is_idempotent(hub: BroadcastHub):
    ws = FakeWebSocket()
    await hub.connect(ws)
    hub.disconnect(ws)
    hub.disconnect(ws)
    assert len(hub) == 0


@pytest.mark.asyncio
async def test_mutation_reaches_every_connection(hub: BroadcastHub):
    a, b, c = FakeWebSocket("a"), FakeWebSocket("b"), FakeWebSocket("c")
    for ws in (a, b, c):
        await hub.connect(ws)

    delivered = await hub.notify_mutation("updated", {"id": "t1"}, change="linked")

    assert delivered == 3
    for ws in (a, b, c):
        event = ws.sent[-1]
        assert event["type"] == "task:updated"
        assert event["task"] == {"id": "t1"}
        assert event["change"] == "linked"
        assert "timestamp" in event


@pytest.mark.asyncio
async def test_typing_skips_sender(hub: BroadcastHub):
    sender, other = FakeWebSocket("sender"), FakeWebSocket("other")
    await hub.connect(sender, user="alice")
    await hub.connect(other, user="bob")

    await hub.handle_message(sender, {"type": "typing", "taskId": "t1"})

    assert sender.types() == ["connected"]
    assert other.sent[-1]["type"] == "user:typing"
    assert other.sent[-1]["user"] == "alice"
    assert other.sent[-1]["taskId"] == "t1"


@pytest.mark.asyncio
async def test_ping_answers_sender_only(hub: BroadcastHub):
    sender, other = FakeWebSocket("sender"), FakeWebSocket("other")
    await hub.connect(sender)
    await hub.connect(other)

    await hub.handle_message(sender, {"type": "ping"})

    assert sender.types() == ["connected", "pong"]
    assert other.types() == ["connected"]


@pytest.mark.asyncio
async def test_informational_notice_relayed_to_others(hub: BroadcastHub):
    sender, other = FakeWebSocket("sender"), FakeWebSocket("other")
    await hub.connect(sender)
    await hub.connect(other)

    await hub.handle_message(sender, {"type": "task:created", "task": {"id": "t9"}})
    await hub.handle_message(sender, {"type": "shutdown-everything"})
    await hub.handle_message(sender, ["not", "an", "object"])

    assert sender.types() == ["connected"]
    assert other.types() == ["connected", "task:created"]
    assert other.sent[-1]["task"] == {"id": "t9"}


@pytest.mark.asyncio
async def test_failing_connection_is_pruned_without_affecting_others(hub: BroadcastHub):
    good, bad = FakeWebSocket("good"), FakeWebSocket("bad")
    await hub.connect(good)
    await hub.connect(bad)
    bad.fail = True

    delivered = await hub.broadcast({"type": "task:deleted", "task": {"id": "x"}})

    assert delivered == 1
    assert good.sent[-1]["type"] == "task:deleted"
    assert bad not in hub
    assert good in hub


@pytest.mark.asyncio
async def test_send_to_unknown_connection_is_noop(hub: BroadcastHub):
    assert await hub.send(FakeWebSocket(), {"type": "pong"}) is False


@pytest.mark.asyncio
async def test_hubs_are_independent():
    first, second = BroadcastHub(), BroadcastHub()
    ws = FakeWebSocket()
    await first.connect(ws)
    assert await second.notify_mutation("created", {"id": "t"}) == 0
    assert ws.types() == ["connected"]


@pytest.mark.asyncio
async def test_stats(hub: BroadcastHub):
    await hub.connect(FakeWebSocket("a"), user="yuna")
    await hub.connect(FakeWebSocket("b"))
    assert hub.stats() == {"total_connections": 2, "users": ["yuna"]}
