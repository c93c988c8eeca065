"""Tests for ConnectionHub socket tracking, channels and delivery."""
import pytest

from strangerchat.chat.hub import ConnectionHub
from fakes import FakeWebSocket


@pytest.fixture
def hub():
    return ConnectionHub()


class TestConnectionHub:
    @pytest.mark.asyncio
    async def test_connect_assigns_unique_ids(self, hub):
        first = await hub.connect(FakeWebSocket())
        second = await hub.connect(FakeWebSocket())

        assert first != second
        assert hub.count() == 2
        assert hub.is_live(first) and hub.is_live(second)

    @pytest.mark.asyncio
    async def test_dropped_socket_is_not_live(self, hub):
        ws = FakeWebSocket()
        cid = await hub.connect(ws)

        ws.drop()

        assert not hub.is_live(cid)
        assert not hub.is_live("unknown")

    @pytest.mark.asyncio
    async def test_broadcast_reaches_channel_members_only(self, hub):
        sockets = [FakeWebSocket() for _ in range(3)]
        ids = [await hub.connect(ws) for ws in sockets]
        hub.join("room", ids[0])
        hub.join("room", ids[1])

        await hub.broadcast("room", {"type": "ping"})

        assert [len(ws.sent) for ws in sockets] == [1, 1, 0]

    @pytest.mark.asyncio
    async def test_broadcast_except_skips_sender(self, hub):
        a, b = FakeWebSocket(), FakeWebSocket()
        id_a, id_b = await hub.connect(a), await hub.connect(b)
        hub.join("room", id_a)
        hub.join("room", id_b)

        await hub.broadcast_except("room", {"type": "typing"}, id_a)

        assert a.sent == []
        assert b.sent == [{"type": "typing"}]

    @pytest.mark.asyncio
    async def test_failed_send_marks_connection_dead(self, hub):
        good, bad = FakeWebSocket(), FakeWebSocket()
        id_good, id_bad = await hub.connect(good), await hub.connect(bad)
        hub.join("room", id_good)
        hub.join("room", id_bad)
        bad.fail_sends = True

        await hub.broadcast_all({"type": "stats-update"})

        assert good.sent == [{"type": "stats-update"}]
        assert not hub.is_live(id_bad)
        assert hub.channel_members("room") == [id_good]

    @pytest.mark.asyncio
    async def test_dead_connection_is_skipped_by_later_sends(self, hub):
        good, bad = FakeWebSocket(), FakeWebSocket()
        id_good, id_bad = await hub.connect(good), await hub.connect(bad)
        bad.fail_sends = True
        await hub.broadcast_all({"type": "stats-update"})
        bad.fail_sends = False

        await hub.broadcast_all({"type": "stats-update"})

        assert hub.count() == 1
        assert len(good.sent) == 2
        assert bad.sent == []
        assert await hub.send(id_bad, {"type": "error"}) is False

        hub.disconnect(id_bad)
        assert hub.count() == 1
        assert hub.is_live(id_good)

    @pytest.mark.asyncio
    async def test_send_to_unknown_connection_returns_false(self, hub):
        assert await hub.send("ghost", {"type": "x"}) is False

    @pytest.mark.asyncio
    async def test_disconnect_leaves_all_channels(self, hub):
        cid = await hub.connect(FakeWebSocket())
        hub.join("r1", cid)
        hub.join("r2", cid)

        hub.disconnect(cid)

        assert hub.channel_members("r1") == []
        assert hub.channel_members("r2") == []
        assert hub.count() == 0

    def test_leave_and_discard_channel(self, hub):
        hub.join("room", "a")
        hub.join("room", "b")

        hub.leave("room", "a")
        assert hub.channel_members("room") == ["b"]

        assert hub.discard_channel("room") == ["b"]
        assert hub.discard_channel("room") == []
