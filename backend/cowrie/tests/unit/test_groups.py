from cowrie.messaging.groups import BroadcastGroups, send_quietly
from cowrie.tests.mocks import MockConnection


class TestBroadcastGroups:
    async def test_broadcast_reaches_only_group_members(self):
        groups = BroadcastGroups()
        a, b, outsider = MockConnection("a"), MockConnection("b"), MockConnection("x")
        groups.add("ROOM1", a)
        groups.add("ROOM1", b)
        groups.add("ROOM2", outsider)

        await groups.broadcast("ROOM1", {"type": "turn-advanced", "currentIndex": 1})

        assert a.sent_messages == [{"type": "turn-advanced", "currentIndex": 1}]
        assert b.sent_messages == [{"type": "turn-advanced", "currentIndex": 1}]
        assert outsider.sent_messages == []

    async def test_failed_member_does_not_stop_others(self):
        groups = BroadcastGroups()
        closed, failing, healthy = MockConnection("c"), MockConnection("f"), MockConnection("h")
        await closed.close()
        failing.fail_sends = True
        for conn in (closed, failing, healthy):
            groups.add("ROOM1", conn)

        await groups.broadcast("ROOM1", {"type": "lobby-update"})

        assert healthy.sent_messages == [{"type": "lobby-update"}]

    async def test_discard_connection_from_all_groups(self):
        groups = BroadcastGroups()
        conn = MockConnection("a")
        other = MockConnection("b")
        groups.add("ROOM1", conn)
        groups.add("ROOM2", conn)
        groups.add("ROOM2", other)

        groups.discard_connection("a")

        assert groups.members("ROOM1") == []
        assert groups.members("ROOM2") == ["b"]

    async def test_broadcast_to_unknown_group_is_noop(self):
        await BroadcastGroups().broadcast("NOPE", {"type": "x"})

    async def test_drop_group(self):
        groups = BroadcastGroups()
        groups.add("ROOM1", MockConnection("a"))

        groups.drop_group("ROOM1")

        assert groups.members("ROOM1") == []

    async def test_send_quietly_swallows_closed_connection(self):
        conn = MockConnection("a")
        await conn.close()

        await send_quietly(conn, {"type": "x"})

        assert conn.sent_messages == []


class TestConnectionProtocol:
    async def test_receive_message_decodes_frame(self):
        conn = MockConnection("a")
        await conn.simulate_receive({"type": "roll-request"})

        assert await conn.receive_message() == {"type": "roll-request"}
