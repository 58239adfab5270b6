from cowrie.messaging.types import ServerMessageType
from cowrie.tests.helpers import connect, create_room_with_players


class TestCreateRoom:
    async def test_create_room_notifies_sender_and_room(self, manager):
        host = connect(manager, "host")

        room = await manager.create_room(host, "Alice")

        assert host.sent_types() == [ServerMessageType.ROOM_CREATED, ServerMessageType.LOBBY_UPDATE]
        created, lobby = host.sent_messages
        assert created == {"type": "room-created", "roomId": room.room_id, "hostId": "host"}
        assert lobby == {
            "type": "lobby-update",
            "roomId": room.room_id,
            "players": [{"id": "host", "name": "Alice"}],
            "hostId": "host",
            "started": False,
        }
        assert manager.metrics.rooms_created == 1

    async def test_blank_name_is_rejected(self, manager):
        host = connect(manager, "host")

        room = await manager.create_room(host, "")

        assert room is None
        assert host.sent_messages == [{"type": "join-error", "message": "Name is required."}]
        assert manager.registry.room_count == 0
        assert manager.metrics.join_errors == 1

    async def test_cannot_create_while_seated(self, manager):
        host = connect(manager, "host")
        first = await manager.create_room(host, "Alice")
        host.clear()

        second = await manager.create_room(host, "Alice")

        assert second is None
        assert host.messages_of_type(ServerMessageType.JOIN_ERROR)[0]["message"] == (
            "You must leave your current room first."
        )
        assert manager.registry.room_count == 1
        assert manager.registry.find_by_handle("host") == (first, 0)


class TestJoinRoom:
    async def test_join_notifies_joiner_and_room(self, manager):
        room, (alice,) = await create_room_with_players(manager, ["Alice"])
        bob = connect(manager, "bob")

        await manager.join_room(bob, room.room_id, "Bob")

        assert bob.sent_types() == [ServerMessageType.ROOM_JOINED, ServerMessageType.LOBBY_UPDATE]
        assert bob.sent_messages[0] == {"type": "room-joined", "roomId": room.room_id, "hostId": "alice"}
        lobby = alice.messages_of_type(ServerMessageType.LOBBY_UPDATE)
        assert len(lobby) == 1
        assert lobby[0]["players"] == [{"id": "alice", "name": "Alice"}, {"id": "bob", "name": "Bob"}]

    async def test_unknown_room(self, manager):
        bob = connect(manager, "bob")

        await manager.join_room(bob, "ZZZZZ", "Bob")

        assert bob.sent_messages == [{"type": "join-error", "message": "Room not found."}]
        assert manager.metrics.join_errors == 1

    async def test_blank_name(self, manager):
        room, _conns = await create_room_with_players(manager, ["Alice"])
        bob = connect(manager, "bob")

        await manager.join_room(bob, room.room_id, "")

        assert bob.sent_messages == [{"type": "join-error", "message": "Name is required."}]
        assert room.player_count == 1

    async def test_fifth_player_gets_room_full(self, manager):
        room, conns = await create_room_with_players(manager, ["A", "B", "C", "D"])
        late = connect(manager, "e")

        await manager.join_room(late, room.room_id, "E")

        assert late.sent_messages == [{"type": "join-error", "message": "Game is full."}]
        assert room.player_count == 4
        for conn in conns:
            assert conn.sent_messages == []

    async def test_join_after_start(self, manager):
        room, conns = await create_room_with_players(manager, ["A", "B"])
        await manager.start_game(conns[0])
        late = connect(manager, "c")

        await manager.join_room(late, room.room_id, "C")

        assert late.sent_messages == [{"type": "join-error", "message": "Game already started."}]

    async def test_rejoin_is_silent_noop(self, manager):
        room, (alice, bob) = await create_room_with_players(manager, ["Alice", "Bob"])

        await manager.join_room(bob, room.room_id, "Bob")

        assert bob.sent_messages == []
        assert alice.sent_messages == []
        assert room.handles == ["alice", "bob"]

    async def test_cannot_join_second_room(self, manager):
        first, (alice,) = await create_room_with_players(manager, ["Alice"])
        second, (bob,) = await create_room_with_players(manager, ["Bob"])

        await manager.join_room(alice, second.room_id, "Alice")

        assert alice.messages_of_type(ServerMessageType.JOIN_ERROR)
        assert second.handles == ["bob"]
        assert bob.sent_messages == []
        assert manager.registry.find_by_handle("alice") == (first, 0)


class TestStartGame:
    async def test_host_starts_game(self, manager):
        room, conns = await create_room_with_players(manager, ["A", "B", "C", "D"])

        result = await manager.start_game(conns[0])

        assert result.applied
        assert room.started is True
        assert room.current_index == 0
        for conn in conns:
            assert conn.sent_messages == [
                {
                    "type": "game-started",
                    "roomId": room.room_id,
                    "players": [{"id": h, "name": h.upper()} for h in ("a", "b", "c", "d")],
                    "hostId": "a",
                    "currentIndex": 0,
                },
            ]
        assert manager.metrics.games_started == 1

    async def test_non_host_start_is_silent(self, manager):
        room, conns = await create_room_with_players(manager, ["A", "B"])

        result = await manager.start_game(conns[1])

        assert not result.applied
        assert room.started is False
        assert all(conn.sent_messages == [] for conn in conns)
        assert manager.metrics.games_started == 0

    async def test_unseated_start_is_silent(self, manager):
        stranger = connect(manager, "stranger")

        result = await manager.start_game(stranger)

        assert not result.applied
        assert stranger.sent_messages == []
