"""Tests for GameEngine request handling."""

import pytest

from helpers import RECONNECTION_TIMEOUT, TURN_TIMEOUT, card
from trickroom_server.errors import RejectReason
from trickroom_server.game.engine import GameEngine, game_id_for_room
from trickroom_server.models.game_state import GameStatus
from trickroom_server.network import protocol
from trickroom_server.network.protocol import parse_request
from trickroom_server.voice import SignedTokenIssuer


@pytest.fixture
def engine(transport, config, scheduler, rng):
    return GameEngine(transport, config, scheduler=scheduler, rng=rng)


def open_room(engine, players=2, max_players=4):
    """Create a room with `players` participants; returns (room_id, [user ids])."""
    created = engine.create_room("s0", "Host", max_players)
    room_id = created.data["room_id"]
    user_ids = [created.data["user_id"]]
    for i in range(1, players):
        joined = engine.join_room(f"s{i}", room_id, f"Guest{i}")
        user_ids.append(joined.data["user_id"])
    return room_id, user_ids


def start(engine, players=2):
    room_id, user_ids = open_room(engine, players)
    result = engine.start_game("s0", room_id, user_ids[0])
    assert result.ok
    return room_id, user_ids, engine.get_session(result.data["game_id"])


class TestRooms:
    """Tests for room creation and joining."""

    def test_create_room(self, engine, transport):
        """Test the host gets the room code and their id."""
        result = engine.create_room("s0", "Host", 3)

        assert result.ok
        room_id = result.data["room_id"]
        assert transport.sent_to("s0", protocol.ROOM_CREATED) == [
            {"room_id": room_id, "user_id": result.data["user_id"], "host_id": result.data["user_id"]}
        ]
        assert "s0" in transport.rooms[room_id]
        assert engine.rooms.get_room(room_id).max_players == 3

    def test_join_room(self, engine, transport):
        """Test joining announces the new player to the room."""
        room_id, (host_id, guest_id) = open_room(engine, 2)

        joined = transport.sent_to("s1", protocol.ROOM_JOINED)
        assert joined == [{"room_id": room_id, "user_id": guest_id, "host_id": host_id, "max_players": 4}]
        roster = transport.broadcast_events(room_id, protocol.PLAYER_JOINED)[-1]
        assert [p.id for p in roster] == [host_id, guest_id]
        assert transport.rooms[room_id] == {"s0", "s1"}

    def test_join_lowercase_code(self, engine):
        """Test room codes are case-insensitive."""
        room_id, _ = open_room(engine, 1)
        assert engine.join_room("s1", room_id.lower(), "Guest").ok

    def test_join_unknown_room(self, engine, transport):
        """Test joining a missing room is rejected."""
        result = engine.join_room("s1", "NOPE00", "Guest")
        assert result.reason == RejectReason.ROOM_NOT_FOUND
        assert transport.sent_to("s1", protocol.ROOM_ERROR) == ["Room not found."]

    def test_join_full_room(self, engine, transport):
        """Test joining a full room is rejected."""
        created = engine.create_room("s0", "Host", 2)
        room_id = created.data["room_id"]
        engine.join_room("s1", room_id, "Guest")

        result = engine.join_room("s2", room_id, "Late")

        assert result.reason == RejectReason.ROOM_FULL
        assert transport.sent_to("s2", protocol.ROOM_ERROR) == ["Room is full."]
        assert len(engine.rooms.get_room(room_id).players) == 2


class TestStartGame:
    """Tests for starting games."""

    def test_start(self, engine, transport, scheduler):
        """Test a game starts and every player gets their view."""
        room_id, user_ids = open_room(engine, 3)
        started = []
        engine.set_callbacks(on_game_start=started.append)

        result = engine.start_game("s0", room_id, user_ids[0])

        game_id = game_id_for_room(room_id)
        assert result.ok
        assert result.data["game_id"] == game_id
        assert engine.active_games == [game_id]
        assert engine.rooms.get_room(room_id).game_id == game_id
        assert transport.broadcast_events(room_id, protocol.GAME_STARTED) == [game_id]
        for i, user_id in enumerate(user_ids):
            view = transport.sent_to(f"s{i}", protocol.GAME_STATE_UPDATED)[-1]
            assert len(view.get_player(user_id).hand) == 17
        assert len(started) == 1
        assert started[0].status == GameStatus.PLAYING
        assert len(scheduler.pending(TURN_TIMEOUT)) == 1

    def test_unknown_room(self, engine):
        """Test starting a missing room is rejected."""
        assert engine.start_game("s0", "NOPE00", "x").reason == RejectReason.ROOM_NOT_FOUND

    def test_only_host(self, engine, transport):
        """Test only the host may start."""
        room_id, user_ids = open_room(engine, 2)
        result = engine.start_game("s1", room_id, user_ids[1])
        assert result.reason == RejectReason.NOT_HOST
        assert transport.sent_to("s1", protocol.ROOM_ERROR) == ["Only the host can start the game."]

    def test_not_enough_players(self, engine):
        """Test a game needs at least two players."""
        room_id, user_ids = open_room(engine, 1)
        result = engine.start_game("s0", room_id, user_ids[0])
        assert result.reason == RejectReason.NOT_ENOUGH_PLAYERS
        assert engine.active_games == []

    def test_already_started(self, engine):
        """Test a room runs one game at a time."""
        room_id, user_ids, _ = start(engine)
        result = engine.start_game("s0", room_id, user_ids[0])
        assert result.reason == RejectReason.GAME_IN_PROGRESS

    def test_concurrent_start_keeps_first_game(self, engine, transport, scheduler, monkeypatch):
        """Test a start that slips past the early check does not replace the running game."""
        room_id, user_ids, first = start(engine)
        monkeypatch.setattr(engine, "get_session", lambda game_id: None)

        result = engine.start_game("s0", room_id, user_ids[0])
        monkeypatch.undo()

        assert result.reason == RejectReason.GAME_IN_PROGRESS
        assert engine.get_session(first.game_id) is first
        assert transport.broadcast_events(room_id, protocol.GAME_STARTED) == [first.game_id]
        assert len(scheduler.pending(TURN_TIMEOUT)) == 1


class TestPlayCard:
    """Tests for play requests."""

    def test_unknown_game(self, engine, transport):
        """Test playing in a missing game is rejected."""
        result = engine.play_card("s0", "game-NOPE00", "x", card("2C"))
        assert result.reason == RejectReason.GAME_NOT_FOUND
        assert transport.sent_to("s0", protocol.GAME_ERROR) == ["Game not found."]

    def test_not_your_turn(self, engine, transport):
        """Test an out-of-turn play is reported to the requester only."""
        _, user_ids, session = start(engine)
        waiting = next(pid for pid in user_ids if pid != session.state.current_player_id)
        waiting_sid = session.state.get_player(waiting).session_id

        result = engine.play_card(waiting_sid, session.game_id, waiting, session.state.get_player(waiting).hand[0])

        assert result.reason == RejectReason.NOT_YOUR_TURN
        assert transport.sent_to(waiting_sid, protocol.GAME_ERROR) == ["It's not your turn."]

    def test_valid_play(self, engine):
        """Test a legal play reaches the session."""
        _, _, session = start(engine)
        current = session.state.get_player(session.state.current_player_id)
        played = current.hand[0]

        result = engine.play_card(current.session_id, session.game_id, current.id, played)

        assert result.ok
        assert session.state.current_trick[0].card == played

    def test_game_runs_to_completion(self, engine, scheduler, transport):
        """Test timeouts alone play a whole game and clean it up."""
        ended = []
        engine.set_callbacks(on_game_end=lambda game_id, results: ended.append(results))
        room_id, _, session = start(engine)

        while engine.get_session(session.game_id) is not None:
            scheduler.fire_next()

        results = transport.broadcast_events(room_id, protocol.GAME_OVER)[0]
        assert sum(entry["tricks_won"] for entry in results) == 26
        assert ended == [results]
        assert engine.rooms.get_room(room_id).game_id is None
        assert engine.active_games == []


class TestReconnection:
    """Tests for disconnects, reconnects and the grace period."""

    def test_disconnect(self, engine, transport, scheduler):
        """Test a disconnect is announced and starts the grace timer."""
        room_id, (host_id, _) = open_room(engine, 2)

        engine.disconnect("s0")

        assert transport.broadcast_events(room_id, protocol.PLAYER_DISCONNECTED) == [{"user_id": host_id}]
        assert not engine.rooms.get_room(room_id).get_participant(host_id).is_online
        assert len(scheduler.pending(RECONNECTION_TIMEOUT)) == 1

    def test_disconnect_unknown_session(self, engine, transport):
        """Test a session that never joined a room is ignored."""
        assert engine.disconnect("stranger").ok
        assert transport.broadcasts == []

    def test_disconnect_twice(self, engine, scheduler):
        """Test a second disconnect does not add another grace timer."""
        open_room(engine, 2)
        engine.disconnect("s0")
        engine.disconnect("s0")
        assert len(scheduler.pending(RECONNECTION_TIMEOUT)) == 1

    def test_disconnect_on_turn_in_game(self, engine):
        """Test the turn moves on when the current player drops."""
        _, _, session = start(engine)
        current = session.state.get_player(session.state.current_player_id)

        engine.disconnect(current.session_id)

        assert session.state.current_player_id != current.id
        assert not session.state.get_player(current.id).is_online

    def test_reconnect(self, engine, transport, scheduler):
        """Test reconnecting rebinds the new session and sends a snapshot."""
        room_id, user_ids, session = start(engine)
        engine.disconnect("s1")

        result = engine.reconnect("s1-new", user_ids[1], room_id)

        assert result.ok
        assert scheduler.pending(RECONNECTION_TIMEOUT) == []
        assert transport.broadcast_events(room_id, protocol.PLAYER_RECONNECTED) == [{"user_id": user_ids[1]}]
        assert engine.rooms.get_room(room_id).get_participant(user_ids[1]).session_id == "s1-new"
        assert "s1-new" in transport.rooms[room_id]
        assert session.state.get_player(user_ids[1]).is_online
        view = transport.sent_to("s1-new", protocol.GAME_STATE_UPDATED)[-1]
        assert len(view.get_player(user_ids[1]).hand) == 26

    def test_reconnect_unknown_room(self, engine):
        """Test reconnecting to a missing room is rejected."""
        assert engine.reconnect("s9", "x", "NOPE00").reason == RejectReason.ROOM_NOT_FOUND

    def test_reconnect_unknown_player(self, engine, transport):
        """Test reconnecting as a stranger is rejected."""
        room_id, _ = open_room(engine, 1)
        result = engine.reconnect("s9", "stranger", room_id)
        assert result.reason == RejectReason.PLAYER_NOT_FOUND
        assert transport.sent_to("s9", protocol.ROOM_ERROR) == ["Player not found."]

    def test_reconnect_while_online(self, engine, transport):
        """Test a connected player cannot be taken over by another session."""
        room_id, (host_id, _) = open_room(engine, 2)

        result = engine.reconnect("s9", host_id, room_id)

        assert result.reason == RejectReason.PLAYER_ONLINE
        assert transport.sent_to("s9", protocol.ROOM_ERROR) == ["Player is already connected."]
        assert engine.rooms.get_room(room_id).get_participant(host_id).session_id == "s0"
        assert "s9" not in transport.rooms[room_id]

    def test_grace_expiry_in_lobby(self, engine, transport, scheduler):
        """Test the host role passes on when the host never returns."""
        room_id, (host_id, guest_id) = open_room(engine, 2)
        engine.disconnect("s0")

        scheduler.fire_next(RECONNECTION_TIMEOUT)

        room = engine.rooms.get_room(room_id)
        assert [p.id for p in room.players] == [guest_id]
        assert room.host_id == guest_id
        left = transport.broadcast_events(room_id, protocol.PLAYER_LEFT)[-1]
        assert left["host_id"] == guest_id
        assert left["host_changed"] is True
        assert [p.id for p in left["players"]] == [guest_id]

    def test_grace_expiry_prunes_game(self, engine, scheduler):
        """Test an expired player leaves a three player game."""
        room_id, user_ids, session = start(engine, 3)
        gone = user_ids[2]
        engine.disconnect("s2")

        scheduler.fire_next(RECONNECTION_TIMEOUT)

        assert gone not in session.state.player_ids()
        assert gone not in session.state.turn_order
        assert session.state.status == GameStatus.PLAYING
        assert engine.active_games == [session.game_id]

    def test_grace_expiry_abandons_two_player_game(self, engine, transport, scheduler):
        """Test a two player game ends when one player is removed."""
        room_id, _, session = start(engine, 2)
        engine.disconnect("s1")

        scheduler.fire_next(RECONNECTION_TIMEOUT)

        assert session.state.status == GameStatus.FINISHED
        assert transport.broadcast_events(room_id, protocol.GAME_OVER) == [[]]
        assert engine.active_games == []
        assert engine.rooms.get_room(room_id).game_id is None
        assert scheduler.pending() == []

    def test_expiry_after_reconnect_ignored(self, engine, scheduler):
        """Test a late grace callback does not remove a returned player."""
        room_id, (host_id, _) = open_room(engine, 2)
        engine.disconnect("s0")
        grace = scheduler.pending(RECONNECTION_TIMEOUT)[0]
        engine.reconnect("s0-new", host_id, room_id)

        grace.callback()

        assert engine.rooms.get_room(room_id).get_participant(host_id) is not None

    def test_last_player_leaving_deletes_room(self, engine, scheduler):
        """Test an empty room is removed."""
        room_id, _ = open_room(engine, 1)
        engine.disconnect("s0")
        scheduler.fire_next(RECONNECTION_TIMEOUT)
        assert engine.rooms.get_room(room_id) is None


class TestVoiceToken:
    """Tests for voice token requests."""

    def test_issue(self, transport, config, scheduler):
        """Test a configured issuer returns a token."""
        issuer = SignedTokenIssuer("app", "engine-test-certificate-32-bytes!")
        engine = GameEngine(transport, config, scheduler=scheduler, credential_issuer=issuer)

        result = engine.issue_voice_token("s0", "ROOM01", 1001)

        token = transport.sent_to("s0", protocol.VOICE_TOKEN)[0]["token"]
        assert result.ok
        assert issuer.verify(token)["uid"] == 1001

    def test_not_configured(self, engine, transport):
        """Test an unconfigured issuer reports an error."""
        result = engine.issue_voice_token("s0", "ROOM01", 1001)
        assert not result.ok
        assert transport.sent_to("s0", protocol.GAME_ERROR)


class TestHandle:
    """Tests for request dispatch."""

    def test_dispatch(self, engine, transport):
        """Test decoded requests reach the right handler."""
        request = parse_request('{"event": "create-room", "user_name": "Ann", "max_players": 2}')
        result = engine.handle(request, "s0")
        assert result.ok
        assert transport.sent_to("s0", protocol.ROOM_CREATED)

    def test_internal_error(self, engine, transport, monkeypatch):
        """Test an unexpected failure is reported, not raised."""
        def boom(*args):
            raise RuntimeError("boom")

        monkeypatch.setattr(engine.rooms, "create_room", boom)
        request = parse_request('{"event": "create-room", "user_name": "Ann"}')

        result = engine.handle(request, "s0")

        assert result.reason == RejectReason.INTERNAL_ERROR
        assert transport.sent_to("s0", protocol.GAME_ERROR) == ["Internal server error."]


def test_shutdown_cancels_timers(engine, scheduler):
    """Test shutdown cancels turn and grace timers."""
    start(engine, 3)
    engine.disconnect("s2")
    assert scheduler.pending()

    engine.shutdown()

    assert scheduler.pending() == []
