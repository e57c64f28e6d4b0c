"""Tests for intent parsing and outbox addressing."""

import pytest
from pydantic import ValidationError

from arena_server.models.messages import (
    EnterHouseIntent,
    JoinIntent,
    MoveIntent,
    Outbox,
    PlayerLeftMessage,
    PongMessage,
    parse_intent,
)


class TestParseIntent:
    def test_join_defaults(self):
        intent = parse_intent('{"type": "join"}')
        assert isinstance(intent, JoinIntent)
        assert (intent.name, intent.color) == ("Player", "#999999")

    def test_enter_house(self):
        intent = parse_intent(b'{"type": "enter_house", "houseId": 3}')
        assert isinstance(intent, EnterHouseIntent)
        assert intent.houseId == 3

    def test_extra_fields_ignored(self):
        intent = parse_intent('{"type": "move", "vx": 1, "vy": 2, "seq": 9}')
        assert isinstance(intent, MoveIntent)
        assert (intent.vx, intent.vy) == (1.0, 2.0)

    @pytest.mark.parametrize(
        "raw",
        ["", "[]", '{"type": "fly"}', '{"type": "move", "vx": NaN}', '{"type": "enter_house", "houseId": "x"}'],
    )
    def test_rejects(self, raw):
        with pytest.raises(ValidationError):
            parse_intent(raw)


class TestOutbox:
    def test_addressing(self):
        outbox = Outbox()
        outbox.send("a", PongMessage())
        outbox.broadcast(PlayerLeftMessage(playerId="b"), exclude="b")
        first, second = list(outbox)
        assert (first.recipient, first.exclude) == ("a", None)
        assert (second.recipient, second.exclude) == (None, "b")
        assert len(outbox.of_type("player_left")) == 1

    def test_extend_keeps_order(self):
        a, b = Outbox(), Outbox()
        a.send("x", PongMessage())
        b.broadcast(PlayerLeftMessage(playerId="y"))
        a.extend(b)
        assert [e.message.type for e in a] == ["pong", "player_left"]
