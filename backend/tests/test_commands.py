import pytest

from buzzboard.broadcast import Broadcaster, session_room
from buzzboard.commands import (
    CLOSE, EVERYONE, HOST, JOIN, LEAVE, REPLY, Event, RoomChange,
    BuzzIn, DailyDoubleWager, FinalJudgment, JoinAsHost, JudgeAnswer,
    JudgeFinalJeopardy, SelectQuestion, parse_command,
)
from buzzboard.errors import ValidationError


def test_parse_known_commands():
    assert parse_command('buzz-in') == BuzzIn()
    assert parse_command('select-question', {'row': 1, 'col': 2}) == SelectQuestion(1, 2)
    assert parse_command('judge-answer', {'correct': False}) == JudgeAnswer(False)
    assert parse_command('join-as-host', {'sessionId': ' ab12cd ', 'hostPassword': 'pw'}) == JoinAsHost('AB12CD', 'pw')
    assert parse_command('judge-final-jeopardy', {'answers': [{'contestantId': 's1', 'correct': True}]}) == \
        JudgeFinalJeopardy((FinalJudgment('s1', True),))


@pytest.mark.parametrize('name, data', [
    ('launch-missiles', {}),
    ('select-question', {'row': '1', 'col': 0}),
    ('select-question', {'row': True, 'col': 0}),
    ('daily-double-wager', {'wager': 12.5}),
    ('daily-double-wager', None),
    ('judge-answer', {'correct': 'yes'}),
    ('judge-final-jeopardy', {'answers': 'all correct'}),
    ('join-as-contestant', {'sessionId': 5, 'contestantName': 'Al'}),
    ('create-session', 'password'),
])
def test_malformed_commands(name, data):
    with pytest.raises(ValidationError):
        parse_command(name, data)


def test_wager_must_be_present():
    with pytest.raises(ValidationError):
        DailyDoubleWager.from_payload({})


class _RecordingSocketIO:
    def __init__(self):
        self.emitted = []

    def emit(self, event, data, to=None, namespace=None):
        self.emitted.append((event, data, to, namespace))


def test_broadcaster_resolves_audiences():
    sio = _RecordingSocketIO()
    sent = Broadcaster(sio).deliver([
        Event('game-reset', {'x': 1}, EVERYONE, 'AB12CD'),
        Event('final-jeopardy-wager-received', {}, HOST, 'host-sid'),
        Event('invalid-wager', {'maxWager': 1000}, REPLY, 'c-sid'),
        Event('contestant-list-updated', {}, HOST, None),
    ])
    assert sent == 3
    assert [(e[0], e[2]) for e in sio.emitted] == [
        ('game-reset', session_room('AB12CD')),
        ('final-jeopardy-wager-received', 'host-sid'),
        ('invalid-wager', 'c-sid'),
    ]
    assert all(e[3] == '/ws' for e in sio.emitted)


def test_event_rejects_unknown_audience():
    with pytest.raises(ValueError):
        Event('game-reset', {}, 'spectators', 'AB12CD')


class _RecordingServer:
    def __init__(self):
        self.calls = []

    def enter_room(self, sid, room, namespace=None):
        self.calls.append(('enter', sid, room, namespace))

    def leave_room(self, sid, room, namespace=None):
        self.calls.append(('leave', sid, room, namespace))


class _RoomSocketIO(_RecordingSocketIO):
    def __init__(self):
        super().__init__()
        self.server = _RecordingServer()
        self.closed = []

    def close_room(self, room, namespace=None):
        self.closed.append((room, namespace))


def test_broadcaster_applies_room_changes():
    sio = _RoomSocketIO()
    Broadcaster(sio).apply([
        RoomChange(CLOSE, 'OLD123'),
        RoomChange(JOIN, 'AB12CD', 'host-sid'),
        RoomChange(LEAVE, 'AB12CD', 'stale-sid'),
    ])
    assert sio.closed == [('session:OLD123', '/ws')]
    assert sio.server.calls == [
        ('enter', 'host-sid', 'session:AB12CD', '/ws'),
        ('leave', 'stale-sid', 'session:AB12CD', '/ws'),
    ]


def test_gated_commands_name_their_role():
    assert SelectQuestion.required_role == 'host'
    assert JudgeFinalJeopardy.required_role == 'host'
    assert BuzzIn.required_role == 'contestant'
    assert JoinAsHost.required_role is None
