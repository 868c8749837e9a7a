"""Inbound commands and outbound events.

Every Socket.IO event a client may send maps to exactly one frozen command
class in ``COMMANDS``. ``parse_command`` validates the payload shape so the
game machine only ever sees well-formed commands.
"""
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

from .errors import ValidationError
from .identity import CONTESTANT_ROLE, HOST_ROLE

EVERYONE = 'everyone'
HOST = 'host'
REPLY = 'reply'
AUDIENCES = (EVERYONE, HOST, REPLY)


@dataclass(frozen=True)
class Event:
    name: str
    payload: Any = None
    audience: str = EVERYONE
    # session id for EVERYONE, connection id for HOST and REPLY
    target: Optional[str] = None

    def __post_init__(self):
        if self.audience not in AUDIENCES:
            raise ValueError(f'Unknown audience {self.audience!r}')


# room membership changes a transition asks the transport to make
JOIN = 'join'
LEAVE = 'leave'
CLOSE = 'close'


@dataclass(frozen=True)
class RoomChange:
    action: str
    session_id: str
    # the connection joining or leaving; unused for CLOSE
    sid: Optional[str] = None


def _data(data):
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Payload must be an object')
    return data


def _text(data, key):
    value = data.get(key)
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValidationError(f'{key} must be a string')
    return value


def _int(data, key):
    value = data.get(key)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f'{key} must be an integer')
    return value


def _bool(data, key):
    value = data.get(key)
    if not isinstance(value, bool):
        raise ValidationError(f'{key} must be true or false')
    return value


@dataclass(frozen=True)
class Command:
    # role a connection must hold for the command to do anything
    required_role = None

    @classmethod
    def from_payload(cls, data):
        return cls()


@dataclass(frozen=True)
class CreateSession(Command):
    secret: str = ''

    @classmethod
    def from_payload(cls, data):
        return cls(secret=_text(_data(data), 'hostPassword'))


@dataclass(frozen=True)
class JoinAsHost(Command):
    session_id: str = ''
    secret: str = ''

    @classmethod
    def from_payload(cls, data):
        data = _data(data)
        return cls(session_id=_text(data, 'sessionId').strip().upper(), secret=_text(data, 'hostPassword'))


@dataclass(frozen=True)
class JoinAsContestant(Command):
    session_id: str = ''
    name: str = ''
    # filled in by the transport, never by the client
    address: Optional[str] = None

    @classmethod
    def from_payload(cls, data):
        data = _data(data)
        return cls(session_id=_text(data, 'sessionId').strip().upper(), name=_text(data, 'contestantName'))


@dataclass(frozen=True)
class SelectQuestion(Command):
    required_role = HOST_ROLE
    row: int = 0
    col: int = 0

    @classmethod
    def from_payload(cls, data):
        data = _data(data)
        return cls(row=_int(data, 'row'), col=_int(data, 'col'))


@dataclass(frozen=True)
class BuzzIn(Command):
    required_role = CONTESTANT_ROLE


@dataclass(frozen=True)
class DailyDoubleWager(Command):
    required_role = CONTESTANT_ROLE
    wager: int = 0

    @classmethod
    def from_payload(cls, data):
        return cls(wager=_int(_data(data), 'wager'))


@dataclass(frozen=True)
class JudgeAnswer(Command):
    required_role = HOST_ROLE
    correct: bool = False

    @classmethod
    def from_payload(cls, data):
        return cls(correct=_bool(_data(data), 'correct'))


@dataclass(frozen=True)
class StartFinalJeopardy(Command):
    required_role = HOST_ROLE


@dataclass(frozen=True)
class FinalJeopardyWager(Command):
    required_role = CONTESTANT_ROLE
    wager: int = 0

    @classmethod
    def from_payload(cls, data):
        return cls(wager=_int(_data(data), 'wager'))


@dataclass(frozen=True)
class FinalJudgment:
    contestant_id: str
    correct: bool


@dataclass(frozen=True)
class JudgeFinalJeopardy(Command):
    required_role = HOST_ROLE
    answers: Tuple[FinalJudgment, ...] = field(default_factory=tuple)

    @classmethod
    def from_payload(cls, data):
        answers = _data(data).get('answers')
        if not isinstance(answers, list):
            raise ValidationError('answers must be a list')
        judgments = []
        for answer in answers:
            answer = _data(answer)
            judgments.append(FinalJudgment(
                contestant_id=_text(answer, 'contestantId'),
                correct=_bool(answer, 'correct'),
            ))
        return cls(answers=tuple(judgments))


@dataclass(frozen=True)
class ResetGame(Command):
    required_role = HOST_ROLE


@dataclass(frozen=True)
class RegenerateQuestionSet(Command):
    required_role = HOST_ROLE


@dataclass(frozen=True)
class GenerationStatus(Command):
    required_role = HOST_ROLE


@dataclass(frozen=True)
class Disconnect(Command):
    pass


COMMANDS = {
    'create-session': CreateSession,
    'join-as-host': JoinAsHost,
    'join-as-contestant': JoinAsContestant,
    'select-question': SelectQuestion,
    'buzz-in': BuzzIn,
    'daily-double-wager': DailyDoubleWager,
    'judge-answer': JudgeAnswer,
    'start-final-jeopardy': StartFinalJeopardy,
    'final-jeopardy-wager': FinalJeopardyWager,
    'judge-final-jeopardy': JudgeFinalJeopardy,
    'reset-game': ResetGame,
    'regenerate-question-set': RegenerateQuestionSet,
    'generation-status': GenerationStatus,
    'disconnect': Disconnect,
}


def parse_command(name, data=None) -> Command:
    try:
        command_cls = COMMANDS[name]
    except KeyError:
        raise ValidationError(f'Unknown action: {name}')
    return command_cls.from_payload(data)
