import copy
import random
import string
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from werkzeug.security import generate_password_hash, check_password_hash

WAITING = 'waiting'
PLAYING = 'playing'
DAILY_DOUBLE = 'daily-double'
FINAL_JEOPARDY = 'final-jeopardy'


def generate_session_id(length=6, taken=()):
    """Generate a short session id not present in ``taken``."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if code not in taken:
            return code


@dataclass
class Session:
    id: str
    secret_hash: str
    created_at: float = field(default_factory=time.time)

    @classmethod
    def create(cls, session_id, secret, now=None):
        return cls(
            id=session_id,
            secret_hash=generate_password_hash(secret),
            created_at=time.time() if now is None else now,
        )

    def check_secret(self, secret):
        return bool(secret) and check_password_hash(self.secret_hash, secret)

    def to_dict(self):
        return {
            'sessionId': self.id,
            'createdAt': self.created_at,
        }


@dataclass
class Question:
    text: str
    answer: str
    category: str
    answered: bool = False
    is_daily_double: bool = False

    def to_dict(self):
        return {
            'text': self.text,
            'answer': self.answer,
            'category': self.category,
            'answered': self.answered,
            'isDailyDouble': self.is_daily_double,
        }


@dataclass
class PriceTier:
    price: int
    questions: List[Question]

    def to_dict(self):
        return {
            'price': self.price,
            'questions': [q.to_dict() for q in self.questions],
        }


@dataclass
class Board:
    categories: List[str] = field(default_factory=list)
    tiers: List[PriceTier] = field(default_factory=list)

    def __len__(self):
        return len(self.tiers)

    def cell(self, row: int, col: int) -> Question:
        return self.tiers[row].questions[col]

    def has_cell(self, row, col) -> bool:
        return 0 <= row < len(self.tiers) and 0 <= col < len(self.tiers[row].questions)

    def cells(self):
        for row, tier in enumerate(self.tiers):
            for col, question in enumerate(tier.questions):
                yield row, col, question

    def unanswered_cells(self) -> List[Tuple[int, int]]:
        return [(row, col) for row, col, q in self.cells() if not q.answered]

    def daily_doubles(self) -> List[Tuple[int, int]]:
        return [(row, col) for row, col, q in self.cells() if q.is_daily_double]

    def copy(self):
        return copy.deepcopy(self)

    def to_list(self):
        return [tier.to_dict() for tier in self.tiers]


@dataclass
class Contestant:
    id: Optional[str]
    name: str
    score: int = 0
    ip_address: Optional[str] = None
    can_buzz: bool = True

    @property
    def key(self):
        return name_key(self.name)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'score': self.score,
            'ipAddress': self.ip_address,
            'canBuzz': self.can_buzz,
        }


def name_key(name: str) -> str:
    return name.strip().lower()


@dataclass
class CurrentQuestion:
    row: int
    col: int
    value: int
    text: str
    answer: str
    category: str
    is_daily_double: bool = False
    wager: Optional[int] = None

    @classmethod
    def from_cell(cls, board: Board, row: int, col: int):
        q = board.cell(row, col)
        return cls(
            row=row,
            col=col,
            value=board.tiers[row].price,
            text=q.text,
            answer=q.answer,
            category=q.category,
            is_daily_double=q.is_daily_double,
        )

    @property
    def stake(self) -> int:
        """Points at stake: the wager on a daily double, the cell price otherwise."""
        return self.wager if self.wager is not None else self.value

    def to_dict(self):
        data = {
            'text': self.text,
            'answer': self.answer,
            'category': self.category,
            'answered': False,
            'isDailyDouble': self.is_daily_double,
            'row': self.row,
            'col': self.col,
            'value': self.value,
        }
        if self.wager is not None:
            data['wager'] = self.wager
        return data


@dataclass
class GameState:
    session_id: Optional[str] = None
    contestants: Dict[str, Contestant] = field(default_factory=dict)
    contestants_by_name: Dict[str, Contestant] = field(default_factory=dict)
    host_id: Optional[str] = None
    board: Board = field(default_factory=Board)
    current_question: Optional[CurrentQuestion] = None
    answering: bool = False
    answering_contestant_id: Optional[str] = None
    game_phase: str = WAITING
    final_jeopardy_question: Optional[dict] = None
    final_jeopardy_wagers: Dict[str, int] = field(default_factory=dict)

    @property
    def categories(self):
        return self.board.categories

    def live_contestant(self, sid) -> Optional[Contestant]:
        if sid is None:
            return None
        return self.contestants.get(sid)

    def answering_contestant(self) -> Optional[Contestant]:
        return self.live_contestant(self.answering_contestant_id)

    def release_floor(self):
        self.answering = False
        self.answering_contestant_id = None

    def contestants_dict(self):
        return {sid: c.to_dict() for sid, c in self.contestants.items()}

    def to_dict(self):
        return {
            'sessionId': self.session_id,
            'contestants': self.contestants_dict(),
            'contestantsByName': {k: c.to_dict() for k, c in self.contestants_by_name.items()},
            'hostId': self.host_id,
            'currentQuestion': self.current_question.to_dict() if self.current_question else None,
            'answering': self.answering,
            'answeringContestant': self.answering_contestant_id,
            'board': self.board.to_list(),
            'categories': list(self.board.categories),
            'gamePhase': self.game_phase,
            'finalJeopardyQuestion': self.final_jeopardy_question,
            'finalJeopardyWagers': dict(self.final_jeopardy_wagers),
        }
