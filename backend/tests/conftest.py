import os
import random
import sys
import pytest

# Ensure the backend root (containing the `buzzboard` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from buzzboard import create_app, socketio
from buzzboard.models import Board, PriceTier, Question
from buzzboard.services.game.machine import GameMachine
from buzzboard.sessions import SessionRegistry

HOST_PASSWORD = 'test-password'


def make_board(prices=(200, 400), categories=('SCIENCE', 'HISTORY')):
    return Board(
        categories=list(categories),
        tiers=[
            PriceTier(price=price, questions=[
                Question(text=f'{cat} {price} question', answer=f'{cat} {price} answer', category=cat)
                for cat in categories
            ])
            for price in prices
        ],
    )


def force_daily_double(board, row, col):
    for _, _, q in board.cells():
        q.is_daily_double = False
    board.cell(row, col).is_daily_double = True


class StaticLoader:
    """Hands out a fresh copy of a fixed board."""

    def __init__(self, board=None, error=None):
        self.board = board or make_board()
        self.error = error
        self.calls = 0

    def load(self):
        self.calls += 1
        if self.error:
            raise self.error
        return self.board.copy()


class FakeGenerator:
    def __init__(self, board=None, error=None):
        self.board = board or make_board(prices=(100, 300), categories=('MUSIC', 'FILM', 'ART'))
        self.error = error
        self.calls = 0

    def generate(self):
        self.calls += 1
        if self.error:
            raise self.error
        return self.board.copy()


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    HOST_PASSWORD = HOST_PASSWORD
    CORS_ORIGINS = ['*']
    QUESTIONS_CSV = 'does-not-exist.csv'
    SESSION_TTL_SEC = 24 * 60 * 60
    SESSION_SWEEP_INTERVAL_SEC = 3600
    OPENAI_API_KEY = None
    ANSWER_TIMEOUT_SEC = 0
    MAX_NAME_LENGTH = 20
    MIN_MAX_WAGER = 1000
    FINAL_JEOPARDY_CATEGORY = 'TECHNOLOGY'
    FINAL_JEOPARDY_TEXT = 'This language was created by Brendan Eich in 1995.'


def make_machine(board=None, generator=None, loader=None):
    return GameMachine(
        sessions=SessionRegistry(HOST_PASSWORD),
        loader=loader or StaticLoader(board),
        generator=generator,
        rng=random.Random(1234),
    )


@pytest.fixture()
def machine():
    return make_machine()


@pytest.fixture()
def generator():
    return FakeGenerator()


@pytest.fixture()
def flask_app(generator):
    class Config(TestConfig):
        QUESTION_LOADER = StaticLoader()
        QUESTION_GENERATOR = generator
        GAME_RNG = random.Random(1234)

    application = create_app(Config)
    with application.app_context():
        yield application


@pytest.fixture()
def app_machine(flask_app):
    return flask_app.extensions['buzzboard']['machine']


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(flask_app):
    clients = []

    def _connect():
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace='/ws'
        )
        # Flush the connect ack
        test_client.get_received('/ws')
        clients.append(test_client)
        return test_client

    yield _connect
    for test_client in clients:
        try:
            if test_client.is_connected('/ws'):
                test_client.disconnect(namespace='/ws')
        except RuntimeError:
            pass
