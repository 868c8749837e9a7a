import json
from types import SimpleNamespace

import openai
import pytest

from buzzboard.errors import GenerationError
from buzzboard.generation import QuestionGenerator, board_from_payload, parse_json_from_text

BOARD_JSON = {
    'categories': ['MUSIC', 'FILM'],
    'rows': [
        {'price': 200, 'clues': [
            {'question': 'Four strings?', 'answer': 'Violin'},
            {'question': 'Jaws director?', 'answer': 'Spielberg'},
        ]},
        {'price': '400', 'clues': [
            {'question': 'Eight notes?', 'answer': 'Octave'},
            {'question': 'Rosebud film?', 'answer': 'Citizen Kane'},
        ]},
    ],
}


class _FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def test_from_config_requires_api_key():
    assert QuestionGenerator.from_config({'OPENAI_API_KEY': None}) is None


def test_generate_parses_fenced_json():
    completions = _FakeCompletions(content='```json\n' + json.dumps(BOARD_JSON) + '\n```')
    generator = QuestionGenerator('key', model='test-model', client=_client(completions))

    board = generator.generate()

    assert board.categories == ['MUSIC', 'FILM']
    assert [t.price for t in board.tiers] == [200, 400]
    assert board.cell(1, 1).answer == 'Citizen Kane'
    assert board.cell(1, 1).category == 'FILM'
    assert completions.calls[0]['model'] == 'test-model'


def test_generate_wraps_api_errors():
    completions = _FakeCompletions(error=openai.OpenAIError('quota'))
    generator = QuestionGenerator('key', client=_client(completions))
    with pytest.raises(GenerationError) as exc:
        generator.generate()
    assert 'quota' in exc.value.message


def test_non_json_reply_is_a_generation_error():
    with pytest.raises(GenerationError):
        parse_json_from_text('Sorry, I cannot help with that.')


@pytest.mark.parametrize('payload', [
    [],
    {'categories': ['A'], 'rows': []},
    {'categories': ['A', 'B'], 'rows': [{'price': 100, 'clues': [{'question': 'q', 'answer': 'a'}]}]},
    {'categories': ['A'], 'rows': [{'price': 'cheap', 'clues': [{'question': 'q', 'answer': 'a'}]}]},
    {'categories': ['A'], 'rows': [{'price': 100, 'clues': [{'answer': 'a'}]}]},
])
def test_malformed_boards_are_rejected(payload):
    with pytest.raises(GenerationError):
        board_from_payload(payload)
