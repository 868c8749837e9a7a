import json
import re
from typing import Optional

import openai

from .errors import GenerationError
from .models import Board, PriceTier, Question

DEFAULT_PRICES = (200, 400, 600, 800, 1000)
DEFAULT_CATEGORY_COUNT = 6

SYSTEM_PROMPT = 'You write family-friendly Jeopardy boards. Return JSON only.'


def build_prompt(categories=DEFAULT_CATEGORY_COUNT, prices=DEFAULT_PRICES):
    return (
        f"Create a Jeopardy board with {categories} distinct categories and one clue per category "
        f"for each price in {list(prices)}. Clues get harder as the price rises. "
        'Return a JSON object: {"categories": [names], "rows": [{"price": 200, '
        '"clues": [{"question": "...", "answer": "..."}, ...one per category]}, ...]}.'
    )


def parse_json_from_text(text):
    cleaned = text.strip()
    fence = re.match(r'^```(?:json)?\s*(.*?)\s*```$', cleaned, re.S)
    if fence:
        cleaned = fence.group(1)
    try:
        return json.loads(cleaned)
    except ValueError:
        raise GenerationError('Generated questions were not valid JSON')


def board_from_payload(data) -> Board:
    if not isinstance(data, dict):
        raise GenerationError('Generated questions were not a JSON object')
    categories = [str(c).strip() for c in data.get('categories') or []]
    rows = data.get('rows') or []
    if not categories or not rows:
        raise GenerationError('Generated board is missing categories or rows')

    tiers = []
    for row in rows:
        clues = row.get('clues') if isinstance(row, dict) else None
        if not isinstance(clues, list) or len(clues) != len(categories):
            raise GenerationError('Generated row does not match the categories')
        try:
            price = int(row.get('price'))
        except (TypeError, ValueError):
            raise GenerationError(f"Generated row has an invalid price: {row.get('price')!r}")
        questions = []
        for category, clue in zip(categories, clues):
            if not isinstance(clue, dict) or not clue.get('question'):
                raise GenerationError('Generated clue is missing its question')
            questions.append(Question(
                text=str(clue['question']).strip(),
                answer=str(clue.get('answer', '')).strip(),
                category=category,
            ))
        tiers.append(PriceTier(price=price, questions=questions))
    return Board(categories=categories, tiers=tiers)


class QuestionGenerator:
    """Asks an OpenAI chat model for a replacement board."""

    def __init__(self, api_key, model='gpt-4o-mini', client=None):
        self.model = model
        self._client = client or openai.OpenAI(api_key=api_key)

    @classmethod
    def from_config(cls, config) -> Optional['QuestionGenerator']:
        api_key = config.get('OPENAI_API_KEY')
        if not api_key:
            return None
        return cls(api_key, model=config.get('OPENAI_MODEL') or 'gpt-4o-mini')

    def generate(self) -> Board:
        try:
            resp = self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {'role': 'system', 'content': SYSTEM_PROMPT},
                    {'role': 'user', 'content': build_prompt()},
                ],
                temperature=0.8,
            )
        except openai.OpenAIError as exc:
            raise GenerationError(f'OpenAI call failed: {exc}')
        content = resp.choices[0].message.content or ''
        return board_from_payload(parse_json_from_text(content))
