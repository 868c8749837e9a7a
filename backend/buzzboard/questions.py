"""Question bank loading.

The bank is a CSV file whose header row names the categories after a leading
price column::

    price,SCIENCE,HISTORY
    200,What is H2O?;Water,Who was the first US president?;George Washington

Each cell holds ``question;answer``.
"""
import csv
import os

from .errors import QuestionBankNotFound, QuestionBankParseError
from .models import Board, PriceTier, Question

PRICE_HEADERS = ('price', 'prices', 'value')
CELL_SEPARATOR = ';'

DEFAULT_BANK = [
    ['price', 'SCIENCE', 'HISTORY', 'GEOGRAPHY', 'TECHNOLOGY'],
    [200,
     'This element has the chemical symbol O;Oxygen',
     'This ship sank on its maiden voyage in 1912;Titanic',
     'This is the largest ocean on Earth;Pacific Ocean',
     'This company makes the iPhone;Apple'],
    [400,
     'This planet is known as the Red Planet;Mars',
     'This wall fell in 1989;Berlin Wall',
     'This river flows through Cairo;Nile',
     'HTML stands for HyperText this Language;Markup'],
    [600,
     'This force keeps us on the ground;Gravity',
     'He was the first person to walk on the Moon;Neil Armstrong',
     'This is the capital of Australia;Canberra',
     'This language is named after a British comedy troupe;Python'],
    [800,
     'This is the powerhouse of the cell;Mitochondria',
     'This empire was ruled by Genghis Khan;Mongol Empire',
     'This desert is the largest hot desert;Sahara',
     'This person is credited as the first computer programmer;Ada Lovelace'],
    [1000,
     'This scientist proposed the theory of general relativity;Albert Einstein',
     'This treaty ended World War I;Treaty of Versailles',
     'This mountain is the tallest above sea level;Mount Everest',
     'This protocol secures most web traffic;TLS'],
]


def parse_cell(raw, category):
    parts = (raw or '').split(CELL_SEPARATOR, 1)
    text = parts[0].strip()
    answer = parts[1].strip() if len(parts) > 1 else ''
    return Question(text=text, answer=answer, category=category)


def parse_rows(rows) -> Board:
    """Build a board from CSV rows (header first)."""
    rows = [r for r in rows if any((c or '').strip() for c in r)]
    if len(rows) < 2:
        raise QuestionBankParseError('Question bank needs a header row and at least one price row')
    header = [h.strip() for h in rows[0]]
    if header[0].lower() not in PRICE_HEADERS:
        raise QuestionBankParseError(f'First column must be one of {", ".join(PRICE_HEADERS)}')
    categories = header[1:]
    if not categories:
        raise QuestionBankParseError('Question bank has no categories')

    tiers = []
    for line_no, row in enumerate(rows[1:], start=2):
        try:
            price = int(str(row[0]).strip())
        except (ValueError, IndexError):
            raise QuestionBankParseError(f'Invalid price on line {line_no}: {row[:1]}')
        cells = list(row[1:]) + [''] * (len(categories) - len(row[1:]))
        tiers.append(PriceTier(
            price=price,
            questions=[parse_cell(raw, categories[i]) for i, raw in enumerate(cells[:len(categories)])],
        ))
    return Board(categories=categories, tiers=tiers)


def load_board(path) -> Board:
    if not os.path.exists(path):
        raise QuestionBankNotFound(f'{path} file not found')
    try:
        with open(path, newline='', encoding='utf-8-sig') as fh:
            return parse_rows(list(csv.reader(fh)))
    except (OSError, csv.Error, UnicodeDecodeError) as exc:
        raise QuestionBankParseError(f'Error reading {path}: {exc}')


def write_default_bank(path, overwrite=False) -> bool:
    """Write the starter bank to ``path``. Returns False if it already exists."""
    if os.path.exists(path) and not overwrite:
        return False
    with open(path, 'w', newline='', encoding='utf-8') as fh:
        csv.writer(fh).writerows(DEFAULT_BANK)
    return True


class QuestionBankLoader:
    """Loads the board for a new game from the configured CSV file."""

    def __init__(self, path):
        self.path = path

    def load(self) -> Board:
        return load_board(self.path)
