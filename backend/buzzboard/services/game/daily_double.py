import random
from typing import Optional, Tuple

from buzzboard.models import Board


def assign_daily_double(board: Board, rng: Optional[random.Random] = None) -> Optional[Tuple[int, int]]:
    """Flag exactly one unanswered cell as the daily double.

    Clears any existing flag first. Returns the chosen ``(row, col)``, or
    ``None`` when every cell has been answered.
    """
    rng = rng or random
    for _, _, question in board.cells():
        question.is_daily_double = False
    unanswered = board.unanswered_cells()
    if not unanswered:
        return None
    row, col = rng.choice(unanswered)
    board.cell(row, col).is_daily_double = True
    return row, col
