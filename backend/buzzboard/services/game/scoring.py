from buzzboard.errors import InvalidWager
from buzzboard.models import Contestant

MIN_MAX_WAGER = 1000


def apply_judgment(contestant: Contestant, stake: int, correct: bool) -> int:
    """Add or subtract ``stake`` from the contestant's score; returns the new score."""
    contestant.score += stake if correct else -stake
    return contestant.score


def max_daily_double_wager(score: int, floor: int = MIN_MAX_WAGER) -> int:
    return max(score, floor)


def max_final_wager(score: int, floor: int = MIN_MAX_WAGER) -> int:
    # Contestants at or below zero may still wager up to the floor
    return score if score > 0 else floor


def check_wager(wager: int, max_wager: int) -> int:
    if wager < 0 or wager > max_wager:
        raise InvalidWager(max_wager)
    return wager
