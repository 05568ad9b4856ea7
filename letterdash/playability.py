"""Scores how playable a (category, letter) pair is."""

import logging
from typing import Optional

from .letters import DEFAULT_RARITY, round_half_up
from .models import Category, Playability

logger = logging.getLogger(__name__)

# Share of English words starting with each letter
START_FREQUENCIES = {
    'A': 0.11, 'B': 0.09, 'C': 0.12, 'D': 0.08, 'E': 0.02, 'F': 0.06,
    'G': 0.05, 'H': 0.06, 'I': 0.02, 'J': 0.01, 'K': 0.01, 'L': 0.05,
    'M': 0.09, 'N': 0.02, 'O': 0.02, 'P': 0.08, 'Q': 0.001, 'R': 0.07,
    'S': 0.11, 'T': 0.09, 'U': 0.01, 'V': 0.01, 'W': 0.05, 'X': 0.001,
    'Y': 0.01, 'Z': 0.001,
}
DEFAULT_START_FREQUENCY = 0.02

NOT_FOUND = Playability(
    score=0,
    estimated_words=0,
    difficulty=5,
    feasible=False,
    reason='Category not found',
)


def letter_start_frequency(letter: Optional[str]) -> float:
    if not letter:
        return DEFAULT_START_FREQUENCY
    return START_FREQUENCIES.get(letter.upper(), DEFAULT_START_FREQUENCY)


class PlayabilityEvaluator:
    """
    Estimates reachable words and a 0-10 playability score.

    Results depend only on the category, the letter and the letter model's
    rarity table, so repeated calls with the same inputs agree.
    """

    def __init__(self, category_store=None, letter_model=None):
        self.category_store = category_store
        self.letter_model = letter_model

    def _rarity(self, letter: str) -> int:
        if self.letter_model is None:
            return DEFAULT_RARITY
        return self.letter_model.rarity_score(letter)

    def estimate_words(self, category: Category, letter: str) -> int:
        total_words = len(category.words) or category.estimated_words or 10
        adjustment = 1.0
        if 'common' in category.tags:
            adjustment *= 1.2
        if category.difficulty <= 2:
            adjustment *= 1.1
        if category.difficulty >= 4:
            adjustment *= 0.9
        return round_half_up(total_words * letter_start_frequency(letter) * adjustment)

    def difficulty_score(self, category: Category, letter: str) -> int:
        combined = (category.difficulty or 3) * 1.5 + self._rarity(letter) * 0.5
        return round_half_up(min(10, max(1, combined)))

    def assess_category(self, category: Optional[Category], letter: str) -> Playability:
        if category is None:
            return NOT_FOUND

        estimated = self.estimate_words(category, letter)
        difficulty = self.difficulty_score(category, letter)

        score = 0
        if estimated >= 15:
            score += 4
        elif estimated >= 10:
            score += 3
        elif estimated >= 5:
            score += 2
        elif estimated >= 2:
            score += 1

        if 3 <= difficulty <= 7:
            score += 3
        elif 2 <= difficulty <= 8:
            score += 2
        else:
            score += 1

        if 'common' in category.tags:
            score += 1
        if len(category.words) > 20:
            score += 1
        if (category.average_word_length or 0) >= 4:
            score += 1

        feasible = estimated >= 3 and score >= 4
        return Playability(
            score=min(10, score),
            estimated_words=estimated,
            difficulty=difficulty,
            feasible=feasible,
            reason='Good combination' if feasible else 'Insufficient words or poor playability',
        )

    def assess(self, category_id: str, letter: str) -> Playability:
        if self.category_store is None:
            return NOT_FOUND
        return self.assess_category(self.category_store.get_by_id(category_id), letter)
