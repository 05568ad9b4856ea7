"""
Weighted letter generation.

Letters are drawn from English start-letter frequencies, skewed toward rare
letters as difficulty rises and toward common letters as it falls.
"""

import logging
import random
import time
from typing import Dict, Iterable, List, Optional

from .cache import LetterFrequencyCache
from .config import CacheConfig
from .models import ALPHABET, round_half_up

logger = logging.getLogger(__name__)

BASE_FREQUENCIES: Dict[str, float] = {
    'A': 0.0812, 'B': 0.0149, 'C': 0.0278, 'D': 0.0425, 'E': 0.1202,
    'F': 0.0223, 'G': 0.0202, 'H': 0.0609, 'I': 0.0697, 'J': 0.0015,
    'K': 0.0077, 'L': 0.0403, 'M': 0.0241, 'N': 0.0675, 'O': 0.0751,
    'P': 0.0193, 'Q': 0.0010, 'R': 0.0599, 'S': 0.0633, 'T': 0.0906,
    'U': 0.0276, 'V': 0.0098, 'W': 0.0236, 'X': 0.0015, 'Y': 0.0197,
    'Z': 0.0007,
}

VOWELS = frozenset('AEIOU')
STRATEGIES = ('random', 'balanced', 'challenging')
DEFAULT_RARITY = 5
MAX_EXCLUSION_RETRIES = 10


def normalize(table: Dict[str, float]) -> Dict[str, float]:
    total = sum(table.values())
    if total <= 0:
        return dict(table)
    return {letter: freq / total for letter, freq in table.items()}


def _clamp_difficulty(difficulty) -> int:
    try:
        return max(1, min(5, int(difficulty)))
    except (TypeError, ValueError):
        return 3


class NullLetterModel:
    """Stands in when no letter model is available."""

    available = False

    def init(self) -> bool:
        return True

    def generate(self, difficulty: int = 3) -> Optional[str]:
        return None

    def generate_for_category(self, category_id, difficulty: int = 3) -> Optional[str]:
        return None

    def generate_by_strategy(self, strategy: str = 'balanced', **options) -> Optional[str]:
        return None

    def rarity_score(self, letter) -> int:
        return DEFAULT_RARITY

    def adjusted_frequencies(self, difficulty: int = 3) -> Dict[str, float]:
        return {}

    def is_vowel(self, letter) -> bool:
        return bool(letter) and letter.upper() in VOWELS

    def get_stats(self) -> Dict[str, object]:
        return {'total_generated': 0, 'initialized': False, 'available': False}

    def destroy(self) -> None:
        pass


class LetterFrequencyModel:
    available = True

    def __init__(self, category_store=None, rng: Optional[random.Random] = None,
                 cache_config: Optional[CacheConfig] = None,
                 base_frequencies: Optional[Dict[str, float]] = None):
        self.category_store = category_store
        self.rng = rng or random.Random()
        self.cache = LetterFrequencyCache.from_config(cache_config)
        self.base_frequencies = dict(base_frequencies or BASE_FREQUENCIES)
        self.frequencies: Dict[str, float] = {}
        self.rarity: Dict[str, int] = {}
        self.initialized = False
        self.reset_stats()

    def init(self) -> bool:
        """Build the normalized table; a broken base table degrades to uniform."""
        start = time.perf_counter()
        try:
            frequencies = {k.upper(): float(v) for k, v in self.base_frequencies.items()}
            max_freq = max(frequencies.values())
            self.rarity = {
                letter: round_half_up(((max_freq - freq) / max_freq) * 9) + 1
                for letter, freq in frequencies.items()
            }
            total = sum(frequencies.values())
            self.frequencies = {letter: freq / total for letter, freq in frequencies.items()}
            self.initialized = True
            self.cache.clear()
            logger.info(f"LetterFrequencyModel: Initialized with {len(self.frequencies)} letters "
                        f"in {(time.perf_counter() - start) * 1000:.2f}ms")
            return True
        except (ValueError, TypeError, ZeroDivisionError) as e:
            logger.error(f"LetterFrequencyModel: Failed to initialize: {e}")
            self._load_uniform()
            self.initialized = True
            return False

    def _load_uniform(self) -> None:
        self.frequencies = {letter: 1 / len(ALPHABET) for letter in ALPHABET}
        self.rarity = {letter: DEFAULT_RARITY for letter in ALPHABET}
        self.cache.clear()
        logger.warning("LetterFrequencyModel: Using fallback uniform frequencies")

    def _ensure_initialized(self) -> None:
        if not self.initialized:
            self.init()

    def rarity_score(self, letter) -> int:
        self._ensure_initialized()
        if not letter or not isinstance(letter, str):
            return DEFAULT_RARITY
        return self.rarity.get(letter.upper(), DEFAULT_RARITY)

    def is_vowel(self, letter) -> bool:
        return bool(letter) and isinstance(letter, str) and letter.upper() in VOWELS

    def _sample(self, table: Dict[str, float]) -> str:
        draw = self.rng.random()
        cumulative = 0.0
        for letter, freq in table.items():
            cumulative += freq
            if draw <= cumulative:
                return letter
        # Float drift can leave the total just under the draw
        return next(reversed(table))

    def adjusted_frequencies(self, difficulty: int = 3) -> Dict[str, float]:
        self._ensure_initialized()
        difficulty = _clamp_difficulty(difficulty)
        cached = self.cache.get_adjusted('general', difficulty)
        if cached is not None:
            return cached

        factor = (difficulty - 3) * 0.1
        adjusted = dict(self.frequencies)
        for letter, freq in adjusted.items():
            rarity = self.rarity.get(letter, DEFAULT_RARITY)
            if difficulty > 3 and rarity >= 7:
                adjusted[letter] = freq * (1 + factor * 2)
            elif difficulty < 3 and rarity <= 4:
                adjusted[letter] = freq * (1 - factor * 2)
        adjusted = normalize(adjusted)
        self.cache.set_adjusted('general', difficulty, adjusted)
        return adjusted

    def _category_adjustment(self, table: Dict[str, float], difficulty: int) -> Dict[str, float]:
        factor = (difficulty - 3) * 0.15
        adjusted = dict(table)
        for letter, freq in adjusted.items():
            rarity = self.rarity.get(letter, DEFAULT_RARITY)
            if difficulty > 3 and rarity >= 6:
                adjusted[letter] = freq * (1 + factor * 3)
            elif difficulty < 3 and rarity <= 5:
                adjusted[letter] = freq * (1 - factor * 2)
        return normalize(adjusted)

    def generate(self, difficulty: int = 3) -> str:
        self._ensure_initialized()
        if not self.frequencies:
            return self.generate_fallback()
        return self._sample(self.adjusted_frequencies(difficulty))

    def generate_for_category(self, category_id, difficulty: int = 3) -> Optional[str]:
        """
        Draw a letter the category accepts.

        Returns None when the category does not exist. Without a usable
        category store, or for a category with no declared letters, this is
        plain ``generate``.
        """
        self._ensure_initialized()
        store = self.category_store
        if store is None or not getattr(store, 'available', False):
            return self.generate(difficulty)

        category = store.get_by_id(category_id)
        if category is None:
            return None

        compatible = list(category.letter_compatibility)
        if not compatible:
            return self.generate(difficulty)

        table = {l: self.frequencies[l] for l in compatible if self.frequencies.get(l)}
        mass = sum(table.values())
        if mass <= 0:
            return self.rng.choice(compatible)

        table = {l: f / mass for l, f in table.items()}
        return self._sample(self._category_adjustment(table, _clamp_difficulty(difficulty)))

    def generate_vowel(self, difficulty: int = 3) -> str:
        if difficulty <= 2:
            pool = ['A', 'E', 'I', 'O']
        elif difficulty >= 4:
            pool = ['A', 'E', 'I', 'O', 'U', 'U']
        else:
            pool = sorted(VOWELS)
        return self.rng.choice(pool)

    def generate_consonant(self, difficulty: int = 3) -> str:
        self._ensure_initialized()
        consonants = {l: f for l, f in self.frequencies.items() if l not in VOWELS}
        table = normalize(consonants)
        factor = (difficulty - 3) * 0.1
        for letter, freq in table.items():
            rarity = self.rarity.get(letter, DEFAULT_RARITY)
            if difficulty > 3 and rarity >= 8:
                table[letter] = freq * (1 + factor * 4)
            elif difficulty < 3 and rarity <= 3:
                table[letter] = freq * (1 - factor * 2)
        return self._sample(normalize(table))

    def generate_balanced_set(self, count: int = 6, difficulty: int = 3) -> List[str]:
        """About 30% vowels (at least one), shuffled."""
        vowel_count = max(1, int(count * 0.3))
        letters = [self.generate_vowel(difficulty) for _ in range(vowel_count)]
        letters += [self.generate_consonant(difficulty) for _ in range(count - vowel_count)]
        self.rng.shuffle(letters)
        return letters

    def generate_fallback(self) -> str:
        return self.rng.choice(ALPHABET)

    def generate_by_strategy(self, strategy: str = 'balanced', difficulty: int = 3,
                             exclude_letters: Optional[Iterable[str]] = None,
                             prefer_vowels: bool = False,
                             category_id: Optional[str] = None) -> str:
        start = time.perf_counter()
        if strategy not in STRATEGIES:
            strategy = 'balanced'
        difficulty = _clamp_difficulty(difficulty)
        excluded = {str(l).upper() for l in (exclude_letters or ())}

        try:
            letter = None
            for _ in range(MAX_EXCLUSION_RETRIES):
                candidate = self._strategy_letter(strategy, difficulty, excluded, prefer_vowels)
                if candidate not in excluded:
                    letter = candidate
                    break
            if letter is None:
                allowed = [l for l in ALPHABET if l not in excluded] or list(ALPHABET)
                letter = self.rng.choice(allowed)

            if category_id:
                category_letter = self.generate_for_category(category_id, difficulty)
                if category_letter and category_letter not in excluded:
                    letter = category_letter

            self._update_stats(strategy, (time.perf_counter() - start) * 1000)
            return letter
        except Exception as e:
            logger.exception(f"LetterFrequencyModel: Generation failed: {e}")
            return self.generate_fallback()

    def _strategy_letter(self, strategy: str, difficulty: int, excluded, prefer_vowels: bool) -> str:
        if strategy == 'random':
            if prefer_vowels and self.rng.random() < 0.4:
                return self.generate_vowel(difficulty)
            pool = [l for l in (self.frequencies or ALPHABET) if l not in excluded] or list(ALPHABET)
            return self.rng.choice(pool)
        if strategy == 'challenging':
            harder = min(5, difficulty + 1)
            if prefer_vowels and self.rng.random() < 0.3:
                return self.generate_vowel(harder)
            return self.generate(harder)
        if prefer_vowels and self.rng.random() < 0.35:
            return self.generate_vowel(difficulty)
        return self.generate(difficulty)

    def _update_stats(self, strategy: str, elapsed_ms: float) -> None:
        self.stats['total_generated'] += 1
        self.stats['strategy_counts'][strategy] = self.stats['strategy_counts'].get(strategy, 0) + 1
        self.stats['total_generation_time_ms'] += elapsed_ms
        self.stats['average_generation_time_ms'] = (
            self.stats['total_generation_time_ms'] / self.stats['total_generated']
        )

    def get_stats(self) -> Dict[str, object]:
        return {
            **self.stats,
            'strategy_counts': dict(self.stats['strategy_counts']),
            'cache': self.cache.get_stats(),
            'initialized': self.initialized,
            'available': self.available,
        }

    def reset_stats(self) -> None:
        self.stats = {
            'total_generated': 0,
            'strategy_counts': {s: 0 for s in STRATEGIES},
            'total_generation_time_ms': 0.0,
            'average_generation_time_ms': 0.0,
        }

    def destroy(self) -> None:
        self.cache.clear()
        self.frequencies = {}
        self.rarity = {}
        self.category_store = None
        self.initialized = False
        logger.info("LetterFrequencyModel: Destroyed")
