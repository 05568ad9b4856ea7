"""
Round combination generation.

Picks a category and a compatible letter, scores the pair, and retries until
a playable pair turns up. When the full generation stack is unavailable, or
every attempt fails, the round comes from the degradation controller's
emergency generator instead.
"""

import logging
import random
import time
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from .categories import NullCategoryStore
from .config import GeneratorConfig
from .degradation import DegradationController, DegradationType
from .events import EventEmitter, BATCH_PARTIAL, COMBINATION_GENERATED
from .letters import NullLetterModel
from .models import Category, Combination, Playability, RoundConfig, ScoringConfig
from .playability import PlayabilityEvaluator

logger = logging.getLogger(__name__)

ROUND_PRESETS: Dict[str, Dict[str, Any]] = {
    'default': {
        'duration': 90,
        'difficulty': 3,
        'target_word_count': 12,
        'scoring': {'base_points': 10, 'length_multiplier': 1.5, 'difficulty_bonus': 2},
        'letter_strategy': 'balanced',
        'allow_retries': True,
    },
    'quick': {
        'duration': 60,
        'difficulty': 2,
        'target_word_count': 8,
        'scoring': {'base_points': 15, 'length_multiplier': 1.2, 'difficulty_bonus': 1},
        'letter_strategy': 'balanced',
        'allow_retries': True,
    },
    'challenge': {
        'duration': 75,
        'difficulty': 4,
        'target_word_count': 15,
        'scoring': {'base_points': 8, 'length_multiplier': 2.0, 'difficulty_bonus': 3},
        'letter_strategy': 'challenging',
        'allow_retries': False,
    },
}

REQUIRED_ROUND_FIELDS = ('duration', 'difficulty', 'target_word_count', 'scoring')
NUMERIC_ROUND_FIELDS = ('duration', 'difficulty', 'target_word_count')
BATCH_SLOT_ATTEMPTS = 10


class CombinationBatch(list):
    """A list of combinations that remembers how many were asked for."""

    def __init__(self, items: Iterable[Combination] = (), requested: int = 0):
        super().__init__(items)
        self.requested = requested

    @property
    def is_partial(self) -> bool:
        return len(self) < self.requested


class CombinationGenerator:
    def __init__(self, category_store=None, letter_model=None,
                 evaluator: Optional[PlayabilityEvaluator] = None,
                 degradation: Optional[DegradationController] = None,
                 error_tracker=None, events: Optional[EventEmitter] = None,
                 player_stats=None, config: Optional[GeneratorConfig] = None,
                 monitor=None, rng: Optional[random.Random] = None):
        self.events = events or EventEmitter()
        self.category_store = category_store or NullCategoryStore()
        self.letter_model = letter_model or NullLetterModel()
        self.evaluator = evaluator or PlayabilityEvaluator(self.category_store, self.letter_model)
        self.error_tracker = error_tracker
        self.degradation = degradation or DegradationController(events=self.events, error_tracker=error_tracker)
        self.player_stats = player_stats
        self.monitor = monitor
        self.rng = rng or random.Random()

        config = config or GeneratorConfig()
        self.max_retries = config.max_retries
        self.default_target_word_count = config.default_target_word_count

        self.round_configs: Dict[str, RoundConfig] = {}
        self.initialized = False
        self._setup_round_configs()
        self.reset_stats()

    def init(self) -> bool:
        logger.info("CombinationGenerator: Initializing combination system")
        try:
            self._setup_round_configs()
            self.initialized = True
            return True
        except ValidationError as e:
            self._track('init', e, fallback=True)
            logger.error(f"CombinationGenerator: Failed to initialize: {e}")
            self.round_configs = {'default': self._minimal_round_config()}
            self.initialized = True
            return False

    def _setup_round_configs(self) -> None:
        self.round_configs = {name: RoundConfig(**preset) for name, preset in ROUND_PRESETS.items()}

    def _minimal_round_config(self) -> RoundConfig:
        return RoundConfig(
            duration=90,
            difficulty=3,
            target_word_count=self.default_target_word_count,
            scoring=ScoringConfig(base_points=10),
            letter_strategy='balanced',
        )

    # Round configurations

    def get_round_configurations(self) -> Dict[str, RoundConfig]:
        return dict(self.round_configs)

    def get_round_config(self, name: str) -> RoundConfig:
        """Named preset; unknown names get ``default``."""
        return (self.round_configs.get(name)
                or self.round_configs.get('default')
                or self._minimal_round_config())

    def validate_round_config(self, config) -> bool:
        if isinstance(config, RoundConfig):
            return True
        if not isinstance(config, dict):
            return False
        for field in REQUIRED_ROUND_FIELDS:
            if field not in config:
                return False
        for field in NUMERIC_ROUND_FIELDS:
            if isinstance(config[field], bool) or not isinstance(config[field], (int, float)):
                return False
        if not isinstance(config['scoring'], (dict, ScoringConfig)):
            return False
        try:
            RoundConfig.model_validate(config)
            return True
        except ValidationError:
            return False

    def add_round_config(self, name: str, config) -> bool:
        if not name or not self.validate_round_config(config):
            logger.warning(f"CombinationGenerator: Rejected round config '{name}'")
            return False
        self.round_configs[name] = config if isinstance(config, RoundConfig) else RoundConfig.model_validate(config)
        logger.info(f"CombinationGenerator: Registered round config '{name}'")
        return True

    # Pair checks

    def validate_combination(self, category_id: str, letter: str) -> bool:
        if not category_id or not letter:
            return False
        category = self.category_store.get_by_id(category_id)
        if category is None:
            return False
        return category.accepts(letter)

    def calculate_difficulty_score(self, category_id: str, letter: str) -> int:
        category = self.category_store.get_by_id(category_id)
        if category is None:
            return 5
        return self.evaluator.difficulty_score(category, letter)

    def assess_playability(self, category_id: str, letter: str) -> Playability:
        return self.evaluator.assess(category_id, letter)

    # Generation

    def _stack_unavailable(self) -> bool:
        if self.degradation.is_active(DegradationType.GENERATION_SYSTEM_FAILED):
            return True
        return not self.category_store.available and not self.letter_model.available

    def generate(self, round_type: str = 'default', **options) -> Combination:
        """
        Produce a combination for one round; never raises.

        Args:
            round_type: Preset name (default, quick, challenge or a custom one)
            **options: target_difficulty, category_id, prefer_vowels,
                exclude_letters, max_retries, adaptive, player

        Returns:
            A Combination, possibly an emergency one with is_fallback set
        """
        start = time.perf_counter()
        round_config = self.get_round_config(round_type)
        try:
            if self._stack_unavailable():
                if not self.degradation.is_active(DegradationType.GENERATION_SYSTEM_FAILED):
                    self.degradation.activate(DegradationType.GENERATION_SYSTEM_FAILED,
                                              reason='Category store and letter model unavailable',
                                              manager='CombinationGenerator')
                combination = self.degradation.generate_basic_round(
                    round_config, exclude_letters=options.get('exclude_letters'))
            else:
                combination = self._generate_with_retries(round_config, options)
        except Exception as e:
            logger.exception(f"CombinationGenerator: Generation failed: {e}")
            self._track('generateCombination', e, fallback=True)
            combination = self.degradation.generate_basic_round(
                round_config, exclude_letters=options.get('exclude_letters'))

        elapsed_ms = (time.perf_counter() - start) * 1000
        self._update_stats(combination, elapsed_ms)
        if self.monitor is not None:
            self.monitor.track_generation_latency(round_type, elapsed_ms)
        self.events.emit(COMBINATION_GENERATED, combination.to_dict())
        return combination

    generate_combination = generate

    def _target_difficulty(self, round_config: RoundConfig, options: Dict[str, Any]) -> int:
        difficulty = options.get('target_difficulty') or round_config.difficulty
        if options.get('adaptive') and self.player_stats is not None:
            difficulty = self.player_stats.recommend_difficulty(options.get('player'), base_difficulty=difficulty)
        return difficulty

    def _generate_with_retries(self, round_config: RoundConfig, options: Dict[str, Any]) -> Combination:
        difficulty = self._target_difficulty(round_config, options)
        max_retries = options.get('max_retries') or self.max_retries
        excluded = {str(l).upper() for l in (options.get('exclude_letters') or ())}

        attempts = 0
        failures = 0
        last_error = None
        while attempts < max_retries:
            attempts += 1
            try:
                category = self._select_category(difficulty, options)
                letter = self._select_letter(category, round_config, difficulty, excluded, options)
                if category is None or letter is None or not category.accepts(letter):
                    continue

                playability = self.evaluator.assess_category(category, letter)
                # The last two attempts take whatever compatible pair they get
                if playability.feasible or attempts >= max_retries - 2:
                    return Combination(
                        category=category,
                        letter=letter,
                        difficulty=playability.difficulty,
                        playability=playability,
                        round_config=round_config,
                        attempts=attempts,
                        target_difficulty=difficulty,
                    )
            except Exception as e:
                failures += 1
                last_error = e
                logger.warning(f"CombinationGenerator: Generation attempt {attempts} failed: {e}")

        if failures == attempts:
            error = RuntimeError(f"All {attempts} generation attempts failed: {last_error}")
            if self.error_tracker is not None:
                self._track('generateCombination', error, required=True)
            else:
                logger.error(f"CombinationGenerator: {error}")
                self.degradation.activate(DegradationType.GENERATION_SYSTEM_FAILED,
                                          reason=str(error), manager='CombinationGenerator')
        else:
            self._track('generateCombination',
                        RuntimeError(f"No acceptable combination after {attempts} attempts"),
                        fallback=True)
        return self.degradation.generate_basic_round(round_config, attempts=attempts,
                                                     exclude_letters=excluded)

    def _select_category(self, difficulty: int, options: Dict[str, Any]) -> Category:
        store = self.category_store
        try:
            category_id = options.get('category_id')
            if category_id:
                category = store.get_by_id(category_id)
                if category is not None:
                    return category
                logger.warning(f"CombinationGenerator: Unknown category '{category_id}', picking another")

            if difficulty:
                candidates = store.get_by_difficulty(difficulty)
                if candidates:
                    return self.rng.choice(candidates)

            category = store.get_random()
            if category is not None:
                return category
        except Exception as e:
            logger.error(f"CombinationGenerator: Category selection error: {e}")
        return self.degradation.emergency_categories[0]

    def _select_letter(self, category: Optional[Category], round_config: RoundConfig,
                       difficulty: int, excluded, options: Dict[str, Any]) -> Optional[str]:
        if category is None:
            return None
        model = self.letter_model
        if model.available:
            try:
                letter = model.generate_for_category(category.id, difficulty)
                if letter and letter not in excluded:
                    return letter
                letter = model.generate_by_strategy(
                    round_config.letter_strategy,
                    difficulty=difficulty,
                    exclude_letters=excluded,
                    prefer_vowels=bool(options.get('prefer_vowels')),
                )
                if letter:
                    return letter
            except Exception as e:
                logger.error(f"CombinationGenerator: Letter selection error: {e}")
        return self._fallback_letter(category, excluded)

    def _fallback_letter(self, category: Category, excluded=()) -> str:
        letters = category.letter_compatibility or self.degradation.emergency_letters
        allowed = [l for l in letters if l not in excluded] or list(letters)
        return self.rng.choice(allowed)

    def generate_batch(self, count: int = 5, round_type: str = 'default',
                       ensure_unique: bool = False, **options) -> CombinationBatch:
        """
        Generate up to ``count`` combinations.

        With ``ensure_unique`` no category appears twice. A slot that cannot
        be filled within its attempts is skipped, so the batch may come back
        short; check ``is_partial``.
        """
        batch = CombinationBatch(requested=count)
        used_category_ids = set()

        for _ in range(count):
            for _ in range(BATCH_SLOT_ATTEMPTS):
                combination = self.generate(round_type, **options)
                if ensure_unique and combination.category.id in used_category_ids:
                    continue
                used_category_ids.add(combination.category.id)
                batch.append(combination)
                break

        if batch.is_partial:
            logger.warning(f"CombinationGenerator: Batch returned {len(batch)} of {count} combinations")
            self.events.emit(BATCH_PARTIAL, {
                'requested': count,
                'generated': len(batch),
                'round_type': round_type,
            })
        return batch

    def generate_rounds(self, count: int = 5, round_type: str = 'default') -> List[Combination]:
        rounds = []
        for i in range(count):
            try:
                rounds.append(self.generate(round_type))
            except Exception as e:
                logger.warning(f"CombinationGenerator: Failed to generate round {i + 1}: {e}")
                rounds.append(self.degradation.generate_basic_round(self.get_round_config(round_type)))
        return rounds

    # Bookkeeping

    def _track(self, operation: str, error: BaseException, **context) -> None:
        if self.error_tracker is not None:
            self.error_tracker.track_manager_error('CombinationGenerator', operation, error, **context)

    def _update_stats(self, combination: Combination, elapsed_ms: float) -> None:
        stats = self.stats
        stats['total_generated'] += 1
        total = stats['total_generated']
        stats['total_generation_time_ms'] += elapsed_ms
        stats['average_generation_time_ms'] = stats['total_generation_time_ms'] / total
        stats['retry_count'] += max(0, combination.attempts - 1)

        if combination.is_fallback:
            stats['fallback_count'] += 1
        if combination.playability.feasible:
            stats['successful_generation'] += 1
        else:
            stats['failed_generation'] += 1

        difficulty = combination.difficulty
        stats['difficulty_distribution'][difficulty] = stats['difficulty_distribution'].get(difficulty, 0) + 1
        stats['average_difficulty'] = (stats['average_difficulty'] * (total - 1) + difficulty) / total
        stats['average_playability'] = (
            stats['average_playability'] * (total - 1) + combination.playability.score
        ) / total

    def get_stats(self) -> Dict[str, Any]:
        total = self.stats['total_generated']
        return {
            **self.stats,
            'difficulty_distribution': dict(self.stats['difficulty_distribution']),
            'success_rate': round((self.stats['successful_generation'] / total) * 100, 2) if total else 0,
            'average_retries': round(self.stats['retry_count'] / total, 2) if total else 0,
            'initialized': self.initialized,
        }

    def reset_stats(self) -> None:
        self.stats = {
            'total_generated': 0,
            'successful_generation': 0,
            'failed_generation': 0,
            'fallback_count': 0,
            'total_generation_time_ms': 0.0,
            'average_generation_time_ms': 0.0,
            'difficulty_distribution': {},
            'average_difficulty': 0.0,
            'average_playability': 0.0,
            'retry_count': 0,
        }

    def destroy(self) -> None:
        self.round_configs = {}
        self.category_store = NullCategoryStore()
        self.letter_model = NullLetterModel()
        self.initialized = False
        logger.info("CombinationGenerator: Destroyed")
