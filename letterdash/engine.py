"""
Application root for the round engine.

RoundEngine builds every service once, hands each its collaborators, and
owns their lifecycle. Nothing in the package keeps module-level instances.
"""

import logging
import random
from typing import Any, Dict, Optional

from .categories import CategoryStore
from .combinations import CombinationBatch, CombinationGenerator
from .config import Settings, load_settings
from .degradation import DegradationController, DegradationType
from .error_tracker import ErrorTracker
from .events import EventEmitter
from .letters import LetterFrequencyModel
from .models import Combination
from .monitoring import GameMonitor
from .playability import PlayabilityEvaluator
from .player_stats import PlayerStats
from .storage import StorageGateway, create_storage

logger = logging.getLogger(__name__)


class RoundEngine:
    def __init__(self, settings: Optional[Settings] = None, backend=None,
                 monitor: Optional[GameMonitor] = None,
                 rng: Optional[random.Random] = None):
        self.settings = settings or Settings()
        self.rng = rng or random.Random()
        self.events = EventEmitter()

        if backend is not None:
            self.storage = StorageGateway(backend, self.events)
        else:
            self.storage = create_storage(self.settings, self.events)

        if monitor is None and self.settings.enable_cloudwatch:
            monitor = GameMonitor(environment=self.settings.environment)
        self.monitor = monitor

        self.error_tracker = ErrorTracker(
            storage=self.storage,
            events=self.events,
            monitor=self.monitor,
            max_stored_errors=self.settings.error_history_size,
        )
        self.degradation = DegradationController(
            events=self.events,
            error_tracker=self.error_tracker,
            monitor=self.monitor,
            network_probe_url=self.settings.network_probe_url,
            rng=self.rng,
        )
        self.degradation.register_recovery_probe(DegradationType.STORAGE_UNAVAILABLE, self.storage.probe)
        self.degradation.register_health_check('storage', self.storage.probe)

        self.category_store = CategoryStore(
            storage=self.storage,
            error_tracker=self.error_tracker,
            degradation=self.degradation,
            cache_config=self.settings.cache,
            rng=self.rng,
        )
        self.letter_model = LetterFrequencyModel(
            category_store=self.category_store,
            rng=self.rng,
            cache_config=self.settings.cache,
        )
        self.evaluator = PlayabilityEvaluator(self.category_store, self.letter_model)
        self.player_stats = PlayerStats(self.storage)
        self.generator = CombinationGenerator(
            category_store=self.category_store,
            letter_model=self.letter_model,
            evaluator=self.evaluator,
            degradation=self.degradation,
            error_tracker=self.error_tracker,
            events=self.events,
            player_stats=self.player_stats,
            config=self.settings.generator,
            monitor=self.monitor,
            rng=self.rng,
        )
        self.initialized = False

    @classmethod
    def from_env(cls, env_file: Optional[str] = None, **kwargs) -> 'RoundEngine':
        return cls(load_settings(env_file), **kwargs)

    def init(self) -> bool:
        """Initialize every service; False if any had to fall back."""
        if self.initialized:
            return True
        results = [
            self.error_tracker.init(),
            self.category_store.init(),
            self.letter_model.init(),
            self.generator.init(),
        ]
        self.initialized = True
        logger.info(f"RoundEngine: Initialized (degradation level {self.degradation.degradation_level})")
        return all(results)

    def _ensure_initialized(self) -> None:
        if not self.initialized:
            self.init()

    def next_round(self, round_type: str = 'default', **options) -> Combination:
        self._ensure_initialized()
        return self.generator.generate(round_type, **options)

    def next_batch(self, count: int = 5, round_type: str = 'default',
                   ensure_unique: bool = True, **options) -> CombinationBatch:
        self._ensure_initialized()
        return self.generator.generate_batch(count, round_type, ensure_unique=ensure_unique, **options)

    def record_result(self, nickname: str, combination: Combination, words_found: int,
                      score: float = 0, duration: Optional[float] = None,
                      round_type: str = 'default') -> bool:
        """Feed a finished round into the player's adaptive-difficulty history."""
        summary = {
            'nickname': nickname,
            'category_id': combination.category.id,
            'letter': combination.letter,
            'difficulty': combination.target_difficulty or combination.round_config.difficulty,
            'round_type': round_type,
            'target_word_count': combination.round_config.target_word_count,
            'words_found': words_found,
            'score': score,
            'duration': combination.round_config.duration if duration is None else duration,
            'is_fallback': combination.is_fallback,
        }
        try:
            self.player_stats.record_round(summary)
            return True
        except ValueError as e:
            self.error_tracker.track(e, {
                'manager': 'RoundEngine',
                'operation': 'recordResult',
                'user_input': True,
            })
            return False

    def attempt_recovery(self) -> Dict[str, bool]:
        results = self.degradation.attempt_full_recovery()
        if results:
            logger.info(f"RoundEngine: Recovery results {results}")
        return results

    def get_status(self) -> Dict[str, Any]:
        degradation_status = self.degradation.get_status()
        health_checks = self.degradation.run_health_checks()
        stats = self.error_tracker.error_stats
        return {
            'initialized': self.initialized,
            'healthy': degradation_status['level'] == 0 and all(health_checks.values()),
            'degradation': degradation_status,
            'health_checks': health_checks,
            'errors': {
                'total': stats['total'],
                'critical': stats['critical'],
                'recoverable': stats['recoverable'],
                'by_category': dict(stats['by_category']),
            },
            'generator': self.generator.get_stats(),
            'categories': self.category_store.get_stats(),
            'letters': self.letter_model.get_stats(),
        }

    def reset(self) -> None:
        self.degradation.reset()
        self.error_tracker.reset()
        self.generator.reset_stats()
        self.letter_model.reset_stats()
        logger.info("RoundEngine: Reset")

    def destroy(self) -> None:
        self.generator.destroy()
        self.letter_model.destroy()
        self.category_store.destroy()
        self.degradation.destroy()
        self.error_tracker.destroy()
        self.events.remove_all_listeners()
        self.initialized = False
        logger.info("RoundEngine: Destroyed")
