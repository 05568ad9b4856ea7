"""
Graceful degradation for the round engine.

Each degradation type pairs a fallback action, run when the type is
activated, with a recovery probe that must pass before the type is cleared.
The overall degradation level is the highest severity among active types.
"""

import logging
import random
import time
from dataclasses import asdict
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

import requests

from .events import EventEmitter, DEGRADATION_ACTIVATED, DEGRADATION_RECOVERED, ERROR_TRACKED, STORAGE_ERROR
from .fallback_data import EMERGENCY_CATEGORIES, EMERGENCY_LETTERS, EMERGENCY_ROUND_CONFIG, GAME_SETTINGS
from .models import Category, Combination, DegradationRecord, Playability, RoundConfig

logger = logging.getLogger(__name__)


class DegradationType(str, Enum):
    STORAGE_UNAVAILABLE = 'storage_unavailable'
    CATEGORY_DATA_MISSING = 'category_data_missing'
    WORD_DATA_MISSING = 'word_data_missing'
    GENERATION_SYSTEM_FAILED = 'generation_system_failed'
    NETWORK_OFFLINE = 'network_offline'
    PERFORMANCE_DEGRADED = 'performance_degraded'
    MEMORY_CONSTRAINED = 'memory_constrained'


SEVERITY = {
    DegradationType.STORAGE_UNAVAILABLE: 2,
    DegradationType.CATEGORY_DATA_MISSING: 2,
    DegradationType.WORD_DATA_MISSING: 3,
    DegradationType.GENERATION_SYSTEM_FAILED: 1,
    DegradationType.NETWORK_OFFLINE: 1,
    DegradationType.PERFORMANCE_DEGRADED: 1,
    DegradationType.MEMORY_CONSTRAINED: 2,
}

USER_MESSAGES = {
    DegradationType.STORAGE_UNAVAILABLE: 'Progress saving disabled - using memory only',
    DegradationType.CATEGORY_DATA_MISSING: 'Limited categories available',
    DegradationType.WORD_DATA_MISSING: 'Limited word database - some features reduced',
    DegradationType.GENERATION_SYSTEM_FAILED: 'Using basic round generation',
    DegradationType.NETWORK_OFFLINE: 'Offline mode - no online features',
    DegradationType.PERFORMANCE_DEGRADED: 'Performance mode - reduced visual effects',
    DegradationType.MEMORY_CONSTRAINED: 'Low memory mode - reduced caching',
}

# Mode flag switched on by each type's fallback and off by its recovery
MODES = {
    DegradationType.STORAGE_UNAVAILABLE: 'memory_only',
    DegradationType.GENERATION_SYSTEM_FAILED: 'basic_generation',
    DegradationType.NETWORK_OFFLINE: 'offline',
    DegradationType.PERFORMANCE_DEGRADED: 'performance',
    DegradationType.MEMORY_CONSTRAINED: 'low_memory',
}

FALLBACK_PLAYABILITY = Playability(
    score=5,
    estimated_words=8,
    difficulty=3,
    feasible=True,
    reason='Fallback combination',
)


def _busy_loop_ms(iterations: int) -> float:
    start = time.perf_counter()
    for _ in range(iterations):
        random.random()
    return (time.perf_counter() - start) * 1000


class DegradationController:
    def __init__(self, events: Optional[EventEmitter] = None, error_tracker=None,
                 monitor=None, network_probe_url: Optional[str] = None,
                 rng: Optional[random.Random] = None):
        self.events = events or EventEmitter()
        self.error_tracker = error_tracker
        self.monitor = monitor
        self.network_probe_url = network_probe_url
        self.rng = rng or random.Random()

        self.active_degradations: Dict[DegradationType, DegradationRecord] = {}
        self.degradation_level = 0
        self.modes = {mode: False for mode in MODES.values()}
        self.fallback_payloads: Dict[DegradationType, Any] = {}

        self.emergency_categories = [Category.from_dict(c) for c in EMERGENCY_CATEGORIES]
        self.emergency_letters = list(EMERGENCY_LETTERS)
        self.emergency_round_config = RoundConfig(**EMERGENCY_ROUND_CONFIG)

        self._fallbacks: Dict[DegradationType, Callable[[], Any]] = {
            DegradationType.STORAGE_UNAVAILABLE: self._enable_memory_only_mode,
            DegradationType.CATEGORY_DATA_MISSING: self._load_emergency_categories,
            DegradationType.WORD_DATA_MISSING: self._load_emergency_words,
            DegradationType.GENERATION_SYSTEM_FAILED: self._enable_basic_generation,
            DegradationType.NETWORK_OFFLINE: self._enable_offline_mode,
            DegradationType.PERFORMANCE_DEGRADED: self._enable_performance_mode,
            DegradationType.MEMORY_CONSTRAINED: self._enable_low_memory_mode,
        }
        self._probes: Dict[DegradationType, Callable[[], bool]] = {
            DegradationType.STORAGE_UNAVAILABLE: lambda: True,
            DegradationType.CATEGORY_DATA_MISSING: lambda: True,
            DegradationType.WORD_DATA_MISSING: lambda: True,
            DegradationType.GENERATION_SYSTEM_FAILED: lambda: True,
            DegradationType.NETWORK_OFFLINE: self._probe_network,
            DegradationType.PERFORMANCE_DEGRADED: lambda: _busy_loop_ms(10000) < 10,
            DegradationType.MEMORY_CONSTRAINED: lambda: True,
        }
        self.health_checks: Dict[str, Callable[[], bool]] = {
            'performance': lambda: _busy_loop_ms(1000) < 5,
            'memory': lambda: True,
        }

        self._subscriptions = [
            (STORAGE_ERROR, self.events.on(STORAGE_ERROR, self.on_storage_error)),
            (ERROR_TRACKED, self.events.on(ERROR_TRACKED, self.observe_error)),
        ]

    @staticmethod
    def _as_type(degradation_type: Union[str, DegradationType]) -> Optional[DegradationType]:
        try:
            return DegradationType(degradation_type)
        except ValueError:
            return None

    def activate(self, degradation_type: Union[str, DegradationType], reason: str = '',
                 manager: str = '') -> bool:
        """
        Switch on a degradation and run its fallback action.

        Args:
            degradation_type: One of the DegradationType values
            reason: Free text recorded with the activation
            manager: Component that requested the activation

        Returns:
            True if the type was newly activated
        """
        dtype = self._as_type(degradation_type)
        if dtype is None:
            logger.error(f"DegradationController: Unknown degradation type: {degradation_type}")
            return False
        if dtype in self.active_degradations:
            logger.warning(f"DegradationController: {dtype.value} already active")
            return False

        try:
            payload = self._fallbacks[dtype]()
        except Exception as e:
            logger.exception(f"DegradationController: Failed to activate {dtype.value}: {e}")
            return False

        record = DegradationRecord(
            type=dtype.value,
            active=True,
            severity=SEVERITY[dtype],
            user_message=USER_MESSAGES[dtype],
        )
        self.fallback_payloads[dtype] = payload
        self.active_degradations[dtype] = record
        self._update_level()
        logger.warning(f"DegradationController: Activated {dtype.value} - {record.user_message}")

        self.events.emit(DEGRADATION_ACTIVATED, {**asdict(record), 'reason': reason, 'manager': manager})
        if self.error_tracker is not None:
            self.error_tracker.track_manager_error(
                'DegradationController', 'activateDegradation',
                RuntimeError(f"Degradation activated: {dtype.value}"),
                degradation_type=dtype.value,
                reason=reason or 'Unknown',
                requested_by=manager or 'unknown',
                fallback=True,
            )
        return True

    def deactivate(self, degradation_type: Union[str, DegradationType]) -> bool:
        """Clear a degradation, but only if its recovery probe passes."""
        dtype = self._as_type(degradation_type)
        if dtype is None:
            return False
        if dtype not in self.active_degradations:
            return True

        try:
            recovered = bool(self._probes[dtype]())
        except Exception as e:
            logger.error(f"DegradationController: Recovery error for {dtype.value}: {e}")
            return False

        if not recovered:
            logger.warning(f"DegradationController: Recovery failed for {dtype.value}")
            return False

        record = self.active_degradations.pop(dtype)
        self.fallback_payloads.pop(dtype, None)
        if dtype in MODES:
            self.modes[MODES[dtype]] = False
        self._update_level()
        logger.info(f"DegradationController: Recovered from {dtype.value}")
        self.events.emit(DEGRADATION_RECOVERED, {**asdict(record), 'active': False})
        return True

    def attempt_full_recovery(self) -> Dict[str, bool]:
        results = {}
        for dtype in list(self.active_degradations):
            results[dtype.value] = self.deactivate(dtype)
        return results

    def _update_level(self) -> None:
        self.degradation_level = max((r.severity for r in self.active_degradations.values()), default=0)
        logger.info(f"DegradationController: Level updated to {self.degradation_level}")
        if self.monitor is not None:
            self.monitor.track_degradation_level(self.degradation_level)

    def is_active(self, degradation_type: Union[str, DegradationType]) -> bool:
        dtype = self._as_type(degradation_type)
        return dtype is not None and dtype in self.active_degradations

    def get_records(self) -> List[DegradationRecord]:
        return list(self.active_degradations.values())

    def get_user_messages(self) -> List[str]:
        return [r.user_message for r in self.active_degradations.values()]

    def get_status(self) -> Dict[str, Any]:
        return {
            'level': self.degradation_level,
            'active_degradations': [d.value for d in self.active_degradations],
            'user_messages': self.get_user_messages(),
            'can_recover': bool(self.active_degradations),
            'fallback_data_available': bool(self.emergency_categories and self.emergency_letters),
            'modes': dict(self.modes),
        }

    def get_fallback(self, degradation_type: Union[str, DegradationType]) -> Any:
        dtype = self._as_type(degradation_type)
        return self.fallback_payloads.get(dtype) if dtype is not None else None

    def register_recovery_probe(self, degradation_type: Union[str, DegradationType],
                                probe: Callable[[], bool]) -> None:
        dtype = self._as_type(degradation_type)
        if dtype is None:
            raise ValueError(f"Unknown degradation type: {degradation_type}")
        self._probes[dtype] = probe

    def register_health_check(self, name: str, check: Callable[[], bool]) -> None:
        self.health_checks[name] = check

    def run_health_checks(self) -> Dict[str, bool]:
        results = {}
        for name, check in self.health_checks.items():
            try:
                results[name] = bool(check())
            except Exception as e:
                results[name] = False
                logger.warning(f"DegradationController: Health check failed for {name}: {e}")
        return results

    # Event subscribers

    def on_storage_error(self, data: Dict[str, Any]) -> None:
        if self.is_active(DegradationType.STORAGE_UNAVAILABLE):
            return
        message = (data or {}).get('message', '')
        self.activate(DegradationType.STORAGE_UNAVAILABLE, reason=message, manager='StorageGateway')

    def observe_error(self, entry: Dict[str, Any]) -> None:
        """Escalate tracked errors whose category maps onto a degradation."""
        if not entry:
            return
        context = entry.get('context') or {}
        if 'degradation_type' in context:
            return

        category = entry.get('category')
        if category == 'network':
            dtype = DegradationType.NETWORK_OFFLINE
        elif category == 'performance':
            dtype = DegradationType.PERFORMANCE_DEGRADED
        elif category == 'generation' and entry.get('severity', 0) >= 3:
            dtype = DegradationType.GENERATION_SYSTEM_FAILED
        else:
            return
        if not self.is_active(dtype):
            self.activate(dtype, reason=entry.get('message', ''), manager=entry.get('manager', ''))

    # Fallback actions

    def _set_mode(self, dtype: DegradationType) -> None:
        self.modes[MODES[dtype]] = True

    def _enable_memory_only_mode(self) -> bool:
        logger.info("DegradationController: Enabling memory-only mode")
        self._set_mode(DegradationType.STORAGE_UNAVAILABLE)
        return True

    def _load_emergency_categories(self) -> List[Category]:
        logger.info("DegradationController: Loading emergency categories")
        return list(self.emergency_categories)

    def _load_emergency_words(self) -> Dict[str, List[Dict[str, Any]]]:
        logger.info("DegradationController: Loading emergency word data")
        return {
            category.id: [
                {
                    'word': word,
                    'difficulty': 'easy',
                    'category': category.id,
                    'length': len(word),
                    'commonality': 'common',
                    'points': 10,
                }
                for word in category.words
            ]
            for category in self.emergency_categories
        }

    def _enable_basic_generation(self) -> Dict[str, Any]:
        logger.info("DegradationController: Enabling basic generation")
        self._set_mode(DegradationType.GENERATION_SYSTEM_FAILED)
        return {
            'generate_basic_round': self.generate_basic_round,
            'emergency_config': self.emergency_round_config,
        }

    def _enable_offline_mode(self) -> Dict[str, Any]:
        logger.info("DegradationController: Enabling offline mode")
        self._set_mode(DegradationType.NETWORK_OFFLINE)
        return {
            'disable_network_features': True,
            'use_local_data_only': True,
            'settings': dict(GAME_SETTINGS),
        }

    def _enable_performance_mode(self) -> Dict[str, bool]:
        logger.info("DegradationController: Enabling performance mode")
        self._set_mode(DegradationType.PERFORMANCE_DEGRADED)
        return {
            'reduced_animations': True,
            'limited_visual_effects': True,
            'optimized_rendering': True,
        }

    def _enable_low_memory_mode(self) -> Dict[str, bool]:
        logger.info("DegradationController: Enabling low memory mode")
        self._set_mode(DegradationType.MEMORY_CONSTRAINED)
        return {
            'reduced_caching': True,
            'limited_history': True,
            'compact_data_structures': True,
        }

    def _probe_network(self) -> bool:
        if not self.network_probe_url:
            return False
        try:
            response = requests.head(self.network_probe_url, timeout=3)
            return response.ok
        except requests.RequestException as e:
            logger.info(f"DegradationController: Network probe failed: {e}")
            return False

    def generate_basic_round(self, round_config: Optional[RoundConfig] = None,
                             attempts: int = 1, exclude_letters=None) -> Combination:
        """Emergency round: a random emergency category and a letter it accepts."""
        excluded = {str(l).upper() for l in (exclude_letters or ())}
        category = self.rng.choice(self.emergency_categories)
        letters = [l for l in self.emergency_letters if category.accepts(l)] or self.emergency_letters
        letter = self.rng.choice([l for l in letters if l not in excluded] or letters)
        return Combination(
            category=category,
            letter=letter,
            difficulty=3,
            playability=FALLBACK_PLAYABILITY,
            round_config=round_config or self.emergency_round_config,
            attempts=attempts,
            is_fallback=True,
            generation_type='emergency',
        )

    def reset(self) -> None:
        for record in list(self.active_degradations.values()):
            self.events.emit(DEGRADATION_RECOVERED, {**asdict(record), 'active': False})
        self.active_degradations.clear()
        self.fallback_payloads.clear()
        self.modes = {mode: False for mode in MODES.values()}
        self.degradation_level = 0
        logger.info("DegradationController: Reset to normal state")

    def destroy(self) -> None:
        self.reset()
        for event, listener_id in self._subscriptions:
            self.events.off(event, listener_id)
        self._subscriptions = []
