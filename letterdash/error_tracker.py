"""
Error tracking for the round engine.

Classifies failures, scores their severity, suggests recoveries and keeps a
bounded newest-first history. Aggregate counters are maintained separately
from the history so they keep counting errors that have been evicted.
"""

import logging
import time
import uuid
from collections import deque
from typing import Any, Dict, List, Optional

from .events import EventEmitter, ERROR_TRACKED
from .models import ErrorEntry

logger = logging.getLogger(__name__)

HISTORY_KEY = 'error_history'
PERSISTED_ERRORS = 50

# Categories, in rule order
INITIALIZATION = 'initialization'
DATA_LOADING = 'data_loading'
VALIDATION = 'validation'
GENERATION = 'generation'
STORAGE = 'storage'
NETWORK = 'network'
PERFORMANCE = 'performance'
USER_INPUT = 'user_input'
UNKNOWN = 'unknown'

CATEGORIES = (INITIALIZATION, DATA_LOADING, VALIDATION, GENERATION, STORAGE,
              NETWORK, PERFORMANCE, USER_INPUT, UNKNOWN)

# Severity levels
LOW = 1       # minor, functionality unaffected
MEDIUM = 2    # some features affected, workarounds available
HIGH = 3      # major features broken
CRITICAL = 4  # game breaking

RECOVERABLE_CATEGORIES = (STORAGE, NETWORK, USER_INPUT, PERFORMANCE)

RECOVERY_SUGGESTIONS = {
    INITIALIZATION: ['Restart the application', 'Clear cached data and reload'],
    DATA_LOADING: ['Retry loading data', 'Use cached data if available', 'Load default/fallback data'],
    STORAGE: ['Clear local storage', 'Use in-memory storage', 'Retry save operation'],
    NETWORK: ['Check internet connection', 'Retry request', 'Use offline mode'],
    VALIDATION: ['Validate input data', 'Use default values', 'Skip validation if optional'],
    GENERATION: ['Use fallback generation method', 'Simplify generation parameters', 'Retry with different settings'],
    PERFORMANCE: ['Reduce data size', 'Implement caching', 'Optimize algorithm'],
    USER_INPUT: ['Show user-friendly error message', 'Provide input validation hints', 'Use default values'],
    UNKNOWN: ['Restart the affected component', 'Report the issue', 'Try again later'],
}

USER_IMPACT = {
    CRITICAL: 'Game completely broken, cannot play',
    HIGH: 'Major features unavailable, limited gameplay',
    MEDIUM: 'Some features affected, workarounds available',
    LOW: 'Minor issue, minimal impact on gameplay',
}


def _lower(value: Any) -> str:
    return str(value).lower() if value else ''


def categorize(error: BaseException, context: Dict[str, Any]) -> str:
    """First matching rule wins."""
    message = _lower(error)
    operation = _lower(context.get('operation'))
    manager = _lower(context.get('manager'))

    if 'init' in operation or 'initialize' in message:
        return INITIALIZATION
    if 'load' in operation or 'load' in message or 'fetch' in message:
        return DATA_LOADING
    if 'validat' in operation or 'invalid' in message or 'validat' in message:
        return VALIDATION
    if 'generat' in operation or 'generator' in manager:
        return GENERATION
    if 'save' in operation or 'storage' in operation or 'storage' in manager:
        return STORAGE
    if 'network' in message or 'fetch' in message or 'connection' in message:
        return NETWORK
    if 'timeout' in message or 'performance' in message or context.get('performance'):
        return PERFORMANCE
    if context.get('user_input') or 'input' in message:
        return USER_INPUT
    return UNKNOWN


def assess_severity(error: BaseException, context: Dict[str, Any]) -> int:
    message = _lower(error)
    category = categorize(error, context)

    if 'cannot read' in message or 'undefined' in message:
        return CRITICAL
    if category == INITIALIZATION and context.get('critical'):
        return CRITICAL
    if category == DATA_LOADING and not context.get('fallback'):
        return HIGH
    if category == GENERATION and context.get('required'):
        return HIGH
    if category == STORAGE:
        return MEDIUM
    if category == VALIDATION and not context.get('optional'):
        return MEDIUM
    return LOW


def is_recoverable(error: BaseException, context: Dict[str, Any]) -> bool:
    category = categorize(error, context)
    if category in RECOVERABLE_CATEGORIES:
        return True
    if context.get('fallback') or context.get('retry'):
        return True
    return category == VALIDATION


def suggest_recovery(error: BaseException, context: Dict[str, Any]) -> List[str]:
    category = categorize(error, context)
    suggestions = list(RECOVERY_SUGGESTIONS[category])
    if category == INITIALIZATION and context.get('fallback'):
        suggestions.append('Use fallback initialization')
    return suggestions


def assess_user_impact(error: BaseException, context: Dict[str, Any]) -> str:
    impact = USER_IMPACT[assess_severity(error, context)]
    category = categorize(error, context)
    if category == STORAGE:
        impact += ' (progress may not be saved)'
    elif category == GENERATION:
        impact += ' (new rounds may not work)'
    elif category == DATA_LOADING:
        impact += ' (game content unavailable)'
    return impact


def _empty_stats() -> Dict[str, Any]:
    return {
        'total': 0,
        'by_category': {},
        'by_severity': {},
        'by_manager': {},
        'recoverable': 0,
        'critical': 0,
    }


def _restore_stats(stats: Any) -> Dict[str, Any]:
    """Rebuild persisted counters, raising on any value of the wrong shape."""
    if not isinstance(stats, dict):
        raise TypeError(f"stats must be a mapping, got {type(stats).__name__}")
    restored = _empty_stats()
    for key in ('total', 'recoverable', 'critical'):
        if key in stats:
            restored[key] = int(stats[key])
    for key in ('by_category', 'by_manager'):
        restored[key] = {str(k): int(v) for k, v in (stats.get(key) or {}).items()}
    # JSON turns int severity keys into strings
    restored['by_severity'] = {int(k): int(v) for k, v in (stats.get('by_severity') or {}).items()}
    return restored


def _plain(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


class ErrorTracker:
    def __init__(self, storage=None, events: Optional[EventEmitter] = None,
                 monitor=None, max_stored_errors: int = 100):
        self.storage = storage
        self.events = events or EventEmitter()
        self.monitor = monitor
        self.max_stored_errors = max_stored_errors
        self.errors = deque(maxlen=max_stored_errors)
        self.error_stats = _empty_stats()
        self.initialized = False

    def init(self) -> bool:
        if self.storage is not None:
            self.load_error_history()
        self.initialized = True
        logger.info("ErrorTracker: Error tracking system initialized")
        return True

    def track(self, error: BaseException, context: Optional[Dict[str, Any]] = None) -> Optional[str]:
        """Record ``error`` and return its id; never raises."""
        context = dict(context or {})
        try:
            entry = ErrorEntry(
                id=self._generate_error_id(),
                timestamp=time.time(),
                message=str(error) or type(error).__name__,
                category=categorize(error, context),
                severity=assess_severity(error, context),
                manager=str(context.get('manager') or 'unknown'),
                operation=str(context.get('operation') or 'unknown'),
                recoverable=is_recoverable(error, context),
                recovery=suggest_recovery(error, context),
                user_impact=assess_user_impact(error, context),
                context={k: _plain(v) for k, v in context.items()},
            )

            # appendleft on a bounded deque evicts the oldest entry
            self.errors.appendleft(entry)
            self._update_stats(entry)
            self._log_error(entry)

            if self.monitor is not None:
                self.monitor.track_error(entry.category)
            if self.storage is not None:
                self.save_error_history()

            self.events.emit(ERROR_TRACKED, entry.to_dict())
            return entry.id
        except Exception as tracking_error:
            logger.exception(f"ErrorTracker: Failed to track error: {tracking_error}")
            return None

    def track_manager_error(self, manager: str, operation: str, error: BaseException, **additional) -> Optional[str]:
        return self.track(error, {'manager': manager, 'operation': operation, **additional})

    def _generate_error_id(self) -> str:
        return f"err_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"

    def _update_stats(self, entry: ErrorEntry) -> None:
        # Called exactly once per tracked entry, independent of history eviction
        stats = self.error_stats
        stats['total'] += 1
        stats['by_category'][entry.category] = stats['by_category'].get(entry.category, 0) + 1
        stats['by_severity'][entry.severity] = stats['by_severity'].get(entry.severity, 0) + 1
        stats['by_manager'][entry.manager] = stats['by_manager'].get(entry.manager, 0) + 1
        if entry.recoverable:
            stats['recoverable'] += 1
        if entry.severity == CRITICAL:
            stats['critical'] += 1

    def _log_error(self, entry: ErrorEntry) -> None:
        details = (f"id={entry.id} manager={entry.manager} operation={entry.operation} "
                   f"recoverable={entry.recoverable}")
        if entry.severity == CRITICAL:
            logger.error(f"CRITICAL ERROR [{entry.category}] {entry.message} ({details})")
        elif entry.severity == HIGH:
            logger.error(f"HIGH SEVERITY [{entry.category}] {entry.message} ({details})")
        elif entry.severity == MEDIUM:
            logger.warning(f"MEDIUM SEVERITY [{entry.category}] {entry.message} ({details})")
        else:
            logger.info(f"LOW SEVERITY [{entry.category}] {entry.message} ({details})")

    def get_recent_errors(self, count: int = 10, category: Optional[str] = None,
                          severity: Optional[int] = None) -> List[ErrorEntry]:
        errors = list(self.errors)
        if category:
            errors = [e for e in errors if e.category == category]
        if severity:
            errors = [e for e in errors if e.severity == severity]
        return errors[:count]

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self.error_stats,
            'recent_errors': [
                {
                    'id': e.id,
                    'timestamp': e.timestamp,
                    'category': e.category,
                    'severity': e.severity,
                    'message': e.message,
                    'recoverable': e.recoverable,
                }
                for e in list(self.errors)[:5]
            ],
            'initialized': self.initialized,
        }

    def resolve_error(self, error_id: str, resolution: str = '') -> bool:
        for entry in self.errors:
            if entry.id == error_id:
                entry.resolved = True
                entry.resolution = resolution
                entry.resolved_at = time.time()
                logger.info(f"ErrorTracker: Error {error_id} marked as resolved")
                return True
        return False

    def clear_resolved_errors(self) -> int:
        remaining = [e for e in self.errors if not e.resolved]
        cleared = len(self.errors) - len(remaining)
        self.errors = deque(remaining, maxlen=self.max_stored_errors)
        logger.info(f"ErrorTracker: Cleared {cleared} resolved errors")
        return cleared

    def generate_report(self) -> Dict[str, Any]:
        return {
            'summary': {
                'total': self.error_stats['total'],
                'critical': self.error_stats['critical'],
                'recoverable': self.error_stats['recoverable'],
                'unresolved': sum(1 for e in self.errors if not e.resolved),
            },
            'breakdown': {
                'by_category': dict(self.error_stats['by_category']),
                'by_severity': dict(self.error_stats['by_severity']),
                'by_manager': dict(self.error_stats['by_manager']),
            },
            'recent_errors': [e.to_dict() for e in self.get_recent_errors(10)],
            'timestamp': time.time(),
        }

    def load_error_history(self) -> bool:
        result = self.storage.get(HISTORY_KEY)
        if not result.ok:
            logger.warning(f"ErrorTracker: Failed to load error history: {result.message}")
            return False
        history = result.value
        if not isinstance(history, dict) or not isinstance(history.get('errors'), list):
            return False
        try:
            entries = [ErrorEntry.from_dict(e) for e in history['errors'][:self.max_stored_errors]]
        except (TypeError, KeyError, ValueError, AttributeError) as e:
            logger.warning(f"ErrorTracker: Ignoring malformed error history: {e}")
            return False
        self.errors = deque(entries, maxlen=self.max_stored_errors)
        stats = history.get('stats')
        if stats is not None:
            try:
                self.error_stats = _restore_stats(stats)
            except (TypeError, ValueError, AttributeError) as e:
                logger.warning(f"ErrorTracker: Discarding malformed error stats: {e}")
        logger.info(f"ErrorTracker: Loaded {len(self.errors)} errors from history")
        return True

    def save_error_history(self) -> bool:
        history = {
            'errors': [e.to_dict() for e in list(self.errors)[:PERSISTED_ERRORS]],
            'stats': self.error_stats,
            'last_saved': time.time(),
        }
        result = self.storage.set(HISTORY_KEY, history)
        if not result.ok:
            logger.warning(f"ErrorTracker: Failed to save error history: {result.message}")
        return result.ok

    def reset(self) -> None:
        self.errors = deque(maxlen=self.max_stored_errors)
        self.error_stats = _empty_stats()
        logger.info("ErrorTracker: Reset all error data")

    def destroy(self) -> None:
        if self.storage is not None:
            self.save_error_history()
        self.reset()
        self.storage = None
        self.initialized = False
