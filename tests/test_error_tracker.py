import re
import pytest
from unittest.mock import Mock

from letterdash.error_tracker import (
    CRITICAL, HIGH, LOW, MEDIUM, HISTORY_KEY, ErrorTracker,
    assess_severity, assess_user_impact, categorize, is_recoverable, suggest_recovery
)
from letterdash.events import ERROR_TRACKED


@pytest.mark.unit
@pytest.mark.parametrize("message, context, expected", [
    ("boom", {'operation': 'init'}, 'initialization'),
    ("Failed to initialize", {}, 'initialization'),
    ("boom", {'operation': 'loadCategories'}, 'data_loading'),
    ("could not fetch", {}, 'data_loading'),
    ("Invalid value", {}, 'validation'),
    ("boom", {'operation': 'generateCombination'}, 'generation'),
    ("boom", {'manager': 'CombinationGenerator'}, 'generation'),
    ("boom", {'operation': 'saveCategories'}, 'storage'),
    ("boom", {'manager': 'StorageGateway'}, 'storage'),
    ("network down", {}, 'network'),
    ("connection reset", {}, 'network'),
    ("request timeout", {}, 'performance'),
    ("boom", {'performance': True}, 'performance'),
    ("boom", {'user_input': True}, 'user_input'),
    ("bad input", {}, 'user_input'),
    ("boom", {}, 'unknown'),
])
def test_categorize(message, context, expected):
    assert categorize(RuntimeError(message), context) == expected


@pytest.mark.unit
def test_categorize_first_rule_wins():
    # an init operation that also mentions loading is still initialization
    assert categorize(RuntimeError("load failed"), {'operation': 'init'}) == 'initialization'
    assert categorize(RuntimeError("invalid data"), {'operation': 'saveCategories'}) == 'validation'
    # "payload" contains "load", so data loading is matched before validation
    assert categorize(RuntimeError("Invalid payload"), {}) == 'data_loading'


@pytest.mark.unit
@pytest.mark.parametrize("message, context, expected", [
    ("cannot read property", {}, CRITICAL),
    ("value undefined", {'operation': 'save'}, CRITICAL),
    ("boom", {'operation': 'init', 'critical': True}, CRITICAL),
    ("boom", {'operation': 'init'}, LOW),
    ("boom", {'operation': 'loadWords'}, HIGH),
    ("boom", {'operation': 'loadWords', 'fallback': True}, LOW),
    ("boom", {'operation': 'generate', 'required': True}, HIGH),
    ("boom", {'operation': 'generate'}, LOW),
    ("boom", {'operation': 'save'}, MEDIUM),
    ("invalid", {}, MEDIUM),
    ("invalid", {'optional': True}, LOW),
    ("boom", {}, LOW),
])
def test_assess_severity(message, context, expected):
    assert assess_severity(RuntimeError(message), context) == expected


@pytest.mark.unit
def test_recoverability():
    assert is_recoverable(RuntimeError("network down"), {}) is True
    assert is_recoverable(RuntimeError("boom"), {'operation': 'save'}) is True
    assert is_recoverable(RuntimeError("invalid"), {}) is True
    assert is_recoverable(RuntimeError("boom"), {'operation': 'init'}) is False
    assert is_recoverable(RuntimeError("boom"), {'operation': 'init', 'fallback': True}) is True
    assert is_recoverable(RuntimeError("boom"), {'retry': True}) is True
    assert is_recoverable(RuntimeError("boom"), {}) is False


@pytest.mark.unit
def test_recovery_suggestions_and_impact():
    init_suggestions = suggest_recovery(RuntimeError("boom"), {'operation': 'init', 'fallback': True})
    assert init_suggestions[-1] == 'Use fallback initialization'
    assert 'Use offline mode' in suggest_recovery(RuntimeError("network down"), {})

    assert assess_user_impact(RuntimeError("boom"), {'operation': 'save'}) == \
        'Some features affected, workarounds available (progress may not be saved)'
    assert assess_user_impact(RuntimeError("boom"), {'operation': 'generate', 'required': True}) == \
        'Major features unavailable, limited gameplay (new rounds may not work)'
    assert assess_user_impact(RuntimeError("boom"), {}) == 'Minor issue, minimal impact on gameplay'


@pytest.mark.unit
def test_track_builds_entry(tracker):
    error_id = tracker.track_manager_error('CategoryStore', 'saveCategories', OSError("disk full"), attempt=2)
    assert re.match(r'^err_\d+_[0-9a-f]{9}$', error_id)

    entry = tracker.get_recent_errors(1)[0]
    assert entry.id == error_id
    assert entry.message == 'disk full'
    assert entry.category == 'storage'
    assert entry.severity == MEDIUM
    assert entry.manager == 'CategoryStore'
    assert entry.operation == 'saveCategories'
    assert entry.recoverable is True
    assert entry.context == {'manager': 'CategoryStore', 'operation': 'saveCategories', 'attempt': 2}
    assert entry.resolved is False


@pytest.mark.unit
def test_empty_message_uses_exception_name(tracker):
    tracker.track(KeyError())
    assert tracker.get_recent_errors(1)[0].message == 'KeyError'


@pytest.mark.unit
def test_context_values_are_made_plain(tracker):
    tracker.track(RuntimeError("boom"), {'payload': {'nested': [1, 2]}, 'count': 3})
    context = tracker.get_recent_errors(1)[0].context
    assert context['payload'] == "{'nested': [1, 2]}"
    assert context['count'] == 3


@pytest.mark.unit
def test_history_is_bounded_but_counters_are_not(events):
    tracker = ErrorTracker(events=events, max_stored_errors=3)
    ids = [tracker.track(RuntimeError(f"boom {i}")) for i in range(5)]

    assert [e.id for e in tracker.errors] == list(reversed(ids))[:3]
    stats = tracker.get_stats()
    assert stats['total'] == 5
    assert stats['by_category'] == {'unknown': 5}
    assert stats['by_severity'] == {LOW: 5}
    assert stats['by_manager'] == {'unknown': 5}
    assert len(stats['recent_errors']) == 3


@pytest.mark.unit
def test_filters(tracker):
    tracker.track(RuntimeError("network down"))
    tracker.track(RuntimeError("boom"), {'operation': 'save'})
    tracker.track(RuntimeError("network again"))

    network = tracker.get_recent_errors(10, category='network')
    assert [e.message for e in network] == ['network again', 'network down']
    assert [e.message for e in tracker.get_recent_errors(10, severity=MEDIUM)] == ['boom']
    assert len(tracker.get_recent_errors(2)) == 2


@pytest.mark.unit
def test_track_emits_event(tracker, events):
    received = []
    events.on(ERROR_TRACKED, received.append)
    error_id = tracker.track(RuntimeError("network down"))
    assert received[0]['id'] == error_id
    assert received[0]['category'] == 'network'


@pytest.mark.unit
def test_monitor_receives_category(events):
    monitor = Mock()
    tracker = ErrorTracker(events=events, monitor=monitor)
    tracker.track(RuntimeError("network down"))
    monitor.track_error.assert_called_once_with('network')


@pytest.mark.unit
def test_track_never_raises(events):
    monitor = Mock()
    monitor.track_error.side_effect = RuntimeError("metrics offline")
    tracker = ErrorTracker(events=events, monitor=monitor)
    assert tracker.track(RuntimeError("boom")) is None


@pytest.mark.unit
def test_history_persists_and_reloads(storage, events):
    tracker = ErrorTracker(storage=storage, events=events)
    tracker.init()
    first = tracker.track(RuntimeError("boom"), {'operation': 'save'})
    second = tracker.track(RuntimeError("network down"))

    reloaded = ErrorTracker(storage=storage, events=events)
    assert reloaded.load_error_history() is True
    assert [e.id for e in reloaded.errors] == [second, first]
    assert reloaded.error_stats['total'] == 2
    assert reloaded.error_stats['by_severity'] == {MEDIUM: 1, LOW: 1}


@pytest.mark.unit
def test_only_newest_fifty_are_persisted(storage, events):
    tracker = ErrorTracker(storage=storage, events=events)
    for i in range(60):
        tracker.track(RuntimeError(f"boom {i}"))

    history = storage.get(HISTORY_KEY).value
    assert len(history['errors']) == 50
    assert history['errors'][0]['message'] == 'boom 59'
    assert history['stats']['total'] == 60
    assert 'last_saved' in history


@pytest.mark.unit
def test_malformed_history_is_ignored(storage, events):
    storage.set(HISTORY_KEY, {'errors': 'not-a-list'})
    tracker = ErrorTracker(storage=storage, events=events)
    assert tracker.load_error_history() is False
    assert len(tracker.errors) == 0


@pytest.mark.unit
@pytest.mark.parametrize("stats", [
    {'by_severity': ['oops']},
    {'by_severity': {'high': 1}},
    {'by_category': 'network'},
    {'total': 'many'},
    'not-a-dict',
])
def test_malformed_stats_are_discarded(storage, events, stats):
    storage.set(HISTORY_KEY, {'errors': [], 'stats': stats})
    tracker = ErrorTracker(storage=storage, events=events)
    assert tracker.init() is True
    assert tracker.error_stats['total'] == 0
    assert tracker.error_stats['by_severity'] == {}

    tracker.track(RuntimeError("network down"))
    assert tracker.error_stats['total'] == 1
    assert tracker.error_stats['by_category'] == {'network': 1}


@pytest.mark.unit
def test_malformed_entries_are_ignored(storage, events):
    storage.set(HISTORY_KEY, {'errors': ['not-an-entry']})
    tracker = ErrorTracker(storage=storage, events=events)
    assert tracker.load_error_history() is False
    assert len(tracker.errors) == 0


@pytest.mark.unit
def test_storage_failure_does_not_break_tracking(failing_storage, events):
    tracker = ErrorTracker(storage=failing_storage, events=events)
    assert tracker.init() is True
    assert tracker.track(RuntimeError("boom")) is not None
    assert tracker.error_stats['total'] == 1


@pytest.mark.unit
def test_resolve_and_clear(tracker):
    first = tracker.track(RuntimeError("boom"))
    tracker.track(RuntimeError("other"))

    assert tracker.resolve_error(first, 'restarted') is True
    assert tracker.resolve_error('err_missing') is False
    resolved = [e for e in tracker.errors if e.id == first][0]
    assert resolved.resolution == 'restarted'
    assert resolved.resolved_at is not None

    assert tracker.clear_resolved_errors() == 1
    assert len(tracker.errors) == 1
    assert tracker.error_stats['total'] == 2


@pytest.mark.unit
def test_report(tracker):
    tracker.track(RuntimeError("boom"), {'operation': 'init', 'critical': True})
    tracker.track(RuntimeError("network down"))

    report = tracker.generate_report()
    assert report['summary'] == {'total': 2, 'critical': 1, 'recoverable': 1, 'unresolved': 2}
    assert report['breakdown']['by_category'] == {'initialization': 1, 'network': 1}
    assert len(report['recent_errors']) == 2
    assert report['timestamp'] > 0


@pytest.mark.unit
def test_reset_and_destroy(storage, events):
    tracker = ErrorTracker(storage=storage, events=events)
    tracker.track(RuntimeError("boom"))
    tracker.reset()
    assert len(tracker.errors) == 0
    assert tracker.get_stats()['total'] == 0

    tracker.destroy()
    assert tracker.storage is None
    assert tracker.initialized is False
