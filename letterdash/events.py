"""Minimal synchronous event emitter used to publish engine state to consumers."""

import logging
import time
import uuid
from collections import deque
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

# Event names published by the engine
COMBINATION_GENERATED = 'combination:generated'
BATCH_PARTIAL = 'batch:partial'
DEGRADATION_ACTIVATED = 'degradation:activated'
DEGRADATION_RECOVERED = 'degradation:recovered'
ERROR_TRACKED = 'error:tracked'
STORAGE_ERROR = 'storage:error'


class EventEmitter:
    def __init__(self, max_history: int = 100):
        self._listeners: Dict[str, List[Dict[str, Any]]] = {}
        self._history = deque(maxlen=max_history)
        self.emitted_count = 0

    def on(self, event: str, handler: Callable[[Any], None], once: bool = False) -> str:
        """Register ``handler`` for ``event`` and return a listener id usable with ``off``."""
        if not callable(handler):
            raise TypeError("Event handler must be callable")
        listener_id = f"listener_{uuid.uuid4().hex[:8]}"
        self._listeners.setdefault(event, []).append({
            'id': listener_id,
            'handler': handler,
            'once': once,
        })
        return listener_id

    def once(self, event: str, handler: Callable[[Any], None]) -> str:
        return self.on(event, handler, once=True)

    def off(self, event: str, handler_or_id) -> bool:
        listeners = self._listeners.get(event)
        if not listeners:
            return False
        before = len(listeners)
        listeners[:] = [
            l for l in listeners
            if l['id'] != handler_or_id and l['handler'] is not handler_or_id
        ]
        if not listeners:
            del self._listeners[event]
        return len(listeners) < before

    def emit(self, event: str, data: Any = None) -> int:
        """Call every listener for ``event``; returns how many ran without raising."""
        self.emitted_count += 1
        self._history.append({'event': event, 'data': data, 'timestamp': time.time()})

        listeners = list(self._listeners.get(event, []))
        delivered = 0
        for listener in listeners:
            if listener['once']:
                self.off(event, listener['id'])
            try:
                listener['handler'](data)
                delivered += 1
            except Exception as e:
                # A broken subscriber must not break the emitter
                logger.exception(f"Event handler for '{event}' failed: {e}")
        return delivered

    def has_listeners(self, event: str) -> bool:
        return bool(self._listeners.get(event))

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def get_history(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        history = list(self._history)
        return history[-limit:] if limit else history

    def remove_all_listeners(self, event: Optional[str] = None) -> None:
        if event:
            self._listeners.pop(event, None)
        else:
            self._listeners.clear()

    def clear_history(self) -> None:
        self._history.clear()
