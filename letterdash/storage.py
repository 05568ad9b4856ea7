"""
Key/value storage for persisted engine state.

Backends raise on failure. ``StorageGateway`` wraps a backend and turns every
failure into an ``Err`` result, published as a ``storage:error`` event so the
degradation controller can switch the engine to memory-only mode.
"""

import json
import os
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .events import EventEmitter, STORAGE_ERROR, DEGRADATION_ACTIVATED, DEGRADATION_RECOVERED

logger = logging.getLogger(__name__)

PROBE_KEY = '__storage_probe__'
STORAGE_DEGRADATION = 'storage_unavailable'


class StorageErrorKind(str, Enum):
    UNAVAILABLE = 'unavailable'
    SERIALIZATION = 'serialization'
    BACKEND = 'backend'


@dataclass(frozen=True)
class Ok:
    value: Any = None

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    kind: StorageErrorKind
    message: str = ''

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok, Err]


class MemoryBackend:
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    def has(self, key: str) -> bool:
        return key in self._data

    def get(self, key: str) -> Any:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileBackend:
    """All keys live in one JSON document, read and rewritten whole."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)

    def has(self, key: str) -> bool:
        return key in self._read_all()

    def get(self, key: str) -> Any:
        return self._read_all().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def remove(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)


class DynamoDBBackend:
    """One item per key in a DynamoDB table whose hash key is ``key``."""

    def __init__(self, table_name: str = 'letterdash_storage', region_name: Optional[str] = None):
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb', region_name=region_name)
        self.table = self.dynamodb.Table(table_name)

    def has(self, key: str) -> bool:
        response = self.table.get_item(Key={'key': key})
        return 'Item' in response

    def get(self, key: str) -> Any:
        response = self.table.get_item(Key={'key': key})
        item = response.get('Item')
        if not item:
            return None
        return json.loads(item['value'])

    def set(self, key: str, value: Any) -> None:
        self.table.put_item(Item={'key': key, 'value': json.dumps(value)})

    def remove(self, key: str) -> None:
        self.table.delete_item(Key={'key': key})


class StorageGateway:
    """
    Result-typed facade over a storage backend.

    While the ``storage_unavailable`` degradation is active, reads and writes
    are served from an in-memory shadow so the game keeps working.
    """

    def __init__(self, backend=None, events: Optional[EventEmitter] = None):
        self.backend = backend if backend is not None else MemoryBackend()
        self.events = events or EventEmitter()
        self.memory_only = False
        self._shadow: Dict[str, Any] = {}
        self.events.on(DEGRADATION_ACTIVATED, self._on_degradation_activated)
        self.events.on(DEGRADATION_RECOVERED, self._on_degradation_recovered)

    def _on_degradation_activated(self, record) -> None:
        if record and record.get('type') == STORAGE_DEGRADATION:
            logger.warning("Storage switched to memory-only mode")
            self.memory_only = True

    def _on_degradation_recovered(self, record) -> None:
        if record and record.get('type') == STORAGE_DEGRADATION:
            logger.info("Storage backend restored")
            self.memory_only = False

    def _fail(self, operation: str, key: str, error: Exception) -> Err:
        if isinstance(error, (TypeError, ValueError)):
            kind = StorageErrorKind.SERIALIZATION
        elif isinstance(error, (OSError, ClientError, BotoCoreError)):
            kind = StorageErrorKind.UNAVAILABLE
        else:
            kind = StorageErrorKind.BACKEND
        result = Err(kind, f"{operation}('{key}') failed: {error}")
        logger.error(result.message)
        self.events.emit(STORAGE_ERROR, {
            'operation': operation,
            'key': key,
            'kind': kind.value,
            'message': result.message,
        })
        return result

    def has(self, key: str) -> Result:
        if self.memory_only:
            return Ok(key in self._shadow)
        try:
            return Ok(bool(self.backend.has(key)))
        except Exception as e:
            return self._fail('has', key, e)

    def get(self, key: str) -> Result:
        if self.memory_only:
            return Ok(self._shadow.get(key))
        try:
            return Ok(self.backend.get(key))
        except Exception as e:
            return self._fail('get', key, e)

    def set(self, key: str, value: Any) -> Result:
        if self.memory_only:
            self._shadow[key] = value
            return Ok(True)
        try:
            self.backend.set(key, value)
            return Ok(True)
        except Exception as e:
            return self._fail('set', key, e)

    def remove(self, key: str) -> Result:
        if self.memory_only:
            self._shadow.pop(key, None)
            return Ok(True)
        try:
            self.backend.remove(key)
            return Ok(True)
        except Exception as e:
            return self._fail('remove', key, e)

    def probe(self) -> bool:
        """Round-trip a marker value through the real backend."""
        try:
            self.backend.set(PROBE_KEY, {'probe': True})
            ok = self.backend.get(PROBE_KEY) == {'probe': True}
            self.backend.remove(PROBE_KEY)
            return ok
        except Exception as e:
            logger.info(f"Storage probe failed: {e}")
            return False


def create_storage(settings, events: Optional[EventEmitter] = None) -> StorageGateway:
    """Build the gateway for ``settings.storage_backend``."""
    backend_name = getattr(settings, 'storage_backend', 'memory')
    if backend_name == 'json':
        backend = JsonFileBackend(settings.storage_file)
    elif backend_name == 'dynamodb':
        backend = DynamoDBBackend(settings.dynamodb_table, region_name=settings.aws_region)
    else:
        backend = MemoryBackend()
    logger.info(f"Storage backend: {backend_name}")
    return StorageGateway(backend, events)
