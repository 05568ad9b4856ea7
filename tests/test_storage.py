import json
import boto3
import pytest
from moto import mock_aws
from unittest.mock import Mock

from letterdash.config import Settings
from letterdash.events import DEGRADATION_ACTIVATED, DEGRADATION_RECOVERED, STORAGE_ERROR
from letterdash.storage import (
    DynamoDBBackend, Err, JsonFileBackend, MemoryBackend, Ok, StorageErrorKind,
    StorageGateway, create_storage
)


@pytest.mark.unit
def test_memory_round_trip(storage):
    assert storage.has('k').value is False
    assert storage.get('k') == Ok(None)
    assert storage.set('k', {'a': 1}).ok
    assert storage.has('k') == Ok(True)
    assert storage.get('k').value == {'a': 1}
    assert storage.remove('k').ok
    assert storage.has('k').value is False


@pytest.mark.unit
def test_failures_become_errors_and_events(failing_storage, events):
    received = []
    events.on(STORAGE_ERROR, received.append)

    result = failing_storage.set('k', 1)
    assert isinstance(result, Err)
    assert result.ok is False
    assert result.kind == StorageErrorKind.UNAVAILABLE
    assert 'disk unavailable' in result.message

    for operation in (failing_storage.has, failing_storage.get, failing_storage.remove):
        assert operation('k').ok is False

    assert [r['operation'] for r in received] == ['set', 'has', 'get', 'remove']
    assert received[0]['kind'] == 'unavailable'
    assert received[0]['key'] == 'k'


@pytest.mark.unit
def test_error_kinds(events):
    backend = Mock()
    backend.set.side_effect = TypeError("not serializable")
    backend.get.side_effect = KeyError("corrupt index")
    gateway = StorageGateway(backend, events)
    assert gateway.set('k', object()).kind == StorageErrorKind.SERIALIZATION
    assert gateway.get('k').kind == StorageErrorKind.BACKEND


@pytest.mark.unit
def test_memory_only_mode_follows_storage_degradation(failing_storage, events):
    backend = failing_storage.backend
    events.emit(DEGRADATION_ACTIVATED, {'type': 'storage_unavailable'})
    assert failing_storage.memory_only is True

    calls_before = backend.calls
    assert failing_storage.set('k', 'v').ok
    assert failing_storage.get('k').value == 'v'
    assert failing_storage.has('k').value is True
    assert failing_storage.remove('k').ok
    assert backend.calls == calls_before

    events.emit(DEGRADATION_ACTIVATED, {'type': 'network_offline'})
    assert failing_storage.memory_only is True
    events.emit(DEGRADATION_RECOVERED, {'type': 'storage_unavailable'})
    assert failing_storage.memory_only is False


@pytest.mark.unit
def test_probe(storage, failing_storage):
    assert storage.probe() is True
    assert storage.has('__storage_probe__').value is False
    assert failing_storage.probe() is False


@pytest.mark.unit
def test_probe_bypasses_memory_only(failing_storage, events):
    events.emit(DEGRADATION_ACTIVATED, {'type': 'storage_unavailable'})
    assert failing_storage.probe() is False
    failing_storage.backend = MemoryBackend()
    assert failing_storage.probe() is True


@pytest.mark.local
def test_json_file_backend(tmp_path, events):
    path = tmp_path / 'data' / 'store.json'
    gateway = StorageGateway(JsonFileBackend(path), events)

    assert gateway.has('categories').value is False
    assert gateway.set('categories', [{'id': 'animals'}]).ok
    assert json.loads(path.read_text(encoding='utf-8')) == {'categories': [{'id': 'animals'}]}

    reopened = StorageGateway(JsonFileBackend(path), events)
    assert reopened.get('categories').value == [{'id': 'animals'}]
    assert reopened.remove('categories').ok
    assert reopened.has('categories').value is False
    assert not (tmp_path / 'data' / 'store.json.tmp').exists()


@pytest.mark.local
def test_json_file_backend_rejects_unserializable_values(tmp_path, events):
    gateway = StorageGateway(JsonFileBackend(tmp_path / 'store.json'), events)
    result = gateway.set('bad', object())
    assert result.kind == StorageErrorKind.SERIALIZATION


@pytest.mark.local
def test_json_file_backend_corrupt_file(tmp_path, events):
    path = tmp_path / 'store.json'
    path.write_text('{not json', encoding='utf-8')
    result = StorageGateway(JsonFileBackend(path), events).get('anything')
    assert result.ok is False
    assert result.kind == StorageErrorKind.SERIALIZATION


@pytest.mark.integration
def test_dynamodb_backend(aws_credentials, events):
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name='us-east-1')
        dynamodb.create_table(
            TableName='letterdash_storage',
            KeySchema=[{'AttributeName': 'key', 'KeyType': 'HASH'}],
            AttributeDefinitions=[{'AttributeName': 'key', 'AttributeType': 'S'}],
            BillingMode='PAY_PER_REQUEST',
        )
        gateway = StorageGateway(DynamoDBBackend('letterdash_storage', region_name='us-east-1'), events)

        assert gateway.has('player_stats:ann').value is False
        assert gateway.set('player_stats:ann', {'rounds': 3, 'ratio': 0.75}).ok
        assert gateway.get('player_stats:ann').value == {'rounds': 3, 'ratio': 0.75}
        assert gateway.probe() is True
        assert gateway.remove('player_stats:ann').ok
        assert gateway.get('player_stats:ann').value is None


@pytest.mark.integration
def test_dynamodb_missing_table_is_unavailable(aws_credentials, events):
    with mock_aws():
        gateway = StorageGateway(DynamoDBBackend('missing_table', region_name='us-east-1'), events)
        result = gateway.get('anything')
        assert result.ok is False
        assert result.kind == StorageErrorKind.UNAVAILABLE


@pytest.mark.unit
def test_create_storage(tmp_path, events):
    assert isinstance(create_storage(Settings(), events).backend, MemoryBackend)

    gateway = create_storage(Settings(storage_backend='json', storage_file=str(tmp_path / 's.json')), events)
    assert isinstance(gateway.backend, JsonFileBackend)
    assert gateway.events is events


@pytest.mark.integration
def test_create_dynamodb_storage(aws_credentials, events):
    with mock_aws():
        gateway = create_storage(Settings(storage_backend='dynamodb', aws_region='us-east-1'), events)
        assert isinstance(gateway.backend, DynamoDBBackend)
        assert gateway.backend.table_name == 'letterdash_storage'
