import logging
import pytest
from unittest.mock import Mock
from botocore.exceptions import ClientError

from letterdash.monitoring import GameMonitor, setup_logging


@pytest.fixture
def client():
    return Mock()


@pytest.mark.unit
def test_put_metric(client):
    monitor = GameMonitor(environment='Test', client=client)
    assert monitor.put_metric('Rounds', 1, 'Count', {'RoundType': 'quick'}) is True

    kwargs = client.put_metric_data.call_args.kwargs
    assert kwargs['Namespace'] == 'LetterDash/Test'
    metric = kwargs['MetricData'][0]
    assert metric['MetricName'] == 'Rounds'
    assert metric['Value'] == 1
    assert metric['Unit'] == 'Count'
    assert metric['Dimensions'] == [{'Name': 'RoundType', 'Value': 'quick'}]


@pytest.mark.unit
def test_disabled_monitor_publishes_nothing(client):
    monitor = GameMonitor(enabled=False, client=client)
    assert monitor.track_error('storage') is False
    client.put_metric_data.assert_not_called()


@pytest.mark.unit
def test_client_errors_are_swallowed(client):
    client.put_metric_data.side_effect = ClientError(
        {'Error': {'Code': 'Throttling', 'Message': 'Rate exceeded'}}, 'PutMetricData'
    )
    monitor = GameMonitor(client=client)
    assert monitor.track_generation_latency('default', 12.5) is False


@pytest.mark.unit
def test_metric_helpers(client):
    monitor = GameMonitor(client=client)
    monitor.track_error('network')
    monitor.track_generation_latency('challenge', 3.2)
    monitor.track_degradation_level(2)

    names = [c.kwargs['MetricData'][0]['MetricName'] for c in client.put_metric_data.call_args_list]
    assert names == ['Errors', 'GenerationLatency', 'DegradationLevel']
    latency = client.put_metric_data.call_args_list[1].kwargs['MetricData'][0]
    assert latency['Unit'] == 'Milliseconds'
    assert latency['Dimensions'] == [{'Name': 'RoundType', 'Value': 'challenge'}]
    assert 'Dimensions' not in client.put_metric_data.call_args_list[2].kwargs['MetricData'][0]


@pytest.mark.local
def test_setup_logging(tmp_path):
    root = logging.getLogger()
    previous = list(root.handlers)
    try:
        level = setup_logging('debug', log_dir=tmp_path / 'logs')
        assert level == logging.DEBUG
        assert logging.getLogger('letterdash').level == logging.DEBUG
        assert logging.getLogger('botocore').level == logging.INFO

        logging.getLogger('letterdash.test').debug("round generated")
        for handler in root.handlers:
            handler.flush()
        assert 'round generated' in (tmp_path / 'logs' / 'game.log').read_text()
    finally:
        for handler in list(root.handlers):
            handler.close()
            root.removeHandler(handler)
        for handler in previous:
            root.addHandler(handler)


@pytest.mark.unit
def test_setup_logging_unknown_level_defaults_to_info(tmp_path):
    root = logging.getLogger()
    previous = list(root.handlers)
    try:
        assert setup_logging('chatty', log_dir=tmp_path) == logging.INFO
    finally:
        for handler in list(root.handlers):
            handler.close()
            root.removeHandler(handler)
        for handler in previous:
            root.addHandler(handler)
