"""
Monitoring module for the LetterDash round engine.
Handles logging setup and optional CloudWatch metrics.
"""

import os
import boto3
import logging
from datetime import datetime, timezone
from typing import Dict, Optional
from botocore.exceptions import BotoCoreError, ClientError
from pathlib import Path

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)


def setup_logging(level: Optional[str] = None, log_dir: Optional[Path] = None) -> int:
    """
    Configure root logging for the application.

    Args:
        level: Level name; defaults to the LOG_LEVEL env var, then INFO
        log_dir: Directory for game.log; defaults to ./logs

    Returns:
        The numeric level that was applied
    """
    level_name = (level or os.getenv('LOG_LEVEL', 'INFO')).strip().upper()
    log_level = getattr(logging, level_name, logging.INFO)

    logs_dir = Path(log_dir) if log_dir else Path.cwd() / 'logs'
    logs_dir.mkdir(parents=True, exist_ok=True)

    # Force reconfigure so a host framework's defaults don't suppress DEBUG
    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(logs_dir / 'game.log'),
            logging.StreamHandler()
        ],
        force=True,
    )
    logging.getLogger().setLevel(log_level)
    logging.getLogger('letterdash').setLevel(log_level)
    # boto is chatty at DEBUG
    logging.getLogger('botocore').setLevel(max(log_level, logging.INFO))
    return log_level


class GameMonitor:
    """Publishes engine metrics to CloudWatch when enabled."""

    def __init__(self, environment: str = 'Development', enabled: bool = True,
                 client=None):
        self.environment = environment
        self.enabled = enabled
        self._client = client

        self.namespace = f"LetterDash/{environment}"

    @property
    def cloudwatch(self):
        if self._client is None:
            self._client = boto3.client('cloudwatch')
        return self._client

    def put_metric(self, metric_name: str, value: float, unit: str,
                   dimensions: Optional[Dict[str, str]] = None) -> bool:
        """
        Put a metric to CloudWatch.

        Args:
            metric_name: Name of the metric
            value: Metric value
            unit: Metric unit (e.g., 'Count', 'Milliseconds')
            dimensions: Optional dictionary of dimension name-value pairs

        Returns:
            True if the metric was published
        """
        if not self.enabled:
            return False
        try:
            metric_data = {
                'MetricName': metric_name,
                'Value': value,
                'Unit': unit,
                'Timestamp': datetime.now(timezone.utc)
            }

            if dimensions:
                metric_data['Dimensions'] = [
                    {'Name': k, 'Value': v} for k, v in dimensions.items()
                ]

            self.cloudwatch.put_metric_data(
                Namespace=self.namespace,
                MetricData=[metric_data]
            )
            logger.debug(f"Published metric {metric_name}: {value} {unit}")
            return True

        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to publish metric {metric_name}: {str(e)}")
            return False

    def track_error(self, error_category: str) -> bool:
        """Track error occurrence."""
        return self.put_metric(
            metric_name='Errors',
            value=1,
            unit='Count',
            dimensions={'ErrorCategory': error_category}
        )

    def track_generation_latency(self, round_type: str, latency_ms: float) -> bool:
        """Track combination generation latency."""
        return self.put_metric(
            metric_name='GenerationLatency',
            value=latency_ms,
            unit='Milliseconds',
            dimensions={'RoundType': round_type}
        )

    def track_degradation_level(self, level: int) -> bool:
        return self.put_metric(
            metric_name='DegradationLevel',
            value=level,
            unit='Count'
        )
