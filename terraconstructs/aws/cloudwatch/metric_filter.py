"""
Metric filters which extract CloudWatch metrics from log events.
"""
import logging
from typing import TYPE_CHECKING, Dict, Optional

from cdktf_cdktf_provider_aws.cloudwatch_log_metric_filter import (
    CloudwatchLogMetricFilter,
    CloudwatchLogMetricFilterMetricTransformation,
)
from constructs import Construct

from ...errors import ValidationError
from ..aws_construct import AwsConstructBase
from .metric import Metric, Unit
from .pattern import FilterPattern

if TYPE_CHECKING:
    from .log_group import LogGroupBase

logger = logging.getLogger(__name__)

MAX_DIMENSIONS = 3


class MetricFilter(AwsConstructBase):
    """A filter that extracts information from CloudWatch Logs and emits to CloudWatch Metrics."""

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        log_group: "LogGroupBase",
        filter_pattern: FilterPattern,
        metric_namespace: str,
        metric_name: str,
        metric_value: str = "1",
        default_value: Optional[float] = None,
        dimensions: Optional[Dict[str, str]] = None,
        unit: Optional[Unit] = None,
        filter_name: Optional[str] = None,
    ) -> None:
        super().__init__(scope, id)

        if dimensions is not None and len(dimensions) > MAX_DIMENSIONS:
            raise ValidationError(
                f"MetricFilter only supports a maximum of {MAX_DIMENSIONS} dimensions but received {len(dimensions)}",
                self,
            )

        self.metric_namespace = metric_namespace
        self.metric_name = metric_name
        self.resource = CloudwatchLogMetricFilter(
            self,
            "Resource",
            name=filter_name or self.physical_name(512),
            log_group_name=log_group.log_group_name,
            pattern=filter_pattern.log_pattern_string,
            metric_transformation=CloudwatchLogMetricFilterMetricTransformation(
                namespace=metric_namespace,
                name=metric_name,
                value=metric_value,
                default_value=str(default_value) if default_value is not None else None,
                dimensions=dimensions,
                unit=unit.value if unit else None,
            ),
        )
        logger.debug("Metric filter %s emits %s/%s", self.node.path, metric_namespace, metric_name)

    def metric(self, *, statistic: Optional[str] = None, unit: Optional[Unit] = None) -> Metric:
        """
        Return the given named metric for this metric filter.

        By default the metric is averaged over 5 minutes.
        """
        return Metric(namespace=self.metric_namespace, metric_name=self.metric_name).with_(
            statistic=statistic, unit=unit
        )
