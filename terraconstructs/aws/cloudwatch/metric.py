"""
CloudWatch metric references.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from aws_cdk import Duration


class Unit(str, Enum):
    """Unit for metric."""

    SECONDS = "Seconds"
    MICROSECONDS = "Microseconds"
    MILLISECONDS = "Milliseconds"
    BYTES = "Bytes"
    KILOBYTES = "Kilobytes"
    MEGABYTES = "Megabytes"
    GIGABYTES = "Gigabytes"
    TERABYTES = "Terabytes"
    BITS = "Bits"
    KILOBITS = "Kilobits"
    MEGABITS = "Megabits"
    GIGABITS = "Gigabits"
    TERABITS = "Terabits"
    PERCENT = "Percent"
    COUNT = "Count"
    BYTES_PER_SECOND = "Bytes/Second"
    KILOBYTES_PER_SECOND = "Kilobytes/Second"
    MEGABYTES_PER_SECOND = "Megabytes/Second"
    GIGABYTES_PER_SECOND = "Gigabytes/Second"
    TERABYTES_PER_SECOND = "Terabytes/Second"
    BITS_PER_SECOND = "Bits/Second"
    KILOBITS_PER_SECOND = "Kilobits/Second"
    MEGABITS_PER_SECOND = "Megabits/Second"
    GIGABITS_PER_SECOND = "Gigabits/Second"
    TERABITS_PER_SECOND = "Terabits/Second"
    COUNT_PER_SECOND = "Count/Second"
    NONE = "None"


@dataclass
class Metric:
    """A metric emitted by a service, or by a metric filter."""

    namespace: str
    metric_name: str
    statistic: str = "Average"
    dimensions_map: Dict[str, str] = field(default_factory=dict)
    unit: Optional[Unit] = None
    period: Duration = field(default_factory=lambda: Duration.minutes(5))

    def with_(self, **changes) -> "Metric":
        """Return a copy of this metric with the given properties changed."""
        values = {
            "namespace": self.namespace,
            "metric_name": self.metric_name,
            "statistic": self.statistic,
            "dimensions_map": dict(self.dimensions_map),
            "unit": self.unit,
            "period": self.period,
        }
        values.update({k: v for k, v in changes.items() if v is not None})
        return Metric(**values)
