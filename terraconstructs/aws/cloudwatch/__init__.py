from .log_group import (
    ImportedLogGroup,
    LogGroup,
    LogGroupBase,
    LogGroupClass,
    LogStream,
    ResourcePolicy,
    RetentionDays,
)
from .metric import Metric, Unit
from .metric_filter import MetricFilter
from .pattern import FilterPattern, JsonPattern
