from .bucket import Bucket, BucketBase, BucketPolicy, ImportedBucket
from .parameter import (
    ImportedParameter,
    ParameterBase,
    ParameterDataType,
    ParameterTier,
    ParameterType,
    ParameterValueType,
    StringListParameter,
    StringParameter,
)
from .parameter_util import arn_for_parameter_name
from .table import (
    Attribute,
    AttributeType,
    BillingMode,
    GlobalSecondaryIndexProps,
    ImportedTable,
    LocalSecondaryIndexProps,
    ProjectionType,
    StreamViewType,
    Table,
    TableBase,
    TableClass,
)
