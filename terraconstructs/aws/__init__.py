from .arn import Arn, ArnComponents, ArnFormat
from .aws_construct import AwsConstructBase
from .aws_stack import AwsStack
from .context_providers import AvailabilityZoneProvider
