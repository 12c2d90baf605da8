"""
CloudWatch Logs log groups, log streams and resource policies.
"""
import logging
from enum import Enum
from typing import List, Optional, Sequence, Union

import jsii
from cdktf import Annotations, Token
from cdktf_cdktf_provider_aws.cloudwatch_log_group import CloudwatchLogGroup
from cdktf_cdktf_provider_aws.cloudwatch_log_resource_policy import CloudwatchLogResourcePolicy
from cdktf_cdktf_provider_aws.cloudwatch_log_stream import CloudwatchLogStream
from constructs import Construct, IValidation

from ...errors import ValidationError
from ..arn import Arn, ArnComponents, ArnFormat
from ..aws_construct import AwsConstructBase
from ..aws_stack import AwsStack
from ..iam import (
    AddToResourcePolicyResult,
    Grant,
    PolicyDocument,
    PolicyStatement,
    PrincipalBase,
)
from .metric import Metric
from .metric_filter import MetricFilter
from .pattern import FilterPattern

logger = logging.getLogger(__name__)

ARN_SUFFIX = ":*"
LOG_GROUP_CLASS_UNSUPPORTED_REGIONS = ("us-iso-west-1", "us-iso-east-1", "us-isob-east-1")
# terraform appends a 26 character unique suffix to name prefixes
NAME_PREFIX_MAX_LENGTH = 512 - 26


class RetentionDays(int, Enum):
    """How long, in days, the log contents will be retained."""

    ONE_DAY = 1
    THREE_DAYS = 3
    FIVE_DAYS = 5
    ONE_WEEK = 7
    TWO_WEEKS = 14
    ONE_MONTH = 30
    TWO_MONTHS = 60
    THREE_MONTHS = 90
    FOUR_MONTHS = 120
    FIVE_MONTHS = 150
    SIX_MONTHS = 180
    ONE_YEAR = 365
    THIRTEEN_MONTHS = 400
    EIGHTEEN_MONTHS = 545
    TWO_YEARS = 731
    THREE_YEARS = 1096
    FIVE_YEARS = 1827
    SIX_YEARS = 2192
    SEVEN_YEARS = 2557
    EIGHT_YEARS = 2922
    NINE_YEARS = 3288
    TEN_YEARS = 3653
    INFINITE = 9999


class LogGroupClass(str, Enum):
    STANDARD = "STANDARD"
    INFREQUENT_ACCESS = "INFREQUENT_ACCESS"


# ====== RESOURCE POLICY ======


@jsii.implements(IValidation)
class _ResourcePolicyValidation:
    def __init__(self, policy: "ResourcePolicy") -> None:
        self._policy = policy

    def validate(self) -> List[str]:
        return self._policy.document.validate_for_resource_policy()


class ResourcePolicy(AwsConstructBase):
    """Resource Policy for CloudWatch Log Groups."""

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        resource_policy_name: Optional[str] = None,
        policy_statements: Sequence[PolicyStatement] = (),
    ) -> None:
        super().__init__(scope, id)
        self.document = PolicyDocument(self, "PolicyDocument", statement=list(policy_statements))
        self.resource = CloudwatchLogResourcePolicy(
            self,
            "Resource",
            policy_name=resource_policy_name or self.physical_name(255),
            policy_document=self.document.json,
        )
        self.node.add_validation(_ResourcePolicyValidation(self))


# ====== LOG GROUPS ======


class LogGroupBase(AwsConstructBase):
    """A new or imported CloudWatch log group."""

    log_group_arn: str
    log_group_name: str

    def __init__(self, scope: Construct, id: str) -> None:
        super().__init__(scope, id)
        self._policy: Optional[ResourcePolicy] = None

    @property
    def policy(self) -> Optional[ResourcePolicy]:
        return self._policy

    def add_stream(self, id: str, *, log_stream_name: Optional[str] = None) -> "LogStream":
        """Create a new Log Stream for this Log Group."""
        return LogStream(self, id, log_group=self, log_stream_name=log_stream_name)

    def add_metric_filter(self, id: str, **props) -> MetricFilter:
        """Create a new Metric Filter on this Log Group."""
        return MetricFilter(self, id, log_group=self, **props)

    def extract_metric(self, json_field: str, metric_namespace: str, metric_name: str) -> Metric:
        """
        Extract a metric from structured log events in the LogGroup.

        Creates a MetricFilter on this LogGroup that will extract the value
        of the indicated JSON field in all records where it occurs.

        The metric will be available in CloudWatch Metrics under the
        indicated namespace and name.
        """
        MetricFilter(
            self,
            f"{metric_namespace}_{metric_name}",
            log_group=self,
            metric_namespace=metric_namespace,
            metric_name=metric_name,
            filter_pattern=FilterPattern.exists(json_field),
            metric_value=json_field,
        )
        return Metric(namespace=metric_namespace, metric_name=metric_name)

    def add_to_resource_policy(self, statement: PolicyStatement) -> AddToResourcePolicyResult:
        """
        Adds a statement to the resource policy associated with this log group.

        Log group resource policies are account level, so imported log
        groups get one too.
        """
        if self._policy is None:
            self._policy = ResourcePolicy(self, "Policy")
            logger.debug("Created resource policy for log group %s", self.node.path)
        self._policy.document.add_statements(statement)
        return AddToResourcePolicyResult(statement_added=True, policy_dependable=self._policy)

    def grant(self, grantee: PrincipalBase, *actions: str) -> Grant:
        """Give the indicated permissions on this log group and all streams."""
        return Grant.add_to_principal_or_resource(
            grantee=grantee,
            actions=actions,
            resource_arns=[self.log_group_arn],
            resource=self,
        )

    def grant_write(self, grantee: PrincipalBase) -> Grant:
        """Give permissions to create and write to streams in this log group."""
        return self.grant(grantee, "logs:CreateLogStream", "logs:PutLogEvents")

    def grant_read(self, grantee: PrincipalBase) -> Grant:
        """Give permissions to read and filter events from this log group."""
        return self.grant(
            grantee,
            "logs:FilterLogEvents",
            "logs:GetLogEvents",
            "logs:GetLogGroupFields",
            "logs:DescribeLogGroups",
            "logs:DescribeLogStreams",
        )


class LogGroup(LogGroupBase):
    """Define a CloudWatch Log Group."""

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        log_group_name: Optional[str] = None,
        retention: Union[RetentionDays, int, None] = RetentionDays.TWO_YEARS,
        log_group_class: Optional[LogGroupClass] = None,
        encryption_key_arn: Optional[str] = None,
    ) -> None:
        super().__init__(scope, id)

        retention_in_days = retention.value if isinstance(retention, RetentionDays) else retention
        skip_destroy = None
        if retention_in_days == RetentionDays.INFINITE:
            retention_in_days = None
            skip_destroy = True
        if retention_in_days is not None and not Token.is_unresolved(retention_in_days) and retention_in_days <= 0:
            raise ValidationError(f"retentionInDays must be positive, got {retention_in_days}", self)

        region = self.stack.region
        if (
            log_group_class is not None
            and not Token.is_unresolved(region)
            and region in LOG_GROUP_CLASS_UNSUPPORTED_REGIONS
        ):
            Annotations.of(self).add_warning(
                "The LogGroupClass property is not supported in the following regions: "
                f"{', '.join(LOG_GROUP_CLASS_UNSUPPORTED_REGIONS)}"
            )

        self.resource = CloudwatchLogGroup(
            self,
            "Resource",
            name=log_group_name,
            name_prefix=None if log_group_name is not None else self.physical_name_prefix(NAME_PREFIX_MAX_LENGTH),
            retention_in_days=retention_in_days,
            skip_destroy=skip_destroy,
            log_group_class=log_group_class.value if log_group_class else None,
            kms_key_id=encryption_key_arn,
        )
        self.log_group_name = self.resource.name
        # the provider omits the stream wildcard from the log group ARN
        self.log_group_arn = f"{self.resource.arn}{ARN_SUFFIX}"

    @staticmethod
    def from_log_group_arn(scope: Construct, id: str, log_group_arn: str) -> "ImportedLogGroup":
        """Import an existing LogGroup given its ARN."""
        base_arn = _strip_arn_suffix(log_group_arn)
        parsed = Arn.split(base_arn, ArnFormat.COLON_RESOURCE_NAME)
        return ImportedLogGroup(
            scope,
            id,
            log_group_arn=f"{base_arn}{ARN_SUFFIX}",
            log_group_name=parsed.resource_name,
            account=parsed.account,
        )

    @staticmethod
    def from_log_group_name(scope: Construct, id: str, log_group_name: str) -> "ImportedLogGroup":
        """Import an existing LogGroup given its name."""
        base_name = _strip_arn_suffix(log_group_name)
        stack = AwsStack.of_aws_construct(scope)
        arn = stack.format_arn(ArnComponents(
            service="logs",
            resource="log-group",
            resource_name=f"{base_name}{ARN_SUFFIX}",
            arn_format=ArnFormat.COLON_RESOURCE_NAME,
        ))
        return ImportedLogGroup(scope, id, log_group_arn=arn, log_group_name=base_name)


class ImportedLogGroup(LogGroupBase):
    """A log group defined outside of this stack."""

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        log_group_arn: str,
        log_group_name: str,
        account: Optional[str] = None,
    ) -> None:
        super().__init__(scope, id)
        self._account = account
        self.log_group_arn = log_group_arn
        self.log_group_name = log_group_name

    @property
    def env_account(self) -> str:
        return self._account or self.stack.account


def _strip_arn_suffix(value: str) -> str:
    if Token.is_unresolved(value):
        return value
    return value[: -len(ARN_SUFFIX)] if value.endswith(ARN_SUFFIX) else value


# ====== LOG STREAMS ======


class LogStream(AwsConstructBase):
    """Define a Log Stream in a Log Group."""

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        log_group: LogGroupBase,
        log_stream_name: Optional[str] = None,
    ) -> None:
        super().__init__(scope, id)
        self.resource = CloudwatchLogStream(
            self,
            "Resource",
            name=log_stream_name or self.physical_name(512),
            log_group_name=log_group.log_group_name,
        )
        self.log_stream_name = self.resource.name
