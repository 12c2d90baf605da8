"""
Amazon SQS queues and queue policies.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

import jsii
from cdktf import Token
from cdktf_cdktf_provider_aws.sqs_queue import SqsQueue
from cdktf_cdktf_provider_aws.sqs_queue_policy import SqsQueuePolicy
from constructs import Construct, IValidation

from ...errors import ValidationError
from ..arn import Arn, ArnFormat
from ..aws_construct import AwsConstructBase
from ..iam import (
    AddToResourcePolicyResult,
    AnyPrincipal,
    Effect,
    Grant,
    PolicyDocument,
    PolicyStatement,
    PrincipalBase,
)

logger = logging.getLogger(__name__)

FIFO_SUFFIX = ".fifo"
# terraform appends a 26 character unique suffix to name prefixes
NAME_PREFIX_MAX_LENGTH = 80 - 26


class DeduplicationScope(str, Enum):
    MESSAGE_GROUP = "messageGroup"
    QUEUE = "queue"


class FifoThroughputLimit(str, Enum):
    PER_QUEUE = "perQueue"
    PER_MESSAGE_GROUP_ID = "perMessageGroupId"


@dataclass
class DeadLetterQueue:
    """Dead letter queue settings."""

    queue: "QueueBase"
    max_receive_count: int


@jsii.implements(IValidation)
class _QueuePolicyValidation:
    def __init__(self, policy: "QueuePolicy") -> None:
        self._policy = policy

    def validate(self) -> List[str]:
        return self._policy.document.validate_for_resource_policy()


class QueuePolicy(AwsConstructBase):
    """The policy for an SQS Queue."""

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        queues: Sequence["QueueBase"],
        policy_document: Optional[PolicyDocument] = None,
    ) -> None:
        super().__init__(scope, id)
        self.document = policy_document or PolicyDocument(self, "PolicyDocument", assign_sids=True)
        for i, queue in enumerate(queues):
            SqsQueuePolicy(
                self,
                "Resource" if i == 0 else f"Resource{i}",
                queue_url=queue.queue_url,
                policy=self.document.json,
            )
        self.node.add_validation(_QueuePolicyValidation(self))


class QueueBase(AwsConstructBase):
    """Reference to a new or existing Amazon SQS queue."""

    queue_arn: str
    queue_url: str
    queue_name: str
    fifo: bool

    def __init__(self, scope: Construct, id: str) -> None:
        super().__init__(scope, id)
        self._policy: Optional[QueuePolicy] = None
        self._auto_create_policy = True

    @property
    def policy(self) -> Optional[QueuePolicy]:
        return self._policy

    def add_to_resource_policy(self, statement: PolicyStatement) -> AddToResourcePolicyResult:
        """
        Adds a statement to the IAM resource policy associated with this queue.

        If this queue was created in this stack, a queue policy will be
        automatically created upon the first call to ``add_to_resource_policy``.
        If the queue is imported, then this is a no-op.
        """
        if self._policy is None and self._auto_create_policy:
            self._policy = QueuePolicy(self, "Policy", queues=[self])

        if self._policy is not None:
            self._policy.document.add_statements(statement)
            return AddToResourcePolicyResult(statement_added=True, policy_dependable=self._policy)

        logger.debug("Dropped resource policy statement for imported queue %s", self.node.path)
        return AddToResourcePolicyResult(statement_added=False)

    def grant(self, grantee: PrincipalBase, *actions: str) -> Grant:
        """Grant the actions defined in actions to the identity Principal on this SQS queue."""
        return Grant.add_to_principal_or_resource(
            grantee=grantee,
            actions=actions,
            resource_arns=[self.queue_arn],
            resource=self,
        )

    def grant_consume_messages(self, grantee: PrincipalBase) -> Grant:
        """
        Grant permissions to consume messages from a queue.

        This will grant the following permissions:

          - sqs:ChangeMessageVisibility
          - sqs:DeleteMessage
          - sqs:ReceiveMessage
          - sqs:GetQueueAttributes
          - sqs:GetQueueUrl
        """
        return self.grant(
            grantee,
            "sqs:ReceiveMessage",
            "sqs:ChangeMessageVisibility",
            "sqs:GetQueueUrl",
            "sqs:DeleteMessage",
            "sqs:GetQueueAttributes",
        )

    def grant_send_messages(self, grantee: PrincipalBase) -> Grant:
        """Grant access to send messages to a queue to the given identity."""
        return self.grant(grantee, "sqs:SendMessage", "sqs:GetQueueAttributes", "sqs:GetQueueUrl")

    def grant_purge(self, grantee: PrincipalBase) -> Grant:
        """Grant an IAM principal permissions to purge all messages from the queue."""
        return self.grant(grantee, "sqs:PurgeQueue", "sqs:GetQueueAttributes", "sqs:GetQueueUrl")


class Queue(QueueBase):
    """A new Amazon SQS queue."""

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        queue_name: Optional[str] = None,
        name_prefix: Optional[str] = None,
        fifo: Optional[bool] = None,
        content_based_deduplication: Optional[bool] = None,
        deduplication_scope: Optional[DeduplicationScope] = None,
        fifo_throughput_limit: Optional[FifoThroughputLimit] = None,
        delivery_delay_seconds: Optional[int] = None,
        max_message_size_bytes: Optional[int] = None,
        message_retention_seconds: Optional[int] = None,
        receive_message_wait_time_seconds: Optional[int] = None,
        visibility_timeout_seconds: Optional[int] = None,
        dead_letter_queue: Optional[DeadLetterQueue] = None,
        enforce_ssl: bool = False,
    ) -> None:
        super().__init__(scope, id)

        _validate_range(self, "delivery delay", delivery_delay_seconds, 0, 900, " seconds")
        _validate_range(self, "maximum message size", max_message_size_bytes, 1024, 262144, " bytes")
        _validate_range(self, "message retention period", message_retention_seconds, 60, 1209600, " seconds")
        _validate_range(self, "receive wait time", receive_message_wait_time_seconds, 0, 20, " seconds")
        _validate_range(self, "visibility timeout", visibility_timeout_seconds, 0, 43200, " seconds")
        if dead_letter_queue is not None:
            _validate_range(self, "dead letter max receive count", dead_letter_queue.max_receive_count, 1, 1000, "")

        fifo = _determine_fifo(self, fifo, queue_name or name_prefix, content_based_deduplication, deduplication_scope, fifo_throughput_limit)

        if queue_name is not None:
            if fifo and not Token.is_unresolved(queue_name) and not queue_name.endswith(FIFO_SUFFIX):
                queue_name = queue_name + FIFO_SUFFIX
            prefix = None
        else:
            prefix = name_prefix or self.physical_name_prefix(NAME_PREFIX_MAX_LENGTH - len(FIFO_SUFFIX))
            # the provider appends the suffix to prefixed fifo names
            if prefix.endswith(FIFO_SUFFIX):
                prefix = prefix[: -len(FIFO_SUFFIX)]

        self.dead_letter_queue = dead_letter_queue
        self.resource = SqsQueue(
            self,
            "Resource",
            name=queue_name,
            name_prefix=prefix,
            fifo_queue=fifo or None,
            content_based_deduplication=content_based_deduplication,
            deduplication_scope=deduplication_scope.value if deduplication_scope else None,
            fifo_throughput_limit=fifo_throughput_limit.value if fifo_throughput_limit else None,
            delay_seconds=delivery_delay_seconds,
            max_message_size=max_message_size_bytes,
            message_retention_seconds=message_retention_seconds,
            receive_wait_time_seconds=receive_message_wait_time_seconds,
            visibility_timeout_seconds=visibility_timeout_seconds,
            redrive_policy=self.stack.to_json_string({
                "deadLetterTargetArn": dead_letter_queue.queue.queue_arn,
                "maxReceiveCount": dead_letter_queue.max_receive_count,
            }) if dead_letter_queue else None,
        )

        self.queue_arn = self.resource.arn
        self.queue_name = self.resource.name
        self.queue_url = self.resource.url
        self.fifo = fifo

        if enforce_ssl:
            self.add_to_resource_policy(PolicyStatement(
                sid="EnforceSSL",
                effect=Effect.DENY,
                actions=["sqs:*"],
                conditions=[{"test": "Bool", "variable": "aws:SecureTransport", "values": ["false"]}],
                resources=[self.queue_arn],
                principals=[AnyPrincipal()],
            ))

    @staticmethod
    def from_queue_arn(scope: Construct, id: str, queue_arn: str) -> "ImportedQueue":
        """Import an existing SQS queue provided an ARN."""
        return ImportedQueue(scope, id, queue_arn)


class ImportedQueue(QueueBase):
    """An SQS queue defined outside of this stack."""

    def __init__(self, scope: Construct, id: str, queue_arn: str, *, queue_url: Optional[str] = None) -> None:
        super().__init__(scope, id)
        parsed = Arn.split(queue_arn, ArnFormat.NO_RESOURCE_NAME)
        self._auto_create_policy = False
        self._account = parsed.account
        self.queue_arn = queue_arn
        self.queue_name = parsed.resource
        self.queue_url = queue_url or (
            f"https://sqs.{parsed.region}.{self.stack.url_suffix}/{parsed.account}/{parsed.resource}"
        )
        self.fifo = not Token.is_unresolved(self.queue_name) and self.queue_name.endswith(FIFO_SUFFIX)

    @property
    def env_account(self) -> str:
        return self._account


def _determine_fifo(scope, fifo, name, content_based_deduplication, deduplication_scope, fifo_throughput_limit) -> bool:
    if fifo is None:
        fifo = bool(
            (name is not None and not Token.is_unresolved(name) and name.endswith(FIFO_SUFFIX))
            or content_based_deduplication
            or deduplication_scope
            or fifo_throughput_limit
        )
    if not fifo:
        if content_based_deduplication:
            raise ValidationError("Content-based deduplication can only be defined for FIFO queues", scope)
        if deduplication_scope:
            raise ValidationError("Deduplication scope can only be defined for FIFO queues", scope)
        if fifo_throughput_limit:
            raise ValidationError("FIFO throughput limit can only be defined for FIFO queues", scope)
    return fifo


def _validate_range(scope, label: str, value: Optional[int], min_value: int, max_value: int, unit: str) -> None:
    if value is None or Token.is_unresolved(value):
        return
    if not min_value <= value <= max_value:
        raise ValidationError(
            f"{label} must be between {min_value} and {max_value}{unit}, got {value}{unit}",
            scope,
        )
