"""
SNS topic subscriptions.

Subscriber classes (see ``subscriptions``) bind to a topic and return a
``TopicSubscriptionConfig``; the topic then creates a ``Subscription`` in
the scope the subscriber asked for.
"""
import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping, Optional, Sequence

from cdktf_cdktf_provider_aws.sns_topic_subscription import SnsTopicSubscription
from constructs import Construct, IConstruct

from ...errors import ValidationError
from ..aws_construct import AwsConstructBase
from ..iam import PolicyStatement, ServicePrincipal

if TYPE_CHECKING:
    from .queue import QueueBase
    from .topic import TopicBase

MAX_FILTER_POLICY_ATTRIBUTES = 5
MAX_FILTER_POLICY_CONDITIONS = 150


class SubscriptionProtocol(str, Enum):
    """The type of subscription, controlling the type of the endpoint parameter."""

    HTTP = "http"
    HTTPS = "https"
    EMAIL = "email"
    EMAIL_JSON = "email-json"
    SMS = "sms"
    SQS = "sqs"
    APPLICATION = "application"
    LAMBDA = "lambda"
    FIREHOSE = "firehose"


class FilterOrPolicyScope(str, Enum):
    MESSAGE_ATTRIBUTES = "MessageAttributes"
    MESSAGE_BODY = "MessageBody"


RAW_MESSAGE_DELIVERY_PROTOCOLS = (
    SubscriptionProtocol.HTTP,
    SubscriptionProtocol.HTTPS,
    SubscriptionProtocol.SQS,
    SubscriptionProtocol.FIREHOSE,
)


@dataclass
class TopicSubscriptionConfig:
    """Subscription configuration returned by a subscriber when bound to a topic."""

    subscriber_id: str
    protocol: SubscriptionProtocol
    endpoint: str
    subscriber_scope: Optional[IConstruct] = None
    raw_message_delivery: Optional[bool] = None
    filter_policy: Optional[Mapping[str, Sequence[Any]]] = None
    filter_policy_scope: Optional[FilterOrPolicyScope] = None
    region: Optional[str] = None
    dead_letter_queue: Optional["QueueBase"] = None
    subscription_role_arn: Optional[str] = None
    subscription_dependency: Optional[IConstruct] = None
    delivery_policy: Optional[Mapping[str, Any]] = None


class Subscription(AwsConstructBase):
    """
    A new subscription.

    Prefer to use the ``TopicBase.add_subscription()`` methods to create instances of this class.
    """

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        topic: "TopicBase",
        protocol: SubscriptionProtocol,
        endpoint: str,
        raw_message_delivery: Optional[bool] = None,
        filter_policy: Optional[Mapping[str, Sequence[Any]]] = None,
        filter_policy_scope: Optional[FilterOrPolicyScope] = None,
        region: Optional[str] = None,
        dead_letter_queue: Optional["QueueBase"] = None,
        subscription_role_arn: Optional[str] = None,
        delivery_policy: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(scope, id)
        protocol = SubscriptionProtocol(protocol)

        if raw_message_delivery and protocol not in RAW_MESSAGE_DELIVERY_PROTOCOLS:
            raise ValidationError(
                "Raw message delivery can only be enabled for HTTP, HTTPS, SQS, and Firehose subscriptions.",
                self,
            )

        if filter_policy:
            if len(filter_policy) > MAX_FILTER_POLICY_ATTRIBUTES:
                raise ValidationError(
                    f"A filter policy can have a maximum of {MAX_FILTER_POLICY_ATTRIBUTES} attribute names.",
                    self,
                )
            total = math.prod(len(conditions) for conditions in filter_policy.values())
            if total > MAX_FILTER_POLICY_CONDITIONS:
                raise ValidationError(
                    f"The total combination of values ({total}) must not exceed {MAX_FILTER_POLICY_CONDITIONS}.",
                    self,
                )

        if protocol == SubscriptionProtocol.FIREHOSE and not subscription_role_arn:
            raise ValidationError(
                "Subscription role arn is required field for subscriptions with a firehose protocol.",
                self,
            )

        self.dead_letter_queue = dead_letter_queue
        if dead_letter_queue is not None:
            dead_letter_queue.add_to_resource_policy(PolicyStatement(
                resources=[dead_letter_queue.queue_arn],
                actions=["sqs:SendMessage"],
                principals=[ServicePrincipal("sns.amazonaws.com")],
                conditions=[{"test": "ArnEquals", "variable": "aws:SourceArn", "values": [topic.topic_arn]}],
            ))

        self.resource = SnsTopicSubscription(
            self,
            "Resource",
            topic_arn=topic.topic_arn,
            protocol=protocol.value,
            endpoint=endpoint,
            raw_message_delivery=raw_message_delivery,
            filter_policy=self.stack.to_json_string(dict(filter_policy)) if filter_policy else None,
            filter_policy_scope=FilterOrPolicyScope(filter_policy_scope).value if filter_policy_scope else None,
            region=region,
            redrive_policy=self.stack.to_json_string(
                {"deadLetterTargetArn": dead_letter_queue.queue_arn}
            ) if dead_letter_queue else None,
            subscription_role_arn=subscription_role_arn,
            delivery_policy=self.stack.to_json_string(dict(delivery_policy)) if delivery_policy else None,
        )
        self.subscription_arn = self.resource.arn
        if dead_letter_queue is not None and dead_letter_queue.policy is not None:
            self.node.add_dependency(dead_letter_queue.policy)

