"""
Subscribers for SNS topics.

Each subscriber implements ``bind(topic)`` and returns the
``TopicSubscriptionConfig`` the topic uses to create its subscription.
"""
from typing import Any, Mapping, Optional, Sequence

from cdktf import Token

from ...errors import UnscopedValidationError
from ..iam import PolicyStatement, ServicePrincipal
from .queue import QueueBase
from .subscription import SubscriptionProtocol, TopicSubscriptionConfig
from .topic import TopicBase, topic_subscriber_id


class SqsSubscription:
    """Use an SQS queue as a subscription target."""

    def __init__(
        self,
        queue: QueueBase,
        *,
        raw_message_delivery: bool = False,
        filter_policy: Optional[Mapping[str, Sequence[Any]]] = None,
        dead_letter_queue: Optional[QueueBase] = None,
    ) -> None:
        self.queue = queue
        self.raw_message_delivery = raw_message_delivery
        self.filter_policy = filter_policy
        self.dead_letter_queue = dead_letter_queue

    def bind(self, topic: TopicBase) -> TopicSubscriptionConfig:
        """Returns a configuration for an SQS queue to subscribe to an SNS topic."""
        if topic.fifo and not self.queue.fifo:
            raise UnscopedValidationError("FIFO SNS topics can only be subscribed to by FIFO SQS queues")

        # add a statement to the queue resource policy which allows this topic
        # to send messages to the queue.
        result = self.queue.add_to_resource_policy(PolicyStatement(
            resources=[self.queue.queue_arn],
            actions=["sqs:SendMessage"],
            principals=[ServicePrincipal("sns.amazonaws.com")],
            conditions=[{"test": "ArnEquals", "variable": "aws:SourceArn", "values": [topic.topic_arn]}],
        ))

        return TopicSubscriptionConfig(
            subscriber_scope=self.queue,
            subscriber_id=topic_subscriber_id(topic),
            endpoint=self.queue.queue_arn,
            protocol=SubscriptionProtocol.SQS,
            raw_message_delivery=self.raw_message_delivery,
            filter_policy=self.filter_policy,
            dead_letter_queue=self.dead_letter_queue,
            subscription_dependency=result.policy_dependable,
        )


class UrlSubscription:
    """
    Use a URL as a subscription target.

    The message will be POSTed to the given URL.
    """

    def __init__(
        self,
        url: str,
        *,
        protocol: Optional[SubscriptionProtocol] = None,
        raw_message_delivery: bool = False,
        filter_policy: Optional[Mapping[str, Sequence[Any]]] = None,
        dead_letter_queue: Optional[QueueBase] = None,
    ) -> None:
        if not Token.is_unresolved(url) and not url.startswith(("http://", "https://")):
            raise UnscopedValidationError("URL must start with either http:// or https://")
        if Token.is_unresolved(url) and protocol is None:
            raise UnscopedValidationError("Must provide protocol if url is unresolved")

        if protocol is None:
            protocol = SubscriptionProtocol.HTTPS if url.startswith("https://") else SubscriptionProtocol.HTTP
        self.url = url
        self.protocol = protocol
        self.raw_message_delivery = raw_message_delivery
        self.filter_policy = filter_policy
        self.dead_letter_queue = dead_letter_queue

    def bind(self, topic: TopicBase) -> TopicSubscriptionConfig:
        return TopicSubscriptionConfig(
            subscriber_id="UnresolvedUrl" if Token.is_unresolved(self.url) else self.url,
            endpoint=self.url,
            protocol=self.protocol,
            raw_message_delivery=self.raw_message_delivery,
            filter_policy=self.filter_policy,
            dead_letter_queue=self.dead_letter_queue,
        )


class EmailSubscription:
    """Use an email address as a subscription target. Email subscriptions require confirmation."""

    def __init__(
        self,
        email_address: str,
        *,
        json: bool = False,
        filter_policy: Optional[Mapping[str, Sequence[Any]]] = None,
        dead_letter_queue: Optional[QueueBase] = None,
    ) -> None:
        self.email_address = email_address
        self.json = json
        self.filter_policy = filter_policy
        self.dead_letter_queue = dead_letter_queue

    def bind(self, topic: TopicBase) -> TopicSubscriptionConfig:
        return TopicSubscriptionConfig(
            subscriber_id=self.email_address,
            endpoint=self.email_address,
            protocol=SubscriptionProtocol.EMAIL_JSON if self.json else SubscriptionProtocol.EMAIL,
            filter_policy=self.filter_policy,
            dead_letter_queue=self.dead_letter_queue,
        )
