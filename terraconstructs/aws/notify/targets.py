"""
Targets for EventBridge rules.

Each target implements ``bind(rule, id)`` and returns the
``RuleTargetConfig`` the rule uses to create its event target.
"""
from typing import Optional

from ...errors import ValidationError
from ..iam import PolicyStatement, ServicePrincipal
from .input import RuleTargetInput
from .queue import QueueBase
from .rule import RuleBase, RuleTargetConfig
from .topic import TopicBase

EVENTS_SERVICE = "events.amazonaws.com"


class SqsQueue:
    """Use an SQS Queue as a target for EventBridge rules."""

    def __init__(
        self,
        queue: QueueBase,
        *,
        message: Optional[RuleTargetInput] = None,
        message_group_id: Optional[str] = None,
        dead_letter_queue: Optional[QueueBase] = None,
    ) -> None:
        self.queue = queue
        self.message = message
        self.message_group_id = message_group_id
        self.dead_letter_queue = dead_letter_queue

    def bind(self, rule: RuleBase, id: str) -> RuleTargetConfig:
        """
        Returns a RuleTarget that can be used to trigger this SQS queue as a
        result from an EventBridge event.
        """
        if self.message_group_id is not None and not self.queue.fifo:
            raise ValidationError("messageGroupId cannot be specified for non-FIFO queues", rule)

        # the queue policy only admits messages sent on behalf of this rule
        result = self.queue.add_to_resource_policy(PolicyStatement(
            resources=[self.queue.queue_arn],
            actions=["sqs:SendMessage", "sqs:GetQueueAttributes", "sqs:GetQueueUrl"],
            principals=[ServicePrincipal(EVENTS_SERVICE)],
            conditions=[{"test": "ArnEquals", "variable": "aws:SourceArn", "values": [rule.rule_arn]}],
        ))

        return RuleTargetConfig(
            arn=self.queue.queue_arn,
            input=self.message,
            message_group_id=self.message_group_id,
            dead_letter_arn=self.dead_letter_queue.queue_arn if self.dead_letter_queue else None,
            policy_dependable=result.policy_dependable,
        )


class SnsTopic:
    """Use an SNS topic as a target for EventBridge rules."""

    def __init__(self, topic: TopicBase, *, message: Optional[RuleTargetInput] = None) -> None:
        self.topic = topic
        self.message = message

    def bind(self, rule: RuleBase, id: str) -> RuleTargetConfig:
        """
        Returns a RuleTarget that can be used to trigger this SNS topic as a
        result from an EventBridge event.
        """
        grant = self.topic.grant_publish(ServicePrincipal(EVENTS_SERVICE))
        return RuleTargetConfig(
            arn=self.topic.topic_arn,
            input=self.message,
            policy_dependable=grant.dependables[0] if grant.dependables else None,
        )
