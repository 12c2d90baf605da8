from . import subscriptions, targets
from .input import RuleTargetInput, RuleTargetInputProperties
from .queue import (
    DeadLetterQueue,
    DeduplicationScope,
    FifoThroughputLimit,
    ImportedQueue,
    Queue,
    QueueBase,
    QueuePolicy,
)
from .rule import EventPattern, ImportedRule, Rule, RuleBase, RuleTargetConfig
from .schedule import Schedule
from .subscription import (
    FilterOrPolicyScope,
    Subscription,
    SubscriptionProtocol,
    TopicSubscriptionConfig,
)
from .topic import ImportedTopic, Topic, TopicBase, TopicPolicy
