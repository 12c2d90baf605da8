"""
Amazon SNS topics and topic policies.
"""
import logging
from typing import Any, List, Optional, Sequence

import jsii
from cdktf import Token
from cdktf_cdktf_provider_aws.sns_topic import SnsTopic
from cdktf_cdktf_provider_aws.sns_topic_policy import SnsTopicPolicy
from constructs import Construct, IValidation

from ...errors import ValidationError
from ...private.unique_id import make_unique_id
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
    StarPrincipal,
)
from .subscription import Subscription, TopicSubscriptionConfig

logger = logging.getLogger(__name__)

FIFO_SUFFIX = ".fifo"
MAX_DISPLAY_NAME_LENGTH = 100
SIGNATURE_VERSIONS = ("1", "2")


def _secure_transport_condition() -> dict:
    return {"test": "Bool", "variable": "aws:SecureTransport", "values": ["false"]}


@jsii.implements(IValidation)
class _TopicPolicyValidation:
    def __init__(self, policy: "TopicPolicy") -> None:
        self._policy = policy

    def validate(self) -> List[str]:
        return self._policy.document.validate_for_resource_policy()


class TopicPolicy(AwsConstructBase):
    """The policy for an SNS Topic."""

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        topics: Sequence["TopicBase"],
        policy_document: Optional[PolicyDocument] = None,
        enforce_ssl: bool = False,
    ) -> None:
        super().__init__(scope, id)
        self.document = policy_document or PolicyDocument(self, "PolicyDocument", assign_sids=True)

        if enforce_ssl:
            self.document.add_statements(PolicyStatement(
                sid="AllowPublishThroughSSLOnly",
                effect=Effect.DENY,
                actions=["sns:Publish"],
                resources=[topic.topic_arn for topic in topics],
                conditions=[_secure_transport_condition()],
                principals=[StarPrincipal()],
            ))

        for i, topic in enumerate(topics):
            SnsTopicPolicy(
                self,
                "Resource" if i == 0 else f"Resource{i}",
                arn=topic.topic_arn,
                policy=self.document.json,
            )
        self.node.add_validation(_TopicPolicyValidation(self))


class TopicBase(AwsConstructBase):
    """Either a new or imported Topic."""

    topic_arn: str
    topic_name: str
    fifo: bool
    content_based_deduplication: bool

    def __init__(self, scope: Construct, id: str) -> None:
        super().__init__(scope, id)
        self._policy: Optional[TopicPolicy] = None
        self._auto_create_policy = True
        self._enforce_ssl = False

    @property
    def policy(self) -> Optional[TopicPolicy]:
        return self._policy

    def add_subscription(self, subscription: Any) -> Subscription:
        """Subscribe some endpoint to this topic."""
        config: TopicSubscriptionConfig = subscription.bind(self)

        scope = config.subscriber_scope or self
        subscriber_id = config.subscriber_id
        # a topic may subscribe the same endpoint under different regions
        if config.region and not Token.is_unresolved(config.region):
            subscriber_id = f"{subscriber_id}{config.region}"

        if scope.node.try_find_child(subscriber_id) is not None:
            raise ValidationError(
                f"A subscription with id \"{subscriber_id}\" already exists under the scope {scope.node.path}",
                self,
            )

        result = Subscription(
            scope,
            subscriber_id,
            topic=self,
            protocol=config.protocol,
            endpoint=config.endpoint,
            raw_message_delivery=config.raw_message_delivery,
            filter_policy=config.filter_policy,
            filter_policy_scope=config.filter_policy_scope,
            region=config.region,
            dead_letter_queue=config.dead_letter_queue,
            subscription_role_arn=config.subscription_role_arn,
            delivery_policy=config.delivery_policy,
        )
        if config.subscription_dependency is not None:
            result.node.add_dependency(config.subscription_dependency)
        logger.debug("Subscribed %s endpoint to topic %s", config.protocol, self.node.path)
        return result

    def add_to_resource_policy(self, statement: PolicyStatement) -> AddToResourcePolicyResult:
        """
        Adds a statement to the IAM resource policy associated with this topic.

        If this topic was created in this stack, a topic policy will be
        automatically created upon the first call to ``add_to_resource_policy``.
        If the topic is imported, then this is a no-op.
        """
        self._create_topic_policy()
        if self._policy is not None:
            self._policy.document.add_statements(statement)
            return AddToResourcePolicyResult(statement_added=True, policy_dependable=self._policy)
        return AddToResourcePolicyResult(statement_added=False)

    def _create_topic_policy(self) -> None:
        if self._policy is None and self._auto_create_policy:
            self._policy = TopicPolicy(self, "Policy", topics=[self])
            if self._enforce_ssl:
                self._policy.document.add_statements(self._ssl_policy_statement())

    def _ssl_policy_statement(self) -> PolicyStatement:
        """Statement denying publishing over plain HTTP."""
        return PolicyStatement(
            sid="EnforcePublishSSL",
            effect=Effect.DENY,
            actions=["sns:Publish"],
            resources=[self.topic_arn],
            conditions=[_secure_transport_condition()],
            principals=[AnyPrincipal()],
        )

    def grant_publish(self, grantee: PrincipalBase) -> Grant:
        """Grant topic publishing permissions to the given identity."""
        return Grant.add_to_principal_or_resource(
            grantee=grantee,
            actions=["sns:Publish"],
            resource_arns=[self.topic_arn],
            resource=self,
        )

    def grant_subscribe(self, grantee: PrincipalBase) -> Grant:
        """Grant topic subscribing permissions to the given identity."""
        return Grant.add_to_principal_or_resource(
            grantee=grantee,
            actions=["sns:Subscribe"],
            resource_arns=[self.topic_arn],
            resource=self,
        )


class Topic(TopicBase):
    """A new SNS topic."""

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        topic_name: Optional[str] = None,
        display_name: Optional[str] = None,
        fifo: bool = False,
        content_based_deduplication: bool = False,
        signature_version: Optional[str] = None,
        master_key_arn: Optional[str] = None,
        tracing_config: Optional[str] = None,
        enforce_ssl: bool = False,
    ) -> None:
        super().__init__(scope, id)
        self._enforce_ssl = enforce_ssl

        if content_based_deduplication and not fifo:
            raise ValidationError("Content based deduplication can only be enabled for FIFO SNS topics.", self)
        if signature_version is not None and signature_version not in SIGNATURE_VERSIONS:
            raise ValidationError(
                f'signatureVersion must be "1" or "2", received: "{signature_version}"', self
            )
        if display_name is not None and not Token.is_unresolved(display_name) and len(display_name) > MAX_DISPLAY_NAME_LENGTH:
            raise ValidationError(
                f"displayName must be less than or equal to {MAX_DISPLAY_NAME_LENGTH} characters, got {len(display_name)}",
                self,
            )

        name_prefix = None
        if topic_name is not None:
            if fifo and not Token.is_unresolved(topic_name) and not topic_name.endswith(FIFO_SUFFIX):
                topic_name = topic_name + FIFO_SUFFIX
        elif fifo:
            topic_name = self.physical_name(256 - len(FIFO_SUFFIX)) + FIFO_SUFFIX
        else:
            name_prefix = self.physical_name_prefix()

        self.resource = SnsTopic(
            self,
            "Resource",
            name=topic_name,
            name_prefix=name_prefix,
            display_name=display_name,
            fifo_topic=fifo or None,
            content_based_deduplication=content_based_deduplication or None,
            signature_version=int(signature_version) if signature_version else None,
            kms_master_key_id=master_key_arn,
            tracing_config=tracing_config,
        )

        self.topic_arn = self.resource.arn
        self.topic_name = self.resource.name
        self.fifo = fifo
        self.content_based_deduplication = content_based_deduplication
        self.master_key_arn = master_key_arn

        if enforce_ssl:
            self._create_topic_policy()

    @staticmethod
    def from_topic_arn(scope: Construct, id: str, topic_arn: str) -> "ImportedTopic":
        """Import an existing SNS topic provided an ARN."""
        return Topic.from_topic_attributes(scope, id, topic_arn=topic_arn)

    @staticmethod
    def from_topic_attributes(
        scope: Construct,
        id: str,
        *,
        topic_arn: str,
        content_based_deduplication: bool = False,
    ) -> "ImportedTopic":
        """Import an existing SNS topic provided a topic attributes."""
        topic_name = Arn.split(topic_arn, ArnFormat.NO_RESOURCE_NAME).resource
        fifo = not Token.is_unresolved(topic_name) and topic_name.endswith(FIFO_SUFFIX)
        if content_based_deduplication and not fifo:
            raise ValidationError(
                "Cannot import topic; contentBasedDeduplication is only available for FIFO SNS topics.",
                scope,
            )
        return ImportedTopic(scope, id, topic_arn, topic_name, fifo, content_based_deduplication)


class ImportedTopic(TopicBase):
    """An SNS topic defined outside of this stack."""

    def __init__(
        self,
        scope: Construct,
        id: str,
        topic_arn: str,
        topic_name: str,
        fifo: bool,
        content_based_deduplication: bool,
    ) -> None:
        super().__init__(scope, id)
        self._auto_create_policy = False
        self._account = Arn.split(topic_arn, ArnFormat.NO_RESOURCE_NAME).account
        self.topic_arn = topic_arn
        self.topic_name = topic_name
        self.fifo = fifo
        self.content_based_deduplication = content_based_deduplication

    @property
    def env_account(self) -> str:
        return self._account


def topic_subscriber_id(topic: TopicBase) -> str:
    """Subscriber construct id derived from the topic's path, unique within a stack."""
    return make_unique_id(topic._path_below_stack())
