import pytest
from cdktf import Token

from terraconstructs import UnscopedValidationError, ValidationError
from terraconstructs.aws.iam import Role, ServicePrincipal
from terraconstructs.aws.notify import Queue, Subscription, SubscriptionProtocol, Topic
from terraconstructs.aws.notify.subscriptions import EmailSubscription, SqsSubscription, UrlSubscription

SNS_PRINCIPAL = "${data.aws_service_principal.aws_svcp_default_region_sns.name}"


def _single(items):
    assert len(items) == 1
    return items[0]


# ====== TOPICS ======

def test_default_topic_uses_name_prefix(stack, synth, resources):
    Topic(stack, "MyTopic", display_name="My Topic")

    topic = _single(resources(synth(stack), "aws_sns_topic"))
    assert topic["name_prefix"] == "Grid-MyTopic"
    assert topic["display_name"] == "My Topic"
    assert "fifo_topic" not in topic


def test_fifo_topic_gets_generated_name_with_suffix(stack, synth, resources):
    Topic(stack, "MyTopic", fifo=True, content_based_deduplication=True)

    topic = _single(resources(synth(stack), "aws_sns_topic"))
    assert topic["name"].startswith("Grid-MyTopic-")
    assert topic["name"].endswith(".fifo")
    assert topic["fifo_topic"] is True
    assert topic["content_based_deduplication"] is True


def test_explicit_fifo_topic_name_gets_suffix(stack, synth, resources):
    Topic(stack, "MyTopic", topic_name="events", fifo=True, signature_version="2")

    topic = _single(resources(synth(stack), "aws_sns_topic"))
    assert topic["name"] == "events.fifo"
    assert topic["signature_version"] == 2


def test_topic_validation_errors(stack):
    with pytest.raises(ValidationError, match="Content based deduplication can only be enabled for FIFO SNS topics."):
        Topic(stack, "Dedup", content_based_deduplication=True)
    with pytest.raises(ValidationError, match='signatureVersion must be "1" or "2", received: "3"'):
        Topic(stack, "Signature", signature_version="3")
    with pytest.raises(ValidationError, match="displayName must be less than or equal to 100 characters, got 101"):
        Topic(stack, "Display", display_name="x" * 101)


def test_enforce_ssl_creates_topic_policy(stack, synth, resources):
    topic = Topic(stack, "MyTopic", enforce_ssl=True)

    assert topic.policy is not None
    template = synth(stack)
    policy = _single(resources(template, "aws_sns_topic_policy"))
    assert policy["arn"].startswith("${aws_sns_topic.MyTopic_")
    statement = _single(_single(resources(template, "aws_iam_policy_document", kind="data"))["statement"])
    assert statement["sid"] == "EnforcePublishSSL"
    assert statement["effect"] == "Deny"
    assert statement["actions"] == ["sns:Publish"]
    assert statement["condition"] == [{"test": "Bool", "variable": "aws:SecureTransport", "values": ["false"]}]


def test_grant_publish_to_role(stack):
    topic = Topic(stack, "MyTopic")
    role = Role(stack, "MyRole", assumed_by=ServicePrincipal("lambda.amazonaws.com"))

    grant = topic.grant_publish(role)

    assert grant.success
    assert grant.principal_statement.actions == ["sns:Publish"]
    assert topic.policy is None


def test_grant_publish_to_service_uses_topic_policy(stack):
    topic = Topic(stack, "MyTopic")

    grant = topic.grant_publish(ServicePrincipal("events.amazonaws.com"))

    assert grant.success
    assert grant.resource_statement is not None
    assert topic.policy is not None


def test_import_topic(stack):
    topic = Topic.from_topic_arn(stack, "Imported", "arn:aws:sns:us-east-1:111111111111:events.fifo")

    assert topic.topic_name == "events.fifo"
    assert topic.fifo
    assert topic.env_account == "111111111111"
    assert not topic.grant_publish(ServicePrincipal("events.amazonaws.com")).success


def test_import_topic_with_token_arn(stack):
    topic = Topic.from_topic_arn(stack, "Imported", stack.region)

    assert Token.is_unresolved(topic.topic_name)
    assert not topic.fifo


def test_import_standard_topic_with_content_based_deduplication_fails(stack):
    with pytest.raises(ValidationError, match="contentBasedDeduplication is only available for FIFO SNS topics"):
        Topic.from_topic_attributes(
            stack,
            "Imported",
            topic_arn="arn:aws:sns:us-east-1:111111111111:events",
            content_based_deduplication=True,
        )


# ====== SUBSCRIPTIONS ======

def test_sqs_subscription(stack, synth, resources):
    topic = Topic(stack, "MyTopic")
    queue = Queue(stack, "MyQueue")

    subscription = topic.add_subscription(SqsSubscription(queue, raw_message_delivery=True))

    assert subscription.node.path == "Default/MyQueue/MyTopic"
    template = synth(stack)
    rendered = _single(resources(template, "aws_sns_topic_subscription"))
    assert rendered["protocol"] == "sqs"
    assert rendered["endpoint"].startswith("${aws_sqs_queue.MyQueue_")
    assert rendered["topic_arn"].startswith("${aws_sns_topic.MyTopic_")
    assert rendered["raw_message_delivery"] is True
    assert any(d.startswith("aws_sqs_queue_policy.MyQueue_Policy_") for d in rendered["depends_on"])
    statement = _single(_single(resources(template, "aws_iam_policy_document", kind="data"))["statement"])
    assert statement["actions"] == ["sqs:SendMessage"]
    assert statement["principals"] == [{"type": "Service", "identifiers": [SNS_PRINCIPAL]}]
    assert statement["condition"][0]["test"] == "ArnEquals"
    assert statement["condition"][0]["variable"] == "aws:SourceArn"


def test_duplicate_subscription_is_rejected(stack):
    topic = Topic(stack, "MyTopic")
    queue = Queue(stack, "MyQueue")
    topic.add_subscription(SqsSubscription(queue))

    with pytest.raises(ValidationError, match='A subscription with id "MyTopic" already exists'):
        topic.add_subscription(SqsSubscription(queue))


def test_fifo_topic_requires_fifo_queue(stack):
    topic = Topic(stack, "MyTopic", fifo=True)
    queue = Queue(stack, "MyQueue")

    with pytest.raises(UnscopedValidationError, match="FIFO SNS topics can only be subscribed to by FIFO SQS queues"):
        topic.add_subscription(SqsSubscription(queue))


def test_filter_policy_and_dead_letter_queue(stack, synth, resources):
    topic = Topic(stack, "MyTopic")
    dlq = Queue(stack, "DeadLetter")

    topic.add_subscription(EmailSubscription(
        "ops@example.com",
        filter_policy={"color": ["red", "green"]},
        dead_letter_queue=dlq,
    ))

    template = synth(stack)
    rendered = _single(resources(template, "aws_sns_topic_subscription"))
    assert rendered["protocol"] == "email"
    assert rendered["endpoint"] == "ops@example.com"
    assert rendered["filter_policy"] == '{"color":["red","green"]}'
    assert rendered["redrive_policy"].startswith('{"deadLetterTargetArn":"${aws_sqs_queue.DeadLetter_')
    _single(resources(template, "aws_sqs_queue_policy"))


def test_email_json_subscription(stack, synth, resources):
    topic = Topic(stack, "MyTopic")

    topic.add_subscription(EmailSubscription("ops@example.com", json=True))

    assert _single(resources(synth(stack), "aws_sns_topic_subscription"))["protocol"] == "email-json"


def test_url_subscription_protocols(stack, synth, resources):
    topic = Topic(stack, "MyTopic")

    topic.add_subscription(UrlSubscription("https://example.com/hook"))
    topic.add_subscription(UrlSubscription("http://example.com/hook"))

    protocols = sorted(s["protocol"] for s in resources(synth(stack), "aws_sns_topic_subscription"))
    assert protocols == ["http", "https"]


def test_url_subscription_validation(stack):
    with pytest.raises(UnscopedValidationError, match="URL must start with either http:// or https://"):
        UrlSubscription("ftp://example.com")
    with pytest.raises(UnscopedValidationError, match="Must provide protocol if url is unresolved"):
        UrlSubscription(stack.region)


def test_raw_message_delivery_protocols(stack):
    topic = Topic(stack, "MyTopic")

    with pytest.raises(ValidationError, match="Raw message delivery can only be enabled for HTTP, HTTPS, SQS, and Firehose"):
        Subscription(stack, "Sub", topic=topic, protocol=SubscriptionProtocol.EMAIL,
                     endpoint="ops@example.com", raw_message_delivery=True)


def test_filter_policy_limits(stack):
    topic = Topic(stack, "MyTopic")

    with pytest.raises(ValidationError, match="maximum of 5 attribute names"):
        Subscription(stack, "TooManyAttributes", topic=topic, protocol=SubscriptionProtocol.EMAIL,
                     endpoint="ops@example.com", filter_policy={str(i): ["a"] for i in range(6)})
    with pytest.raises(ValidationError, match=r"The total combination of values \(160\) must not exceed 150"):
        Subscription(stack, "TooManyValues", topic=topic, protocol=SubscriptionProtocol.EMAIL,
                     endpoint="ops@example.com", filter_policy={"a": list(range(10)), "b": list(range(16))})


def test_firehose_requires_role(stack):
    topic = Topic(stack, "MyTopic")

    with pytest.raises(ValidationError, match="Subscription role arn is required"):
        Subscription(stack, "Firehose", topic=topic, protocol=SubscriptionProtocol.FIREHOSE,
                     endpoint="arn:aws:firehose:us-east-1:111111111111:deliverystream/stream")
