import pytest

from terraconstructs import ValidationError
from terraconstructs.aws.iam import Role, ServicePrincipal
from terraconstructs.aws.storage import (
    Attribute,
    AttributeType,
    BillingMode,
    GlobalSecondaryIndexProps,
    LocalSecondaryIndexProps,
    ProjectionType,
    StreamViewType,
    Table,
    TableClass,
)

PARTITION = "${data.aws_partition.Partitition.partition}"
REGION = "${data.aws_region.Region.name}"
ACCOUNT = "${data.aws_caller_identity.CallerIdentity.account_id}"

HASH_KEY = Attribute("hashKey", AttributeType.STRING)
RANGE_KEY = Attribute("sortKey", AttributeType.NUMBER)


def _single(items):
    assert len(items) == 1
    return items[0]


@pytest.fixture
def role(stack):
    return Role(stack, "Role", assumed_by=ServicePrincipal("lambda.amazonaws.com"))


# ====== TABLES ======

def test_hash_key_only(stack, synth, resources):
    Table(stack, "MyTable", partition_key=HASH_KEY)

    rendered = _single(resources(synth(stack), "aws_dynamodb_table"))
    assert rendered["hash_key"] == "hashKey"
    assert rendered["attribute"] == [{"name": "hashKey", "type": "S"}]
    assert rendered["read_capacity"] == 5
    assert rendered["write_capacity"] == 5
    assert rendered["name"].startswith("Grid-")
    assert "range_key" not in rendered
    assert "billing_mode" not in rendered
    assert "stream_enabled" not in rendered


def test_hash_and_range_key(stack, synth, resources):
    Table(
        stack,
        "MyTable",
        table_name="my-table",
        partition_key=HASH_KEY,
        sort_key=RANGE_KEY,
        read_capacity=42,
        write_capacity=1337,
        table_class=TableClass.STANDARD_INFREQUENT_ACCESS,
        deletion_protection=True,
    )

    rendered = _single(resources(synth(stack), "aws_dynamodb_table"))
    assert rendered["name"] == "my-table"
    assert rendered["range_key"] == "sortKey"
    assert rendered["attribute"] == [{"name": "hashKey", "type": "S"}, {"name": "sortKey", "type": "N"}]
    assert rendered["read_capacity"] == 42
    assert rendered["write_capacity"] == 1337
    assert rendered["table_class"] == "STANDARD_INFREQUENT_ACCESS"
    assert rendered["deletion_protection_enabled"] is True


def test_stream_ttl_and_point_in_time_recovery(stack, synth, resources, resolve):
    table = Table(
        stack,
        "MyTable",
        partition_key=HASH_KEY,
        stream=StreamViewType.NEW_AND_OLD_IMAGES,
        time_to_live_attribute="expires",
        point_in_time_recovery=True,
        encryption_key_arn="arn:aws:kms:us-east-1:123456789012:key/abc",
    )

    rendered = _single(resources(synth(stack), "aws_dynamodb_table"))
    assert rendered["stream_enabled"] is True
    assert rendered["stream_view_type"] == "NEW_AND_OLD_IMAGES"
    assert rendered["ttl"] == {"attribute_name": "expires", "enabled": True}
    assert rendered["point_in_time_recovery"] == {"enabled": True}
    assert rendered["server_side_encryption"] == {
        "enabled": True,
        "kms_key_arn": "arn:aws:kms:us-east-1:123456789012:key/abc",
    }
    assert resolve(table.table_stream_arn).endswith(".stream_arn}")


def test_pay_per_request(stack, synth, resources):
    Table(stack, "MyTable", partition_key=HASH_KEY, billing_mode=BillingMode.PAY_PER_REQUEST)

    rendered = _single(resources(synth(stack), "aws_dynamodb_table"))
    assert rendered["billing_mode"] == "PAY_PER_REQUEST"
    assert "read_capacity" not in rendered
    assert "write_capacity" not in rendered


def test_pay_per_request_rejects_capacity(stack):
    with pytest.raises(ValidationError, match="you cannot provision read and write capacity"):
        Table(
            stack,
            "MyTable",
            partition_key=HASH_KEY,
            billing_mode=BillingMode.PAY_PER_REQUEST,
            read_capacity=1,
        )

    table = Table(stack, "Other", partition_key=HASH_KEY, billing_mode=BillingMode.PAY_PER_REQUEST)
    with pytest.raises(ValidationError, match="you cannot provision read and write capacity"):
        table.add_global_secondary_index(GlobalSecondaryIndexProps(
            index_name="gsi",
            partition_key=Attribute("gsiKey", AttributeType.STRING),
            write_capacity=2,
        ))


def test_conflicting_attribute_types(stack):
    table = Table(stack, "MyTable", partition_key=HASH_KEY)

    with pytest.raises(ValidationError, match="Unable to specify hashKey as N because it was already defined as S"):
        table.add_global_secondary_index(GlobalSecondaryIndexProps(
            index_name="gsi",
            partition_key=Attribute("hashKey", AttributeType.NUMBER),
        ))


# ====== SECONDARY INDEXES ======

def test_global_secondary_index(stack, synth, resources):
    table = Table(stack, "MyTable", partition_key=HASH_KEY, sort_key=RANGE_KEY)

    table.add_global_secondary_index(GlobalSecondaryIndexProps(
        index_name="MyGSI",
        partition_key=Attribute("gsiHashKey", AttributeType.STRING),
        sort_key=RANGE_KEY,
        projection_type=ProjectionType.INCLUDE,
        non_key_attributes=["gsiNonKey0", "gsiNonKey1"],
        read_capacity=10,
    ))

    rendered = _single(resources(synth(stack), "aws_dynamodb_table"))
    assert rendered["attribute"] == [
        {"name": "hashKey", "type": "S"},
        {"name": "sortKey", "type": "N"},
        {"name": "gsiHashKey", "type": "S"},
    ]
    assert rendered["global_secondary_index"] == [{
        "name": "MyGSI",
        "hash_key": "gsiHashKey",
        "range_key": "sortKey",
        "projection_type": "INCLUDE",
        "non_key_attributes": ["gsiNonKey0", "gsiNonKey1"],
        "read_capacity": 10,
        "write_capacity": 5,
    }]


def test_local_secondary_index(stack, synth, resources):
    table = Table(stack, "MyTable", partition_key=HASH_KEY, sort_key=RANGE_KEY)

    table.add_local_secondary_index(LocalSecondaryIndexProps(
        index_name="MyLSI",
        sort_key=Attribute("lsiSortKey", AttributeType.STRING),
        projection_type=ProjectionType.KEYS_ONLY,
    ))

    rendered = _single(resources(synth(stack), "aws_dynamodb_table"))
    assert rendered["local_secondary_index"] == [{
        "name": "MyLSI",
        "range_key": "lsiSortKey",
        "projection_type": "KEYS_ONLY",
    }]
    assert {"name": "lsiSortKey", "type": "S"} in rendered["attribute"]
    assert table.node.validate() == []


@pytest.mark.parametrize("projection_type, non_key_attributes, message", [
    (ProjectionType.INCLUDE, [], "Non-key attributes should be specified when using INCLUDE projection type"),
    (ProjectionType.ALL, ["a"], "Non-key attributes should not be specified when not using INCLUDE projection type"),
])
def test_projection_validation(stack, projection_type, non_key_attributes, message):
    table = Table(stack, "MyTable", partition_key=HASH_KEY)

    with pytest.raises(ValidationError, match=message):
        table.add_global_secondary_index(GlobalSecondaryIndexProps(
            index_name="gsi",
            partition_key=Attribute("gsiKey", AttributeType.STRING),
            projection_type=projection_type,
            non_key_attributes=non_key_attributes,
        ))


def test_too_many_non_key_attributes(stack):
    table = Table(stack, "MyTable", partition_key=HASH_KEY)

    with pytest.raises(ValidationError, match="A maximum number of nonKeyAttributes across all of secondary indexes is 100"):
        table.add_global_secondary_index(GlobalSecondaryIndexProps(
            index_name="gsi",
            partition_key=Attribute("gsiKey", AttributeType.STRING),
            projection_type=ProjectionType.INCLUDE,
            non_key_attributes=[f"attr{i}" for i in range(101)],
        ))


def test_sixth_local_secondary_index_is_rejected(stack):
    table = Table(stack, "MyTable", partition_key=HASH_KEY, sort_key=RANGE_KEY)
    for i in range(5):
        table.add_local_secondary_index(LocalSecondaryIndexProps(
            index_name=f"lsi{i}",
            sort_key=Attribute(f"lsiKey{i}", AttributeType.STRING),
        ))

    with pytest.raises(ValidationError, match="A maximum number of local secondary index per table is 5"):
        table.add_local_secondary_index(LocalSecondaryIndexProps(
            index_name="lsi5",
            sort_key=Attribute("lsiKey5", AttributeType.STRING),
        ))


def test_duplicate_index_name_is_rejected(stack):
    table = Table(stack, "MyTable", partition_key=HASH_KEY, sort_key=RANGE_KEY)
    table.add_global_secondary_index(GlobalSecondaryIndexProps(
        index_name="index",
        partition_key=Attribute("gsiKey", AttributeType.STRING),
    ))

    with pytest.raises(ValidationError, match="A duplicate index name, index, is not allowed"):
        table.add_local_secondary_index(LocalSecondaryIndexProps(
            index_name="index",
            sort_key=Attribute("lsiKey", AttributeType.STRING),
        ))


def test_local_secondary_index_requires_sort_key(stack):
    table = Table(stack, "MyTable", partition_key=HASH_KEY)
    table.add_local_secondary_index(LocalSecondaryIndexProps(
        index_name="lsi",
        sort_key=Attribute("lsiKey", AttributeType.STRING),
    ))

    assert table.node.validate() == ["A sort key of the table must be specified to add local secondary indexes"]


# ====== GRANTS ======

def test_grant_read_data(stack, role, resolve):
    table = Table(stack, "MyTable", partition_key=HASH_KEY)

    grant = table.grant_read_data(role)

    assert grant.principal_statement.actions == [
        "dynamodb:BatchGetItem",
        "dynamodb:Query",
        "dynamodb:GetItem",
        "dynamodb:Scan",
        "dynamodb:ConditionCheckItem",
        "dynamodb:DescribeTable",
    ]
    assert resolve(grant.principal_statement.resources) == [resolve(table.table_arn)]


def test_grant_write_data_includes_indexes(stack, role, resolve):
    table = Table(stack, "MyTable", partition_key=HASH_KEY)
    table.add_global_secondary_index(GlobalSecondaryIndexProps(
        index_name="gsi",
        partition_key=Attribute("gsiKey", AttributeType.STRING),
    ))

    grant = table.grant_write_data(role)

    assert grant.principal_statement.actions == [
        "dynamodb:BatchWriteItem",
        "dynamodb:PutItem",
        "dynamodb:UpdateItem",
        "dynamodb:DeleteItem",
        "dynamodb:DescribeTable",
    ]
    arn = resolve(table.table_arn)
    assert resolve(grant.principal_statement.resources) == [arn, f"{arn}/index/*"]


def test_grant_read_write_and_full_access(stack, role):
    table = Table(stack, "MyTable", partition_key=HASH_KEY)

    read_write = table.grant_read_write_data(role)
    full = table.grant_full_access(role)

    assert read_write.principal_statement.actions == [
        "dynamodb:BatchGetItem",
        "dynamodb:GetRecords",
        "dynamodb:GetShardIterator",
        "dynamodb:Query",
        "dynamodb:GetItem",
        "dynamodb:Scan",
        "dynamodb:ConditionCheckItem",
        "dynamodb:BatchWriteItem",
        "dynamodb:PutItem",
        "dynamodb:UpdateItem",
        "dynamodb:DeleteItem",
        "dynamodb:DescribeTable",
    ]
    assert full.principal_statement.actions == ["dynamodb:*"]


def test_grant_stream_read(stack, role, resolve):
    table = Table(stack, "MyTable", partition_key=HASH_KEY, stream=StreamViewType.NEW_IMAGE)

    grant = table.grant_stream_read(role)

    assert grant.success
    list_streams, stream_read = grant.grants
    assert list_streams.principal_statement.actions == ["dynamodb:ListStreams"]
    assert stream_read.principal_statement.actions == [
        "dynamodb:DescribeStream",
        "dynamodb:GetRecords",
        "dynamodb:GetShardIterator",
    ]
    assert resolve(stream_read.principal_statement.resources) == [resolve(table.table_stream_arn)]


def test_stream_grants_require_stream(stack, role):
    table = Table(stack, "MyTable", partition_key=HASH_KEY)

    with pytest.raises(ValidationError, match="DynamoDB Streams must be enabled on the table Default/MyTable"):
        table.grant_table_list_streams(role)
    with pytest.raises(ValidationError, match="DynamoDB Streams must be enabled"):
        table.grant_stream_read(role)


def test_grant_list_streams(role):
    grant = Table.grant_list_streams(role)

    assert grant.principal_statement.actions == ["dynamodb:ListStreams"]
    assert grant.principal_statement.resources == ["*"]


# ====== IMPORTS ======

def test_import_from_name(stack, resolve):
    imported = Table.from_table_name(stack, "Imported", "my-table")

    assert imported.table_name == "my-table"
    assert resolve(imported.table_arn) == f"arn:{PARTITION}:dynamodb:{REGION}:{ACCOUNT}:table/my-table"


def test_import_from_arn(stack, role):
    imported = Table.from_table_arn(stack, "Imported", "arn:aws:dynamodb:us-east-1:123456789012:table/my-table")

    assert imported.table_name == "my-table"
    assert imported.env_account == "123456789012"
    grant = imported.grant_read_data(role)
    assert grant.principal_statement.resources == ["arn:aws:dynamodb:us-east-1:123456789012:table/my-table"]


def test_import_from_invalid_arn(stack):
    with pytest.raises(ValidationError, match="ARN for DynamoDB table must be in the form"):
        Table.from_table_arn(stack, "Imported", "arn:aws:dynamodb:us-east-1:123456789012:stream/my-table")
