"""
Amazon DynamoDB tables.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set

import jsii
from cdktf import Token
from cdktf_cdktf_provider_aws.dynamodb_table import (
    DynamodbTable,
    DynamodbTableAttribute,
    DynamodbTableGlobalSecondaryIndex,
    DynamodbTableLocalSecondaryIndex,
    DynamodbTablePointInTimeRecovery,
    DynamodbTableServerSideEncryption,
    DynamodbTableTtl,
)
from constructs import Construct, IValidation

from ...errors import ValidationError
from ..arn import Arn, ArnComponents, ArnFormat
from ..aws_construct import AwsConstructBase
from ..aws_stack import AwsStack
from ..iam import Grant, PrincipalBase

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 5
MAX_LOCAL_SECONDARY_INDEX_COUNT = 5
MAX_NON_KEY_ATTRIBUTES = 100

READ_DATA_ACTIONS = [
    "dynamodb:BatchGetItem",
    "dynamodb:Query",
    "dynamodb:GetItem",
    "dynamodb:Scan",
    "dynamodb:ConditionCheckItem",
]
WRITE_DATA_ACTIONS = [
    "dynamodb:BatchWriteItem",
    "dynamodb:PutItem",
    "dynamodb:UpdateItem",
    "dynamodb:DeleteItem",
]
# the read actions of a read/write grant include the stream record reads
READ_WRITE_DATA_ACTIONS = [
    "dynamodb:BatchGetItem",
    "dynamodb:GetRecords",
    "dynamodb:GetShardIterator",
    *READ_DATA_ACTIONS[1:],
    *WRITE_DATA_ACTIONS,
]
DESCRIBE_TABLE = "dynamodb:DescribeTable"
STREAM_READ_ACTIONS = ["dynamodb:DescribeStream", "dynamodb:GetRecords", "dynamodb:GetShardIterator"]
LIST_STREAMS = "dynamodb:ListStreams"


class AttributeType(str, Enum):
    BINARY = "B"
    NUMBER = "N"
    STRING = "S"


class BillingMode(str, Enum):
    PAY_PER_REQUEST = "PAY_PER_REQUEST"
    PROVISIONED = "PROVISIONED"


class ProjectionType(str, Enum):
    KEYS_ONLY = "KEYS_ONLY"
    INCLUDE = "INCLUDE"
    ALL = "ALL"


class StreamViewType(str, Enum):
    """When an item in the table is modified, StreamViewType determines what information is written to the stream."""

    NEW_IMAGE = "NEW_IMAGE"
    OLD_IMAGE = "OLD_IMAGE"
    NEW_AND_OLD_IMAGES = "NEW_AND_OLD_IMAGES"
    KEYS_ONLY = "KEYS_ONLY"


class TableClass(str, Enum):
    STANDARD = "STANDARD"
    STANDARD_INFREQUENT_ACCESS = "STANDARD_INFREQUENT_ACCESS"


@dataclass
class Attribute:
    """Represents an attribute for describing the key schema for the table and indexes."""

    name: str
    type: AttributeType


@dataclass
class GlobalSecondaryIndexProps:
    index_name: str
    partition_key: Attribute
    sort_key: Optional[Attribute] = None
    projection_type: ProjectionType = ProjectionType.ALL
    non_key_attributes: List[str] = field(default_factory=list)
    read_capacity: Optional[int] = None
    write_capacity: Optional[int] = None


@dataclass
class LocalSecondaryIndexProps:
    index_name: str
    sort_key: Attribute
    projection_type: ProjectionType = ProjectionType.ALL
    non_key_attributes: List[str] = field(default_factory=list)


@jsii.implements(IValidation)
class _TableValidation:
    def __init__(self, table: "Table") -> None:
        self._table = table

    def validate(self) -> List[str]:
        return self._table.validate_table()


class TableBase(AwsConstructBase):
    """A new or imported DynamoDB table."""

    table_arn: str
    table_name: str
    table_stream_arn: Optional[str] = None

    def _has_index(self) -> bool:
        return False

    def _resource_arns(self) -> List[str]:
        arns = [self.table_arn]
        if self._has_index():
            arns.append(f"{self.table_arn}/index/*")
        return arns

    def grant(self, grantee: PrincipalBase, *actions: str) -> Grant:
        """
        Adds an IAM policy statement associated with this table to an IAM
        principal's policy.

        If ``encryption_key`` is present, appropriate grants to the key
        needs to be added separately.
        """
        return Grant.add_to_principal(grantee=grantee, actions=actions, resource_arns=self._resource_arns())

    def grant_read_data(self, grantee: PrincipalBase) -> Grant:
        """Permits an IAM principal all data read operations from this table."""
        return self.grant(grantee, *READ_DATA_ACTIONS, DESCRIBE_TABLE)

    def grant_write_data(self, grantee: PrincipalBase) -> Grant:
        """Permits an IAM principal all data write operations to this table."""
        return self.grant(grantee, *WRITE_DATA_ACTIONS, DESCRIBE_TABLE)

    def grant_read_write_data(self, grantee: PrincipalBase) -> Grant:
        """Permits an IAM principal to all data read/write operations to this table."""
        return self.grant(grantee, *READ_WRITE_DATA_ACTIONS, DESCRIBE_TABLE)

    def grant_full_access(self, grantee: PrincipalBase) -> Grant:
        """Permits all DynamoDB operations ("dynamodb:*") to an IAM principal."""
        return self.grant(grantee, "dynamodb:*")

    def grant_table_list_streams(self, grantee: PrincipalBase) -> Grant:
        """Permits an IAM Principal to list streams attached to this table."""
        if self.table_stream_arn is None:
            raise ValidationError(f"DynamoDB Streams must be enabled on the table {self.node.path}", self)
        return Grant.add_to_principal(grantee=grantee, actions=[LIST_STREAMS], resource_arns=["*"])

    def grant_stream_read(self, grantee: PrincipalBase) -> Grant:
        """
        Permits an IAM principal all stream data read operations for this
        table's stream: DescribeStream, GetRecords, GetShardIterator,
        ListStreams.
        """
        list_streams = self.grant_table_list_streams(grantee)
        return list_streams.combine(Grant.add_to_principal(
            grantee=grantee,
            actions=STREAM_READ_ACTIONS,
            resource_arns=[self.table_stream_arn],
        ))


class Table(TableBase):
    """Provides a DynamoDB table."""

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        partition_key: Attribute,
        sort_key: Optional[Attribute] = None,
        table_name: Optional[str] = None,
        billing_mode: Optional[BillingMode] = None,
        read_capacity: Optional[int] = None,
        write_capacity: Optional[int] = None,
        stream: Optional[StreamViewType] = None,
        time_to_live_attribute: Optional[str] = None,
        point_in_time_recovery: Optional[bool] = None,
        deletion_protection: Optional[bool] = None,
        table_class: Optional[TableClass] = None,
        encryption_key_arn: Optional[str] = None,
    ) -> None:
        super().__init__(scope, id)

        self.billing_mode = billing_mode or BillingMode.PROVISIONED
        if self.billing_mode == BillingMode.PAY_PER_REQUEST:
            if read_capacity is not None or write_capacity is not None:
                raise ValidationError(
                    "you cannot provision read and write capacity for a table with PAY_PER_REQUEST billing mode",
                    self,
                )
        else:
            read_capacity = read_capacity or DEFAULT_CAPACITY
            write_capacity = write_capacity or DEFAULT_CAPACITY

        self.partition_key = partition_key
        self.sort_key = sort_key
        self._attributes: Dict[str, AttributeType] = {}
        self._global_secondary_indexes: List[DynamodbTableGlobalSecondaryIndex] = []
        self._local_secondary_indexes: List[DynamodbTableLocalSecondaryIndex] = []
        self._index_names: Set[str] = set()
        self._non_key_attributes: Set[str] = set()

        self._register_attribute(partition_key)
        if sort_key is not None:
            self._register_attribute(sort_key)

        self.resource = DynamodbTable(
            self,
            "Resource",
            name=table_name or self.physical_name(255),
            billing_mode=billing_mode.value if billing_mode else None,
            hash_key=partition_key.name,
            range_key=sort_key.name if sort_key else None,
            attribute=self._attribute_definitions(),
            read_capacity=read_capacity,
            write_capacity=write_capacity,
            stream_enabled=True if stream else None,
            stream_view_type=stream.value if stream else None,
            ttl=DynamodbTableTtl(attribute_name=time_to_live_attribute, enabled=True)
            if time_to_live_attribute else None,
            point_in_time_recovery=DynamodbTablePointInTimeRecovery(enabled=True)
            if point_in_time_recovery else None,
            server_side_encryption=DynamodbTableServerSideEncryption(enabled=True, kms_key_arn=encryption_key_arn)
            if encryption_key_arn else None,
            deletion_protection_enabled=deletion_protection,
            table_class=table_class.value if table_class else None,
        )
        self.table_arn = self.resource.arn
        self.table_name = self.resource.name
        self.table_stream_arn = self.resource.stream_arn if stream else None

        self.node.add_validation(_TableValidation(self))

    @staticmethod
    def from_table_name(scope: Construct, id: str, table_name: str) -> "ImportedTable":
        """Creates a Table construct that represents an external table via table name."""
        stack = AwsStack.of_aws_construct(scope)
        table_arn = stack.format_arn(ArnComponents(
            service="dynamodb",
            resource="table",
            resource_name=table_name,
            arn_format=ArnFormat.SLASH_RESOURCE_NAME,
        ))
        return ImportedTable(scope, id, table_name=table_name, table_arn=table_arn)

    @staticmethod
    def from_table_arn(scope: Construct, id: str, table_arn: str) -> "ImportedTable":
        """Creates a Table construct that represents an external table via table arn."""
        parsed = Arn.split(table_arn, ArnFormat.SLASH_RESOURCE_NAME)
        if not Token.is_unresolved(table_arn) and (parsed.resource != "table" or not parsed.resource_name):
            raise ValidationError(
                "ARN for DynamoDB table must be in the form: "
                "arn:<partition>:dynamodb:<region>:<account>:table/<table-name>",
                scope,
            )
        return ImportedTable(
            scope, id, table_name=parsed.resource_name, table_arn=table_arn, account=parsed.account
        )

    @staticmethod
    def grant_list_streams(grantee: PrincipalBase) -> Grant:
        """Permits an IAM Principal to list all DynamoDB Streams."""
        return Grant.add_to_principal(grantee=grantee, actions=[LIST_STREAMS], resource_arns=["*"])

    def add_global_secondary_index(self, props: GlobalSecondaryIndexProps) -> None:
        """Add a global secondary index of table."""
        self._validate_projection(props.projection_type, props.non_key_attributes)
        self._validate_index_name(props.index_name)

        read_capacity, write_capacity = props.read_capacity, props.write_capacity
        if self.billing_mode == BillingMode.PAY_PER_REQUEST:
            if read_capacity is not None or write_capacity is not None:
                raise ValidationError(
                    "you cannot provision read and write capacity for a table with PAY_PER_REQUEST billing mode",
                    self,
                )
        else:
            read_capacity = read_capacity or DEFAULT_CAPACITY
            write_capacity = write_capacity or DEFAULT_CAPACITY

        self._register_attribute(props.partition_key)
        if props.sort_key is not None:
            self._register_attribute(props.sort_key)

        self._global_secondary_indexes.append(DynamodbTableGlobalSecondaryIndex(
            name=props.index_name,
            hash_key=props.partition_key.name,
            range_key=props.sort_key.name if props.sort_key else None,
            projection_type=props.projection_type.value,
            non_key_attributes=props.non_key_attributes or None,
            read_capacity=read_capacity,
            write_capacity=write_capacity,
        ))
        self._sync_indexes()

    def add_local_secondary_index(self, props: LocalSecondaryIndexProps) -> None:
        """Add a local secondary index of table."""
        if len(self._local_secondary_indexes) >= MAX_LOCAL_SECONDARY_INDEX_COUNT:
            raise ValidationError(
                f"A maximum number of local secondary index per table is {MAX_LOCAL_SECONDARY_INDEX_COUNT}",
                self,
            )
        self._validate_projection(props.projection_type, props.non_key_attributes)
        self._validate_index_name(props.index_name)
        self._register_attribute(props.sort_key)

        self._local_secondary_indexes.append(DynamodbTableLocalSecondaryIndex(
            name=props.index_name,
            range_key=props.sort_key.name,
            projection_type=props.projection_type.value,
            non_key_attributes=props.non_key_attributes or None,
        ))
        self._sync_indexes()

    def validate_table(self) -> List[str]:
        if self._local_secondary_indexes and self.sort_key is None:
            return ["A sort key of the table must be specified to add local secondary indexes"]
        return []

    def _has_index(self) -> bool:
        return bool(self._global_secondary_indexes or self._local_secondary_indexes)

    def _sync_indexes(self) -> None:
        self.resource.attribute = self._attribute_definitions()
        if self._global_secondary_indexes:
            self.resource.global_secondary_index = self._global_secondary_indexes
        if self._local_secondary_indexes:
            self.resource.local_secondary_index = self._local_secondary_indexes

    def _attribute_definitions(self) -> List[DynamodbTableAttribute]:
        return [DynamodbTableAttribute(name=name, type=t.value) for name, t in self._attributes.items()]

    def _register_attribute(self, attribute: Attribute) -> None:
        existing = self._attributes.get(attribute.name)
        if existing is not None and existing != attribute.type:
            raise ValidationError(
                f"Unable to specify {attribute.name} as {attribute.type.value} because it was already "
                f"defined as {existing.value}",
                self,
            )
        self._attributes[attribute.name] = attribute.type

    def _validate_index_name(self, index_name: str) -> None:
        if index_name in self._index_names:
            raise ValidationError(f"A duplicate index name, {index_name}, is not allowed", self)
        self._index_names.add(index_name)
        logger.debug("Registered index %s on table %s", index_name, self.node.path)

    def _validate_projection(self, projection_type: ProjectionType, non_key_attributes: Sequence[str]) -> None:
        if projection_type == ProjectionType.INCLUDE and not non_key_attributes:
            raise ValidationError(
                f"Non-key attributes should be specified when using {ProjectionType.INCLUDE.value} projection type",
                self,
            )
        if projection_type != ProjectionType.INCLUDE and non_key_attributes:
            raise ValidationError(
                f"Non-key attributes should not be specified when not using {ProjectionType.INCLUDE.value} projection type",
                self,
            )
        if non_key_attributes:
            self._non_key_attributes.update(non_key_attributes)
            if len(self._non_key_attributes) > MAX_NON_KEY_ATTRIBUTES:
                raise ValidationError(
                    f"A maximum number of nonKeyAttributes across all of secondary indexes is {MAX_NON_KEY_ATTRIBUTES}",
                    self,
                )


class ImportedTable(TableBase):
    """A DynamoDB table defined outside of this stack."""

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        table_name: str,
        table_arn: str,
        table_stream_arn: Optional[str] = None,
        account: Optional[str] = None,
    ) -> None:
        super().__init__(scope, id)
        self._account = account
        self.table_name = table_name
        self.table_arn = table_arn
        self.table_stream_arn = table_stream_arn

    @property
    def env_account(self) -> str:
        return self._account or self.stack.account
