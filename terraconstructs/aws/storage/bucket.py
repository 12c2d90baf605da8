"""
Amazon S3 buckets and bucket policies.
"""
import logging
import re
from typing import List, Optional, Sequence

import jsii
from cdktf import Token
from cdktf_cdktf_provider_aws.s3_bucket import S3Bucket
from cdktf_cdktf_provider_aws.s3_bucket_policy import S3BucketPolicy
from cdktf_cdktf_provider_aws.s3_bucket_public_access_block import S3BucketPublicAccessBlock
from cdktf_cdktf_provider_aws.s3_bucket_versioning import (
    S3BucketVersioningA,
    S3BucketVersioningVersioningConfiguration,
)
from constructs import Construct, IValidation

from ...errors import ValidationError
from ..arn import Arn, ArnComponents, ArnFormat
from ..aws_construct import AwsConstructBase
from ..aws_stack import AwsStack
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

# terraform appends a 26 character unique suffix to bucket prefixes
BUCKET_PREFIX_MAX_LENGTH = 63 - 26

BUCKET_READ_ACTIONS = ["s3:GetObject*", "s3:GetBucket*", "s3:List*"]
BUCKET_DELETE_ACTIONS = ["s3:DeleteObject*"]
BUCKET_PUT_ACTIONS = [
    "s3:PutObject",
    "s3:PutObjectLegalHold",
    "s3:PutObjectRetention",
    "s3:PutObjectTagging",
    "s3:PutObjectVersionTagging",
    "s3:Abort*",
]
BUCKET_WRITE_ACTIONS = [*BUCKET_DELETE_ACTIONS, *BUCKET_PUT_ACTIONS]


# ====== BUCKET POLICY ======


@jsii.implements(IValidation)
class _BucketPolicyValidation:
    def __init__(self, policy: "BucketPolicy") -> None:
        self._policy = policy

    def validate(self) -> List[str]:
        return self._policy.document.validate_for_resource_policy()


class BucketPolicy(AwsConstructBase):
    """The bucket policy for an Amazon S3 bucket."""

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        bucket: "BucketBase",
        policy_document: Optional[PolicyDocument] = None,
    ) -> None:
        super().__init__(scope, id)
        self.bucket = bucket
        self.document = policy_document or PolicyDocument(self, "PolicyDocument")
        self.resource = S3BucketPolicy(
            self,
            "Resource",
            bucket=bucket.bucket_name,
            policy=self.document.json,
        )
        self.node.add_validation(_BucketPolicyValidation(self))


# ====== BUCKETS ======


class BucketBase(AwsConstructBase):
    """Either a new or imported S3 bucket."""

    bucket_arn: str
    bucket_name: str

    def __init__(self, scope: Construct, id: str) -> None:
        super().__init__(scope, id)
        self._policy: Optional[BucketPolicy] = None
        self._auto_create_policy = True

    @property
    def policy(self) -> Optional[BucketPolicy]:
        return self._policy

    def add_to_resource_policy(self, statement: PolicyStatement) -> AddToResourcePolicyResult:
        """
        Adds a statement to the resource policy for a principal (i.e.
        account/role/service) to perform actions on this bucket and/or its
        contents.

        A bucket policy is created upon the first call. Imported buckets
        have no policy to add to, so the statement is dropped.
        """
        if self._policy is None and self._auto_create_policy:
            self._policy = BucketPolicy(self, "Policy", bucket=self)

        if self._policy is not None:
            self._policy.document.add_statements(statement)
            return AddToResourcePolicyResult(statement_added=True, policy_dependable=self._policy)

        logger.debug("Dropped resource policy statement for imported bucket %s", self.node.path)
        return AddToResourcePolicyResult(statement_added=False)

    def arn_for_objects(self, key_pattern: str) -> str:
        """
        Returns an ARN that represents all objects within the bucket that
        match the key pattern specified, e.g. ``home/*``.
        """
        return f"{self.bucket_arn}/{key_pattern}"

    def url_for_object(self, key: Optional[str] = None) -> str:
        """The https URL of an S3 object, or of the bucket when ``key`` is omitted."""
        stack = self.stack
        prefix = f"https://s3.{stack.region}.{stack.url_suffix}/"
        if key is None:
            return f"{prefix}{self.bucket_name}"
        return f"{prefix}{self.bucket_name}/{key}"

    def grant_read(self, identity: PrincipalBase, objects_key_pattern: str = "*") -> Grant:
        """Grant read permissions for this bucket and its contents to an IAM principal."""
        return self._grant(
            identity,
            BUCKET_READ_ACTIONS,
            self.bucket_arn,
            self.arn_for_objects(objects_key_pattern),
        )

    def grant_write(
        self,
        identity: PrincipalBase,
        objects_key_pattern: str = "*",
        allowed_action_patterns: Optional[Sequence[str]] = None,
    ) -> Grant:
        """
        Grant write permissions to this bucket to an IAM principal.

        ``allowed_action_patterns`` restricts the granted actions, for
        example ``["s3:PutObject"]``.
        """
        return self._grant(
            identity,
            list(allowed_action_patterns) if allowed_action_patterns else BUCKET_WRITE_ACTIONS,
            self.bucket_arn,
            self.arn_for_objects(objects_key_pattern),
        )

    def grant_put(self, identity: PrincipalBase, objects_key_pattern: str = "*") -> Grant:
        """Grants s3:PutObject* and s3:Abort* permissions for this bucket to an IAM principal."""
        return self._grant(identity, BUCKET_PUT_ACTIONS, self.arn_for_objects(objects_key_pattern))

    def grant_delete(self, identity: PrincipalBase, objects_key_pattern: str = "*") -> Grant:
        """Grants s3:DeleteObject* permission to an IAM principal for objects in this bucket."""
        return self._grant(identity, BUCKET_DELETE_ACTIONS, self.arn_for_objects(objects_key_pattern))

    def grant_read_write(self, identity: PrincipalBase, objects_key_pattern: str = "*") -> Grant:
        return self._grant(
            identity,
            [*BUCKET_READ_ACTIONS, *BUCKET_WRITE_ACTIONS],
            self.bucket_arn,
            self.arn_for_objects(objects_key_pattern),
        )

    def _grant(self, grantee: PrincipalBase, actions: Sequence[str], *resource_arns: str) -> Grant:
        return Grant.add_to_principal_or_resource(
            grantee=grantee,
            actions=actions,
            resource_arns=list(resource_arns),
            resource=self,
        )


class Bucket(BucketBase):
    """An S3 bucket with associated policy objects."""

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        bucket_name: Optional[str] = None,
        versioned: bool = False,
        block_public_access: bool = False,
        enforce_ssl: bool = False,
        minimum_tls_version: Optional[float] = None,
        force_destroy: bool = False,
    ) -> None:
        super().__init__(scope, id)

        if bucket_name is not None:
            _validate_bucket_name(self, bucket_name)
        if minimum_tls_version is not None and not enforce_ssl:
            raise ValidationError("'enforceSSL' must be enabled for 'minimumTLSVersion' to be applied", self)

        bucket_prefix = None
        if bucket_name is None:
            bucket_prefix = re.sub(
                r"[^a-z0-9.-]", "", self.physical_name_prefix(BUCKET_PREFIX_MAX_LENGTH, lower=True)
            )

        self.resource = S3Bucket(
            self,
            "Resource",
            bucket=bucket_name,
            bucket_prefix=bucket_prefix,
            force_destroy=force_destroy or None,
        )
        self.bucket_name = self.resource.bucket
        self.bucket_arn = self.resource.arn
        self.bucket_domain_name = self.resource.bucket_domain_name
        self.bucket_regional_domain_name = self.resource.bucket_regional_domain_name

        if versioned:
            S3BucketVersioningA(
                self,
                "Versioning",
                bucket=self.bucket_name,
                versioning_configuration=S3BucketVersioningVersioningConfiguration(status="Enabled"),
            )

        if block_public_access:
            S3BucketPublicAccessBlock(
                self,
                "PublicAccessBlock",
                bucket=self.bucket_name,
                block_public_acls=True,
                block_public_policy=True,
                ignore_public_acls=True,
                restrict_public_buckets=True,
            )

        if enforce_ssl:
            self._enforce_ssl_statement()
        if minimum_tls_version is not None:
            self._enforce_min_tls_statement(minimum_tls_version)

    def _enforce_ssl_statement(self) -> None:
        """Adds a bucket policy statement denying all non-SSL requests."""
        self.add_to_resource_policy(PolicyStatement(
            actions=["s3:*"],
            conditions=[{"test": "Bool", "variable": "aws:SecureTransport", "values": ["false"]}],
            effect=Effect.DENY,
            resources=[self.bucket_arn, self.arn_for_objects("*")],
            principals=[AnyPrincipal()],
        ))

    def _enforce_min_tls_statement(self, min_version: float) -> None:
        self.add_to_resource_policy(PolicyStatement(
            actions=["s3:*"],
            conditions=[{"test": "NumericLessThan", "variable": "s3:TlsVersion", "values": [str(min_version)]}],
            effect=Effect.DENY,
            resources=[self.bucket_arn, self.arn_for_objects("*")],
            principals=[AnyPrincipal()],
        ))

    @staticmethod
    def from_bucket_name(scope: Construct, id: str, bucket_name: str) -> "ImportedBucket":
        stack = AwsStack.of_aws_construct(scope)
        bucket_arn = stack.format_arn(ArnComponents(
            service="s3",
            resource=bucket_name,
            region="",
            account="",
        ))
        return ImportedBucket(scope, id, bucket_name=bucket_name, bucket_arn=bucket_arn)

    @staticmethod
    def from_bucket_arn(scope: Construct, id: str, bucket_arn: str) -> "ImportedBucket":
        bucket_name = Arn.split(bucket_arn, ArnFormat.NO_RESOURCE_NAME).resource
        return ImportedBucket(scope, id, bucket_name=bucket_name, bucket_arn=bucket_arn)


class ImportedBucket(BucketBase):
    """An S3 bucket defined outside of this stack. Grants never touch its bucket policy."""

    def __init__(self, scope: Construct, id: str, *, bucket_name: str, bucket_arn: str) -> None:
        super().__init__(scope, id)
        self._auto_create_policy = False
        self.bucket_name = bucket_name
        self.bucket_arn = bucket_arn


def _validate_bucket_name(scope: Construct, name: str) -> None:
    if Token.is_unresolved(name):
        return
    errors = []
    if len(name) < 3 or len(name) > 63:
        errors.append("Bucket name must be at least 3 and no more than 63 characters")
    if re.search(r"[^a-z0-9.-]", name):
        errors.append(
            "Bucket name must only contain lowercase characters and the symbols, period (.) and dash (-)"
        )
    if not re.match(r"^[a-z0-9]", name) or not re.search(r"[a-z0-9]$", name):
        errors.append("Bucket name must start and end with a lowercase character or number")
    if ".." in name or ".-" in name or "-." in name:
        errors.append("Bucket name must not have dash next to period, or period next to dash, or consecutive periods")
    if re.match(r"^\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}$", name):
        errors.append("Bucket name must not resemble an IP address")
    if errors:
        raise ValidationError(f"Invalid S3 bucket name (value: {name})\n" + "\n".join(errors), scope)
