import pytest
from cdktf import Testing

from terraconstructs import ValidationError
from terraconstructs.aws.iam import AccountPrincipal, Role, ServicePrincipal, User
from terraconstructs.aws.storage import Bucket

PARTITION = "${data.aws_partition.Partitition.partition}"


def _single(items):
    assert len(items) == 1
    return items[0]


def test_default_bucket_uses_lowercase_prefix(stack, synth, resources):
    Bucket(stack, "MyBucket")

    bucket = _single(resources(synth(stack), "aws_s3_bucket"))
    assert bucket["bucket_prefix"] == "grid-mybucket"
    assert "bucket" not in bucket
    assert "force_destroy" not in bucket


def test_explicit_bucket_name(stack, synth, resources):
    Bucket(stack, "MyBucket", bucket_name="my-bucket", force_destroy=True)

    assert Testing.to_have_resource_with_properties(Testing.synth(stack), "aws_s3_bucket", {"bucket": "my-bucket"})
    bucket = _single(resources(synth(stack), "aws_s3_bucket"))
    assert bucket["bucket"] == "my-bucket"
    assert bucket["force_destroy"] is True


@pytest.mark.parametrize("name, reason", [
    ("ab", "at least 3 and no more than 63 characters"),
    ("My_Bucket", "must only contain lowercase characters"),
    ("-bucket", "must start and end with a lowercase character or number"),
    ("my..bucket", "must not have dash next to period"),
    ("192.168.5.4", "must not resemble an IP address"),
])
def test_invalid_bucket_names(stack, name, reason):
    with pytest.raises(ValidationError, match=reason) as excinfo:
        Bucket(stack, "MyBucket", bucket_name=name)

    assert f"Invalid S3 bucket name (value: {name})" in excinfo.value.message


def test_token_bucket_name_is_not_validated(stack):
    Bucket(stack, "MyBucket", bucket_name=stack.region)


def test_versioning_and_public_access_block(stack, synth, resources):
    Bucket(stack, "MyBucket", versioned=True, block_public_access=True)

    template = synth(stack)
    versioning = _single(resources(template, "aws_s3_bucket_versioning"))
    assert versioning["versioning_configuration"] == {"status": "Enabled"}
    assert versioning["bucket"].startswith("${aws_s3_bucket.MyBucket_")
    block = _single(resources(template, "aws_s3_bucket_public_access_block"))
    assert block["block_public_acls"] is True
    assert block["block_public_policy"] is True
    assert block["ignore_public_acls"] is True
    assert block["restrict_public_buckets"] is True


def test_enforce_ssl_and_minimum_tls(stack, synth, resources):
    Bucket(stack, "MyBucket", enforce_ssl=True, minimum_tls_version=1.2)

    template = synth(stack)
    policy = _single(resources(template, "aws_s3_bucket_policy"))
    assert policy["bucket"].startswith("${aws_s3_bucket.MyBucket_")
    statements = _single(resources(template, "aws_iam_policy_document", kind="data"))["statement"]
    assert [s["condition"] for s in statements] == [
        [{"test": "Bool", "variable": "aws:SecureTransport", "values": ["false"]}],
        [{"test": "NumericLessThan", "variable": "s3:TlsVersion", "values": ["1.2"]}],
    ]
    for statement in statements:
        assert statement["effect"] == "Deny"
        assert statement["actions"] == ["s3:*"]
        assert statement["principals"] == [{"type": "AWS", "identifiers": ["*"]}]
        assert statement["resources"][1] == statement["resources"][0] + "/*"


def test_minimum_tls_requires_enforce_ssl(stack):
    with pytest.raises(ValidationError, match="'enforceSSL' must be enabled for 'minimumTLSVersion' to be applied"):
        Bucket(stack, "MyBucket", minimum_tls_version=1.2)


def test_grant_read_to_role(stack, synth, resources, resolve):
    bucket = Bucket(stack, "MyBucket")
    role = Role(stack, "MyRole", assumed_by=ServicePrincipal("lambda.amazonaws.com"))

    grant = bucket.grant_read(role)

    assert grant.success
    assert bucket.policy is None
    assert grant.principal_statement.actions == ["s3:GetObject*", "s3:GetBucket*", "s3:List*"]
    resolved = resolve(grant.principal_statement.resources)
    assert resolved[0].startswith("${aws_s3_bucket.MyBucket_")
    assert resolved[1] == resolved[0] + "/*"


def test_grant_write_with_allowed_actions(stack, resolve):
    bucket = Bucket(stack, "MyBucket")
    user = User(stack, "MyUser")

    grant = bucket.grant_write(user, "uploads/*", allowed_action_patterns=["s3:PutObject"])

    assert grant.principal_statement.actions == ["s3:PutObject"]
    assert resolve(grant.principal_statement.resources)[1].endswith("/uploads/*")


def test_grant_put_and_delete_only_cover_objects(stack, resolve):
    bucket = Bucket(stack, "MyBucket")
    user = User(stack, "MyUser")

    put = bucket.grant_put(user)
    delete = bucket.grant_delete(user, "tmp/*")

    assert len(put.principal_statement.resources) == 1
    assert "s3:PutObjectLegalHold" in put.principal_statement.actions
    assert delete.principal_statement.actions == ["s3:DeleteObject*"]
    assert resolve(delete.principal_statement.resources)[0].endswith("/tmp/*")


def test_grant_read_write_to_other_account_uses_bucket_policy(stack, synth, resources):
    bucket = Bucket(stack, "MyBucket")

    grant = bucket.grant_read_write(AccountPrincipal("111111111111"))

    assert grant.resource_statement is not None
    assert "s3:DeleteObject*" in grant.resource_statement.actions
    _single(resources(synth(stack), "aws_s3_bucket_policy"))


def test_url_for_object(stack, resolve):
    bucket = Bucket(stack, "MyBucket", bucket_name="my-bucket")

    assert resolve(bucket.url_for_object("path/to/key")).endswith(".bucket}/path/to/key")
    assert resolve(bucket.url_for_object()).startswith(
        "https://s3.${data.aws_region.Region.name}.${data.aws_partition.Partitition.dns_suffix}/"
    )


def test_import_by_name(stack, resolve):
    bucket = Bucket.from_bucket_name(stack, "Imported", "my-bucket")

    assert bucket.bucket_name == "my-bucket"
    assert resolve(bucket.bucket_arn) == f"arn:{PARTITION}:s3:::my-bucket"
    assert resolve(bucket.arn_for_objects("*")) == f"arn:{PARTITION}:s3:::my-bucket/*"


def test_import_by_arn_never_creates_policy(stack, synth, resources):
    bucket = Bucket.from_bucket_arn(stack, "Imported", "arn:aws:s3:::my-bucket")

    grant = bucket.grant_read(ServicePrincipal("cloudtrail.amazonaws.com"))

    assert bucket.bucket_name == "my-bucket"
    assert not grant.success
    assert bucket.policy is None
    assert resources(synth(stack), "aws_s3_bucket_policy") == []
