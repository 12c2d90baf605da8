import pytest
from cdktf import Testing, Token

from terraconstructs import UnscopedValidationError, ValidationError
from terraconstructs.aws import AwsStack
from terraconstructs.aws.iam import Role, ServicePrincipal
from terraconstructs.aws.storage import (
    ParameterDataType,
    ParameterTier,
    ParameterValueType,
    StringListParameter,
    StringParameter,
    arn_for_parameter_name,
)

PARTITION = "${data.aws_partition.Partitition.partition}"
REGION = "${data.aws_region.Region.name}"
ACCOUNT = "${data.aws_caller_identity.CallerIdentity.account_id}"
PARAMETER_ARN_PREFIX = f"arn:{PARTITION}:ssm:{REGION}:{ACCOUNT}:parameter"


def _single(items):
    assert len(items) == 1
    return items[0]


# ====== STRING PARAMETERS ======

def test_string_parameter(stack, synth, resources, resolve):
    parameter = StringParameter(
        stack,
        "MyParam",
        string_value="hello",
        parameter_name="/app/greeting",
        description="Greeting",
        tier=ParameterTier.ADVANCED,
        data_type=ParameterDataType.TEXT,
    )

    rendered = _single(resources(synth(stack), "aws_ssm_parameter"))
    assert rendered["name"] == "/app/greeting"
    assert rendered["type"] == "String"
    assert rendered["insecure_value"] == "hello"
    assert rendered["description"] == "Greeting"
    assert rendered["tier"] == "Advanced"
    assert rendered["data_type"] == "text"
    arn = resolve(parameter.parameter_arn)
    assert arn.startswith(f"{PARAMETER_ARN_PREFIX}$" + "{aws_ssm_parameter.MyParam_")
    assert arn.endswith(".name}")


def test_generated_name_uses_simple_arn(stack, synth, resources, resolve):
    parameter = StringParameter(stack, "MyParam", string_value="hello")

    rendered = _single(resources(synth(stack), "aws_ssm_parameter"))
    assert rendered["name"].startswith("Grid-MyParam-")
    assert resolve(parameter.parameter_arn).startswith(f"{PARAMETER_ARN_PREFIX}/")


def test_sensitive_string_value(stack, synth, resources):
    StringParameter(stack, "Secret", sensitive_string_value="s3cr3t")

    rendered = _single(resources(synth(stack), "aws_ssm_parameter"))
    assert rendered["value"] == "s3cr3t"
    assert "insecure_value" not in rendered


def test_string_value_validation(stack):
    with pytest.raises(ValidationError, match="Cannot specify both 'stringValue' and 'sensitiveStringValue'"):
        StringParameter(stack, "Both", string_value="a", sensitive_string_value="b")
    with pytest.raises(ValidationError, match="Either 'stringValue' or 'sensitiveStringValue' must be specified"):
        StringParameter(stack, "Neither")


def test_allowed_pattern_masks_sensitive_values(stack):
    with pytest.raises(ValidationError, match=r"The supplied value \(abc\) does not match"):
        StringParameter(stack, "Plain", string_value="abc", allowed_pattern=r"^\d+$")
    with pytest.raises(ValidationError, match=r"The supplied value \(\*\*\*\*\*\*\) does not match"):
        StringParameter(stack, "Secret", sensitive_string_value="abc", allowed_pattern=r"^\d+$")


@pytest.mark.parametrize("name, message", [
    ("", "parameterName cannot be an empty string"),
    ("a" * 2049, "name cannot be longer than 2048 characters"),
    ("bad name", "name must only contain letters, numbers, and the following 4 symbols"),
    ("app/greeting", "Parameter names must be fully qualified"),
])
def test_parameter_name_validation(stack, name, message):
    with pytest.raises(ValidationError, match=message):
        StringParameter(stack, "MyParam", string_value="hello", parameter_name=name)


def test_description_length(stack):
    with pytest.raises(ValidationError, match="Description cannot be longer than 1024 characters."):
        StringParameter(stack, "MyParam", string_value="hello", description="x" * 1025)


def test_grants_use_identity_policy(stack):
    parameter = StringParameter(stack, "MyParam", string_value="hello", parameter_name="my-param")
    role = Role(stack, "MyRole", assumed_by=ServicePrincipal("lambda.amazonaws.com"))

    read = parameter.grant_read(role)
    write = parameter.grant_write(role)

    assert read.principal_statement.actions == [
        "ssm:DescribeParameters",
        "ssm:GetParameters",
        "ssm:GetParameter",
        "ssm:GetParameterHistory",
    ]
    assert write.principal_statement.actions == ["ssm:PutParameter"]
    assert not parameter.grant_read(ServicePrincipal("events.amazonaws.com")).success


# ====== STRING LIST PARAMETERS ======

def test_string_list_parameter(stack, synth, resources):
    parameter = StringListParameter(stack, "MyList", string_list_value=["a", "b"], parameter_name="my-list")

    rendered = _single(resources(synth(stack), "aws_ssm_parameter"))
    assert rendered["type"] == "StringList"
    assert rendered["insecure_value"].startswith('${join(","')
    assert Token.is_unresolved(parameter.string_list_value)


def test_string_list_values_cannot_contain_commas(stack):
    with pytest.raises(ValidationError, match="cannot contain the ',' character"):
        StringListParameter(stack, "MyList", string_list_value=["a,b"])


def test_string_list_allowed_pattern(stack):
    with pytest.raises(ValidationError, match=r"The supplied value \(b1\) does not match"):
        StringListParameter(stack, "MyList", string_list_value=["a1", "b1"], allowed_pattern=r"^a")


# ====== IMPORTED PARAMETERS ======

def test_from_string_parameter_name(stack, synth, resources, resolve):
    parameter = StringParameter.from_string_parameter_name(stack, "Imported", "myParam")

    assert resolve(parameter.parameter_arn) == f"{PARAMETER_ARN_PREFIX}/myParam"
    assert resolve(parameter.string_value) == "${data.aws_ssm_parameter.ImportedParameter.insecure_value}"
    data = _single(resources(synth(stack), "aws_ssm_parameter", kind="data"))
    assert data["name"] == "myParam"
    assert Testing.to_have_data_source_with_properties(Testing.synth(stack), "aws_ssm_parameter", {"name": "myParam"})
    assert "with_decryption" not in data


def test_from_string_parameter_attributes_with_version(stack, synth, resources, resolve):
    parameter = StringParameter.from_string_parameter_attributes(
        stack, "Imported", parameter_name="/app/name", version=3
    )

    assert resolve(parameter.parameter_arn) == f"{PARAMETER_ARN_PREFIX}/app/name"
    assert _single(resources(synth(stack), "aws_ssm_parameter", kind="data"))["name"] == "/app/name:3"


def test_from_secure_string_parameter_attributes(stack, synth, resources, resolve):
    parameter = StringParameter.from_secure_string_parameter_attributes(stack, "Imported", parameter_name="/app/secret")

    assert parameter.parameter_type == "SecureString"
    assert resolve(parameter.string_value) == "${data.aws_ssm_parameter.ImportedParameter.value}"
    assert _single(resources(synth(stack), "aws_ssm_parameter", kind="data"))["with_decryption"] is True


def test_from_string_parameter_arn(stack):
    parameter = StringParameter.from_string_parameter_arn(
        stack, "Imported", "arn:aws:ssm:us-east-1:111111111111:parameter/app/name"
    )

    assert parameter.parameter_name == "/app/name"
    assert parameter.parameter_arn == "arn:aws:ssm:us-east-1:111111111111:parameter/app/name"


def test_from_string_parameter_arn_errors(app, stack):
    with pytest.raises(ValidationError, match="stringParameterArn cannot be an unresolved token"):
        StringParameter.from_string_parameter_arn(stack, "Token", stack.region)
    with pytest.raises(ValidationError, match="unexpected StringParameterArn format"):
        StringParameter.from_string_parameter_arn(stack, "Bad", "arn:aws:s3:::bucket")

    regional = AwsStack(app, "Regional", provider_config={"region": "eu-west-1"})
    with pytest.raises(ValidationError, match="must be in the same region as the stack"):
        StringParameter.from_string_parameter_arn(
            regional, "Other", "arn:aws:ssm:us-east-1:111111111111:parameter/app/name"
        )


def test_from_string_list_parameter_name(stack):
    parameter = StringListParameter.from_string_list_parameter_name(stack, "Imported", "/app/list")

    assert parameter.parameter_type == ParameterValueType.STRING_LIST.value
    assert Token.is_unresolved(parameter.string_list_value)


def test_value_for_string_parameter_shares_lookups(stack, synth, resources, resolve):
    first = StringParameter.value_for_string_parameter(stack, "/app/name")
    second = StringParameter.value_for_string_parameter(stack, "/app/name")

    assert resolve(first) == resolve(second)
    _single(resources(synth(stack), "aws_ssm_parameter", kind="data"))


def test_value_for_string_parameter_versions_use_separate_lookups(stack, synth, resources, resolve):
    latest = StringParameter.value_for_string_parameter(stack, "/app/name")
    pinned = StringParameter.value_for_string_parameter(stack, "/app/name", version=2)

    assert resolve(latest) != resolve(pinned)
    assert resolve(StringParameter.value_for_string_parameter(stack, "/app/name", version=2)) == resolve(pinned)
    names = sorted(d["name"] for d in resources(synth(stack), "aws_ssm_parameter", kind="data"))
    assert names == ["/app/name", "/app/name:2"]


# ====== ARNS ======

def test_arn_for_token_name_requires_simple_name(stack, resolve):
    with pytest.raises(UnscopedValidationError, match="Unable to determine ARN separator"):
        arn_for_parameter_name(stack, stack.region)

    arn = arn_for_parameter_name(stack, stack.region, simple_name=False)
    assert resolve(arn) == f"{PARAMETER_ARN_PREFIX}{REGION}"


def test_arn_for_conflicting_simple_name(stack):
    with pytest.raises(UnscopedValidationError, match='Parameter name "/app/name" is not a simple name'):
        arn_for_parameter_name(stack, "/app/name", simple_name=True)
    with pytest.raises(UnscopedValidationError, match='"simpleName" must be "true" or undefined'):
        StringParameter(stack, "MyParam", string_value="hello", simple_name=False)
