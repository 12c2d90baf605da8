"""
SSM Parameter Store parameters.

New parameters render ``aws_ssm_parameter`` resources. Existing parameters
are referenced through the ``aws_ssm_parameter`` data source, whose id is
the import id followed by ``Parameter``.
"""
import re
from enum import Enum
from typing import List, Optional, Sequence, Union

from cdktf import Fn, Token
from cdktf_cdktf_provider_aws.data_aws_ssm_parameter import DataAwsSsmParameter
from cdktf_cdktf_provider_aws.ssm_parameter import SsmParameter
from constructs import Construct

from ...errors import ValidationError
from ..aws_construct import AwsConstructBase
from ..aws_stack import AwsStack
from ..iam import Grant, PrincipalBase
from .parameter_util import AUTOGEN_MARKER, arn_for_parameter_name, validate_parameter_name

MAX_DESCRIPTION_LENGTH = 1024
LIST_SEPARATOR = ","
VALUE_LOOKUP_SUFFIX = "C96584B6-F00A-464E-AD19-53AFF4B05118"


class ParameterType(str, Enum):
    STRING = "String"
    SECURE_STRING = "SecureString"
    STRING_LIST = "StringList"


class ParameterValueType(str, Enum):
    """The type of the value an existing parameter resolves to."""

    STRING = "String"
    SECURE_STRING = "SecureString"
    STRING_LIST = "List<String>"


class ParameterTier(str, Enum):
    ADVANCED = "Advanced"
    INTELLIGENT_TIERING = "Intelligent-Tiering"
    STANDARD = "Standard"


class ParameterDataType(str, Enum):
    TEXT = "text"
    AWS_EC2_IMAGE = "aws:ec2:image"


class _ParameterGrants:
    parameter_arn: str

    def grant_read(self, grantee: PrincipalBase) -> Grant:
        """Grants read (DescribeParameter, GetParameters, GetParameter, GetParameterHistory) permissions on the SSM Parameter."""
        return Grant.add_to_principal(
            grantee=grantee,
            actions=[
                "ssm:DescribeParameters",
                "ssm:GetParameters",
                "ssm:GetParameter",
                "ssm:GetParameterHistory",
            ],
            resource_arns=[self.parameter_arn],
        )

    def grant_write(self, grantee: PrincipalBase) -> Grant:
        """Grants write (PutParameter) permissions on the SSM Parameter."""
        return Grant.add_to_principal(
            grantee=grantee,
            actions=["ssm:PutParameter"],
            resource_arns=[self.parameter_arn],
        )


class ParameterBase(AwsConstructBase, _ParameterGrants):
    """Basic features shared across all types of SSM Parameters."""

    parameter_name: str
    parameter_type: str

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        parameter_name: Optional[str],
        description: Optional[str],
        simple_name: Optional[bool],
    ) -> None:
        super().__init__(scope, id)
        if description is not None and not Token.is_unresolved(description) and len(description) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError("Description cannot be longer than 1024 characters.", self)
        if parameter_name is not None:
            validate_parameter_name(self, parameter_name)
            if not Token.is_unresolved(parameter_name) and "/" in parameter_name and not parameter_name.startswith("/"):
                raise ValidationError(
                    'Parameter names must be fully qualified (if they include "/" they must also begin with a "/"): '
                    f"{parameter_name}",
                    self,
                )
        self._simple_name = simple_name

    def _render_arn(self, explicit_name: Optional[str]) -> str:
        return arn_for_parameter_name(
            self,
            self.parameter_name,
            physical_name=explicit_name or AUTOGEN_MARKER,
            simple_name=self._simple_name,
        )


class StringParameter(ParameterBase):
    """Creates a new String SSM Parameter."""

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        string_value: Optional[str] = None,
        sensitive_string_value: Optional[str] = None,
        allowed_pattern: Optional[str] = None,
        description: Optional[str] = None,
        parameter_name: Optional[str] = None,
        simple_name: Optional[bool] = None,
        tier: Optional[ParameterTier] = None,
        data_type: Optional[ParameterDataType] = None,
    ) -> None:
        super().__init__(
            scope, id, parameter_name=parameter_name, description=description, simple_name=simple_name
        )

        if string_value is not None and sensitive_string_value is not None:
            raise ValidationError("Cannot specify both 'stringValue' and 'sensitiveStringValue'", self)
        if string_value is None and sensitive_string_value is None:
            raise ValidationError("Either 'stringValue' or 'sensitiveStringValue' must be specified", self)

        if allowed_pattern:
            _validate_parameter_value(self, string_value if string_value is not None else sensitive_string_value,
                                      allowed_pattern, sensitive=string_value is None)

        self.resource = SsmParameter(
            self,
            "Resource",
            name=parameter_name or self.physical_name(),
            type=ParameterType.STRING.value,
            insecure_value=string_value,
            value=sensitive_string_value,
            allowed_pattern=allowed_pattern,
            description=description,
            tier=ParameterTier(tier).value if tier else None,
            data_type=ParameterDataType(data_type).value if data_type else None,
        )

        self.parameter_name = self.resource.name
        self.parameter_type = self.resource.type
        self.parameter_arn = self._render_arn(parameter_name)
        self.string_value = self.resource.insecure_value if string_value is not None else self.resource.value

    @staticmethod
    def from_string_parameter_name(scope: Construct, id: str, string_parameter_name: str) -> "ImportedParameter":
        """Imports an external string parameter by name."""
        return StringParameter.from_string_parameter_attributes(scope, id, parameter_name=string_parameter_name)

    @staticmethod
    def from_string_parameter_arn(scope: Construct, id: str, string_parameter_arn: str) -> "ImportedParameter":
        """Imports an external string parameter by ARN."""
        if Token.is_unresolved(string_parameter_arn):
            raise ValidationError("stringParameterArn cannot be an unresolved token", scope)

        match = re.match(r"^arn:[^:]+:ssm:([^:]+):[^:]+:parameter(/.*)$", string_parameter_arn)
        if match is None:
            raise ValidationError("unexpected StringParameterArn format", scope)

        region, name = match.group(1), match.group(2)
        stack = AwsStack.of_aws_construct(scope)
        if not Token.is_unresolved(stack.region) and region != stack.region:
            raise ValidationError("stringParameterArn must be in the same region as the stack", scope)

        return ImportedParameter(
            scope,
            id,
            parameter_name=name.lstrip("/") if name.count("/") == 1 else name,
            parameter_arn=string_parameter_arn,
            value_type=ParameterValueType.STRING,
        )

    @staticmethod
    def from_string_parameter_attributes(
        scope: Construct,
        id: str,
        *,
        parameter_name: str,
        version: Optional[Union[int, float]] = None,
        simple_name: Optional[bool] = None,
        value_type: ParameterValueType = ParameterValueType.STRING,
    ) -> "ImportedParameter":
        """Imports an external string parameter with name and optional version."""
        return ImportedParameter(
            scope,
            id,
            parameter_name=parameter_name,
            version=version,
            simple_name=simple_name,
            value_type=value_type,
        )

    @staticmethod
    def from_secure_string_parameter_attributes(
        scope: Construct,
        id: str,
        *,
        parameter_name: str,
        version: Optional[Union[int, float]] = None,
        simple_name: Optional[bool] = None,
    ) -> "ImportedParameter":
        """Imports a secure string parameter from the SSM parameter store."""
        return ImportedParameter(
            scope,
            id,
            parameter_name=parameter_name,
            version=version,
            simple_name=simple_name,
            value_type=ParameterValueType.SECURE_STRING,
        )

    @staticmethod
    def value_for_string_parameter(scope: Construct, parameter_name: str, version: Optional[int] = None) -> str:
        """
        Returns a token that will resolve (at deployment time) to the string
        value of an SSM string parameter.

        Lookups of the same parameter name and version share a single data
        source.
        """
        stack = AwsStack.of_aws_construct(scope)
        id = re.sub(r"[^A-Za-z0-9-]", "", f"SsmParameterValue{parameter_name}")
        if version is not None:
            id += f"Version{version}"
        id += VALUE_LOOKUP_SUFFIX
        existing = stack.node.try_find_child(f"{id}Parameter")
        if existing is not None:
            return existing.insecure_value
        return ImportedParameter(
            stack,
            id,
            parameter_name=parameter_name,
            version=version,
            simple_name=not parameter_name.startswith("/") if not Token.is_unresolved(parameter_name) else True,
        ).string_value


class StringListParameter(ParameterBase):
    """Creates a new StringList SSM Parameter."""

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        string_list_value: Sequence[str],
        allowed_pattern: Optional[str] = None,
        description: Optional[str] = None,
        parameter_name: Optional[str] = None,
        simple_name: Optional[bool] = None,
        tier: Optional[ParameterTier] = None,
        data_type: Optional[ParameterDataType] = None,
    ) -> None:
        super().__init__(
            scope, id, parameter_name=parameter_name, description=description, simple_name=simple_name
        )

        if any(not Token.is_unresolved(v) and LIST_SEPARATOR in v for v in string_list_value):
            raise ValidationError(
                "Values of a StringList SSM Parameter cannot contain the ',' character. Use a string parameter instead.",
                self,
            )
        if allowed_pattern and not Token.is_unresolved(string_list_value):
            for value in string_list_value:
                _validate_parameter_value(self, value, allowed_pattern)

        self.resource = SsmParameter(
            self,
            "Resource",
            name=parameter_name or self.physical_name(),
            type=ParameterType.STRING_LIST.value,
            insecure_value=Fn.join(LIST_SEPARATOR, list(string_list_value)),
            allowed_pattern=allowed_pattern,
            description=description,
            tier=ParameterTier(tier).value if tier else None,
            data_type=ParameterDataType(data_type).value if data_type else None,
        )

        self.parameter_name = self.resource.name
        self.parameter_type = self.resource.type
        self.parameter_arn = self._render_arn(parameter_name)
        self.string_list_value: List[str] = Token.as_list(Fn.split(LIST_SEPARATOR, self.resource.insecure_value))

    @staticmethod
    def from_string_list_parameter_name(scope: Construct, id: str, string_list_parameter_name: str) -> "ImportedParameter":
        """Imports an external parameter of type string list."""
        return ImportedParameter(
            scope,
            id,
            parameter_name=string_list_parameter_name,
            value_type=ParameterValueType.STRING_LIST,
        )


class ImportedParameter(_ParameterGrants):
    """
    A parameter defined outside of this stack.

    Not a construct: the ``aws_ssm_parameter`` data source is added to
    ``scope`` as ``<id>Parameter``.
    """

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        parameter_name: str,
        version: Optional[Union[int, float]] = None,
        simple_name: Optional[bool] = None,
        value_type: ParameterValueType = ParameterValueType.STRING,
        parameter_arn: Optional[str] = None,
    ) -> None:
        validate_parameter_name(scope, parameter_name)

        self.stack = AwsStack.of_aws_construct(scope)
        self.parameter_name = parameter_name
        self.parameter_type = ParameterValueType(value_type).value
        self.parameter_arn = parameter_arn or arn_for_parameter_name(
            scope, parameter_name, simple_name=simple_name
        )

        name = parameter_name
        if version is not None:
            name = f"{parameter_name}:{Token.as_string(version) if Token.is_unresolved(version) else version}"

        self.data = DataAwsSsmParameter(
            scope,
            f"{id}Parameter",
            name=name,
            with_decryption=True if value_type == ParameterValueType.SECURE_STRING else None,
        )
        if value_type == ParameterValueType.SECURE_STRING:
            self.string_value = self.data.value
        else:
            self.string_value = self.data.insecure_value
        if value_type == ParameterValueType.STRING_LIST:
            self.string_list_value: List[str] = Token.as_list(Fn.split(LIST_SEPARATOR, self.data.insecure_value))

    @property
    def env_account(self) -> str:
        return self.stack.account


def _validate_parameter_value(scope: Construct, value: Optional[str], allowed_pattern: str, sensitive: bool = False) -> None:
    if value is None or Token.is_unresolved(value) or Token.is_unresolved(allowed_pattern):
        return
    if not re.match(allowed_pattern, value):
        shown = "******" if sensitive else value
        raise ValidationError(
            f"The supplied value ({shown}) does not match the specified allowedPattern ({allowed_pattern})",
            scope,
        )


