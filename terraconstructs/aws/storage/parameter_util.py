"""Helpers for SSM parameter names and ARNs."""
import re
from typing import Optional

from cdktf import Token
from constructs import IConstruct

from ...errors import UnscopedValidationError, ValidationError
from ..arn import ArnComponents
from ..aws_stack import AwsStack

AUTOGEN_MARKER = "$$autogen$$"
MAX_NAME_LENGTH = 2048
NAME_PATTERN = re.compile(r"^[/\w.-]+$")


def arn_for_parameter_name(
    scope: IConstruct,
    parameter_name: str,
    physical_name: Optional[str] = None,
    simple_name: Optional[bool] = None,
) -> str:
    """
    Renders the ARN of an SSM parameter.

    Simple names (``my-param``) need a ``/`` between ``parameter`` and the
    name while path names (``/my/param``) already start with one. When the
    name is a token the separator is taken from ``physical_name`` or the
    explicit ``simple_name`` flag.
    """
    name_to_validate = physical_name or parameter_name
    if not Token.is_unresolved(name_to_validate) and "/" in name_to_validate and not name_to_validate.startswith("/"):
        raise UnscopedValidationError(
            'Parameter names must be fully qualified (if they include "/" they must also begin with a "/"): '
            f"{name_to_validate}"
        )

    return AwsStack.of_aws_construct(scope).format_arn(ArnComponents(
        service="ssm",
        resource="parameter",
        sep="/" if _is_simple_name(parameter_name, physical_name, simple_name) else "",
        resource_name=parameter_name,
    ))


def _is_simple_name(parameter_name: str, physical_name: Optional[str], simple_name: Optional[bool]) -> bool:
    # look for a concrete name as a hint for determining the form
    concrete_name = parameter_name if not Token.is_unresolved(parameter_name) else physical_name
    if not concrete_name or Token.is_unresolved(concrete_name):
        if simple_name is None:
            raise UnscopedValidationError(
                "Unable to determine ARN separator for SSM parameter since the parameter name is an "
                'unresolved token. Use "fromAttributes" and specify "simpleName" explicitly'
            )
        return simple_name

    result = not concrete_name.startswith("/")

    # an explicit separator which conflicts with the name is an error
    if simple_name is not None and simple_name != result:
        if concrete_name == AUTOGEN_MARKER:
            raise UnscopedValidationError(
                'If "parameterName" is not explicitly defined, "simpleName" must be "true" or undefined '
                "since auto-generated parameter names always have simple names"
            )
        raise UnscopedValidationError(
            f'Parameter name "{concrete_name}" is {"a simple name" if result else "not a simple name"}, '
            f'but "simpleName" was explicitly set to {str(simple_name).lower()}. '
            f"Either omit it or set it to {str(result).lower()}"
        )
    return result


def validate_parameter_name(scope: IConstruct, parameter_name: str) -> None:
    if Token.is_unresolved(parameter_name):
        return
    if len(parameter_name) == 0:
        raise ValidationError("parameterName cannot be an empty string", scope)
    if len(parameter_name) > MAX_NAME_LENGTH:
        raise ValidationError(
            f"name cannot be longer than {MAX_NAME_LENGTH} characters.", scope
        )
    if not NAME_PATTERN.match(parameter_name):
        raise ValidationError(
            f"name must only contain letters, numbers, and the following 4 symbols .-_/; got {parameter_name}",
            scope,
        )
