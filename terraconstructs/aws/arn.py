"""
Formatting and parsing of Amazon Resource Names.

Concrete ARNs are split and validated in Python. ARNs which are still
tokens at definition time are split with Terraform functions so the
components resolve during ``terraform apply``.
"""
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Union

from cdktf import Fn, Token

from ..errors import UnscopedValidationError

if TYPE_CHECKING:
    from .aws_stack import AwsStack


class ArnFormat(Enum):
    """An enum representing the various ARN formats that different services use."""

    NO_RESOURCE_NAME = "arn:aws:service:region:account:resource"
    COLON_RESOURCE_NAME = "arn:aws:service:region:account:resource:resourceName"
    SLASH_RESOURCE_NAME = "arn:aws:service:region:account:resource/resourceName"
    SLASH_RESOURCE_SLASH_RESOURCE_NAME = "arn:aws:service:region:account:/resource/resourceName"


@dataclass
class ArnComponents:
    service: str
    resource: str
    partition: Optional[str] = None
    region: Optional[str] = None
    account: Optional[str] = None
    resource_name: Optional[str] = None
    sep: Optional[str] = None
    arn_format: Optional[ArnFormat] = None


class Arn:
    @staticmethod
    def format(components: ArnComponents, stack: Optional["AwsStack"] = None) -> str:
        """
        Creates an ARN from components.

        If ``partition``, ``region`` or ``account`` are not specified, the
        stack's partition, region and account are used. An empty string
        component is rendered as an empty string.

        ``arn:{partition}:{service}:{region}:{account}:{resource}{sep}{resource-name}``
        """
        partition = _or_from_stack(components.partition, stack, "partition")
        region = _or_from_stack(components.region, stack, "region")
        account = _or_from_stack(components.account, stack, "account")

        sep = components.sep
        if sep is None:
            sep = ":" if components.arn_format == ArnFormat.COLON_RESOURCE_NAME else "/"
        if sep not in ("/", ":", ""):
            raise UnscopedValidationError('resourcePathSep may only be ":", "/" or an empty string')

        values = [
            "arn", ":", partition, ":", components.service, ":", region, ":", account, ":",
            "/" if components.arn_format == ArnFormat.SLASH_RESOURCE_SLASH_RESOURCE_NAME else "",
            components.resource,
        ]
        if components.resource_name is not None:
            values.append(sep)
            values.append(components.resource_name)
        return "".join(values)

    @staticmethod
    def split(arn: str, arn_format: ArnFormat) -> ArnComponents:
        """
        Splits the provided ARN into its components.

        Works both if ``arn`` is a concrete string and if it is a token, in
        which case the returned components are tokens too.
        """
        shape = _parse_arn_shape(arn)
        if shape is None:
            return _parse_token_arn(arn, arn_format)

        _, partition, service, region, account, resource_type_or_name, *rest = shape

        resource_part_start = 0
        detected: Optional[ArnFormat] = None
        slash_index = resource_type_or_name.find("/")
        if slash_index == 0:
            slash_index = resource_type_or_name.find("/", 1)
            resource_part_start = 1
            detected = ArnFormat.SLASH_RESOURCE_SLASH_RESOURCE_NAME

        resource_name: Optional[str]
        if slash_index != -1:
            # the slash is only a separator if ArnFormat is not NO_RESOURCE_NAME
            if arn_format == ArnFormat.NO_RESOURCE_NAME:
                resource = resource_type_or_name
                resource_name = None
            else:
                resource = resource_type_or_name[resource_part_start:slash_index]
                resource_name = resource_type_or_name[slash_index + 1:]
            detected = detected or ArnFormat.SLASH_RESOURCE_NAME
        elif rest:
            resource = resource_type_or_name
            resource_name = ":".join(rest)
            detected = ArnFormat.COLON_RESOURCE_NAME
        else:
            resource = resource_type_or_name
            resource_name = None
            detected = ArnFormat.NO_RESOURCE_NAME

        return ArnComponents(
            service=service or None,
            resource=resource or None,
            partition=partition or None,
            region=region,
            account=account,
            resource_name=resource_name,
            arn_format=detected,
        )

    @staticmethod
    def parse(arn: str, sep_if_token: str = "/", has_name: bool = True) -> ArnComponents:
        """
        Given an ARN, parses it and returns components.

        Deprecated in favour of ``Arn.split``; kept for callers that only know
        the separator.
        """
        shape = _parse_arn_shape(arn)
        if shape is None:
            if not has_name:
                arn_format = ArnFormat.NO_RESOURCE_NAME
            elif sep_if_token == ":":
                arn_format = ArnFormat.COLON_RESOURCE_NAME
            elif sep_if_token == "/":
                arn_format = ArnFormat.SLASH_RESOURCE_NAME
            else:
                raise UnscopedValidationError(
                    f"Invalid separator for a token ARN: '{sep_if_token}'. Must be ':' or '/'"
                )
            return replace(_parse_token_arn(arn, arn_format), arn_format=None)

        _, partition, service, region, account, resource_type_or_name, *rest = shape

        sep: Optional[str] = None
        resource_name: Optional[str] = None
        sep_index = next((i for i, ch in enumerate(resource_type_or_name) if ch in ":/"), -1)
        if sep_index != -1:
            sep = resource_type_or_name[sep_index]
            resource = resource_type_or_name[:sep_index]
            resource_name = resource_type_or_name[sep_index + 1:]
        else:
            resource = resource_type_or_name

        if rest:
            if not resource_name:
                resource_name = ""
                sep = ":"
            else:
                resource_name += ":"
            resource_name += ":".join(rest)

        return ArnComponents(
            service=service,
            resource=resource,
            partition=partition,
            region=region,
            account=account,
            resource_name=resource_name,
            sep=sep,
        )

    @staticmethod
    def extract_resource_name(arn: str, resource_type: str) -> str:
        """
        Extracts the resource name from an ARN whose resource part is
        ``<resource_type>/<name>``, where ``name`` may contain slashes.
        """
        shape = _parse_arn_shape(arn)
        if shape is None:
            return Token.as_string(Fn.element(Fn.split(f":{resource_type}/", arn), 1))

        resource_part = ":".join(shape[5:])
        type_and_name = resource_part.split("/", 1)
        if type_and_name[0] != resource_type:
            raise UnscopedValidationError(
                f"Expected resource type '{resource_type}' in ARN, got '{type_and_name[0]}' in '{arn}'"
            )
        if len(type_and_name) < 2 or not type_and_name[1]:
            raise UnscopedValidationError(f"Expected resource name in ARN, didn't find one: '{arn}'")
        return type_and_name[1]


def _or_from_stack(value: Optional[str], stack: Optional["AwsStack"], attr: str) -> str:
    if value is not None:
        return value
    if stack is None:
        raise UnscopedValidationError(
            f"Arn.format: '{attr}' was not specified and no stack is available to infer it from"
        )
    return getattr(stack, attr)


def _parse_arn_shape(arn: str) -> Optional[List[str]]:
    """Returns the colon separated components, or None when ``arn`` is a token."""
    components = arn.split(":")
    looks_like_arn = arn.startswith("arn:") and len(components) >= 6

    if not looks_like_arn:
        if Token.is_unresolved(arn):
            return None
        raise UnscopedValidationError(
            f'ARNs must start with "arn:" and have at least 6 components: {arn}'
        )

    _, partition, service, _region, _account, resource_type_or_name = components[:6]
    if not partition:
        raise UnscopedValidationError(
            f"The `partition` component (2nd component) of an ARN is required: {arn}"
        )
    if not service:
        raise UnscopedValidationError(
            f"The `service` component (3rd component) of an ARN is required: {arn}"
        )
    if not resource_type_or_name:
        raise UnscopedValidationError(
            f"The `resource` component (6th component) of an ARN is required: {arn}"
        )
    return components


def _select(index: int, list_token: Union[List[str], str]) -> str:
    return Token.as_string(Fn.element(list_token, index))


def _parse_token_arn(arn_token: str, arn_format: ArnFormat) -> ArnComponents:
    components = Fn.split(":", arn_token)
    partition = _select(1, components)
    service = _select(2, components)
    region = _select(3, components)
    account = _select(4, components)

    sep: Optional[str]
    resource_name: Optional[str]
    if arn_format in (ArnFormat.NO_RESOURCE_NAME, ArnFormat.COLON_RESOURCE_NAME):
        resource = _select(5, components)
        if arn_format == ArnFormat.COLON_RESOURCE_NAME:
            resource_name = _select(6, components)
            sep = ":"
        else:
            resource_name = None
            sep = None
    else:
        last_components = Fn.split("/", _select(5, components))
        if arn_format == ArnFormat.SLASH_RESOURCE_NAME:
            resource = _select(0, last_components)
            resource_name = _select(1, last_components)
        else:
            resource = _select(1, last_components)
            resource_name = _select(2, last_components)
        sep = "/"

    return ArnComponents(
        service=service,
        resource=resource,
        partition=partition,
        region=region,
        account=account,
        resource_name=resource_name,
        sep=sep,
        arn_format=arn_format,
    )
