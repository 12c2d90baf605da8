"""
Deploy-time lookup of regional facts.

When the region of a stack is only known at apply time, regional facts
are rendered as a Terraform local map keyed by region and looked up with
the stack's region token.
"""
import re
from typing import TYPE_CHECKING, Dict, List, Optional

from aws_cdk.region_info import RegionInfo
from cdktf import Fn, TerraformLocal, Token

from ..errors import UnscopedValidationError
from . import cx_api

if TYPE_CHECKING:
    from .aws_stack import AwsStack

URL_SUFFIX_PLACEHOLDER = "AWS::URLSuffix"
REGION_PLACEHOLDER = "AWS::Region"


def deploy_time_lookup(
    stack: "AwsStack",
    fact_name: str,
    lookup_map: Dict[str, str],
    default_value: Optional[str] = None,
) -> str:
    """
    Make sure a Terraform local (mimicking a CloudFormation Mapping) exists
    in the given stack with the lookup values for the given fact.

    Adds to an existing local block when there is one.
    """
    if not lookup_map:
        if default_value is None:
            raise UnscopedValidationError(
                f"region-info: don't have any information for {fact_name}. "
                "Use 'Fact.register' to provide values, or add partitions to the "
                f"'{cx_api.TARGET_PARTITIONS}' context value."
            )
        return default_value

    # If the tokenized representation of all values is the same, return the
    # value directly and skip the map.
    pattern = _find_value_pattern(lookup_map)
    if pattern is not None:
        return (
            pattern
            .replace(REGION_PLACEHOLDER, stack.region)
            .replace(URL_SUFFIX_PLACEHOLDER, stack.url_suffix)
        )

    if ":" in fact_name:
        fact_class, fact_param = fact_name.split(":", 1)
    else:
        fact_class, fact_param = fact_name, "value"

    map_id = f"{_ucfirst(fact_class)}Map"
    fact_key = re.sub(r"[^a-zA-Z0-9]", "x", fact_param)

    mapping = stack.node.try_find_child(map_id)
    if mapping is None:
        mapping = TerraformLocal(stack, map_id, {})

    # merge with facts previously registered on the same map
    expression = getattr(mapping, "_tc_lookup_map", {})
    for region, value in lookup_map.items():
        expression.setdefault(region, {})[fact_key] = value
    setattr(mapping, "_tc_lookup_map", expression)
    mapping.expression = expression

    return Token.as_string(Fn.lookup_nested(mapping, [stack.region, fact_key]))


def _ucfirst(x: str) -> str:
    return x[:1].upper() + x[1:]


def _find_value_pattern(region_map: Dict[str, str]) -> Optional[str]:
    """
    Try to detect if all values in the map follow the same pattern.

    Region and URL suffix values are replaced with their placeholders; if
    every value is identical afterwards the single value is returned.
    """
    simplified = dict(region_map)

    # only substitute the URL suffix when it actually differs between regions
    url_suffixes = [_url_suffix(region) for region in simplified]
    if not _all_same(url_suffixes) and all(
        _url_suffix(region) in value for region, value in simplified.items()
    ):
        for region in simplified:
            simplified[region] = simplified[region].replace(_url_suffix(region), URL_SUFFIX_PLACEHOLDER)

    if all(region in value for region, value in simplified.items()):
        for region in simplified:
            simplified[region] = simplified[region].replace(region, REGION_PLACEHOLDER)

    values = list(simplified.values())
    if _all_same(values):
        return values[0]
    return None


def _all_same(xs: List[str]) -> bool:
    return all(x == xs[0] for x in xs)


def _url_suffix(region: str) -> str:
    info = RegionInfo.get(region)
    return (info.domain_suffix if info is not None else None) or "amazonaws.com"
