"""String helpers shared by the AWS constructs."""
import re
from typing import Sequence


def to_terraform_identifier(value: str) -> str:
    """Lowercase identifier safe to use as a Terraform block or alias name."""
    return re.sub(r"[^a-z0-9_]", "_", value.lower())


def make_physical_name(components: Sequence[str], max_len: int, lower: bool = False) -> str:
    """
    Joins name components into a physical name prefix.

    Components are stripped of characters AWS rejects in most resource
    names and the result is truncated from the front so the most specific
    part of the path survives.
    """
    name = "".join(re.sub(r"[^A-Za-z0-9_.-]", "", c) for c in components)
    if lower:
        name = name.lower()
    if len(name) > max_len:
        name = name[len(name) - max_len:]
    return name
