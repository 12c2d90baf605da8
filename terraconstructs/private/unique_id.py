"""Deterministic, human readable identifiers derived from construct paths."""
import hashlib
import re
from typing import List, Sequence

HIDDEN_ID = "Default"
HIDDEN_FROM_HUMAN_ID = "Resource"
PATH_SEP = "/"
HASH_LEN = 8
MAX_ID_LEN = 255


def make_unique_id(components: Sequence[str], max_len: int = MAX_ID_LEN) -> str:
    """
    Calculates a unique ID for a set of textual components.

    The human readable part is the alphanumeric concatenation of the
    components, followed by an 8 character hash of the full path. When the
    result would exceed ``max_len`` the human part keeps its head and tail.
    """
    components = [c for c in components if c != HIDDEN_ID]
    if not components:
        raise ValueError("Unable to calculate a unique id for an empty set of components")

    if len(components) == 1:
        candidate = remove_non_alphanumeric(components[0])
        if len(candidate) <= max_len:
            return candidate

    path_hash = _path_hash(components)
    human = "".join(
        remove_non_alphanumeric(c)
        for c in _remove_dupes(components)
        if c != HIDDEN_FROM_HUMAN_ID
    )

    max_human_len = max_len - HASH_LEN
    if len(human) > max_human_len:
        half = max_human_len // 2
        human = human[:half] + human[len(human) - (max_human_len - half):]

    return human + path_hash


def _path_hash(path: Sequence[str]) -> str:
    digest = hashlib.md5(PATH_SEP.join(path).encode("utf-8")).hexdigest()
    return digest[:HASH_LEN].upper()


def remove_non_alphanumeric(s: str) -> str:
    return re.sub(r"[^A-Za-z0-9]", "", s)


def _remove_dupes(path: Sequence[str]) -> List[str]:
    # "Stack/Stack" and "Resource/Resource" style repetition only adds noise
    ret: List[str] = []
    for component in path:
        if not ret or not ret[-1].endswith(component):
            ret.append(component)
    return ret
