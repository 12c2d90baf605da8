"""
The input to send to the target of an EventBridge rule.
"""
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .rule import RuleBase


@dataclass
class RuleTargetInputProperties:
    """The input properties for an event target."""

    input: Optional[str] = None
    input_path: Optional[str] = None


class RuleTargetInput:
    """The input to send to the event target."""

    def __init__(self, *, text: Any = None, obj: Any = None, path: Optional[str] = None) -> None:
        self._text = text
        self._obj = obj
        self._path = path

    @staticmethod
    def from_text(text: str) -> "RuleTargetInput":
        """
        Pass text to the event target.

        The text is sent as a JSON string, so quotes are added and escaped.
        """
        return RuleTargetInput(text=text)

    @staticmethod
    def from_object(obj: Any) -> "RuleTargetInput":
        """Pass a JSON object to the event target."""
        return RuleTargetInput(obj=obj)

    @staticmethod
    def from_event_path(path: str) -> "RuleTargetInput":
        """Take the event target input from a path in the event JSON."""
        return RuleTargetInput(path=path)

    def bind(self, rule: "RuleBase") -> RuleTargetInputProperties:
        if self._path is not None:
            return RuleTargetInputProperties(input_path=self._path)
        value = self._text if self._text is not None else self._obj
        return RuleTargetInputProperties(input=rule.stack.to_json_string(value))
