"""
EventBridge rules and their targets.
"""
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import jsii
from cdktf import Token
from cdktf_cdktf_provider_aws.cloudwatch_event_rule import CloudwatchEventRule
from cdktf_cdktf_provider_aws.cloudwatch_event_target import (
    CloudwatchEventTarget,
    CloudwatchEventTargetDeadLetterConfig,
    CloudwatchEventTargetSqsTarget,
)
from constructs import Construct, IValidation

from ...errors import ValidationError
from ..arn import Arn, ArnFormat
from ..aws_construct import AwsConstructBase
from .input import RuleTargetInput
from .schedule import Schedule

logger = logging.getLogger(__name__)

MAX_TARGETS = 5
MAX_NAME_LENGTH = 64
# terraform appends a 26 character unique suffix to name prefixes
NAME_PREFIX_MAX_LENGTH = MAX_NAME_LENGTH - 26
NAME_PATTERN = re.compile(r"^[\.\-_A-Za-z0-9]+$")

# event pattern fields and their keys in the rendered pattern
EVENT_PATTERN_FIELDS = (
    ("account", "account"),
    ("detail", "detail"),
    ("detail_type", "detail-type"),
    ("id", "id"),
    ("region", "region"),
    ("resources", "resources"),
    ("source", "source"),
    ("time", "time"),
    ("version", "version"),
)


@dataclass
class EventPattern:
    """
    Events in Amazon EventBridge have the following format.

    Only the fields given are matched; an event must match every field.
    """

    account: Optional[List[str]] = None
    detail: Optional[Dict[str, Any]] = None
    detail_type: Optional[List[str]] = None
    id: Optional[List[str]] = None
    region: Optional[List[str]] = None
    resources: Optional[List[str]] = None
    source: Optional[List[str]] = None
    time: Optional[List[str]] = None
    version: Optional[List[str]] = None

    def to_json(self) -> Dict[str, Any]:
        return {
            key: getattr(self, attr)
            for attr, key in EVENT_PATTERN_FIELDS
            if getattr(self, attr) is not None
        }


@dataclass
class RuleTargetConfig:
    """Properties for an event rule target."""

    arn: str
    role: Any = None
    input: Optional[RuleTargetInput] = None
    message_group_id: Optional[str] = None
    dead_letter_arn: Optional[str] = None
    policy_dependable: Any = None


@jsii.implements(IValidation)
class _RuleValidation:
    def __init__(self, rule: "Rule") -> None:
        self._rule = rule

    def validate(self) -> List[str]:
        return self._rule.validate_rule()


class RuleBase(AwsConstructBase):
    """A new or imported EventBridge rule."""

    rule_arn: str
    rule_name: str


class Rule(RuleBase):
    """
    Defines an EventBridge Rule in this stack.

    A rule matches events with an event pattern, or triggers on a schedule,
    and sends them to up to five targets.
    """

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        rule_name: Optional[str] = None,
        description: Optional[str] = None,
        enabled: bool = True,
        schedule: Optional[Schedule] = None,
        event_pattern: Union[EventPattern, Mapping[str, Any], None] = None,
        event_bus_name: Optional[str] = None,
        targets: Sequence[Any] = (),
    ) -> None:
        super().__init__(scope, id)

        if event_bus_name is not None and schedule is not None:
            raise ValidationError(
                "Cannot associate rule with 'eventBus' when using 'schedule'",
                self,
            )

        self._rule_name = rule_name
        self._schedule = schedule
        self._event_pattern: Dict[str, Any] = {}
        self._event_bus_name = event_bus_name
        self._targets: List[CloudwatchEventTarget] = []

        if schedule is not None:
            schedule.bind(self)

        self.resource = CloudwatchEventRule(
            self,
            "Resource",
            name=rule_name,
            name_prefix=None if rule_name is not None else self.physical_name_prefix(NAME_PREFIX_MAX_LENGTH),
            description=description,
            state="ENABLED" if enabled else "DISABLED",
            schedule_expression=schedule.expression_string if schedule else None,
            event_bus_name=event_bus_name,
        )
        self.rule_arn = self.resource.arn
        self.rule_name = self.resource.name

        if event_pattern is not None:
            self.add_event_pattern(event_pattern)
        for target in targets:
            self.add_target(target)

        self.node.add_validation(_RuleValidation(self))

    @staticmethod
    def from_event_rule_arn(scope: Construct, id: str, event_rule_arn: str) -> "ImportedRule":
        """Import an existing EventBridge Rule provided an ARN."""
        return ImportedRule(scope, id, event_rule_arn)

    def add_event_pattern(self, event_pattern: Union[EventPattern, Mapping[str, Any]]) -> None:
        """
        Adds an event pattern filter to this rule.

        If a pattern was already specified, the two are merged: lists are
        joined without duplicates and keep their order, objects are merged
        key by key.
        """
        pattern = event_pattern.to_json() if isinstance(event_pattern, EventPattern) else dict(event_pattern)
        _merge_event_pattern(self, self._event_pattern, pattern)
        if self._event_pattern:
            self.resource.event_pattern = self.stack.to_json_string(self._event_pattern)

    def add_target(self, target: Any) -> None:
        """
        Adds a target to the rule. The abstract class RuleTarget can be extended to define new targets.

        No-op if target is None.
        """
        if target is None:
            return
        if len(self._targets) >= MAX_TARGETS:
            raise ValidationError(f"Event rule cannot have more than {MAX_TARGETS} targets.", self)

        target_id = f"Target{len(self._targets)}"
        config: RuleTargetConfig = target.bind(self, target_id)
        input_props = config.input.bind(self) if config.input is not None else None

        resource = CloudwatchEventTarget(
            self,
            target_id,
            rule=self.rule_name,
            arn=config.arn,
            target_id=target_id,
            event_bus_name=self._event_bus_name,
            role_arn=config.role.role_arn if config.role is not None else None,
            input=input_props.input if input_props else None,
            input_path=input_props.input_path if input_props else None,
            sqs_target=CloudwatchEventTargetSqsTarget(message_group_id=config.message_group_id)
            if config.message_group_id is not None else None,
            dead_letter_config=CloudwatchEventTargetDeadLetterConfig(arn=config.dead_letter_arn)
            if config.dead_letter_arn is not None else None,
        )
        if config.policy_dependable is not None:
            resource.node.add_dependency(config.policy_dependable)
        self._targets.append(resource)
        logger.debug("Added target %s to rule %s", target_id, self.node.path)

    def validate_rule(self) -> List[str]:
        errors = []
        if not self._event_pattern and self._schedule is None:
            errors.append("Either 'eventPattern' or 'schedule' must be defined")

        name = self._rule_name
        if name is not None and not Token.is_unresolved(name):
            if not 1 <= len(name) <= MAX_NAME_LENGTH:
                errors.append(
                    f"Event rule name must be between 1 and {MAX_NAME_LENGTH} characters. Received: {name}"
                )
            elif not NAME_PATTERN.match(name):
                errors.append(
                    f"Event rule name {name} can contain only letters, numbers, periods, hyphens, "
                    "or underscores with no spaces."
                )
        return errors


class ImportedRule(RuleBase):
    """An EventBridge rule defined outside of this stack."""

    def __init__(self, scope: Construct, id: str, event_rule_arn: str) -> None:
        super().__init__(scope, id)
        parsed = Arn.split(event_rule_arn, ArnFormat.SLASH_RESOURCE_NAME)
        self._account = parsed.account
        self.rule_arn = event_rule_arn
        self.rule_name = parsed.resource_name

    @property
    def env_account(self) -> str:
        return self._account


def _merge_event_pattern(scope: Construct, dest: Dict[str, Any], src: Mapping[str, Any]) -> None:
    for key, value in src.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            merged = dest.setdefault(key, [])
            if not isinstance(merged, list):
                raise ValidationError(f"Invalid event pattern '{key}', expecting an object or an array", scope)
            for item in value:
                if item not in merged:
                    merged.append(item)
        elif isinstance(value, Mapping):
            merged = dest.setdefault(key, {})
            if not isinstance(merged, dict):
                raise ValidationError(f"Invalid event pattern '{key}', expecting an object or an array", scope)
            _merge_event_pattern(scope, merged, value)
        else:
            raise ValidationError(f"Invalid event pattern '{key}', expecting an object or an array", scope)
