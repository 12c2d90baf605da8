"""
Represents a statement in an IAM policy document.

Statements render two ways: ``to_statement_json`` produces the IAM JSON
language (used for validation, minimization and ``from_json`` round trips)
and ``to_terraform`` produces a ``statement`` block of the
``aws_iam_policy_document`` data source.
"""
import json
import re
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from cdktf import Token

from ...errors import UnscopedValidationError
from .principals import (
    AccountPrincipal,
    AccountRootPrincipal,
    AnyPrincipal,
    ArnPrincipal,
    CanonicalUserPrincipal,
    Condition,
    FederatedPrincipal,
    PrincipalBase,
    ServicePrincipal,
    conditions_key,
    from_principal_json,
    make_condition,
    merge_conditions,
)

ACTION_PATTERN = re.compile(r"^(\*|[a-zA-Z0-9-]+:[a-zA-Z0-9*]+)$")


class Effect(str, Enum):
    """The Effect element of an IAM policy."""

    ALLOW = "Allow"
    DENY = "Deny"


class PolicyStatement:
    """Represents a statement in an IAM policy document."""

    def __init__(
        self,
        *,
        sid: Optional[str] = None,
        effect: Effect = Effect.ALLOW,
        actions: Optional[Sequence[str]] = None,
        not_actions: Optional[Sequence[str]] = None,
        principals: Optional[Sequence[PrincipalBase]] = None,
        not_principals: Optional[Sequence[PrincipalBase]] = None,
        resources: Optional[Sequence[str]] = None,
        not_resources: Optional[Sequence[str]] = None,
        conditions: Optional[Sequence[Condition]] = None,
    ) -> None:
        self._sid = sid
        self._effect = Effect(effect)
        self._actions: List[str] = []
        self._not_actions: List[str] = []
        self._principals: List[PrincipalBase] = []
        self._not_principals: List[PrincipalBase] = []
        self._resources: List[str] = []
        self._not_resources: List[str] = []
        self._conditions: List[Condition] = []
        self._principal_conditions_key: Optional[str] = None
        self._frozen = False

        self.add_actions(*(actions or []))
        self.add_not_actions(*(not_actions or []))
        self.add_principals(*(principals or []))
        self.add_not_principals(*(not_principals or []))
        self.add_resources(*(resources or []))
        self.add_not_resources(*(not_resources or []))
        self._conditions = merge_conditions([], conditions or [])

    @staticmethod
    def from_json(obj: Mapping[str, Any]) -> "PolicyStatement":
        """
        Creates a new PolicyStatement based on the object provided.

        This will accept an object created from the ``.to_statement_json()`` call.
        """
        statement = PolicyStatement(
            sid=obj.get("Sid"),
            effect=obj.get("Effect", Effect.ALLOW),
            actions=_ensure_list(obj.get("Action")),
            not_actions=_ensure_list(obj.get("NotAction")),
            resources=_ensure_list(obj.get("Resource")),
            not_resources=_ensure_list(obj.get("NotResource")),
        )
        if obj.get("Principal") is not None:
            statement.add_principals(from_principal_json(obj["Principal"]))
        if obj.get("NotPrincipal") is not None:
            statement.add_not_principals(from_principal_json(obj["NotPrincipal"]))
        for test, by_key in (obj.get("Condition") or {}).items():
            statement.add_condition_object(test, by_key)
        return statement

    # =================================================================
    # =========================== ACTIONS =============================
    # =================================================================

    def add_actions(self, *actions: str) -> None:
        """
        Specify allowed actions into the "Action" section of the policy statement.

        Actions are validated to look like ``service:ActionName``.
        """
        self._assert_not_frozen("add_actions")
        if actions and self._not_actions:
            raise UnscopedValidationError("Cannot add 'Actions' to policy statement if 'NotActions' have been added")
        _validate_actions(actions)
        self._actions.extend(actions)

    def add_not_actions(self, *not_actions: str) -> None:
        self._assert_not_frozen("add_not_actions")
        if not_actions and self._actions:
            raise UnscopedValidationError("Cannot add 'NotActions' to policy statement if 'Actions' have been added")
        _validate_actions(not_actions)
        self._not_actions.extend(not_actions)

    # =================================================================
    # ========================== PRINCIPALS ===========================
    # =================================================================

    def add_principals(self, *principals: PrincipalBase) -> None:
        self._assert_not_frozen("add_principals")
        if principals and self._not_principals:
            raise UnscopedValidationError(
                "Cannot add 'Principals' to policy statement if 'NotPrincipals' have been added"
            )
        for principal in principals:
            self._validate_principal(principal)
        self._principals.extend(principals)

    def add_not_principals(self, *not_principals: PrincipalBase) -> None:
        self._assert_not_frozen("add_not_principals")
        if not_principals and self._principals:
            raise UnscopedValidationError(
                "Cannot add 'NotPrincipals' to policy statement if 'Principals' have been added"
            )
        for principal in not_principals:
            self._validate_principal(principal)
        self._not_principals.extend(not_principals)

    def _validate_principal(self, principal: PrincipalBase) -> None:
        fragment = principal.policy_fragment
        key = conditions_key(fragment.conditions)
        if self._principal_conditions_key is None:
            self._principal_conditions_key = key
        elif self._principal_conditions_key != key:
            raise UnscopedValidationError("All principals in a PolicyStatement must have the same Conditions")

    def add_aws_account_principal(self, account_id: str) -> None:
        self.add_principals(AccountPrincipal(account_id))

    def add_arn_principal(self, arn: str) -> None:
        self.add_principals(ArnPrincipal(arn))

    def add_service_principal(self, service: str, region: Optional[str] = None) -> None:
        self.add_principals(ServicePrincipal(service, region=region))

    def add_federated_principal(self, federated: str, conditions: Sequence[Condition]) -> None:
        self.add_principals(FederatedPrincipal(federated, conditions))

    def add_account_root_principal(self) -> None:
        self.add_principals(AccountRootPrincipal())

    def add_canonical_user_principal(self, canonical_user_id: str) -> None:
        self.add_principals(CanonicalUserPrincipal(canonical_user_id))

    def add_any_principal(self) -> None:
        self.add_principals(AnyPrincipal())

    # =================================================================
    # ========================== RESOURCES ============================
    # =================================================================

    def add_resources(self, *resources: str) -> None:
        self._assert_not_frozen("add_resources")
        if resources and self._not_resources:
            raise UnscopedValidationError(
                "Cannot add 'Resources' to policy statement if 'NotResources' have been added"
            )
        self._resources.extend(resources)

    def add_not_resources(self, *not_resources: str) -> None:
        self._assert_not_frozen("add_not_resources")
        if not_resources and self._resources:
            raise UnscopedValidationError(
                "Cannot add 'NotResources' to policy statement if 'Resources' have been added"
            )
        self._not_resources.extend(not_resources)

    def add_all_resources(self) -> None:
        """Adds a ``"*"`` resource to this statement."""
        self.add_resources("*")

    # =================================================================
    # ========================== CONDITIONS ===========================
    # =================================================================

    def add_condition(self, test: str, variable: str, values: Any) -> None:
        """
        Add a condition to the policy.

        Adding a condition for an operator and key which is already present
        replaces the previous values.
        """
        self._assert_not_frozen("add_condition")
        self._conditions = merge_conditions(self._conditions, [make_condition(test, variable, values)])

    def add_conditions(self, *conditions: Condition) -> None:
        self._assert_not_frozen("add_conditions")
        self._conditions = merge_conditions(self._conditions, conditions)

    def add_condition_object(self, test: str, obj: Mapping[str, Any]) -> None:
        """Adds ``{variable: values}`` pairs for one condition operator."""
        for variable, values in obj.items():
            self.add_condition(test, variable, values)

    def add_account_condition(self, account_id: str) -> None:
        """Add a condition that limits to a given account (``sts:ExternalId``)."""
        self.add_condition("StringEquals", "sts:ExternalId", account_id)

    def add_source_account_condition(self, account_id: str) -> None:
        self.add_condition("StringEquals", "aws:SourceAccount", account_id)

    def add_source_arn_condition(self, arn: str) -> None:
        self.add_condition("ArnEquals", "aws:SourceArn", arn)

    # =================================================================
    # ========================== ACCESSORS ============================
    # =================================================================

    @property
    def sid(self) -> Optional[str]:
        return self._sid

    @sid.setter
    def sid(self, value: Optional[str]) -> None:
        self._assert_not_frozen("sid")
        self._sid = value

    @property
    def effect(self) -> Effect:
        return self._effect

    @effect.setter
    def effect(self, value: Effect) -> None:
        self._assert_not_frozen("effect")
        self._effect = Effect(value)

    @property
    def actions(self) -> List[str]:
        return list(self._actions)

    @property
    def not_actions(self) -> List[str]:
        return list(self._not_actions)

    @property
    def principals(self) -> List[PrincipalBase]:
        return list(self._principals)

    @property
    def not_principals(self) -> List[PrincipalBase]:
        return list(self._not_principals)

    @property
    def resources(self) -> List[str]:
        return list(self._resources)

    @property
    def not_resources(self) -> List[str]:
        return list(self._not_resources)

    @property
    def conditions(self) -> List[Condition]:
        return merge_conditions(self._principal_conditions(), self._conditions)

    @property
    def has_principal(self) -> bool:
        return bool(self._principals or self._not_principals)

    @property
    def has_resource(self) -> bool:
        return bool(self._resources or self._not_resources)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _principal_conditions(self) -> List[Condition]:
        principals = self._principals or self._not_principals
        if not principals:
            return []
        return principals[0].policy_fragment.conditions

    # =================================================================
    # ========================== LIFECYCLE ============================
    # =================================================================

    def copy(self, **overrides: Any) -> "PolicyStatement":
        """
        Create a new PolicyStatement with the same exact properties, except
        for the overrides.
        """
        props = dict(
            sid=self._sid,
            effect=self._effect,
            actions=self._actions,
            not_actions=self._not_actions,
            principals=self._principals,
            not_principals=self._not_principals,
            resources=self._resources,
            not_resources=self._not_resources,
            conditions=self._conditions,
        )
        props.update(overrides)
        return PolicyStatement(**props)

    def freeze(self) -> "PolicyStatement":
        """
        Make the PolicyStatement immutable.

        Happens when the statement is rendered or added to a policy which
        has already been rendered.
        """
        self._frozen = True
        return self

    def _assert_not_frozen(self, method: str) -> None:
        if self._frozen:
            raise UnscopedValidationError(
                f"{method}: freeze() has been called on this PolicyStatement previously, "
                "so it can no longer be modified"
            )

    # =================================================================
    # ========================== VALIDATION ===========================
    # =================================================================

    def validate_for_any_policy(self) -> List[str]:
        errors = []
        if not self._actions and not self._not_actions:
            errors.append("A PolicyStatement must specify at least one 'action' or 'notAction'.")
        return errors

    def validate_for_resource_policy(self) -> List[str]:
        errors = self.validate_for_any_policy()
        if not self.has_principal:
            errors.append(
                "A PolicyStatement used in a resource-based policy must specify at least one IAM principal."
            )
        return errors

    def validate_for_identity_policy(self) -> List[str]:
        errors = self.validate_for_any_policy()
        if self.has_principal:
            errors.append(
                "A PolicyStatement used in an identity-based policy cannot specify any IAM principals."
            )
        if not self.has_resource:
            errors.append(
                "A PolicyStatement used in an identity-based policy must specify at least one resource."
            )
        return errors

    # =================================================================
    # =========================== RENDER ==============================
    # =================================================================

    def to_statement_json(self) -> Dict[str, Any]:
        """JSON-ify the statement in the IAM policy language."""
        statement: Dict[str, Any] = {}
        _put(statement, "Sid", self._sid)
        statement["Effect"] = self._effect.value
        _put(statement, "Action", _scalarize(_dedupe(self._actions)))
        _put(statement, "NotAction", _scalarize(_dedupe(self._not_actions)))
        _put(statement, "Principal", _render_principals_json(self._principals))
        _put(statement, "NotPrincipal", _render_principals_json(self._not_principals))
        _put(statement, "Resource", _scalarize(_dedupe(self._resources)))
        _put(statement, "NotResource", _scalarize(_dedupe(self._not_resources)))

        conditions: Dict[str, Dict[str, Any]] = {}
        for c in self.conditions:
            conditions.setdefault(c["test"], {})[c["variable"]] = _scalarize(list(c["values"]))
        _put(statement, "Condition", conditions or None)
        return statement

    def to_terraform(self) -> Dict[str, Any]:
        """Renders the statement as an ``aws_iam_policy_document`` statement block."""
        block: Dict[str, Any] = {}
        _put(block, "sid", self._sid)
        block["effect"] = self._effect.value
        _put(block, "actions", _dedupe(self._actions) or None)
        _put(block, "not_actions", _dedupe(self._not_actions) or None)
        _put(block, "principals", _render_principals_terraform(self._principals))
        _put(block, "not_principals", _render_principals_terraform(self._not_principals))
        _put(block, "resources", _dedupe(self._resources) or None)
        _put(block, "not_resources", _dedupe(self._not_resources) or None)
        _put(block, "condition", [
            {"test": c["test"], "variable": c["variable"], "values": list(c["values"])}
            for c in self.conditions
        ] or None)
        return block

    def __str__(self) -> str:
        return json.dumps(self.to_statement_json(), default=str)

    __repr__ = __str__


def _validate_actions(actions: Sequence[str]) -> None:
    for action in actions:
        if not Token.is_unresolved(action) and not ACTION_PATTERN.match(action):
            raise UnscopedValidationError(
                f"Action '{action}' is invalid. An action string consists of a service namespace, "
                "a colon, and the name of an action. Action names can include wildcards."
            )


def _ensure_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return list(value)
    raise UnscopedValidationError("Fields must be either a string or an array of strings")


def _put(target: Dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        target[key] = value


def _dedupe(values: Sequence[Any]) -> List[Any]:
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def _scalarize(values: List[Any]) -> Any:
    if not values:
        return None
    if len(values) == 1:
        return values[0]
    return values


def _merge_principal_json(principals: Sequence[PrincipalBase]) -> Dict[str, List[str]]:
    merged: Dict[str, List[str]] = {}
    for principal in principals:
        for key, values in principal.policy_fragment.principal_json.items():
            bucket = merged.setdefault(key, [])
            for value in values:
                if value not in bucket:
                    bucket.append(value)
    return merged


def _render_principals_json(principals: Sequence[PrincipalBase]) -> Any:
    if not principals:
        return None
    merged = _merge_principal_json(principals)
    if list(merged) == ["*"]:
        return "*"
    return {key: _scalarize(sorted(values) if len(values) > 1 else values) for key, values in merged.items()}


def _render_principals_terraform(principals: Sequence[PrincipalBase]) -> Optional[List[Dict[str, Any]]]:
    if not principals:
        return None
    return [
        {"type": key, "identifiers": values}
        for key, values in _merge_principal_json(principals).items()
    ]
