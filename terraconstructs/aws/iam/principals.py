"""
IAM principals.

A principal renders to a ``PrincipalPolicyFragment``: the ``Principal``
block of a policy statement (``{"AWS": [...]}``, ``{"Service": [...]}``,
...) plus the conditions that must accompany it. Conditions use the
Terraform ``aws_iam_policy_document`` shape::

    {"test": "StringEquals", "variable": "aws:PrincipalOrgID", "values": ["o-123"]}
"""
import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence

from cdktf import Token

from ...errors import UnscopedValidationError
from ..aws_construct import stack_lazy_string

if TYPE_CHECKING:
    from .policy_document import PolicyDocument
    from .policy_statement import PolicyStatement

Condition = Dict[str, Any]

STAR = "*"


def make_condition(test: str, variable: str, values: Any) -> Condition:
    if isinstance(values, (list, tuple)):
        values = [_condition_value(v) for v in values]
    else:
        values = [_condition_value(values)]
    return {"test": test, "variable": variable, "values": values}


def _condition_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


def merge_conditions(existing: List[Condition], new: Sequence[Condition]) -> List[Condition]:
    """
    Merges condition blocks, a later block for the same operator and key
    replaces the earlier values.
    """
    merged = [dict(c) for c in existing]
    for condition in new:
        for current in merged:
            if current["test"] == condition["test"] and current["variable"] == condition["variable"]:
                current["values"] = list(condition["values"])
                break
        else:
            merged.append(make_condition(condition["test"], condition["variable"], condition["values"]))
    return merged


def conditions_key(conditions: Sequence[Condition]) -> str:
    """A comparable representation of a set of conditions."""
    return json.dumps(
        sorted([c["test"], c["variable"], sorted(str(v) for v in c["values"])] for c in conditions)
    )


@dataclass
class PrincipalPolicyFragment:
    """The ``Principal`` JSON and conditions a principal contributes to a statement."""

    principal_json: Dict[str, List[str]]
    conditions: List[Condition] = field(default_factory=list)


@dataclass
class AddToPrincipalPolicyResult:
    statement_added: bool
    policy_dependable: Any = None


class PrincipalBase:
    """Base class for policy principals."""

    assume_role_action = "sts:AssumeRole"
    principal_account: Optional[str] = None

    @property
    def grant_principal(self) -> "PrincipalBase":
        return self

    @property
    def policy_fragment(self) -> PrincipalPolicyFragment:
        raise NotImplementedError

    def add_to_policy(self, statement: "PolicyStatement") -> bool:
        return self.add_to_principal_policy(statement).statement_added

    def add_to_principal_policy(self, statement: "PolicyStatement") -> AddToPrincipalPolicyResult:
        # This base class is used for non-identity principals. None of them
        # have a PolicyDocument to add to.
        return AddToPrincipalPolicyResult(statement_added=False)

    def add_to_assume_role_policy(self, document: "PolicyDocument") -> None:
        from .policy_statement import PolicyStatement

        document.add_statements(
            PolicyStatement(actions=[self.assume_role_action], principals=[self])
        )

    def with_conditions(self, *conditions: Condition) -> "PrincipalWithConditions":
        """Returns a new PrincipalWithConditions using this principal as the base."""
        return PrincipalWithConditions(self, list(conditions))

    def with_session_tags(self) -> "SessionTagsPrincipal":
        """Returns a new principal that allows ``sts:TagSession`` on assume."""
        return SessionTagsPrincipal(self)

    def dedupe_string(self) -> Optional[str]:
        return json.dumps(self.policy_fragment.principal_json, sort_keys=True)

    def __str__(self) -> str:
        return f"{type(self).__name__}({self.policy_fragment.principal_json})"


class ArnPrincipal(PrincipalBase):
    """Specify a principal by its Amazon Resource Name (ARN)."""

    def __init__(self, arn: str) -> None:
        self.arn = arn

    @property
    def policy_fragment(self) -> PrincipalPolicyFragment:
        return PrincipalPolicyFragment({"AWS": [self.arn]})

    def in_organization(self, organization_id: str) -> "PrincipalWithConditions":
        """A convenience method for adding a condition that the principal is part of the given organization."""
        return self.with_conditions(
            make_condition("StringEquals", "aws:PrincipalOrgID", organization_id)
        )


class AccountPrincipal(ArnPrincipal):
    """Specify AWS account ID as the principal entity in a policy to delegate authority to the account."""

    def __init__(self, account_id: Any) -> None:
        if not Token.is_unresolved(account_id) and not isinstance(account_id, str):
            raise UnscopedValidationError("accountId should be of type string")
        super().__init__(
            stack_lazy_string(lambda stack: f"arn:{stack.partition}:iam::{account_id}:root")
        )
        self.account_id = account_id
        self.principal_account = account_id


class AccountRootPrincipal(PrincipalBase):
    """The root user of the account of the stack the principal is used in."""

    @property
    def policy_fragment(self) -> PrincipalPolicyFragment:
        return PrincipalPolicyFragment({
            "AWS": [stack_lazy_string(lambda stack: f"arn:{stack.partition}:iam::{stack.account}:root")]
        })


class ServicePrincipal(PrincipalBase):
    """An IAM principal that represents an AWS service (i.e. ``sqs.amazonaws.com``)."""

    def __init__(
        self,
        service: str,
        *,
        conditions: Optional[Sequence[Condition]] = None,
        region: Optional[str] = None,
    ) -> None:
        self.service = service
        self.region = region
        self.conditions = [make_condition(c["test"], c["variable"], c["values"]) for c in conditions or []]

    @property
    def policy_fragment(self) -> PrincipalPolicyFragment:
        service, region = self.service, self.region
        return PrincipalPolicyFragment(
            {"Service": [stack_lazy_string(lambda stack: stack.service_principal_name(service, region))]},
            list(self.conditions),
        )

    def dedupe_string(self) -> Optional[str]:
        return json.dumps({"Service": [self.service, self.region]})

    def __str__(self) -> str:
        return f"ServicePrincipal({self.service})"


class FederatedPrincipal(PrincipalBase):
    """Principal entity that represents a federated identity provider."""

    def __init__(
        self,
        federated: str,
        conditions: Optional[Sequence[Condition]] = None,
        assume_role_action: str = "sts:AssumeRole",
    ) -> None:
        self.federated = federated
        self.conditions = [make_condition(c["test"], c["variable"], c["values"]) for c in conditions or []]
        self.assume_role_action = assume_role_action

    @property
    def policy_fragment(self) -> PrincipalPolicyFragment:
        return PrincipalPolicyFragment({"Federated": [self.federated]}, list(self.conditions))


class WebIdentityPrincipal(FederatedPrincipal):
    """A principal that represents a federated identity provider as Web Identity such as Cognito, Amazon, Facebook, Google, etc."""

    def __init__(self, identity_provider: str, conditions: Optional[Sequence[Condition]] = None) -> None:
        super().__init__(identity_provider, conditions, "sts:AssumeRoleWithWebIdentity")


class SamlPrincipal(FederatedPrincipal):
    """Principal entity that represents a SAML federated identity provider."""

    def __init__(self, saml_provider_arn: str, conditions: Optional[Sequence[Condition]] = None) -> None:
        super().__init__(saml_provider_arn, conditions, "sts:AssumeRoleWithSAML")


class CanonicalUserPrincipal(PrincipalBase):
    """A policy principal for canonical user IDs (S3 bucket policies, CloudFront origin identities)."""

    def __init__(self, canonical_user_id: str) -> None:
        self.canonical_user_id = canonical_user_id

    @property
    def policy_fragment(self) -> PrincipalPolicyFragment:
        return PrincipalPolicyFragment({"CanonicalUser": [self.canonical_user_id]})


class AnyPrincipal(ArnPrincipal):
    """A principal representing all AWS identities in all accounts."""

    def __init__(self) -> None:
        super().__init__(STAR)

    def __str__(self) -> str:
        return "AnyPrincipal"


class StarPrincipal(PrincipalBase):
    """
    A principal that uses a literal '*' in the IAM JSON language.

    Some services behave differently when you specify ``Principal: "*"`` or
    ``Principal: {"AWS": "*"}``; prefer AnyPrincipal where possible.
    """

    @property
    def policy_fragment(self) -> PrincipalPolicyFragment:
        return PrincipalPolicyFragment({STAR: [STAR]})

    def __str__(self) -> str:
        return "StarPrincipal"


class _JsonPrincipal(PrincipalBase):
    def __init__(self, principal_json: Mapping[str, Any]) -> None:
        self._json = {
            key: list(value) if isinstance(value, (list, tuple)) else [value]
            for key, value in principal_json.items()
        }

    @property
    def policy_fragment(self) -> PrincipalPolicyFragment:
        return PrincipalPolicyFragment({k: list(v) for k, v in self._json.items()})


def from_principal_json(principal_json: Any) -> PrincipalBase:
    """Builds a principal from the ``Principal`` element of an IAM JSON statement."""
    if principal_json == STAR:
        return StarPrincipal()
    if isinstance(principal_json, Mapping):
        return _JsonPrincipal(principal_json)
    raise UnscopedValidationError(f"Unsupported Principal in policy JSON: {principal_json!r}")


class PrincipalWithConditions(PrincipalBase):
    """An IAM principal with additional conditions specifying when the policy is in effect."""

    def __init__(self, principal: PrincipalBase, conditions: Sequence[Condition]) -> None:
        self.principal = principal
        self.assume_role_action = principal.assume_role_action
        self.principal_account = principal.principal_account
        self._additional_conditions: List[Condition] = merge_conditions([], conditions)

    def add_condition(self, test: str, variable: str, values: Any) -> None:
        self._additional_conditions = merge_conditions(
            self._additional_conditions, [make_condition(test, variable, values)]
        )

    def add_condition_object(self, test: str, obj: Mapping[str, Any]) -> None:
        for variable, values in obj.items():
            self.add_condition(test, variable, values)

    def add_conditions(self, *conditions: Condition) -> None:
        self._additional_conditions = merge_conditions(self._additional_conditions, conditions)

    @property
    def conditions(self) -> List[Condition]:
        return merge_conditions(self.principal.policy_fragment.conditions, self._additional_conditions)

    @property
    def policy_fragment(self) -> PrincipalPolicyFragment:
        return PrincipalPolicyFragment(self.principal.policy_fragment.principal_json, self.conditions)

    def add_to_principal_policy(self, statement: "PolicyStatement") -> AddToPrincipalPolicyResult:
        return self.principal.add_to_principal_policy(statement)

    def __str__(self) -> str:
        return f"{self.principal} with conditions"


class SessionTagsPrincipal(PrincipalBase):
    """Enables session tags on role assumptions from a principal."""

    def __init__(self, principal: PrincipalBase) -> None:
        self.principal = principal
        self.assume_role_action = principal.assume_role_action
        self.principal_account = principal.principal_account

    @property
    def policy_fragment(self) -> PrincipalPolicyFragment:
        return self.principal.policy_fragment

    def add_to_assume_role_policy(self, document: "PolicyDocument") -> None:
        from .policy_statement import PolicyStatement

        document.add_statements(
            PolicyStatement(actions=[self.assume_role_action, "sts:TagSession"], principals=[self.principal])
        )


class CompositePrincipal(PrincipalBase):
    """
    Represents a principal that has multiple types of principals.

    Each member is added to an assume role policy as its own statement, so
    members may use different assume-role actions.
    """

    def __init__(self, *principals: PrincipalBase) -> None:
        self._principals: List[PrincipalBase] = []
        self.add_principals(*principals)

    def add_principals(self, *principals: PrincipalBase) -> "CompositePrincipal":
        self._principals.extend(principals)
        return self

    @property
    def principals(self) -> List[PrincipalBase]:
        return list(self._principals)

    @property
    def assume_role_action(self) -> str:
        actions = {p.assume_role_action for p in self._principals}
        if len(actions) > 1:
            raise UnscopedValidationError(
                "Cannot determine the assume role action of a CompositePrincipal with mixed actions"
            )
        return actions.pop() if actions else "sts:AssumeRole"

    @property
    def policy_fragment(self) -> PrincipalPolicyFragment:
        principal_json: Dict[str, List[str]] = {}
        for p in self._principals:
            fragment = p.policy_fragment
            if fragment.conditions:
                raise UnscopedValidationError(
                    "Components of a CompositePrincipal must not have conditions. "
                    f"Tried to add the following fragment: {fragment.principal_json}"
                )
            for key, values in fragment.principal_json.items():
                principal_json.setdefault(key, []).extend(values)
        return PrincipalPolicyFragment(principal_json)

    def add_to_assume_role_policy(self, document: "PolicyDocument") -> None:
        for p in self._principals:
            p.add_to_assume_role_policy(document)

    def dedupe_string(self) -> Optional[str]:
        return None

    def __str__(self) -> str:
        return f"CompositePrincipal({', '.join(str(p) for p in self._principals)})"
