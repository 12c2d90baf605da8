"""
Result of a grant() operation.

A grant adds statements to the identity policy of the grantee, to the
resource policy of the resource, or to both, depending on whether the two
live in the same account.
"""
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from cdktf import Token

from ...errors import UnscopedValidationError
from .policy_statement import PolicyStatement
from .principals import AddToPrincipalPolicyResult, PrincipalBase


@dataclass
class AddToResourcePolicyResult:
    statement_added: bool
    policy_dependable: Any = None


@dataclass
class GrantOptions:
    grantee: PrincipalBase
    actions: Sequence[str]
    resource_arns: Sequence[str]
    conditions: Optional[Sequence[dict]] = None


class Grant:
    """
    Result of a grant() operation.

    This class is not instantiable by consumers on purpose, use the static
    constructors.
    """

    def __init__(
        self,
        *,
        options: GrantOptions,
        principal_statement: Optional[PolicyStatement] = None,
        resource_statement: Optional[PolicyStatement] = None,
        policy_dependable: Any = None,
    ) -> None:
        if options.grantee is None:
            raise UnscopedValidationError("Grant requires a grantee")
        self.options = options
        self.principal_statement = principal_statement
        self.resource_statement = resource_statement
        self._dependables: List[Any] = [policy_dependable] if policy_dependable is not None else []

    @staticmethod
    def add_to_principal_or_resource(
        *,
        grantee: PrincipalBase,
        actions: Sequence[str],
        resource_arns: Sequence[str],
        resource: Any,
        resource_self_arns: Optional[Sequence[str]] = None,
        conditions: Optional[Sequence[dict]] = None,
    ) -> "Grant":
        """
        Grant the given permissions to the principal.

        The permissions will be added to the principal policy primarily,
        falling back to the resource policy if necessary. The permissions
        must be granted somewhere.

        Trying to grant permissions to a principal that does not admit
        adding to the principal policy while not providing a resource with
        a resource policy results in an unsuccessful grant.
        """
        result = Grant.add_to_principal(
            grantee=grantee,
            actions=actions,
            resource_arns=resource_arns,
            conditions=conditions,
        )
        resource_account = getattr(resource, "env_account", None)
        if result.success and _same_account(grantee.principal_account, resource_account):
            return result

        statement = PolicyStatement(
            actions=actions,
            principals=[grantee.grant_principal],
            resources=resource_self_arns or resource_arns,
            conditions=conditions,
        )
        resource_result = resource.add_to_resource_policy(statement)
        # imported resources drop the statement, leaving the grant unsuccessful
        return Grant(
            options=GrantOptions(grantee, actions, resource_self_arns or resource_arns, conditions),
            resource_statement=statement if resource_result.statement_added else None,
            principal_statement=result.principal_statement,
            policy_dependable=resource_result.policy_dependable if resource_result.statement_added else None,
        )

    @staticmethod
    def add_to_principal(
        *,
        grantee: PrincipalBase,
        actions: Sequence[str],
        resource_arns: Sequence[str],
        conditions: Optional[Sequence[dict]] = None,
    ) -> "Grant":
        """
        Try to grant the given permissions to the given principal.

        Failing to add the permissions to a principal without an identity
        policy is not an error, check ``success`` for the outcome.
        """
        statement = PolicyStatement(actions=actions, resources=resource_arns, conditions=conditions)
        add_result: AddToPrincipalPolicyResult = grantee.add_to_principal_policy(statement)
        options = GrantOptions(grantee, actions, resource_arns, conditions)
        return Grant(
            options=options,
            principal_statement=statement if add_result.statement_added else None,
            policy_dependable=add_result.policy_dependable,
        )

    @staticmethod
    def add_to_principal_and_resource(
        *,
        grantee: PrincipalBase,
        actions: Sequence[str],
        resource_arns: Sequence[str],
        resource: Any,
        resource_policy_principal: Optional[PrincipalBase] = None,
        resource_self_arns: Optional[Sequence[str]] = None,
        conditions: Optional[Sequence[dict]] = None,
    ) -> "Grant":
        """
        Add a grant both on the principal and on the resource.

        As long as any principal is given, granting on the principal may
        fail (in case of a non-identity principal), but granting on the
        resource will never fail. Statement will be the resource statement.
        """
        result = Grant.add_to_principal(
            grantee=grantee,
            actions=actions,
            resource_arns=resource_arns,
            conditions=conditions,
        )
        statement = PolicyStatement(
            actions=actions,
            principals=[resource_policy_principal or grantee.grant_principal],
            resources=resource_self_arns or resource_arns,
            conditions=conditions,
        )
        resource_result = resource.add_to_resource_policy(statement)
        return Grant(
            options=GrantOptions(grantee, actions, resource_self_arns or resource_arns, conditions),
            principal_statement=result.principal_statement,
            resource_statement=statement,
            policy_dependable=resource_result.policy_dependable if resource_result.statement_added else None,
        )

    @staticmethod
    def drop(grantee: PrincipalBase, intent: str) -> "Grant":
        """
        Returns a "no-op" Grant object which represents a "dropped grant".

        This can be used for e.g. imported resources where you may not be
        able to modify the resource's policy or some underlying policy which
        you don't know about.
        """
        return Grant(options=GrantOptions(grantee, [intent], []))

    @property
    def success(self) -> bool:
        """Whether the grant operation was successful."""
        return self.principal_statement is not None or self.resource_statement is not None

    def assert_success(self) -> None:
        """Throw an error if this grant wasn't successful."""
        if not self.success:
            raise UnscopedValidationError(
                f"{self._describe_grant()} could not be added on either identity or resource policy."
            )

    def combine(self, rhs: "Grant") -> "CompositeGrant":
        """Combine two grants into a new one."""
        return CompositeGrant(self, rhs)

    @property
    def dependables(self) -> List[Any]:
        return list(self._dependables)

    def apply_before(self, *constructs: Any) -> None:
        """Make sure this grant is applied before the given constructs are deployed."""
        for construct in constructs:
            for dependable in self._dependables:
                construct.node.add_dependency(dependable)

    def _describe_grant(self) -> str:
        return (
            f"Permissions for '{self.options.grantee}' to call '{self.options.actions}' "
            f"on '{self.options.resource_arns}'"
        )


class CompositeGrant(Grant):
    """A grant which combines the statements of several grants."""

    def __init__(self, *grants: Grant) -> None:
        super().__init__(
            options=grants[0].options,
            principal_statement=next((g.principal_statement for g in grants if g.principal_statement), None),
            resource_statement=next((g.resource_statement for g in grants if g.resource_statement), None),
        )
        self.grants = list(grants)
        self._dependables = [d for g in grants for d in g.dependables]

    @property
    def success(self) -> bool:
        return all(g.success for g in self.grants)


def _same_account(principal_account: Optional[str], resource_account: Optional[str]) -> bool:
    if principal_account is None or resource_account is None:
        return True
    if Token.is_unresolved(principal_account) and Token.is_unresolved(resource_account):
        # both unresolved: assume the same account
        return True
    return principal_account == resource_account
