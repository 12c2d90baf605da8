"""
IAM roles.

A role renders an ``aws_iam_role`` with its trust policy from a
``PolicyDocument``. Identity statements added through ``add_to_policy``
go to a lazily created inline ``DefaultPolicy``; managed policies are
attached with ``aws_iam_role_policy_attachment``.
"""
import re
from typing import Any, List, Mapping, Optional, Sequence

import jsii
from aws_cdk import Duration
from cdktf import Token
from cdktf_cdktf_provider_aws.iam_role import IamRole, IamRoleInlinePolicy
from cdktf_cdktf_provider_aws.iam_role_policy_attachment import IamRolePolicyAttachment
from constructs import Construct, IValidation

from ...errors import ValidationError
from ..arn import Arn, ArnComponents, ArnFormat
from ..aws_construct import AwsConstructBase
from ..aws_stack import AwsStack
from .grant import Grant
from .managed_policy import IManagedPolicy
from .policy import Policy
from .policy_document import PolicyDocument
from .policy_statement import PolicyStatement
from .principals import (
    AccountPrincipal,
    AddToPrincipalPolicyResult,
    ArnPrincipal,
    PrincipalBase,
    PrincipalPolicyFragment,
    ServicePrincipal,
)

ROLE_SYMBOL = "_tc_is_role"
MAX_ROLE_NAME_LENGTH = 64
MAX_DESCRIPTION_LENGTH = 1000
MIN_SESSION_DURATION = 3600
MAX_SESSION_DURATION = 43200
PATH_PATTERN = re.compile(r"(/)|(/[\u0021-\u007F]+/)")


@jsii.implements(IValidation)
class _RoleValidation:
    def __init__(self, role: "Role") -> None:
        self._role = role

    def validate(self) -> List[str]:
        return self._role.assume_role_policy.validate_for_resource_policy()


class Role(AwsConstructBase, PrincipalBase):
    """
    IAM Role.

    Defines an IAM role. The role is created with an assume policy document
    associated with the specified AWS service principal defined in
    ``assumed_by``.
    """

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        assumed_by: PrincipalBase,
        external_ids: Optional[Sequence[str]] = None,
        managed_policies: Optional[Sequence[IManagedPolicy]] = None,
        inline_policies: Optional[Mapping[str, PolicyDocument]] = None,
        path: Optional[str] = None,
        permissions_boundary: Optional[IManagedPolicy] = None,
        role_name: Optional[str] = None,
        max_session_duration: Optional[Duration] = None,
        description: Optional[str] = None,
    ) -> None:
        super().__init__(scope, id)
        setattr(self, ROLE_SYMBOL, True)

        if path is not None and not Token.is_unresolved(path):
            _validate_role_path(self, path)
        if role_name is not None and not Token.is_unresolved(role_name) and len(role_name) > MAX_ROLE_NAME_LENGTH:
            raise ValidationError(
                f"Invalid roleName. The name must be a string of characters consisting of upper and "
                f"lowercase alphanumeric characters with no spaces. Names can be up to "
                f"{MAX_ROLE_NAME_LENGTH} characters long.",
                self,
            )
        if description is not None and not Token.is_unresolved(description) and len(description) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError("Role description must be no longer than 1000 characters.", self)

        max_session_seconds = None
        if max_session_duration is not None:
            max_session_seconds = int(max_session_duration.to_seconds())
            if not MIN_SESSION_DURATION <= max_session_seconds <= MAX_SESSION_DURATION:
                raise ValidationError(
                    f"maxSessionDuration is set to {max_session_seconds}, but must be >= "
                    f"{MIN_SESSION_DURATION}sec (1hr) and <= {MAX_SESSION_DURATION}sec (12hrs)",
                    self,
                )

        self.assumed_by = assumed_by
        self.assume_role_policy = PolicyDocument(self, "AssumeRolePolicy")
        _add_assume_role_statements(self.assume_role_policy, assumed_by, external_ids or [])

        self.permissions_boundary = permissions_boundary
        self.resource = IamRole(
            self,
            "Resource",
            assume_role_policy=self.assume_role_policy.json,
            name=role_name,
            name_prefix=None if role_name else self.physical_name_prefix(),
            path=path,
            description=description,
            max_session_duration=max_session_seconds,
            permissions_boundary=permissions_boundary.managed_policy_arn if permissions_boundary else None,
            inline_policy=[
                IamRoleInlinePolicy(name=name, policy=document.json)
                for name, document in (inline_policies or {}).items()
            ] or None,
        )

        self.role_arn = self.resource.arn
        self.role_name = self.resource.name
        self.role_id = self.resource.unique_id

        self._default_policy: Optional[Policy] = None
        self._attached_policies: List[Policy] = []
        self._managed_policies: List[IManagedPolicy] = []
        for policy in managed_policies or []:
            self.add_managed_policy(policy)

        self.node.add_validation(_RoleValidation(self))

    @staticmethod
    def is_role(x: Any) -> bool:
        """Return whether the given object is a Role."""
        return getattr(x, ROLE_SYMBOL, False) is True

    @staticmethod
    def from_role_arn(
        scope: Construct,
        id: str,
        role_arn: str,
        *,
        mutable: bool = True,
    ) -> "ImportedRole":
        """
        Import an external role by ARN.

        If the imported Role ARN is a token, the role name is split from the
        ARN at deploy time. Roles imported with ``mutable=False`` silently
        ignore policies added to them.
        """
        return ImportedRole(scope, id, role_arn, mutable=mutable)

    @staticmethod
    def from_role_name(scope: Construct, id: str, role_name: str, *, mutable: bool = True) -> "ImportedRole":
        """Import an external role by name, in the account of the stack."""
        role_arn = AwsStack.of_aws_construct(scope).format_arn(ArnComponents(
            service="iam",
            region="",
            resource="role",
            resource_name=role_name,
        ))
        return ImportedRole(scope, id, role_arn, mutable=mutable)

    @property
    def principal_account(self) -> str:
        return self.env_account

    @property
    def policy_fragment(self) -> PrincipalPolicyFragment:
        return ArnPrincipal(self.role_arn).policy_fragment

    @property
    def default_policy(self) -> Optional[Policy]:
        return self._default_policy

    @property
    def managed_policies(self) -> List[IManagedPolicy]:
        return list(self._managed_policies)

    def add_to_principal_policy(self, statement: PolicyStatement) -> AddToPrincipalPolicyResult:
        """
        Adds a permission to the role's default policy document.

        If there is no default policy attached to this role, it will be created.
        """
        if self._default_policy is None:
            self._default_policy = Policy(self, "DefaultPolicy")
            self.attach_inline_policy(self._default_policy)
        self._default_policy.add_statements(statement)
        return AddToPrincipalPolicyResult(statement_added=True, policy_dependable=self._default_policy)

    def add_managed_policy(self, policy: IManagedPolicy) -> None:
        """Attaches a managed policy to this role."""
        if any(p is policy for p in self._managed_policies):
            return
        self._managed_policies.append(policy)
        IamRolePolicyAttachment(
            self,
            f"PolicyAttachment{len(self._managed_policies) - 1}",
            role=self.role_name,
            policy_arn=policy.managed_policy_arn,
        )

    def attach_inline_policy(self, policy: Policy) -> None:
        """Attaches a policy to this role."""
        if any(p is policy for p in self._attached_policies):
            return
        self._attached_policies.append(policy)
        policy.attach_to_role(self)

    def grant(self, grantee: PrincipalBase, *actions: str) -> Grant:
        """Grant the actions defined in actions to the identity Principal on this resource."""
        return Grant.add_to_principal(grantee=grantee, actions=actions, resource_arns=[self.role_arn])

    def grant_pass_role(self, identity: PrincipalBase) -> Grant:
        """Grant permissions to the given principal to pass this role."""
        return self.grant(identity, "iam:PassRole")

    def grant_assume_role(self, identity: PrincipalBase) -> Grant:
        """Grant permissions to the given principal to assume this role."""
        if isinstance(identity, (ServicePrincipal, AccountPrincipal)):
            raise ValidationError(
                "Cannot use a service or account principal with grantAssumeRole, use assumeRolePolicy instead.",
                self,
            )
        return self.grant(identity, "sts:AssumeRole")


class ImportedRole(AwsConstructBase, PrincipalBase):
    """An IAM role defined outside of this stack."""

    def __init__(self, scope: Construct, id: str, role_arn: str, *, mutable: bool = True) -> None:
        super().__init__(scope, id)
        setattr(self, ROLE_SYMBOL, True)
        self.role_arn = role_arn
        self.mutable = mutable

        parsed = Arn.split(role_arn, ArnFormat.SLASH_RESOURCE_NAME)
        resource_name = parsed.resource_name
        if Token.is_unresolved(role_arn):
            self.role_name = resource_name
        else:
            # paths are not part of the role name
            self.role_name = resource_name.split("/")[-1]
        self._account = parsed.account
        self.principal_account = parsed.account

        self._default_policy: Optional[Policy] = None
        self._attached_policies: List[Policy] = []
        self._managed_policies: List[IManagedPolicy] = []

    @property
    def env_account(self) -> str:
        return self._account

    @property
    def policy_fragment(self) -> PrincipalPolicyFragment:
        return ArnPrincipal(self.role_arn).policy_fragment

    def add_to_principal_policy(self, statement: PolicyStatement) -> AddToPrincipalPolicyResult:
        if not self.mutable:
            # the role is managed elsewhere, pretend the statement was added
            return AddToPrincipalPolicyResult(statement_added=True)
        if self._default_policy is None:
            self._default_policy = Policy(self, "Policy")
            self.attach_inline_policy(self._default_policy)
        self._default_policy.add_statements(statement)
        return AddToPrincipalPolicyResult(statement_added=True, policy_dependable=self._default_policy)

    def attach_inline_policy(self, policy: Policy) -> None:
        if not self.mutable or any(p is policy for p in self._attached_policies):
            return
        self._attached_policies.append(policy)
        policy.attach_to_role(self)

    def add_managed_policy(self, policy: IManagedPolicy) -> None:
        if not self.mutable or any(p is policy for p in self._managed_policies):
            return
        self._managed_policies.append(policy)
        IamRolePolicyAttachment(
            self,
            f"PolicyAttachment{len(self._managed_policies) - 1}",
            role=self.role_name,
            policy_arn=policy.managed_policy_arn,
        )

    def grant(self, grantee: PrincipalBase, *actions: str) -> Grant:
        return Grant.add_to_principal(grantee=grantee, actions=actions, resource_arns=[self.role_arn])

    def grant_pass_role(self, identity: PrincipalBase) -> Grant:
        return self.grant(identity, "iam:PassRole")

    def grant_assume_role(self, identity: PrincipalBase) -> Grant:
        return self.grant(identity, "sts:AssumeRole")


def _validate_role_path(scope: Construct, path: str) -> None:
    if len(path) == 0 or len(path) > 512:
        raise ValidationError(f"Role path must be between 1 and 512 characters. The provided role path is {len(path)} characters.", scope)
    if not PATH_PATTERN.fullmatch(path):
        raise ValidationError(
            "Role path must be either a slash or valid characters (alphanumerics and symbols) surrounded by slashes. "
            f"Valid characters are unicode characters in [\\u0021-\\u007F]. However, {path} is provided.",
            scope,
        )


def _add_assume_role_statements(
    document: PolicyDocument, principal: PrincipalBase, external_ids: Sequence[str]
) -> None:
    if not external_ids:
        principal.add_to_assume_role_policy(document)
        return
    statement = PolicyStatement(actions=[principal.assume_role_action], principals=[principal])
    statement.add_condition("StringEquals", "sts:ExternalId", list(external_ids))
    document.add_statements(statement)
