"""
Inline IAM policies.

One ``aws_iam_role_policy`` / ``aws_iam_user_policy`` is created for every
principal the policy is attached to; all of them render the same document.
"""
from typing import TYPE_CHECKING, List, Optional, Sequence

import jsii
from cdktf import Token
from cdktf_cdktf_provider_aws.iam_role_policy import IamRolePolicy
from cdktf_cdktf_provider_aws.iam_user_policy import IamUserPolicy
from constructs import Construct, IValidation

from ...errors import ValidationError
from ...private.unique_id import make_unique_id
from ..aws_construct import AwsConstructBase
from .policy_document import PolicyDocument
from .policy_statement import PolicyStatement

if TYPE_CHECKING:
    from .role import Role
    from .user import User

POLICY_NAME_MAX_LENGTH = 128


@jsii.implements(IValidation)
class _PolicyValidation:
    def __init__(self, policy: "Policy") -> None:
        self._policy = policy

    def validate(self) -> List[str]:
        return self._policy._validate_policy()


class Policy(AwsConstructBase):
    """
    The AWS::IAM::Policy resource associates an inline IAM policy with IAM
    users and roles.

    A policy which is neither forced nor attached renders nothing.
    """

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        policy_name: Optional[str] = None,
        roles: Optional[Sequence["Role"]] = None,
        users: Optional[Sequence["User"]] = None,
        statements: Optional[Sequence[PolicyStatement]] = None,
        document: Optional[PolicyDocument] = None,
        force: bool = False,
    ) -> None:
        super().__init__(scope, id)

        if policy_name is not None and not Token.is_unresolved(policy_name) and len(policy_name) > POLICY_NAME_MAX_LENGTH:
            raise ValidationError(
                f"Policy name must be less than or equal to {POLICY_NAME_MAX_LENGTH} characters, got {len(policy_name)}",
                self,
            )

        self.policy_name = policy_name or make_unique_id(self._path_below_stack(), POLICY_NAME_MAX_LENGTH)
        self.document = document or PolicyDocument(self, "PolicyDocument")
        self._force = force
        self._roles: List["Role"] = []
        self._users: List["User"] = []

        if statements:
            self.add_statements(*statements)
        for role in roles or []:
            self.attach_to_role(role)
        for user in users or []:
            self.attach_to_user(user)

        self.node.add_validation(_PolicyValidation(self))

    def add_statements(self, *statements: PolicyStatement) -> None:
        """Adds a statement to the policy document."""
        self.document.add_statements(*statements)

    def attach_to_role(self, role: "Role") -> None:
        """Attaches this policy to a role."""
        if any(r is role for r in self._roles):
            return
        self._roles.append(role)
        IamRolePolicy(
            self,
            f"Role{len(self._roles) - 1}" if len(self._roles) > 1 else "Resource",
            name=self.policy_name,
            role=role.role_name,
            policy=self.document.json,
        )
        role.attach_inline_policy(self)

    def attach_to_user(self, user: "User") -> None:
        """Attaches this policy to a user."""
        if any(u is user for u in self._users):
            return
        self._users.append(user)
        IamUserPolicy(
            self,
            f"User{len(self._users) - 1}",
            name=self.policy_name,
            user=user.user_name,
            policy=self.document.json,
        )
        user.attach_inline_policy(self)

    @property
    def is_attached(self) -> bool:
        return bool(self._roles or self._users)

    @property
    def roles(self) -> List["Role"]:
        return list(self._roles)

    @property
    def users(self) -> List["User"]:
        return list(self._users)

    def _validate_policy(self) -> List[str]:
        errors = []
        if self._force or self.is_attached:
            if self.document.is_empty:
                errors.append(
                    "Policy created with force=true is empty. You must add statements to the policy"
                    if self._force
                    else "Policy is attached but empty. You must add statements to the policy"
                )
            if self._force and not self.is_attached:
                errors.append("Policy must be attached to at least one principal: user or role")
            errors.extend(self.document.validate_for_identity_policy())
        return errors
