"""Customer managed IAM policies and references to existing managed policies."""
from typing import TYPE_CHECKING, List, Optional, Sequence

import jsii
from cdktf import Token
from cdktf_cdktf_provider_aws.iam_policy import IamPolicy
from cdktf_cdktf_provider_aws.iam_role_policy_attachment import IamRolePolicyAttachment
from cdktf_cdktf_provider_aws.iam_user_policy_attachment import IamUserPolicyAttachment
from constructs import Construct, IValidation

from ...errors import ValidationError
from ..arn import ArnComponents
from ..aws_construct import AwsConstructBase, stack_lazy_string
from ..aws_stack import AwsStack
from .policy_document import PolicyDocument
from .policy_statement import PolicyStatement

if TYPE_CHECKING:
    from .role import Role
    from .user import User


class IManagedPolicy:
    """Anything with a managed policy ARN."""

    managed_policy_arn: str


class _AwsManagedPolicy(IManagedPolicy):
    def __init__(self, managed_policy_name: str) -> None:
        self.managed_policy_name = managed_policy_name
        self.managed_policy_arn = stack_lazy_string(
            lambda stack: f"arn:{stack.partition}:iam::aws:policy/{managed_policy_name}"
        )


class _ImportedManagedPolicy(AwsConstructBase, IManagedPolicy):
    def __init__(self, scope: Construct, id: str, managed_policy_arn: str) -> None:
        super().__init__(scope, id)
        self.managed_policy_arn = managed_policy_arn


@jsii.implements(IValidation)
class _ManagedPolicyValidation:
    def __init__(self, policy: "ManagedPolicy") -> None:
        self._policy = policy

    def validate(self) -> List[str]:
        errors = self._policy.document.validate_for_identity_policy()
        if self._policy.document.is_empty:
            errors.append("Managed Policy is empty. You must add statements to the policy")
        return errors


class ManagedPolicy(AwsConstructBase, IManagedPolicy):
    """Managed policy."""

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        managed_policy_name: Optional[str] = None,
        description: Optional[str] = None,
        path: Optional[str] = None,
        roles: Optional[Sequence["Role"]] = None,
        users: Optional[Sequence["User"]] = None,
        statements: Optional[Sequence[PolicyStatement]] = None,
        document: Optional[PolicyDocument] = None,
    ) -> None:
        super().__init__(scope, id)

        if description is not None and not Token.is_unresolved(description) and len(description) > 1000:
            raise ValidationError(
                f"Managed Policy description must be 1000 characters or less, got {len(description)}",
                self,
            )

        self.document = document or PolicyDocument(self, "PolicyDocument")
        if statements:
            self.document.add_statements(*statements)

        self.resource = IamPolicy(
            self,
            "Resource",
            name=managed_policy_name,
            name_prefix=None if managed_policy_name else self.physical_name_prefix(),
            description=description,
            path=path or "/",
            policy=self.document.json,
        )
        self.managed_policy_arn = self.resource.arn
        self.managed_policy_name = self.resource.name
        self.description = description
        self.path = path or "/"

        self._roles: List["Role"] = []
        self._users: List["User"] = []
        for role in roles or []:
            self.attach_to_role(role)
        for user in users or []:
            self.attach_to_user(user)

        self.node.add_validation(_ManagedPolicyValidation(self))

    @staticmethod
    def from_aws_managed_policy_name(managed_policy_name: str) -> IManagedPolicy:
        """
        Import a managed policy from one of the policies that AWS manages.

        For this managed policy, you only need to know the name to be able to use it.
        """
        return _AwsManagedPolicy(managed_policy_name)

    @staticmethod
    def from_managed_policy_arn(scope: Construct, id: str, managed_policy_arn: str) -> IManagedPolicy:
        """Import an external managed policy by ARN."""
        return _ImportedManagedPolicy(scope, id, managed_policy_arn)

    @staticmethod
    def from_managed_policy_name(scope: Construct, id: str, managed_policy_name: str) -> IManagedPolicy:
        """Import a customer managed policy from the managed policy name in the stack's account."""
        arn = AwsStack.of_aws_construct(scope).format_arn(ArnComponents(
            service="iam",
            region="",
            resource="policy",
            resource_name=managed_policy_name,
        ))
        return _ImportedManagedPolicy(scope, id, arn)

    def add_statements(self, *statements: PolicyStatement) -> None:
        self.document.add_statements(*statements)

    def attach_to_role(self, role: "Role") -> None:
        if any(r is role for r in self._roles):
            return
        self._roles.append(role)
        IamRolePolicyAttachment(
            self,
            f"Role{len(self._roles) - 1}",
            role=role.role_name,
            policy_arn=self.managed_policy_arn,
        )

    def attach_to_user(self, user: "User") -> None:
        if any(u is user for u in self._users):
            return
        self._users.append(user)
        IamUserPolicyAttachment(
            self,
            f"User{len(self._users) - 1}",
            user=user.user_name,
            policy_arn=self.managed_policy_arn,
        )
