"""IAM users."""
from typing import List, Optional, Sequence

from cdktf_cdktf_provider_aws.iam_user import IamUser
from cdktf_cdktf_provider_aws.iam_user_policy_attachment import IamUserPolicyAttachment
from constructs import Construct

from ..aws_construct import AwsConstructBase
from .managed_policy import IManagedPolicy
from .policy import Policy
from .policy_statement import PolicyStatement
from .principals import AddToPrincipalPolicyResult, ArnPrincipal, PrincipalBase, PrincipalPolicyFragment


class User(AwsConstructBase, PrincipalBase):
    """Define a new IAM user."""

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        user_name: Optional[str] = None,
        path: Optional[str] = None,
        managed_policies: Optional[Sequence[IManagedPolicy]] = None,
        permissions_boundary: Optional[IManagedPolicy] = None,
        force_destroy: Optional[bool] = None,
    ) -> None:
        super().__init__(scope, id)

        self.resource = IamUser(
            self,
            "Resource",
            name=user_name or self.physical_name(),
            path=path,
            permissions_boundary=permissions_boundary.managed_policy_arn if permissions_boundary else None,
            force_destroy=force_destroy,
        )
        self.user_name = self.resource.name
        self.user_arn = self.resource.arn
        self.permissions_boundary = permissions_boundary

        self._default_policy: Optional[Policy] = None
        self._attached_policies: List[Policy] = []
        self._managed_policies: List[IManagedPolicy] = []
        for policy in managed_policies or []:
            self.add_managed_policy(policy)

    @property
    def principal_account(self) -> str:
        return self.env_account

    @property
    def policy_fragment(self) -> PrincipalPolicyFragment:
        return ArnPrincipal(self.user_arn).policy_fragment

    def add_to_principal_policy(self, statement: PolicyStatement) -> AddToPrincipalPolicyResult:
        """Adds an IAM statement to the default policy."""
        if self._default_policy is None:
            self._default_policy = Policy(self, "DefaultPolicy")
            self.attach_inline_policy(self._default_policy)
        self._default_policy.add_statements(statement)
        return AddToPrincipalPolicyResult(statement_added=True, policy_dependable=self._default_policy)

    def add_managed_policy(self, policy: IManagedPolicy) -> None:
        """Attaches a managed policy to the user."""
        if any(p is policy for p in self._managed_policies):
            return
        self._managed_policies.append(policy)
        IamUserPolicyAttachment(
            self,
            f"PolicyAttachment{len(self._managed_policies) - 1}",
            user=self.user_name,
            policy_arn=policy.managed_policy_arn,
        )

    def attach_inline_policy(self, policy: Policy) -> None:
        """Attaches a policy to this user."""
        if any(p is policy for p in self._attached_policies):
            return
        self._attached_policies.append(policy)
        policy.attach_to_user(self)
