from .grant import AddToResourcePolicyResult, CompositeGrant, Grant
from .managed_policy import IManagedPolicy, ManagedPolicy
from .policy import Policy
from .policy_document import PolicyDocument
from .policy_statement import Effect, PolicyStatement
from .principals import (
    AccountPrincipal,
    AccountRootPrincipal,
    AddToPrincipalPolicyResult,
    AnyPrincipal,
    ArnPrincipal,
    CanonicalUserPrincipal,
    CompositePrincipal,
    FederatedPrincipal,
    PrincipalBase,
    PrincipalPolicyFragment,
    PrincipalWithConditions,
    SamlPrincipal,
    ServicePrincipal,
    SessionTagsPrincipal,
    StarPrincipal,
    WebIdentityPrincipal,
    from_principal_json,
    make_condition,
)
from .role import ImportedRole, Role
from .user import User
