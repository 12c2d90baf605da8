"""
A PolicyDocument is a collection of statements, rendered through the
``aws_iam_policy_document`` data source.

Statements are rendered lazily so they can be added until synthesis.
"""
import json
from typing import Any, Dict, List, Mapping, Optional, Sequence

import jsii
from cdktf import IAnyProducer, IResolveContext, Lazy
from cdktf_cdktf_provider_aws.data_aws_iam_policy_document import DataAwsIamPolicyDocument
from constructs import Construct

from .policy_statement import PolicyStatement

POLICY_VERSION = "2012-10-17"


@jsii.implements(IAnyProducer)
class _StatementsProducer:
    def __init__(self, document: "PolicyDocument") -> None:
        self._document = document

    def produce(self, context: IResolveContext) -> Any:
        return [s.to_terraform() for s in self._document._rendered_statements()]


class PolicyDocument(DataAwsIamPolicyDocument):
    """
    A PolicyDocument is a collection of statements.

    ``json`` is the rendered IAM JSON, a token until deployment.
    """

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        statement: Optional[Sequence[PolicyStatement]] = None,
        assign_sids: bool = False,
        minimize: bool = False,
        **kwargs,
    ) -> None:
        super().__init__(
            scope,
            id,
            version=POLICY_VERSION,
            statement=Lazy.any_value(_StatementsProducer(self)),
            **kwargs,
        )
        self._statements: List[PolicyStatement] = []
        self._auto_assign_sids = assign_sids
        self._minimize = minimize
        self.add_statements(*(statement or []))

    @staticmethod
    def from_json(scope: Construct, id: str, obj: Mapping[str, Any]) -> "PolicyDocument":
        """
        Creates a new PolicyDocument based on the object provided.

        This will accept an object created from the ``.to_document_json()`` call.
        """
        statements = obj.get("Statement") or []
        if isinstance(statements, Mapping):
            statements = [statements]
        return PolicyDocument(scope, id, statement=[PolicyStatement.from_json(s) for s in statements])

    def add_statements(self, *statements: PolicyStatement) -> None:
        """Adds a statement to the policy document."""
        self._statements.extend(statements)

    @property
    def is_empty(self) -> bool:
        return not self._statements

    @property
    def statement_count(self) -> int:
        """The number of statements already added to this policy."""
        return len(self._statements)

    @property
    def statements(self) -> List[PolicyStatement]:
        return list(self._statements)

    def _rendered_statements(self) -> List[PolicyStatement]:
        statements = [s.freeze() for s in self._statements]
        if self._minimize:
            statements = merge_statements(statements)
        if self._auto_assign_sids:
            statements = [
                s if s.sid else s.copy(sid=str(i)) for i, s in enumerate(statements)
            ]
        return statements

    def to_document_json(self) -> Dict[str, Any]:
        """The policy document in the IAM JSON language."""
        doc: Dict[str, Any] = {"Version": POLICY_VERSION}
        rendered = [s.to_statement_json() for s in self._rendered_statements()]
        if rendered:
            doc["Statement"] = rendered
        return doc

    def validate_for_any_policy(self) -> List[str]:
        return [e for s in self._statements for e in s.validate_for_any_policy()]

    def validate_for_resource_policy(self) -> List[str]:
        return [e for s in self._statements for e in s.validate_for_resource_policy()]

    def validate_for_identity_policy(self) -> List[str]:
        return [e for s in self._statements for e in s.validate_for_identity_policy()]


def merge_statements(statements: Sequence[PolicyStatement]) -> List[PolicyStatement]:
    """
    Merge statements which only differ in their resources or their actions.

    Statements with a Sid or with NotAction / NotResource are never merged.
    """
    merged = _merge_on(statements, "resources")
    return _merge_on(merged, "actions")


def _merge_on(statements: Sequence[PolicyStatement], field: str) -> List[PolicyStatement]:
    out: List[PolicyStatement] = []
    keys: List[Optional[str]] = []
    for statement in statements:
        key = _merge_key(statement, field)
        if key is not None and key in keys:
            i = keys.index(key)
            existing = out[i]
            combined = getattr(existing, field) + [
                x for x in getattr(statement, field) if x not in getattr(existing, field)
            ]
            out[i] = existing.copy(**{field: combined}).freeze()
            continue
        out.append(statement)
        keys.append(key)
    return out


def _merge_key(statement: PolicyStatement, field: str) -> Optional[str]:
    if statement.sid or statement.not_actions or statement.not_resources or statement.not_principals:
        return None
    if not getattr(statement, field):
        return None
    rendered = statement.to_statement_json()
    rendered.pop("Resource" if field == "resources" else "Action", None)
    return json.dumps(rendered, sort_keys=True, default=str)
