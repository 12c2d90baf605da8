"""
Base class for every TerraConstructs stack.

A ``StackBase`` is a plain ``cdktf.TerraformStack`` with a stable
``grid_uuid`` identity, an environment name used to prefix physical
resource names, and an aspect which lowers construct dependencies to
Terraform ``depends_on``.
"""
import json
import re
from typing import Any, Optional

import jsii
from cdktf import App, Aspects, IResolveContext, IStringProducer, Lazy, TerraformStack
from constructs import Construct, IConstruct

from .errors import UnscopedValidationError, ValidationError
from .private.terraform_dependables_aspect import TerraformDependableAspect
from .private.unique_id import make_unique_id

STACK_SYMBOL = "_tc_is_stack"
GRID_UUID_MAX_LENGTH = 36
GRID_UUID_PATTERN = r"^[A-Za-z0-9_-]+$"
DEFAULT_ENVIRONMENT_NAME = "Grid"


@jsii.implements(IStringProducer)
class _JsonProducer:
    def __init__(self, obj: Any, space: Optional[int]) -> None:
        self._obj = obj
        self._space = space

    def produce(self, context: IResolveContext) -> Optional[str]:
        resolved = context.resolve(self._obj)
        if resolved is None:
            return None
        if self._space is None:
            return json.dumps(resolved, separators=(",", ":"))
        return json.dumps(resolved, indent=self._space)


class StackBase(TerraformStack):
    """A Terraform stack with a Grid identity."""

    def __init__(
        self,
        scope: Optional[Construct] = None,
        id: Optional[str] = None,
        *,
        grid_uuid: Optional[str] = None,
        environment_name: Optional[str] = None,
    ) -> None:
        super().__init__(scope if scope is not None else App(), id or "Default")
        setattr(self, STACK_SYMBOL, True)

        if grid_uuid is not None:
            self._validate_grid_uuid(grid_uuid)
            self._grid_uuid = grid_uuid
        else:
            self._grid_uuid = self._generate_grid_uuid()
        self._environment_name = environment_name or DEFAULT_ENVIRONMENT_NAME

        Aspects.of(self).add(TerraformDependableAspect())

    @staticmethod
    def is_stack(x: Any) -> bool:
        return getattr(x, STACK_SYMBOL, False) is True

    @staticmethod
    def of(construct: IConstruct) -> "StackBase":
        """Looks up the first stack scope in which ``construct`` is defined."""
        for scope in reversed(construct.node.scopes):
            if StackBase.is_stack(scope):
                return scope
        raise UnscopedValidationError(
            f"No stack could be identified for the construct at path {construct.node.path}"
        )

    @property
    def grid_uuid(self) -> str:
        """Unique identifier of this stack across the grid (at most 36 characters)."""
        return self._grid_uuid

    @property
    def environment_name(self) -> str:
        return self._environment_name

    def to_json_string(self, obj: Any, space: Optional[int] = None) -> Optional[str]:
        """
        Renders ``obj`` as a JSON string after resolving any tokens it contains.

        The result is a lazy string so values only known at synthesis (other
        lazies, resource attributes) are included.
        """
        if obj is None:
            return None
        return Lazy.string_value(_JsonProducer(obj, space))

    def _generate_grid_uuid(self) -> str:
        path = [s.node.id for s in self.node.scopes if s.node.id]
        return make_unique_id([DEFAULT_ENVIRONMENT_NAME, *path], max_len=GRID_UUID_MAX_LENGTH)

    def _validate_grid_uuid(self, grid_uuid: str) -> None:
        if len(grid_uuid) > GRID_UUID_MAX_LENGTH:
            raise ValidationError(
                f"GridUUID must be <= {GRID_UUID_MAX_LENGTH} characters. GridUUID: '{grid_uuid}'",
                self,
            )
        if not re.match(GRID_UUID_PATTERN, grid_uuid):
            raise ValidationError(
                f"GridUUID must match the regular expression: {GRID_UUID_PATTERN}, got '{grid_uuid}'",
                self,
            )
