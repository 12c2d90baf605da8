"""Base class for every AWS construct of this library."""
from typing import Callable, List

import jsii
from cdktf import IResolveContext, IStringProducer, Lazy
from constructs import Construct

from ..private.unique_id import HASH_LEN, make_unique_id
from .aws_stack import AwsStack
from .util import make_physical_name


class AwsConstructBase(Construct):
    """
    A construct bound to an ``AwsStack``.

    Fails at definition time when created outside of an AwsStack.
    """

    def __init__(self, scope: Construct, id: str) -> None:
        super().__init__(scope, id)
        self._stack = AwsStack.of_aws_construct(self)

    @property
    def stack(self) -> AwsStack:
        return self._stack

    @property
    def env_account(self) -> str:
        """Account the resource lives in; imported resources override this."""
        return self._stack.account

    def _path_below_stack(self) -> List[str]:
        scopes = list(self.node.scopes)
        return [s.node.id for s in scopes[scopes.index(self._stack) + 1:]]

    def physical_name_prefix(self, max_len: int = 38, lower: bool = False) -> str:
        """
        Name prefix for resources which support ``name_prefix``:
        the stack environment name followed by the construct path,
        e.g. ``Grid-MyRole``.
        """
        return make_physical_name(
            [f"{self._stack.environment_name}-", *self._path_below_stack()],
            max_len,
            lower=lower,
        )

    def physical_name(self, max_len: int = 64, lower: bool = False) -> str:
        """
        Full physical name for resources without ``name_prefix`` support.

        The prefix is followed by a hash of the grid uuid and construct path,
        so names stay unique across grids sharing an environment name.
        """
        suffix = make_unique_id([self._stack.grid_uuid, *self._path_below_stack()])[-HASH_LEN:]
        if lower:
            suffix = suffix.lower()
        return f"{self.physical_name_prefix(max_len - HASH_LEN - 1, lower)}-{suffix}"


@jsii.implements(IStringProducer)
class _StackValueProducer:
    def __init__(self, fn: Callable[[AwsStack], str]) -> None:
        self._fn = fn

    def produce(self, context: IResolveContext) -> str:
        return self._fn(AwsStack.of_aws_construct(context.scope))


def stack_lazy_string(fn: Callable[[AwsStack], str]) -> str:
    """
    A string rendered from the AwsStack in which it is resolved.

    Used by scope-less values (principals, AWS managed policy ARNs) which
    need the partition or account of whichever stack ends up using them.
    """
    return Lazy.string_value(_StackValueProducer(fn))
