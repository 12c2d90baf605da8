"""
Lowers construct-level dependencies into Terraform ``depends_on``.

``node.add_dependency`` on any construct (a composite, or a plain
resource) is translated into explicit references between the Terraform
resources beneath the two constructs.
"""
import logging
from typing import Any, Dict, List

import jsii
from cdktf import IAspect, TerraformResource, TerraformStack
from constructs import IConstruct

logger = logging.getLogger(__name__)

SKIP_DEPENDENCY_PROPAGATION = "_tc_skip_dependency_propagation"


def skip_dependency_propagation(element: Any) -> None:
    """Flags ``element`` so it never takes part in dependency propagation."""
    setattr(element, SKIP_DEPENDENCY_PROPAGATION, True)


def is_skipped(element: Any) -> bool:
    return getattr(element, SKIP_DEPENDENCY_PROPAGATION, False) is True


def terraform_resources_of(construct: IConstruct) -> List[TerraformResource]:
    return [
        c for c in construct.node.find_all()
        if isinstance(c, TerraformResource) and not is_skipped(c)
    ]


@jsii.implements(IAspect)
class TerraformDependableAspect:
    """Visits every resource and inherits the dependencies of its ancestors."""

    def visit(self, node: IConstruct) -> None:
        if not isinstance(node, TerraformResource) or is_skipped(node):
            return

        stack = TerraformStack.of(node)
        scopes = list(node.node.scopes)
        below_stack = scopes[scopes.index(stack) + 1:] if stack in scopes else scopes

        refs: Dict[str, None] = {}
        for scope in below_stack:
            for dependency in scope.node.dependencies:
                for target in terraform_resources_of(dependency):
                    if target is node:
                        continue
                    target_stack = TerraformStack.of(target)
                    if target_stack is not stack:
                        if target_stack not in stack.dependencies:
                            logger.debug("%s depends on stack %s", stack.node.path, target_stack.node.path)
                            stack.add_dependency(target_stack)
                        continue
                    refs[f"{target.terraform_resource_type}.{target.friendly_unique_id}"] = None

        if not refs:
            return
        existing = list(node.depends_on or [])
        node.depends_on = existing + [r for r in refs if r not in existing]
