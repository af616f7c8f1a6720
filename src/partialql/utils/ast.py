"""Building modified copies of graphql-core AST nodes."""

import dataclasses
from typing import Any, TypeVar

from graphql import Node

N = TypeVar("N", bound=Node)


def replace_node(node: N, **changes: Any) -> N:
    """Build a copy of ``node`` with some attributes replaced.

    graphql-core 3.3 nodes are frozen dataclasses while earlier nodes
    are slotted classes listing their attributes in ``keys``. Neither is
    patched in place; the copy is always constructed.

    Args:
        node: The node to copy.
        **changes: Attributes to set on the copy.

    Returns:
        A new node of the same type.
    """
    if dataclasses.is_dataclass(node):
        return dataclasses.replace(node, **changes)
    fields = {key: getattr(node, key, None) for key in node.keys}
    fields.update(changes)
    return type(node)(**fields)
