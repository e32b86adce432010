"""Output nodes of a symbol tree."""

from dataclasses import dataclass, field
from typing import Optional

from lsprotocol import types
from lsprotocol.converters import get_converter


_converter = get_converter()


@dataclass(frozen=True)
class OutputNode:
    """A node in the symbol tree with children."""
    label: str
    kind: types.SymbolKind
    location: Optional[types.Location] = None
    children: tuple["OutputNode", ...] = field(default_factory=tuple)


def node_to_dict(node: OutputNode) -> dict:
    """Convert OutputNode to output dict."""
    result = {
        "name": node.label,
        "kind": _converter.unstructure(node.kind),
    }

    if node.location is not None:
        result["location"] = _converter.unstructure(node.location)

    result["children"] = [node_to_dict(c) for c in node.children]

    return result
