"""Outline package: symbol tree construction with inherited members."""

from .cancellation import CancellationToken
from .nodes import OutputNode, node_to_dict
from .builder import SymbolTreeBuilder, build_symbol_tree, map_kind

__all__ = [
    "CancellationToken",
    "OutputNode",
    "node_to_dict",
    "SymbolTreeBuilder",
    "build_symbol_tree",
    "map_kind",
]
