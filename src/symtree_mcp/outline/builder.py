"""Build symbol tree hierarchy for file outlines."""

import logging
from typing import Optional

from lsprotocol import types

from ..parser.declarations import (
    Declaration,
    DeclarationModel,
    FIELD,
    INITIALIZER,
    METHOD,
    TYPE,
)
from .cancellation import CancellationToken
from .nodes import OutputNode

logger = logging.getLogger(__name__)


# Type flavor -> presentation kind
_TYPE_KINDS = {
    "class": types.SymbolKind.Class,
    "interface": types.SymbolKind.Interface,
    "annotation": types.SymbolKind.Interface,
    "enum": types.SymbolKind.Enum,
    "record": types.SymbolKind.Struct,
}

# Field flavor -> presentation kind
_FIELD_KINDS = {
    "constant": types.SymbolKind.Constant,
    "enum_constant": types.SymbolKind.EnumMember,
}


def map_kind(kind: str, flavor: str = "") -> types.SymbolKind:
    """Map a declaration kind to the SymbolKind used for outline icons.

    Methods are always `Method`, whatever their flavor (constructors
    included), so icons stay the same across languages.
    """
    if kind == METHOD:
        return types.SymbolKind.Method
    if kind == TYPE:
        return _TYPE_KINDS.get(flavor, types.SymbolKind.Class)
    if kind == FIELD:
        return _FIELD_KINDS.get(flavor, types.SymbolKind.Field)
    if kind == INITIALIZER:
        return types.SymbolKind.Constructor
    return types.SymbolKind.String


class SymbolTreeBuilder:
    """Turns a root declaration into a tree of OutputNodes.

    The builder holds no per-request state; every visited set lives inside
    a single `build_node` call, so one builder may serve concurrent
    requests against a model that tolerates concurrent reads.
    """

    def __init__(self, model: DeclarationModel):
        self.model = model

    def build(
        self,
        root: Declaration,
        include_inherited: bool,
        token: Optional[CancellationToken] = None,
    ) -> list[OutputNode]:
        """Build one node per top-level type declaration of `root`.

        Raises:
            OutlineCancelled: cancellation was observed during traversal.
            RetrievalFault: the model failed to answer a query.
        """
        token = token or CancellationToken()
        token.raise_if_cancelled()

        result = []
        for element in self.model.children_of(root):
            if self.model.kind_of(element) != TYPE:
                continue
            node = self.build_node(
                element,
                None,
                self.model.render_label(element, False),
                include_inherited,
                token,
            )
            if node is not None:
                result.append(node)
        return result

    def build_node(
        self,
        element: Declaration,
        parent: Optional[Declaration],
        label: str,
        include_inherited: bool,
        token: CancellationToken,
    ) -> Optional[OutputNode]:
        """Build the node for `element`, or None if it has no location.

        `parent` is set when `element` is an inherited member, in which
        case it is the supertype declaring it. Inherited types are not
        expanded with their own supertypes.
        """
        token.raise_if_cancelled()

        location = self.model.location_of(element)
        if location is None:
            logger.debug("Skipping %r: no location", element)
            return None

        kind = map_kind(self.model.kind_of(element), self.model.flavor_of(element))
        children: list[OutputNode] = []

        if self.model.is_container(element):
            found = set()
            for child in self.model.children_of(element):
                identity = self.model.identity_of(child)
                if identity in found:
                    continue
                found.add(identity)
                self._append(children, child, element, False, include_inherited, token)

            if include_inherited and parent is None and self.model.kind_of(element) == TYPE:
                self._append_inherited(children, element, found, token)

        return OutputNode(
            label=label,
            kind=kind,
            location=location,
            children=tuple(children),
        )

    def _append_inherited(
        self,
        children: list[OutputNode],
        element: Declaration,
        found: set,
        token: CancellationToken,
    ) -> None:
        """Append supertype members not already in `found`, nearest first."""
        token.raise_if_cancelled()
        seen_types = {self.model.identity_of(element)}
        for supertype in self.model.supertype_chain_of(element, token):
            type_identity = self.model.identity_of(supertype)
            if type_identity in seen_types:
                logger.debug("Supertype %r repeated in chain of %r", supertype, element)
                continue
            seen_types.add(type_identity)

            for member in self.model.children_of(supertype):
                if self.model.kind_of(member) == INITIALIZER:
                    continue
                identity = self.model.identity_of(member)
                if identity in found:
                    continue
                found.add(identity)
                self._append(children, member, supertype, True, True, token)

    def _append(
        self,
        children: list[OutputNode],
        element: Declaration,
        parent: Declaration,
        fully_qualified: bool,
        include_inherited: bool,
        token: CancellationToken,
    ) -> None:
        node = self.build_node(
            element,
            parent,
            self.model.render_label(element, fully_qualified),
            include_inherited,
            token,
        )
        if node is not None:
            children.append(node)


def build_symbol_tree(
    model: DeclarationModel,
    root: Declaration,
    include_inherited: bool = False,
    token: Optional[CancellationToken] = None,
) -> list[OutputNode]:
    """Build the outline of `root` against `model`."""
    return SymbolTreeBuilder(model).build(root, include_inherited, token)
