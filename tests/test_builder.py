"""Tests for the symbol tree builder."""

import pytest
from lsprotocol import types

from symtree_mcp.errors import OutlineCancelled, RetrievalFault
from symtree_mcp.outline import CancellationToken, SymbolTreeBuilder, build_symbol_tree, map_kind
from symtree_mcp.parser import Declaration, FIELD, INITIALIZER, METHOD, OTHER, TYPE


def _location(line: int) -> types.Location:
    return types.Location(
        uri="file:///src/Test.java",
        range=types.Range(
            start=types.Position(line=line, character=0),
            end=types.Position(line=line, character=1),
        ),
    )


def decl(name, kind, identity=None, owner="", children=(), supers=(), located=True, flavor="", line=0):
    """Declaration with a location unless `located` is False."""
    return Declaration(
        identity=identity or f"{owner}.{name}",
        handle=f"{owner}.{name}",
        name=name,
        kind=kind,
        language="java",
        file="/src/Test.java",
        label=name,
        declaring_name=owner,
        flavor=flavor,
        location=_location(line) if located else None,
        children=list(children),
        supertype_refs=list(supers),
    )


class FakeModel:
    """In-memory DeclarationModel resolving supertypes by name."""

    def __init__(self, types_by_name=None, chains=None):
        self.types_by_name = types_by_name or {}
        self.chains = chains or {}
        self.chain_queries = 0

    def children_of(self, node):
        return node.children

    def is_container(self, node):
        return node.is_container

    def identity_of(self, node):
        return node.identity

    def kind_of(self, node):
        return node.kind

    def flavor_of(self, node):
        return node.flavor

    def location_of(self, node):
        return node.location

    def render_label(self, node, fully_qualified):
        return node.render_label(fully_qualified)

    def supertype_chain_of(self, node, token=None):
        self.chain_queries += 1
        if node.name in self.chains:
            return self.chains[node.name]
        return [self.types_by_name[ref] for ref in node.supertype_refs if ref in self.types_by_name]

    def resolve_root(self, file_uri):
        raise NotImplementedError


def root_of(*children):
    return decl("Test.java", OTHER, children=children)


def labels(nodes):
    return [n.label for n in nodes]


@pytest.fixture
def hierarchy():
    """A declares f and x; B extends A, declares g and overrides f."""
    a = decl("A", TYPE, owner="p", children=[
        decl("f()", METHOD, identity="method:f()", owner="A"),
        decl("x", FIELD, identity="field:x", owner="A"),
    ])
    b = decl("B", TYPE, owner="p", supers=["A"], children=[
        decl("g()", METHOD, identity="method:g()", owner="B"),
        decl("f()", METHOD, identity="method:f()", owner="B"),
    ])
    return a, b, FakeModel({"A": a, "B": b})


def test_build_own_members_only(hierarchy):
    """Without inherited members, one node per type, in source order."""
    a, b, model = hierarchy
    tree = build_symbol_tree(model, root_of(a, b), include_inherited=False)

    assert labels(tree) == ["A", "B"]
    assert labels(tree[0].children) == ["f()", "x"]
    assert labels(tree[1].children) == ["g()", "f()"]
    assert model.chain_queries == 0


def test_build_skips_non_type_top_level(hierarchy):
    """Only type declarations appear at the top level."""
    a, _, model = hierarchy
    root = root_of(decl("helper()", METHOD), a, decl("CONSTANT", FIELD))
    tree = build_symbol_tree(model, root)
    assert labels(tree) == ["A"]


def test_inherited_members_after_own(hierarchy):
    """B shows g, its own f, then x qualified with A; A's f is shadowed."""
    a, b, model = hierarchy
    tree = build_symbol_tree(model, root_of(b), include_inherited=True)

    assert len(tree) == 1
    assert labels(tree[0].children) == ["g()", "f()", "x - A"]


def test_nearest_ancestor_wins():
    """A member defined in two ancestors is attributed to the nearer one."""
    far = decl("Far", TYPE, owner="p", children=[
        decl("m()", METHOD, identity="method:m()", owner="Far"),
        decl("n()", METHOD, identity="method:n()", owner="Far"),
    ])
    near = decl("Near", TYPE, owner="p", supers=["Far"], children=[
        decl("m()", METHOD, identity="method:m()", owner="Near"),
    ])
    leaf = decl("Leaf", TYPE, owner="p", supers=["Near"], children=[
        decl("n()", METHOD, identity="method:n()", owner="Leaf"),
    ])
    model = FakeModel(chains={"Leaf": [near, far]})

    tree = build_symbol_tree(model, root_of(leaf), include_inherited=True)

    assert labels(tree[0].children) == ["n()", "m() - Near"]


def test_initializers_not_inherited():
    base = decl("Base", TYPE, owner="p", children=[
        decl("{...}", INITIALIZER, owner="Base"),
        decl("count", FIELD, identity="field:count", owner="Base"),
    ])
    child = decl("Child", TYPE, owner="p", supers=["Base"], children=[
        decl("{...}", INITIALIZER, owner="Child"),
    ])
    model = FakeModel({"Base": base})

    tree = build_symbol_tree(model, root_of(child), include_inherited=True)

    kinds = [n.kind for n in tree[0].children]
    assert kinds.count(types.SymbolKind.Constructor) == 1
    assert labels(tree[0].children) == ["{...}", "count - Base"]


def test_unlocatable_declaration_dropped_with_descendants():
    inner = decl("Inner", TYPE, owner="Outer", located=False, children=[
        decl("visible()", METHOD, owner="Inner"),
    ])
    outer = decl("Outer", TYPE, owner="p", children=[
        inner,
        decl("run()", METHOD, owner="Outer"),
    ])
    tree = build_symbol_tree(FakeModel(), root_of(outer, decl("Hidden", TYPE, located=False)))

    assert labels(tree) == ["Outer"]
    assert labels(tree[0].children) == ["run()"]


def test_inherited_members_without_location_are_skipped():
    library = decl("LibBase", TYPE, located=False, children=[
        decl("libMethod()", METHOD, identity="method:libMethod()", located=False),
    ])
    child = decl("Child", TYPE, owner="p", supers=["LibBase"])
    tree = build_symbol_tree(FakeModel({"LibBase": library}), root_of(child), include_inherited=True)
    assert tree[0].children == ()


def test_inherited_types_not_expanded():
    """Inherited nested types keep their own members but not their supertypes'."""
    grand = decl("Grand", TYPE, owner="p", children=[decl("deep()", METHOD, identity="method:deep()")])
    nested = decl("Nested", TYPE, identity="Base.Nested", owner="Base", supers=["Grand"], children=[
        decl("own()", METHOD, identity="method:own()", owner="Nested"),
    ])
    base = decl("Base", TYPE, owner="p", children=[nested])
    child = decl("Child", TYPE, owner="p", supers=["Base"])
    model = FakeModel({"Base": base, "Grand": grand})

    tree = build_symbol_tree(model, root_of(child), include_inherited=True)

    inherited = tree[0].children
    assert labels(inherited) == ["Nested - Base"]
    assert labels(inherited[0].children) == ["own()"]


def test_own_nested_types_not_expanded_with_inherited(hierarchy):
    a, _, _ = hierarchy
    nested = decl("Nested", TYPE, owner="Outer", supers=["A"])
    outer = decl("Outer", TYPE, owner="p", children=[nested])
    tree = build_symbol_tree(FakeModel({"A": a}), root_of(outer), include_inherited=True)
    assert tree[0].children[0].children == ()


def test_duplicate_own_children_emitted_once():
    twice = decl("dup()", METHOD, identity="method:dup()")
    outer = decl("Outer", TYPE, children=[twice, decl("dup()", METHOD, identity="method:dup()")])
    tree = build_symbol_tree(FakeModel(), root_of(outer))
    assert labels(tree[0].children) == ["dup()"]


def test_malformed_chain_terminates(hierarchy):
    """Repeated supertypes, including the type itself, are visited once."""
    a, b, _ = hierarchy
    model = FakeModel(chains={"B": [a, a, b, a]})
    tree = build_symbol_tree(model, root_of(b), include_inherited=True)
    assert labels(tree[0].children) == ["g()", "f()", "x - A"]


def test_build_is_idempotent(hierarchy):
    a, b, model = hierarchy
    root = root_of(a, b)
    first = build_symbol_tree(model, root, include_inherited=True)
    second = build_symbol_tree(model, root, include_inherited=True)
    assert first == second


def test_cancelled_before_start(hierarchy):
    a, b, model = hierarchy
    token = CancellationToken()
    token.cancel()
    with pytest.raises(OutlineCancelled):
        build_symbol_tree(model, root_of(a, b), token=token)


def test_cancelled_during_traversal(hierarchy):
    """Cancelling mid-traversal aborts the request instead of truncating it."""
    a, b, _ = hierarchy
    token = CancellationToken()

    class CancellingModel(FakeModel):
        def location_of(self, node):
            if node.name == "x":
                token.cancel()
            return node.location

    with pytest.raises(OutlineCancelled):
        build_symbol_tree(CancellingModel(), root_of(a, b), token=token)


def test_retrieval_fault_propagates(hierarchy):
    a, b, _ = hierarchy

    class FailingModel(FakeModel):
        def children_of(self, node):
            if node.name == "B":
                raise RetrievalFault("stale")
            return node.children

    with pytest.raises(RetrievalFault):
        SymbolTreeBuilder(FailingModel()).build(root_of(a, b), False)


def test_empty_type_kept():
    tree = build_symbol_tree(FakeModel(), root_of(decl("Empty", TYPE)))
    assert labels(tree) == ["Empty"]
    assert tree[0].children == ()


def test_kind_uses_model_flavor():
    """Presentation kinds come from the model, not from the node object."""

    class InterfaceModel(FakeModel):
        def flavor_of(self, node):
            return "interface" if node.kind == TYPE else "constant"

    tree = build_symbol_tree(InterfaceModel(), root_of(
        decl("Shape", TYPE, flavor="class", children=[decl("SIDES", FIELD)]),
    ))

    assert tree[0].kind == types.SymbolKind.Interface
    assert tree[0].children[0].kind == types.SymbolKind.Constant


def test_map_kind():
    assert map_kind(METHOD, "constructor") == types.SymbolKind.Method
    assert map_kind(METHOD) == types.SymbolKind.Method
    assert map_kind(TYPE, "class") == types.SymbolKind.Class
    assert map_kind(TYPE, "interface") == types.SymbolKind.Interface
    assert map_kind(TYPE, "enum") == types.SymbolKind.Enum
    assert map_kind(FIELD) == types.SymbolKind.Field
    assert map_kind(FIELD, "constant") == types.SymbolKind.Constant
    assert map_kind(FIELD, "enum_constant") == types.SymbolKind.EnumMember
    assert map_kind(INITIALIZER, "static") == types.SymbolKind.Constructor
    assert map_kind(OTHER) == types.SymbolKind.String
