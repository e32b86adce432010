"""Generic AST declaration extractor using tree-sitter."""

import os
import re
from dataclasses import dataclass, field
from typing import Optional

from lsprotocol import types
from tree_sitter_language_pack import get_parser

from .declarations import (
    Declaration,
    FIELD,
    INITIALIZER,
    METHOD,
    OTHER,
    TYPE,
    make_handle,
    make_member_identity,
)
from .languages import LanguageSpec, LANGUAGE_REGISTRY


_WHITESPACE = re.compile(r"\s+")
_TYPE_ARGUMENTS = re.compile(r"<.*>")


@dataclass
class _Context:
    """Per-file state shared by the walk."""
    spec: LanguageSpec
    source_bytes: bytes
    lines: list[bytes]
    filename: str
    language: str
    uri: Optional[str]
    package: str
    type_bounds: dict[str, str] = field(default_factory=dict)  # Type variable -> erasure

    def text(self, node) -> str:
        return self.source_bytes[node.start_byte:node.end_byte].decode("utf-8")

    def location(self, node) -> Optional[types.Location]:
        if self.uri is None:
            return None
        return types.Location(
            uri=self.uri,
            range=types.Range(
                start=self._position(node.start_point),
                end=self._position(node.end_point),
            ),
        )

    def _position(self, point) -> types.Position:
        """Convert a tree-sitter (row, byte column) into an LSP position."""
        row, column = point[0], point[1]
        line = self.lines[row] if row < len(self.lines) else b""
        prefix = line[:column].decode("utf-8", errors="replace")
        return types.Position(line=row, character=len(prefix.encode("utf-16-le")) // 2)


def parse_file(
    content: str,
    filename: str,
    language: str,
    uri: Optional[str] = None,
    module_name: str = "",
) -> Optional[Declaration]:
    """Parse source code and extract its declaration tree using tree-sitter.

    Args:
        content: Raw source code
        filename: File path (for handle generation)
        language: Language name (must be in LANGUAGE_REGISTRY)
        uri: Client URI of the file. Without one, no declaration gets a
            location (read-only library sources).
        module_name: Dotted module name used to qualify Python declarations

    Returns:
        Root Declaration of kind "other" whose children are the top-level
        declarations, or None for unknown languages
    """
    if language not in LANGUAGE_REGISTRY:
        return None

    spec = LANGUAGE_REGISTRY[language]
    source_bytes = content.encode("utf-8")

    # Get parser for this language
    parser = get_parser(spec.ts_language)
    tree = parser.parse(source_bytes)

    ctx = _Context(
        spec=spec,
        source_bytes=source_bytes,
        lines=source_bytes.split(b"\n"),
        filename=filename,
        language=language,
        uri=uri,
        package=module_name,
    )
    if spec.package_node_type:
        ctx.package = _extract_package(tree.root_node, ctx) or module_name

    basename = os.path.basename(filename)
    root = Declaration(
        identity=make_handle(filename, ""),
        handle=make_handle(filename, ""),
        name=basename,
        kind=OTHER,
        language=language,
        file=filename,
        label=basename,
        qualified_name=ctx.package,
        flavor="file",
        location=ctx.location(tree.root_node),
        package=ctx.package,
    )
    root.children = _extract_members(tree.root_node.named_children, ctx, ctx.package, "")
    return root


def _extract_package(root_node, ctx: _Context) -> Optional[str]:
    for child in root_node.named_children:
        if child.type == ctx.spec.package_node_type:
            for name_node in child.named_children:
                if name_node.type in ("scoped_identifier", "identifier"):
                    return ctx.text(name_node)
    return None


def _qualify(prefix: str, name: str) -> str:
    return f"{prefix}.{name}" if prefix else name


def _extract_members(nodes, ctx: _Context, declaring_name: str, local_prefix: str) -> list[Declaration]:
    """Extract declarations from a sequence of sibling nodes.

    `declaring_name` is the qualified name of the enclosing type or module,
    `local_prefix` the same name relative to the file (for handles).
    """
    spec = ctx.spec
    members = []
    initializer_count = 0

    for node in nodes:
        # Unwrap decorated definitions
        if node.type in spec.wrapper_fields:
            node = node.child_by_field_name(spec.wrapper_fields[node.type])
            if node is None:
                continue

        if node.type in spec.type_node_types:
            decl = _extract_type(node, ctx, declaring_name, local_prefix)
            if decl:
                members.append(decl)
        elif node.type in spec.method_node_types:
            decl = _extract_method(node, ctx, declaring_name, local_prefix)
            if decl:
                members.append(decl)
        elif node.type in spec.field_node_types:
            members.extend(_extract_fields(node, ctx, declaring_name, local_prefix))
        elif node.type in spec.enum_constant_node_types:
            decl = _extract_enum_constant(node, ctx, declaring_name, local_prefix)
            if decl:
                members.append(decl)
        elif node.type in spec.initializer_node_types and local_prefix:
            initializer_count += 1
            members.append(
                _extract_initializer(node, ctx, declaring_name, local_prefix, initializer_count)
            )
        elif node.type in spec.member_group_node_types:
            members.extend(_extract_members(node.named_children, ctx, declaring_name, local_prefix))

    return members


def _extract_type(node, ctx: _Context, declaring_name: str, local_prefix: str) -> Optional[Declaration]:
    """Extract a type Declaration and its members."""
    name_node = node.child_by_field_name("name")
    if name_node is None:
        return None
    name = ctx.text(name_node)

    qualified_name = _qualify(declaring_name, name)
    local_name = _qualify(local_prefix, name)
    handle = make_handle(ctx.filename, local_name)

    label = name
    type_params = node.child_by_field_name("type_parameters")
    if type_params is not None:
        label += _collapse(ctx.text(type_params))

    decl = Declaration(
        identity=handle,
        handle=handle,
        name=name,
        kind=TYPE,
        language=ctx.language,
        file=ctx.filename,
        label=label,
        declaring_name=declaring_name,
        qualified_name=qualified_name,
        flavor=ctx.spec.type_node_types[node.type],
        location=ctx.location(name_node),
        supertype_refs=_extract_supertypes(node, ctx),
        package=ctx.package,
    )

    # Record components are implicit fields
    if decl.flavor == "record":
        decl.children.extend(_extract_record_components(node, ctx, qualified_name, local_name))

    outer_bounds = ctx.type_bounds
    ctx.type_bounds = {**outer_bounds, **_type_bounds(type_params, ctx)}
    body = node.child_by_field_name("body")
    if body is not None:
        decl.children.extend(_extract_members(body.named_children, ctx, qualified_name, local_name))
    ctx.type_bounds = outer_bounds
    return decl


def _extract_record_components(node, ctx: _Context, declaring_name: str, local_prefix: str) -> list[Declaration]:
    parameters = node.child_by_field_name("parameters")
    if parameters is None:
        return []
    fields = []
    for param in parameters.named_children:
        name_node = param.child_by_field_name("name")
        type_node = param.child_by_field_name("type")
        if name_node is None:
            continue
        type_text = _collapse(ctx.text(type_node)) if type_node is not None else ""
        fields.append(_make_field(
            ctx.text(name_node), name_node, type_text, "",
            ctx, declaring_name, local_prefix,
        ))
    return fields


def _extract_supertypes(node, ctx: _Context) -> list[str]:
    """Supertype names as written, superclass first."""
    refs = []
    if ctx.spec.supertypes_field:
        arguments = node.child_by_field_name(ctx.spec.supertypes_field)
        if arguments is not None:
            for arg in arguments.named_children:
                if arg.type == "subscript":
                    arg = arg.child_by_field_name("value")
                if arg is not None and arg.type in ("identifier", "attribute"):
                    refs.append(ctx.text(arg))

    for child in node.children:
        if child.type in ctx.spec.supertype_node_types:
            refs.extend(_type_refs(child, ctx))
    return refs


def _type_refs(node, ctx: _Context) -> list[str]:
    refs = []
    for child in node.named_children:
        if child.type == "type_list":
            refs.extend(_type_refs(child, ctx))
        elif child.type == "generic_type":
            base = child.named_children[0] if child.named_children else None
            if base is not None:
                refs.append(ctx.text(base))
        elif child.type in ("type_identifier", "scoped_type_identifier"):
            refs.append(ctx.text(child))
    return refs


def _extract_method(node, ctx: _Context, declaring_name: str, local_prefix: str) -> Optional[Declaration]:
    """Extract a method Declaration; local types become its children."""
    name_node = node.child_by_field_name("name")
    if name_node is None:
        return None
    name = ctx.text(name_node)

    params = _extract_params(node, ctx)
    param_types = params if ctx.spec.overloads_by_params else []
    signature = f"{name}({', '.join(params)})"

    return_type = None
    if node.type in ctx.spec.return_type_fields:
        type_node = node.child_by_field_name(ctx.spec.return_type_fields[node.type])
        if type_node is not None:
            return_type = _collapse(ctx.text(type_node))

    label = signature
    if return_type:
        label += f"{ctx.spec.return_separator}{return_type}"

    bounds = {**ctx.type_bounds, **_type_bounds(node.child_by_field_name("type_parameters"), ctx)}
    local_name = _qualify(local_prefix, f"{name}({','.join(param_types)})")
    qualified_name = _qualify(declaring_name, name)
    decl = Declaration(
        identity=make_member_identity(METHOD, name, [_erase(t, bounds) for t in param_types]),
        handle=make_handle(ctx.filename, local_name),
        name=name,
        kind=METHOD,
        language=ctx.language,
        file=ctx.filename,
        label=label,
        declaring_name=declaring_name,
        qualified_name=qualified_name,
        flavor=ctx.spec.method_node_types[node.type],
        location=ctx.location(name_node),
        package=ctx.package,
    )

    body = node.child_by_field_name("body")
    if body is not None:
        decl.children = _extract_local_types(body, ctx, qualified_name, local_name)
    return decl


def _extract_params(node, ctx: _Context) -> list[str]:
    """Parameter labels: types for Java, names (with annotations) for Python."""
    parameters = node.child_by_field_name("parameters")
    if parameters is None:
        return []

    params = []
    for param in parameters.named_children:
        if param.type in ctx.spec.param_type_fields:
            type_node = param.child_by_field_name(ctx.spec.param_type_fields[param.type])
            if type_node is not None:
                params.append(_collapse(ctx.text(type_node)))
        elif param.type == "spread_parameter":
            type_node = next(
                (c for c in param.named_children if c.type not in ("modifiers", "variable_declarator")),
                None,
            )
            if type_node is not None:
                params.append(_collapse(ctx.text(type_node)) + "...")
        elif param.type in ("default_parameter", "typed_default_parameter"):
            value = param.child_by_field_name("value")
            end = value.start_byte if value is not None else param.end_byte
            text = ctx.source_bytes[param.start_byte:end].decode("utf-8")
            params.append(_collapse(text.rstrip().rstrip("=").rstrip()))
        elif param.type in ("receiver_parameter", "comment", "line_comment", "block_comment"):
            continue
        else:
            params.append(_collapse(ctx.text(param)))
    return params


def _extract_local_types(body, ctx: _Context, declaring_name: str, local_prefix: str) -> list[Declaration]:
    """Types declared anywhere inside a method body, outermost only."""
    found = []
    stack = list(reversed(body.named_children))
    while stack:
        node = stack.pop()
        if node.type in ctx.spec.wrapper_fields:
            wrapped = node.child_by_field_name(ctx.spec.wrapper_fields[node.type])
            if wrapped is not None:
                node = wrapped
        if node.type in ctx.spec.type_node_types:
            decl = _extract_type(node, ctx, declaring_name, local_prefix)
            if decl:
                found.append(decl)
            continue
        stack.extend(reversed(node.named_children))
    return found


def _extract_fields(node, ctx: _Context, declaring_name: str, local_prefix: str) -> list[Declaration]:
    """Extract one field Declaration per declarator."""
    if ctx.language == "python":
        return _extract_python_field(node, ctx, declaring_name, local_prefix)

    type_node = node.child_by_field_name("type")
    type_text = _collapse(ctx.text(type_node)) if type_node is not None else ""

    modifiers = set()
    for child in node.children:
        if child.type == "modifiers":
            modifiers.update(ctx.text(child).split())
    constant = node.type == "constant_declaration" or {"static", "final"} <= modifiers

    fields = []
    for declarator in node.children_by_field_name("declarator"):
        name_node = declarator.child_by_field_name("name")
        if name_node is None:
            continue
        name = ctx.text(name_node)
        fields.append(_make_field(
            name, name_node, type_text, "constant" if constant else "",
            ctx, declaring_name, local_prefix,
        ))
    return fields


def _extract_python_field(node, ctx: _Context, declaring_name: str, local_prefix: str) -> list[Declaration]:
    """Class-level assignment to a plain name."""
    if not node.named_children or node.named_children[0].type != "assignment":
        return []
    assignment = node.named_children[0]
    left = assignment.child_by_field_name("left")
    if left is None or left.type != "identifier":
        return []

    name = ctx.text(left)
    type_node = assignment.child_by_field_name("type")
    type_text = _collapse(ctx.text(type_node)) if type_node is not None else ""

    # UPPER_CASE names follow the constant convention
    constant = name.isupper() or (len(name) > 1 and name[0].isupper() and "_" in name)
    return [_make_field(
        name, left, type_text, "constant" if constant else "",
        ctx, declaring_name, local_prefix,
    )]


def _extract_enum_constant(node, ctx: _Context, declaring_name: str, local_prefix: str) -> Optional[Declaration]:
    name_node = node.child_by_field_name("name")
    if name_node is None:
        return None
    return _make_field(
        ctx.text(name_node), name_node, "", "enum_constant",
        ctx, declaring_name, local_prefix,
    )


def _make_field(
    name: str,
    name_node,
    type_text: str,
    flavor: str,
    ctx: _Context,
    declaring_name: str,
    local_prefix: str,
) -> Declaration:
    return Declaration(
        identity=make_member_identity(FIELD, name),
        handle=make_handle(ctx.filename, _qualify(local_prefix, name)),
        name=name,
        kind=FIELD,
        language=ctx.language,
        file=ctx.filename,
        label=f"{name} : {type_text}" if type_text else name,
        declaring_name=declaring_name,
        qualified_name=_qualify(declaring_name, name),
        flavor=flavor,
        location=ctx.location(name_node),
        package=ctx.package,
    )


def _extract_initializer(node, ctx: _Context, declaring_name: str, local_prefix: str, index: int) -> Declaration:
    flavor = ctx.spec.initializer_node_types[node.type]
    name = "<clinit>" if flavor == "static" else "<init>"
    handle = make_handle(ctx.filename, f"{_qualify(local_prefix, name)}#{index}")
    return Declaration(
        identity=handle,
        handle=handle,
        name=name,
        kind=INITIALIZER,
        language=ctx.language,
        file=ctx.filename,
        label="{...}",
        declaring_name=declaring_name,
        qualified_name=_qualify(declaring_name, name),
        flavor=flavor,
        location=ctx.location(node),
        package=ctx.package,
    )


def _collapse(text: str) -> str:
    """Collapse whitespace runs into single spaces."""
    return _WHITESPACE.sub(" ", text).strip()


def _erase(type_text: str, bounds: Optional[dict[str, str]] = None) -> str:
    """Erase a parameter type the way javac does for override matching.

    Type arguments are dropped, so List<String> and List<T> compare equal,
    and a type variable becomes its first bound (Object when unbounded).
    """
    erased = _TYPE_ARGUMENTS.sub("", type_text).replace(" ", "")
    base = erased.rstrip("[].")
    return (bounds or {}).get(base, base) + erased[len(base):]


def _type_bounds(type_params, ctx: _Context) -> dict[str, str]:
    """Map each type variable in a type_parameters node to its erasure."""
    bounds = {}
    if type_params is None:
        return bounds
    for param in type_params.named_children:
        if param.type != "type_parameter":
            continue
        name = next((c for c in param.named_children if c.type == "type_identifier"), None)
        if name is None:
            continue
        bound = next((c for c in param.named_children if c.type == "type_bound"), None)
        erasure = "Object"
        if bound is not None and bound.named_children:
            erasure = _erase(ctx.text(bound.named_children[0]), bounds)
        bounds[ctx.text(name)] = erasure
    return bounds
