"""Language registry with LanguageSpec definitions for all supported languages."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class LanguageSpec:
    """Specification for extracting declarations from a language's AST."""
    # tree-sitter language name (for tree-sitter-language-pack)
    ts_language: str

    # Node types that declare types
    # Maps node_type -> type flavor ("class", "interface", "enum", ...)
    type_node_types: dict[str, str]

    # Node types that declare methods
    # Maps node_type -> method flavor ("method", "constructor")
    method_node_types: dict[str, str]

    # Node types that declare one or more fields
    field_node_types: list[str]

    # Node types for initializer blocks
    # Maps node_type -> initializer flavor ("static", "instance")
    initializer_node_types: dict[str, str]

    # Node types that hold further member declarations (e.g. Java enum body
    # declarations following the constants)
    member_group_node_types: list[str]

    # Node types that list supertypes of a type declaration
    supertype_node_types: list[str]

    # Field holding the supertype list directly on the type node (Python)
    supertypes_field: Optional[str] = None

    # Wrapper node types around a declaration
    # Maps node_type -> child field name holding the wrapped declaration
    wrapper_fields: dict[str, str] = field(default_factory=dict)

    # Node types for enum constants
    enum_constant_node_types: list[str] = field(default_factory=list)

    # Node type of the package statement, if the language has one
    package_node_type: Optional[str] = None

    # Node types of the parameter list entries carrying a type
    # Maps node_type -> child field name for the parameter's type
    param_type_fields: dict[str, str] = field(default_factory=dict)

    # Return type extraction
    # Maps node_type -> child field name for return type
    return_type_fields: dict[str, str] = field(default_factory=dict)

    # Methods are overloaded by parameter types
    overloads_by_params: bool = False

    # Separator between a method's parameters and its return type in labels
    return_separator: str = " : "


# File extension to language mapping
LANGUAGE_EXTENSIONS = {
    ".py": "python",
    ".pyi": "python",
    ".java": "java",
}


# Python specification
PYTHON_SPEC = LanguageSpec(
    ts_language="python",
    type_node_types={
        "class_definition": "class",
    },
    method_node_types={
        "function_definition": "method",
    },
    field_node_types=["expression_statement"],
    initializer_node_types={},
    member_group_node_types=[],
    supertype_node_types=[],
    supertypes_field="superclasses",
    wrapper_fields={
        "decorated_definition": "definition",
    },
    return_type_fields={
        "function_definition": "return_type",
    },
    return_separator=" -> ",
)


# Java specification
JAVA_SPEC = LanguageSpec(
    ts_language="java",
    type_node_types={
        "class_declaration": "class",
        "interface_declaration": "interface",
        "enum_declaration": "enum",
        "record_declaration": "record",
        "annotation_type_declaration": "annotation",
    },
    method_node_types={
        "method_declaration": "method",
        "constructor_declaration": "constructor",
        "compact_constructor_declaration": "constructor",
        "annotation_type_element_declaration": "method",
    },
    field_node_types=["field_declaration", "constant_declaration"],
    initializer_node_types={
        "static_initializer": "static",
        "block": "instance",
    },
    member_group_node_types=["enum_body_declarations"],
    supertype_node_types=["superclass", "super_interfaces", "extends_interfaces"],
    enum_constant_node_types=["enum_constant"],
    package_node_type="package_declaration",
    param_type_fields={
        "formal_parameter": "type",
    },
    return_type_fields={
        "method_declaration": "type",
        "annotation_type_element_declaration": "type",
    },
    overloads_by_params=True,
)


# Language registry
LANGUAGE_REGISTRY = {
    "python": PYTHON_SPEC,
    "java": JAVA_SPEC,
}


def language_for_path(path: str) -> Optional[str]:
    """Language name for a file path, or None if unsupported."""
    for ext, language in LANGUAGE_EXTENSIONS.items():
        if path.endswith(ext):
            return language
    return None
