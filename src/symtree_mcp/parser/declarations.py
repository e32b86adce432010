"""Declaration dataclass and the model protocol the outline builder consumes."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Hashable, Optional, Protocol, Sequence

from lsprotocol import types

if TYPE_CHECKING:
    from ..outline.cancellation import CancellationToken


# Declaration kinds
TYPE = "type"
METHOD = "method"
FIELD = "field"
INITIALIZER = "initializer"
OTHER = "other"


@dataclass(eq=False)
class Declaration:
    """A program declaration extracted from source via tree-sitter."""
    identity: str                   # Dedup key (see make_member_identity)
    handle: str                     # Unique ID: "file-slug::Qualified.name"
    name: str                       # Simple name (e.g., "login")
    kind: str                       # "type" | "method" | "field" | "initializer" | "other"
    language: str                   # "python" | "java"
    file: str                       # Absolute source file path
    label: str                      # Rendered label without qualification
    declaring_name: str = ""        # Qualified name of the enclosing type or module
    qualified_name: str = ""        # Qualified name of this declaration
    flavor: str = ""                # Finer subtype: "class", "interface", "constructor", ...
    location: Optional[types.Location] = None
    children: list["Declaration"] = field(default_factory=list)
    supertype_refs: list[str] = field(default_factory=list)  # Supertypes as written
    package: str = ""               # Java package or Python package directory

    @property
    def is_container(self) -> bool:
        return self.kind in (TYPE, METHOD, OTHER)

    def render_label(self, fully_qualified: bool = False) -> str:
        """Render the label, optionally post-qualified with the declaring type.

        Example: "add(int, int) : int - com.example.Calculator"
        """
        if fully_qualified and self.declaring_name:
            return f"{self.label} - {self.declaring_name}"
        return self.label

    def __repr__(self) -> str:
        return f"Declaration({self.handle!r}, kind={self.kind!r})"


def slugify(text: str) -> str:
    """Convert file path to slug format.

    Replace / with - and . with - for use in handles.
    Example: src/main.py -> src-main-py
    """
    return text.replace("\\", "/").replace("/", "-").replace(".", "-")


def make_handle(file_path: str, qualified_name: str) -> str:
    """Generate a unique declaration handle.

    Format: {file_slug}::{qualified_name}
    Example: src-main-py::MyClass.login
    """
    return f"{slugify(file_path)}::{qualified_name}"


def make_member_identity(kind: str, name: str, param_types: Sequence[str] = ()) -> str:
    """Identity shared by a member and the members it overrides or hides.

    Methods are keyed by name and parameter types, fields by name.
    """
    if kind == METHOD:
        return f"method:{name}({','.join(param_types)})"
    return f"{kind}:{name}"


class DeclarationModel(Protocol):
    """Read-only queries the outline builder needs from a host."""

    def children_of(self, node: Declaration) -> Sequence[Declaration]:
        ...

    def is_container(self, node: Declaration) -> bool:
        ...

    def identity_of(self, node: Declaration) -> Hashable:
        ...

    def kind_of(self, node: Declaration) -> str:
        ...

    def flavor_of(self, node: Declaration) -> str:
        """Finer subtype of the kind, such as "interface" or "constant"."""
        ...

    def location_of(self, node: Declaration) -> Optional[types.Location]:
        ...

    def render_label(self, node: Declaration, fully_qualified: bool) -> str:
        ...

    def supertype_chain_of(
        self, node: Declaration, token: Optional["CancellationToken"] = None
    ) -> Sequence[Declaration]:
        """All supertypes of a type, nearest first."""
        ...

    def resolve_root(self, file_uri: str) -> Declaration:
        ...
