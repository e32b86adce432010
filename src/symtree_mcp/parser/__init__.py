"""Parser package for extracting declarations from source code."""

from .declarations import (
    Declaration,
    DeclarationModel,
    TYPE,
    METHOD,
    FIELD,
    INITIALIZER,
    OTHER,
    slugify,
    make_handle,
    make_member_identity,
)
from .languages import LanguageSpec, LANGUAGE_REGISTRY, LANGUAGE_EXTENSIONS, language_for_path
from .extractor import parse_file

__all__ = [
    "Declaration",
    "DeclarationModel",
    "TYPE",
    "METHOD",
    "FIELD",
    "INITIALIZER",
    "OTHER",
    "slugify",
    "make_handle",
    "make_member_identity",
    "LanguageSpec",
    "LANGUAGE_REGISTRY",
    "LANGUAGE_EXTENSIONS",
    "language_for_path",
    "parse_file",
]
