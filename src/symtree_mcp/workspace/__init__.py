"""Workspace package: folders of source code served as a declaration model."""

from .discovery import discover_source_files, should_skip_file
from .workspace import Workspace, path_to_uri, uri_to_path

__all__ = [
    "Workspace",
    "discover_source_files",
    "should_skip_file",
    "path_to_uri",
    "uri_to_path",
]
