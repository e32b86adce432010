"""Server configuration read from environment variables."""

import os
from dataclasses import dataclass, field


def _split_paths(value: str) -> list[str]:
    return [p for p in value.split(os.pathsep) if p]


@dataclass
class ServerConfig:
    """Settings for the MCP server and its workspace."""
    workspace_folders: list[str] = field(default_factory=list)
    library_paths: list[str] = field(default_factory=list)
    max_files: int = 2000
    max_file_size: int = 500 * 1024
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ=None) -> "ServerConfig":
        """Build a config from SYMTREE_* environment variables.

        SYMTREE_WORKSPACE and SYMTREE_LIBRARY_PATH are os.pathsep-separated
        folder lists. The workspace defaults to the current directory.
        """
        environ = os.environ if environ is None else environ
        folders = _split_paths(environ.get("SYMTREE_WORKSPACE", ""))
        return cls(
            workspace_folders=folders or [os.getcwd()],
            library_paths=_split_paths(environ.get("SYMTREE_LIBRARY_PATH", "")),
            max_files=int(environ.get("SYMTREE_MAX_FILES", 2000)),
            max_file_size=int(environ.get("SYMTREE_MAX_FILE_SIZE", 500 * 1024)),
            log_level=environ.get("SYMTREE_LOG_LEVEL", "WARNING").upper(),
        )
