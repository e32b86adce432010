"""Workspace-backed declaration model with supertype resolution."""

import logging
import threading
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional
from urllib.parse import unquote, urlparse

from lsprotocol import types

from ..errors import MalformedInput, RetrievalFault
from ..outline.cancellation import CancellationToken
from ..parser import Declaration, TYPE, language_for_path, parse_file
from .discovery import discover_source_files

logger = logging.getLogger(__name__)


def uri_to_path(uri: str) -> Path:
    """Convert a file:// URI (or a plain path) to a Path."""
    parsed = urlparse(uri)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    if parsed.scheme and len(parsed.scheme) > 1:
        raise MalformedInput(f"Unsupported URI scheme: {uri}")
    return Path(uri).expanduser()


def path_to_uri(path: Path) -> str:
    return path.resolve().as_uri()


@dataclass
class _ParsedFile:
    """A parsed source file and the mtime it was parsed at."""
    path: Path
    mtime_ns: int
    library: bool
    root: Declaration


class Workspace:
    """Folders of source code, queried as a DeclarationModel.

    Declarations from library folders carry no location: they feed
    supertype chains but never show up in an outline.
    """

    def __init__(
        self,
        folders: Iterable[str] = (),
        library_paths: Iterable[str] = (),
        max_files: int = 2000,
        max_size: int = 500 * 1024,
    ):
        self.folders: list[Path] = [Path(f).expanduser().resolve() for f in folders]
        self.library_paths: list[Path] = [Path(p).expanduser().resolve() for p in library_paths]
        self.max_files = max_files
        self.max_size = max_size

        self._lock = threading.RLock()
        self._files: dict[str, _ParsedFile] = {}
        self._type_index: Optional[dict[str, list[Declaration]]] = None

    # DeclarationModel

    def children_of(self, node: Declaration) -> list[Declaration]:
        self._check_fresh(node)
        return node.children

    def is_container(self, node: Declaration) -> bool:
        return node.is_container

    def identity_of(self, node: Declaration) -> str:
        return node.identity

    def kind_of(self, node: Declaration) -> str:
        return node.kind

    def flavor_of(self, node: Declaration) -> str:
        return node.flavor

    def location_of(self, node: Declaration) -> Optional[types.Location]:
        return node.location

    def render_label(self, node: Declaration, fully_qualified: bool) -> str:
        return node.render_label(fully_qualified)

    def supertype_chain_of(
        self, node: Declaration, token: Optional[CancellationToken] = None
    ) -> list[Declaration]:
        """All resolvable supertypes of `node`, nearest first.

        Breadth-first over the supertypes each type declares, in source
        order. Unresolvable references are dropped; a type is listed once.
        """
        chain = []
        seen = {node.identity}
        queue = deque([node])

        while queue:
            current = queue.popleft()
            for ref in current.supertype_refs:
                if token is not None:
                    token.raise_if_cancelled()
                resolved = self.resolve_type(ref, current, token)
                if resolved is None:
                    logger.debug("Unresolved supertype %r of %r", ref, current)
                    continue
                if resolved.identity in seen:
                    continue
                seen.add(resolved.identity)
                chain.append(resolved)
                queue.append(resolved)

        return chain

    def resolve_root(self, file_uri: str) -> Declaration:
        """Resolve a file URI to the root declaration of that file.

        Raises:
            MalformedInput: the URI does not name a supported source file.
            RetrievalFault: the file could not be read.
        """
        if not file_uri:
            raise MalformedInput("No file URI given")

        path = uri_to_path(file_uri)
        if language_for_path(path.name) is None:
            raise MalformedInput(f"Unsupported file type: {file_uri}")
        if not path.is_file():
            raise MalformedInput(f"Not a file: {file_uri}")

        return self._load(path.resolve()).root

    # Workspace folders

    def update_folders(self, added: Iterable[str], removed: Iterable[str]) -> list[str]:
        """Add and remove workspace folders.

        Returns:
            Problems encountered (missing folders, unknown folders)
        """
        problems = []
        with self._lock:
            for folder in removed:
                path = Path(folder).expanduser().resolve()
                if path in self.folders:
                    self.folders.remove(path)
                    logger.info("Removed workspace folder %s", path)
                else:
                    problems.append(f"Not a workspace folder: {folder}")

            for folder in added:
                path = Path(folder).expanduser().resolve()
                if not path.is_dir():
                    problems.append(f"Folder not found: {folder}")
                    continue
                if path not in self.folders:
                    self.folders.append(path)
                    logger.info("Added workspace folder %s", path)

            self._files.clear()
            self._type_index = None
        return problems

    # Type resolution

    def resolve_type(
        self,
        ref: str,
        context: Declaration,
        token: Optional[CancellationToken] = None,
    ) -> Optional[Declaration]:
        """Find the type a supertype reference written in `context` names.

        Preference: same file, same package, workspace over library. A
        match from a file edited since it was indexed is reparsed first,
        so callers never get a declaration that is already stale.
        """
        attempts = set()
        while True:
            resolved = self._find_type(ref, context, token)
            if resolved is None or not self._is_stale(resolved.file) or resolved.file in attempts:
                return resolved
            attempts.add(resolved.file)
            self._refresh(resolved.file)

    def _find_type(
        self, ref: str, context: Declaration, token: Optional[CancellationToken]
    ) -> Optional[Declaration]:
        simple_name = ref.rsplit(".", 1)[-1]

        candidates = list(self._types_in_file(context.file, simple_name))
        for decl in self._index(token).get(simple_name, []):
            if decl.file != context.file:
                candidates.append(decl)

        candidates = [
            c for c in candidates
            if c.language == context.language and c.identity != context.identity
        ]
        if "." in ref:
            qualified = [c for c in candidates if c.qualified_name.endswith(ref)]
            candidates = qualified or candidates
        if not candidates:
            return None

        context_package = _package_of(context)

        def rank(decl: Declaration) -> tuple:
            parsed = self._files.get(decl.file)
            library = parsed.library if parsed else False
            return (
                decl.file != context.file,
                _package_of(decl) != context_package,
                library,
                decl.file,
            )

        return min(candidates, key=rank)

    def _types_in_file(self, file: str, name: str) -> Iterator[Declaration]:
        parsed = self._files.get(file)
        if parsed is None:
            return
        for decl in _walk_types(parsed.root.children):
            if decl.name == name:
                yield decl

    def _index(self, token: Optional[CancellationToken] = None) -> dict[str, list[Declaration]]:
        """Type declarations of every workspace and library file, by simple name.

        Polls `token` once per file; a cancelled build leaves no index behind.
        """
        with self._lock:
            if self._type_index is not None:
                return self._type_index

            index: dict[str, list[Declaration]] = {}
            file_count = 0
            roots = [(f, False) for f in self.folders] + [(p, True) for p in self.library_paths]
            for folder, library in roots:
                if not folder.is_dir():
                    logger.warning("Skipping missing folder %s", folder)
                    continue
                for path in discover_source_files(folder, self.max_files, self.max_size):
                    if token is not None:
                        token.raise_if_cancelled()
                    try:
                        parsed = self._load(path.resolve(), library)
                    except RetrievalFault as e:
                        logger.warning("Not indexing %s: %s", path, e)
                        continue
                    file_count += 1
                    for decl in _walk_types(parsed.root.children):
                        index.setdefault(decl.name, []).append(decl)

            logger.info("Indexed %d types from %d files", sum(len(v) for v in index.values()), file_count)
            self._type_index = index
            return index

    # File cache

    def _load(self, path: Path, library: Optional[bool] = None) -> _ParsedFile:
        """Parse `path`, reusing the cached parse while its mtime is unchanged."""
        key = str(path)
        if library is None:
            library = self._is_library(path)

        try:
            mtime_ns = path.stat().st_mtime_ns
        except OSError as e:
            raise RetrievalFault(f"Cannot read {path}: {e}") from e

        with self._lock:
            cached = self._files.get(key)
            if cached is not None and cached.mtime_ns == mtime_ns:
                return cached

            try:
                content = path.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                raise RetrievalFault(f"Cannot read {path}: {e}") from e

            root = parse_file(
                content,
                key,
                language_for_path(path.name),
                uri=None if library else path_to_uri(path),
                module_name=self._module_name(path),
            )
            parsed = _ParsedFile(path=path, mtime_ns=mtime_ns, library=library, root=root)
            self._files[key] = parsed
            if cached is not None:
                # Index entries point at the old declarations
                self._type_index = None
            logger.debug("Parsed %s", path)
            return parsed

    def _is_stale(self, file: str) -> bool:
        """True if the cached parse of `file` no longer matches the disk."""
        parsed = self._files.get(file)
        if parsed is None:
            return False
        try:
            return Path(file).stat().st_mtime_ns != parsed.mtime_ns
        except OSError:
            return True

    def _refresh(self, file: str) -> None:
        """Reparse `file`, or forget it if it can no longer be read."""
        with self._lock:
            parsed = self._files.get(file)
            if parsed is None:
                return
            try:
                self._load(parsed.path, parsed.library)
            except RetrievalFault as e:
                logger.info("Dropping %s: %s", file, e)
                del self._files[file]
                self._type_index = None

    def _check_fresh(self, node: Declaration) -> None:
        """Raise RetrievalFault if `node` comes from an outdated parse."""
        parsed = self._files.get(node.file)
        if parsed is None:
            return
        try:
            mtime_ns = Path(node.file).stat().st_mtime_ns
        except OSError as e:
            raise RetrievalFault(f"{node.file} is no longer readable: {e}") from e
        if mtime_ns != parsed.mtime_ns:
            raise RetrievalFault(f"{node.file} changed while it was being read")

    def _is_library(self, path: Path) -> bool:
        if any(_is_under(path, f) for f in self.folders):
            return False
        return any(_is_under(path, p) for p in self.library_paths)

    def _module_name(self, path: Path) -> str:
        """Dotted module name of `path` relative to its workspace or library folder."""
        for root in self.folders + self.library_paths:
            if _is_under(path, root):
                parts = list(path.relative_to(root).with_suffix("").parts)
                if parts and parts[-1] == "__init__":
                    parts.pop()
                return ".".join(parts)
        return path.stem


def _walk_types(declarations: list[Declaration]) -> Iterator[Declaration]:
    """Types and their member types, depth first."""
    for decl in declarations:
        if decl.kind == TYPE:
            yield decl
            yield from _walk_types(decl.children)


def _package_of(decl: Declaration) -> str:
    if decl.language == "python":
        return decl.package.rpartition(".")[0]
    return decl.package


def _is_under(path: Path, folder: Path) -> bool:
    try:
        path.relative_to(folder)
    except ValueError:
        return False
    return True
