"""File structure command - outline of a file with optional inherited members."""

import logging
from typing import Any, Optional

from ..errors import MalformedInput
from ..outline import CancellationToken, SymbolTreeBuilder, node_to_dict
from ..parser import DeclarationModel
from ._params import first_param

logger = logging.getLogger(__name__)


def file_structure(
    params: Any,
    model: DeclarationModel,
    token: Optional[CancellationToken] = None,
) -> list[dict]:
    """Compute the file structure hierarchy.

    Args:
        params: FileStructureCommandParameters, alone or as first element of
            a list: {"uri": str, "showInherited": bool}
        model: Declaration model resolving the file
        token: Cancellation token polled during traversal

    Returns:
        Fully rendered hierarchy of symbols, one entry per top-level type

    Raises:
        MalformedInput: missing or invalid parameters or file
        OutlineCancelled: the request was cancelled
        RetrievalFault: the model failed while reading declarations
    """
    args = first_param(params, "FileStructureCommandParameters")
    uri = args.get("uri") or args.get("fileUri")
    if not isinstance(uri, str):
        raise MalformedInput("FileStructureCommandParameters.uri must be a string")
    show_inherited = bool(args.get("showInherited", False))

    token = token or CancellationToken()
    token.raise_if_cancelled()

    root = model.resolve_root(uri)
    tree = SymbolTreeBuilder(model).build(root, show_inherited, token)
    logger.debug("Built outline of %s with %d top-level types", uri, len(tree))

    return [node_to_dict(n) for n in tree]
