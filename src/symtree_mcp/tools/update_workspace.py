"""Update workspace command - add and remove workspace folders."""

import enum
import logging
from dataclasses import asdict, dataclass
from typing import Any, Optional

from ..errors import MalformedInput
from ..outline import CancellationToken
from ..workspace import Workspace, uri_to_path
from ._params import first_param

logger = logging.getLogger(__name__)


class Severity(str, enum.Enum):
    OK = "OK"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CANCEL = "CANCEL"


@dataclass
class JobResult:
    """Outcome of a workspace job."""
    severity: Severity
    code: int
    message: str

    def to_dict(self) -> dict:
        result = asdict(self)
        result["severity"] = self.severity.value
        return result


def update_workspace(
    params: Any,
    workspace: Workspace,
    token: Optional[CancellationToken] = None,
) -> JobResult:
    """Update the workspace after adding/removing project folders.

    Args:
        params: UpdateWorkspaceParameters, alone or as first element of a
            list: {"addedProjectsUri": [...], "removedProjectsUri": [...]}
        workspace: Workspace to update
        token: Cancellation token checked before the update starts

    Returns:
        JobResult with OK, WARNING (some folders could not be applied) or
        CANCEL severity
    """
    args = first_param(params, "UpdateWorkspaceParameters")

    if token is not None and token.is_cancelled:
        return JobResult(Severity.CANCEL, 0, "CANCELED")

    added = _paths(args.get("addedProjectsUri"), "addedProjectsUri")
    removed = _paths(args.get("removedProjectsUri"), "removedProjectsUri")

    problems = workspace.update_folders(added, removed)
    for problem in problems:
        logger.warning(problem)

    if problems:
        return JobResult(Severity.WARNING, 0, "; ".join(problems))
    return JobResult(Severity.OK, 0, "OK")


def _paths(uris: Any, name: str) -> list[str]:
    if uris is None:
        return []
    if not isinstance(uris, list) or not all(isinstance(u, str) for u in uris):
        raise MalformedInput(f"UpdateWorkspaceParameters.{name} must be a list of strings")
    return [str(uri_to_path(u)) for u in uris]
