"""Exceptions raised while computing outlines."""


class OutlineError(Exception):
    """Base class for outline request failures."""
    outcome = "error"


class OutlineCancelled(OutlineError):
    """The caller requested cancellation while the tree was being built."""
    outcome = "cancelled"

    def __init__(self, message: str = "Outline computation was cancelled"):
        super().__init__(message)


class RetrievalFault(OutlineError):
    """The declaration model could not answer a query for a node."""
    outcome = "retrieval_fault"


class MalformedInput(OutlineError):
    """The request does not reference a valid declaration container."""
    outcome = "malformed_input"
