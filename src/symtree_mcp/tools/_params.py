"""Command parameter handling shared by the tools."""

from typing import Any

from ..errors import MalformedInput


def first_param(params: Any, expected: str) -> dict:
    """Return the first command parameter as a dict.

    Commands receive either a list of arguments, of which only the first
    is used, or that argument directly.
    """
    if isinstance(params, (list, tuple)):
        if not params:
            raise MalformedInput(f"{expected} expected")
        params = params[0]
    if not isinstance(params, dict):
        raise MalformedInput(f"{expected} expected, got {type(params).__name__}")
    return params
