"""
Functions for checking method arguments.
"""

from typing import Any

from src.service.exceptions import IllegalParameterError


def not_falsy(obj: Any, name: str) -> Any:
    """
    Check an argument is not falsy.

    obj - the argument to check.
    name - the name of the argument to use in exceptions.

    returns the object.
    """
    if not obj:
        raise ValueError(f"{name} is required")
    return obj


def require_string(putative: str | None, name: str, max_len: int | None = None) -> str:
    """
    Check that a user supplied string is present, strip whitespace, and check its length.

    putative - the putative string.
    name - the name of the string to use in exceptions.
    max_len - the maximum allowed length of the string after stripping.

    returns the stripped string.
    """
    if putative is None or not putative.strip():
        raise IllegalParameterError(f"Missing {name}")
    putative = putative.strip()
    if max_len is not None and len(putative) > max_len:
        raise IllegalParameterError(f"{name} exceeds maximum length of {max_len}")
    return putative
