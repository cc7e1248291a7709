from __future__ import annotations

import re

from .errors import ValidationFailure


# ASCII only: str.isalnum() would also accept non-ASCII letters and digits.
_SAFE_NAME_RE = re.compile(r"[A-Za-z0-9]*")


def is_valid_process_name(name: str) -> bool:
    """Return True when every character of `name` is an ASCII letter or digit.

    The empty string is accepted; callers that need a subject must check for it.
    """
    if not isinstance(name, str):
        return False
    return _SAFE_NAME_RE.fullmatch(name) is not None


def validate_process_name(name: str) -> str:
    if not is_valid_process_name(name):
        raise ValidationFailure(f"Invalid process name: {name!r}")
    return name
