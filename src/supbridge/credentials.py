"""Auth session loading.

The Sup web client authenticates with an ``auth_session`` cookie. Users
export it once into a file (default ``~/.config/sup/auth_session``) and point
``sup_chat.auth_session_path`` at it.
"""

from __future__ import annotations

from pathlib import Path

from supbridge.errors import CredentialLoadFailure
from supbridge.types import Session


def expand_session_path(path: str | Path) -> Path:
    """Expand a leading ``~`` to the current user's home directory."""
    return Path(path).expanduser()


def load_auth_session(path: str | Path) -> Session:
    """Read the auth_session cookie from ``path``.

    Raises:
        CredentialLoadFailure: the file does not exist, cannot be read, or
            holds only whitespace.
    """
    expanded = expand_session_path(path)
    if not expanded.is_file():
        raise CredentialLoadFailure(str(expanded), f"Auth session file not found: {expanded}")
    try:
        content = expanded.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as exc:
        raise CredentialLoadFailure(
            str(expanded), f"Cannot read auth session file {expanded}: {exc}"
        ) from exc
    if not content:
        raise CredentialLoadFailure(str(expanded), f"Auth session file is empty: {expanded}")
    return Session(token=content)
