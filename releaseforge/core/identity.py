"""Identity providers for the release status record."""

from __future__ import annotations

import getpass


class StaticIdentity:
    """Reports a fixed user name."""

    def __init__(self, username: str) -> None:
        self._username = username

    def current_username(self) -> str:
        return self._username


class SystemIdentity:
    """Reports the operating-system login of the current process."""

    def current_username(self) -> str:
        try:
            return getpass.getuser()
        except (KeyError, OSError):
            return "anonymous"


def identity_from_settings(acting_user: str) -> StaticIdentity | SystemIdentity:
    return StaticIdentity(acting_user) if acting_user else SystemIdentity()
