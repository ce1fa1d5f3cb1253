"""
Core Exceptions

Custom exceptions for the objmeta service.
"""

from objmeta.models.enums import AuthMode, AuthType


class AccessDeniedError(Exception):
    """
    Raised when a request may not act on an object.

    The reason is for logs only. Callers always receive the same generic
    message so a hidden object cannot be told apart from a missing one.

    Usage:
        decision = await gate.authorize(PermissionCode.READ, context, identity)
        decision.raise_for_denial()
    """

    def __init__(self, reason: str, message: str = "Access denied"):
        self.reason = reason
        self.message = message
        super().__init__(self.message)


class AuthModeMismatchError(Exception):
    """Raised when a request presents an auth type the server mode rejects."""

    def __init__(self, auth_mode: AuthMode, auth_type: AuthType):
        self.auth_mode = auth_mode
        self.auth_type = auth_type
        super().__init__(
            f"{auth_mode.value} mode does not support {auth_type.value} type auth"
        )


class AttributeConflictError(ValueError):
    """Raised when a single-value attribute set carries one key with several values."""

    def __init__(self, store: str, keys: list[str]):
        self.store = store
        self.keys = keys
        super().__init__(
            f"{store} keys must carry a single value per version: {', '.join(keys)}"
        )


class VersionNotFoundError(LookupError):
    """Raised when attributes are reconciled against a version that does not exist."""

    def __init__(self, version_id):
        self.version_id = version_id
        super().__init__(f"Version {version_id} not found")


class ObjectPathConflictError(ValueError):
    """Raised when registering an object at a path that is already taken."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Object already exists at '{path}'")
