"""
Test data factories.

Builders for object contexts and request identities used across the
access control and router tests.
"""

from typing import Any
from uuid import UUID, uuid4

from objmeta.core.auth import ANONYMOUS, RequestIdentity
from objmeta.models.enums import AuthType
from objmeta.services.object_context import ObjectContext


def make_context(
    public: bool = False,
    object_id: UUID | None = None,
    path: str = "reports/q1.pdf",
    **overrides: Any,
) -> ObjectContext:
    """Build an object context with sensible defaults."""
    return ObjectContext(id=object_id or uuid4(), path=path, public=public, **overrides)


def bearer_identity(subject_id: UUID | str | None = None) -> RequestIdentity:
    """Identity of a request carrying a verified bearer token."""
    subject = str(subject_id) if subject_id is not None else str(uuid4())
    return RequestIdentity(auth_type=AuthType.BEARER, subject_id=subject, claims={"sub": subject})


def basic_identity() -> RequestIdentity:
    """Identity of a request carrying verified basic credentials."""
    return RequestIdentity(auth_type=AuthType.BASIC)


def anonymous_identity() -> RequestIdentity:
    return ANONYMOUS
