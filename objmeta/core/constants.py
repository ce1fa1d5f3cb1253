"""
Service Constants

Well-known UUIDs and other constants used across the service.
"""

from uuid import UUID

# Actor recorded for writes made without an identified subject (the nil UUID)
SYSTEM_USER_ID = "00000000-0000-0000-0000-000000000000"
SYSTEM_USER_UUID = UUID(SYSTEM_USER_ID)

# Caller-visible detail for every authorization denial, whatever the reason
FORBIDDEN_DETAIL = "User lacks permission to complete this action"

# Caller-visible detail when the auth type does not suit the server mode
AUTH_MODE_MISMATCH_DETAIL = "Current application mode does not support incoming authentication type"
