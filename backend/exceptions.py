"""Application-level exception types.

Convention:
- ``InternalServerError``: for errors whose details must never reach clients
  (unreadable credential files, broken configuration, etc.).  The global
  handler logs the full message at ERROR and returns a generic
  "Internal server error" (500) to the client.
- ``ValueError``: for validation errors that are safe to forward to clients
  (bad tag values, unknown sort fields).  The global ``ValueError`` handler
  returns ``str(exc)`` as the 422 detail.
- Provider errors (``DriveAPIError``, ``OAuthTokenError``) are caught by the
  routers and mapped to generic 400/500 responses with a logged detail.
"""

from __future__ import annotations


class InternalServerError(Exception):
    """Raised for internal errors whose details must not be exposed to clients.

    The global exception handler in ``backend/main.py`` catches this, logs
    the full message server-side, and returns HTTP 500 with a generic
    ``"Internal server error"`` detail.
    """
