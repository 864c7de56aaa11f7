"""Shared error kinds.

DRF already covers validation (400) and not-found (404); the kinds below add
the conflict and internal-failure cases used by the catalog and order apps.
"""

from rest_framework import status
from rest_framework.exceptions import APIException


class Conflict(APIException):
    """A unique constraint or resource state prevents the request (409)."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "The request conflicts with the current state of the resource."
    default_code = "conflict"


class InternalError(APIException):
    """Storage or transport failure; nothing was persisted (500)."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal Server Error"
    default_code = "internal_error"
