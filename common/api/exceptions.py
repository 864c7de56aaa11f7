"""DRF exception handler.

Delegates to DRF's default handler. Database errors that escape a view are
logged with their traceback and rendered as a plain 500.
"""

import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from common.exceptions import InternalError

logger = logging.getLogger(__name__)


def exception_handler(exc, context):
    response = drf_exception_handler(exc, context)
    if response is not None:
        if isinstance(exc, InternalError):
            logger.error("Internal error in %s: %s", _view_name(context), exc.detail)
        return response

    if isinstance(exc, DatabaseError):
        logger.exception("Database error in %s", _view_name(context), exc_info=exc)
        return Response(
            {"detail": "Internal Server Error"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return None


def _view_name(context):
    view = context.get("view") if context else None
    return type(view).__name__ if view is not None else "unknown view"
