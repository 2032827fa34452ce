"""
API errors raised by the rental services and the handler that turns store
failures into them.

Validation failures use DRF's ``ValidationError`` (400) and missing records
use ``NotFound`` / ``Http404`` (404); the classes below complete the set.
"""

from __future__ import annotations

import logging

from django.db import DatabaseError, IntegrityError
from django.db.models import ProtectedError, RestrictedError
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ConflictError(APIException):
    """Business-rule conflict: double booking, duplicate unique value, blocked delete."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "The request conflicts with the current state of the resource."
    default_code = "conflict"


class ConcurrencyError(APIException):
    """The record changed between read and write; the client may retry."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "The record was modified by another request. Reload it and try again."
    default_code = "entity_changed"


class PersistenceError(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "An unexpected error occurred while processing the request."
    default_code = "persistence_error"


def _translate(exc: Exception) -> APIException | None:
    if isinstance(exc, (ProtectedError, RestrictedError)):
        return ConflictError(
            "The record cannot be deleted while other records depend on it.", code="protected"
        )
    if isinstance(exc, IntegrityError):
        return ConflictError(
            "The data violates a database constraint.", code="constraint_violation"
        )
    if isinstance(exc, DatabaseError):
        return PersistenceError()
    return None


def api_exception_handler(exc, context):
    """
    DRF exception handler.

    Known API errors go straight to DRF's handler. Store errors are mapped to
    the conflict or persistence errors above, and anything else becomes a
    generic ``PersistenceError``. Internal details are logged, never returned.
    """
    response = exception_handler(exc, context)
    if response is not None:
        return response

    translated = _translate(exc)
    view = context.get("view")
    view_name = type(view).__name__ if view is not None else "unknown view"
    if translated is None or isinstance(translated, PersistenceError):
        logger.exception("Unhandled error in %s", view_name, exc_info=exc)
        translated = translated or PersistenceError()
    else:
        logger.warning("Store rejected a write in %s: %s", view_name, exc)
    return exception_handler(translated, context)
