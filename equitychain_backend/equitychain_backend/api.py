"""Response envelope, pagination and the DRF exception handler.

Every endpoint answers ``{success, data?, message?, error?, pagination?}``.
"""

import logging
import math

from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from . import errors

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def envelope(data=None, message=None, pagination=None, status=status.HTTP_200_OK, success=True, error=None):
    body = {"success": success}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    if error:
        body["error"] = error
    if pagination is not None:
        body["pagination"] = pagination
    return Response(body, status=status)


def page_params(request, default_limit=10):
    """Read ``page`` and ``limit`` query params, rejecting out-of-range values."""
    try:
        page = int(request.query_params.get("page", 1))
        limit = int(request.query_params.get("limit", default_limit))
    except (TypeError, ValueError):
        raise errors.ValidationError("Page and limit must be integers")
    if page < 1:
        raise errors.ValidationError("Page must be a positive integer")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise errors.ValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")
    return page, limit


def paginate(request, queryset, serializer_class, message=None, context=None):
    page, limit = page_params(request)
    total = queryset.count()
    offset = (page - 1) * limit
    rows = queryset[offset:offset + limit]
    data = serializer_class(rows, many=True, context=context or {}).data
    pagination = {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if total else 0,
    }
    return envelope(data=data, message=message, pagination=pagination)


def exception_handler(exc, context):
    if isinstance(exc, errors.DomainError):
        if exc.status_code >= 500:
            logger.warning("request failed", extra={"error": exc.code, "detail": exc.message})
        return envelope(success=False, error=exc.code, message=exc.message, status=exc.status_code)

    response = drf_exception_handler(exc, context)
    if response is None:
        logger.exception("unhandled error", extra={"view": context.get("view").__class__.__name__})
        return envelope(
            success=False,
            error="internal_error",
            message="Internal server error",
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, drf_exceptions.ValidationError):
        code, message = "validation_error", _first_error(exc.detail)
    elif isinstance(exc, (drf_exceptions.NotAuthenticated, drf_exceptions.AuthenticationFailed)):
        code, message = "unauthorized", str(exc.detail)
    elif isinstance(exc, drf_exceptions.PermissionDenied):
        code, message = "forbidden", str(exc.detail)
    elif isinstance(exc, drf_exceptions.NotFound):
        code, message = "not_found", str(exc.detail)
    else:
        code, message = getattr(exc, "default_code", "error"), str(getattr(exc, "detail", exc))

    response.data = {"success": False, "error": code, "message": message}
    return response


def _first_error(detail):
    # DRF nests errors as {field: [msg, ...]} or [msg, ...]
    if isinstance(detail, dict):
        field, value = next(iter(detail.items()))
        inner = _first_error(value)
        return inner if field == "non_field_errors" else f"{field}: {inner}"
    if isinstance(detail, list) and detail:
        return _first_error(detail[0])
    return str(detail)
