from __future__ import annotations

import logging
from typing import Any

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from souqify_backend.errors import DomainError

logger = logging.getLogger("souqify.api")


def _domain_response(exc: DomainError) -> Response:
    data = {
        "detail": exc.message,
        "error": {"code": exc.code, "message": exc.message},
    }
    data.update(exc.extra())
    return Response(data, status=exc.status_code)


def api_exception_handler(exc: Exception, context: dict[str, Any]):
    """Render every API error as ``{detail, error: {code, message}, request_id}``.

    Domain errors map to their own status code. DRF errors keep DRF's shape
    with the ``error`` object added. Anything else is logged with its
    traceback and answered with a generic 500.
    """

    request = context.get("request")
    request_id = getattr(request, "request_id", None)

    if isinstance(exc, DomainError):
        response = _domain_response(exc)
    else:
        response = drf_exception_handler(exc, context)
        if response is None:
            view = context.get("view")
            logger.error(
                "unhandled API error",
                exc_info=(type(exc), exc, exc.__traceback__),
                extra={
                    "request_id": request_id,
                    "path": getattr(request, "path", None),
                    "view": view.__class__.__name__ if view is not None else None,
                },
            )
            response = Response(
                {
                    "detail": "Server error",
                    "error": {"code": "internal_error", "message": "Server error"},
                },
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

    data = getattr(response, "data", None)

    if isinstance(data, dict) and request_id and "request_id" not in data:
        data["request_id"] = request_id

    if isinstance(data, dict) and "error" not in data:
        try:
            if "detail" in data:
                message = str(data.get("detail"))
                code = getattr(exc, "default_code", None) or "error"
            else:
                # Serializer field errors: surface the first one as the message.
                message = "Invalid input."
                for value in data.values():
                    if isinstance(value, list) and value:
                        message = str(value[0])
                        break
                code = "validation_error"
            data["error"] = {"message": message, "code": str(code)}
        except Exception:
            # Never fail the error handler.
            pass

    return response
