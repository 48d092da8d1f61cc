import logging
import time
import uuid

logger = logging.getLogger("souqify.request")


def _client_ip(request) -> str | None:
    # First hop of X-Forwarded-For when present; used for logging only.
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
    if forwarded:
        return str(forwarded).split(",")[0].strip() or None
    remote = request.META.get("REMOTE_ADDR")
    return str(remote).strip() if remote else None


def _user_id(request):
    user = getattr(request, "user", None)
    if user is not None and user.is_authenticated:
        return user.id
    return None


class RequestIdAndLoggingMiddleware:
    """Tag every request with an id and log one line per API call.

    An incoming ``X-Request-ID`` is reused, otherwise a new one is minted.
    The id is echoed in the response header.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        started = time.perf_counter()
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.request_id = request_id

        response = self.get_response(request)
        is_api = request.path.startswith("/api/")

        response["X-Request-ID"] = request_id

        if is_api:
            match = getattr(request, "resolver_match", None)
            logger.info(
                "request",
                extra={
                    "request_id": request_id,
                    "user_id": _user_id(request),
                    "client_ip": _client_ip(request),
                    "method": request.method,
                    "path": request.path,
                    "view": getattr(match, "view_name", None),
                    "status_code": response.status_code,
                    "duration_ms": round((time.perf_counter() - started) * 1000.0, 2),
                },
            )
        return response
