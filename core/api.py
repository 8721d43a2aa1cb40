"""Small helpers shared by the JSON endpoints."""

import functools
import json
import logging

from django.http import JsonResponse

from core.exceptions import DocumentError, DocumentValidationError

logger = logging.getLogger(__name__)


def read_json(request) -> dict:
    """Request body as a dict. Empty body -> {}."""
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (ValueError, UnicodeDecodeError):
        raise DocumentValidationError("Request body must be valid JSON.")
    if not isinstance(data, dict):
        raise DocumentValidationError("Request body must be a JSON object.")
    return data


def error_response(error: DocumentError) -> JsonResponse:
    return JsonResponse(error.as_dict(), status=error.http_status)


def json_errors(view):
    """Translate DocumentError into {"error", "category", "retryable"} responses."""

    @functools.wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except DocumentError as e:
            if e.http_status >= 500:
                logger.error("%s %s failed: %s", request.method, request.path, e)
            return error_response(e)

    return wrapper


def money(value):
    return str(value) if value is not None else None


def iso(value):
    return value.isoformat() if value is not None else None
