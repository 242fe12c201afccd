"""Exception handling for the files API.

Every error leaves the API as ``{"error": <kind>, "msg": <message>}``.
Service errors carry their kind; framework errors (validation, parsing,
authentication) are given the matching kind by status code.
"""

import logging
from typing import Any, Final

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from server.apps.files.exceptions import FileErrorKind, FileServiceError

logger = logging.getLogger(__name__)

_STATUS_BY_KIND: Final = {
    FileErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    FileErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FileErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    FileErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    FileErrorKind.STORAGE_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}
_KIND_BY_STATUS: Final = {
    status_code: kind for kind, status_code in _STATUS_BY_KIND.items()
}
_GENERIC_STORAGE_MESSAGE: Final = 'Server Error'


def exception_handler(exc: Exception, context: dict[str, Any]) -> Response | None:
    """Render API errors in the files error format.

    Storage failures get a generic message so no internals leak.

    Args:
        exc: Raised exception.
        context: DRF handler context with the view and request.

    Returns:
        Response, or None to let Django handle an unexpected exception.
    """
    if isinstance(exc, FileServiceError):
        request = context.get('request')
        logger.info(
            '%s %s failed: %s',
            getattr(request, 'method', '-'),
            getattr(request, 'path', '-'),
            exc.kind,
        )
        message = str(exc)
        if exc.kind == FileErrorKind.STORAGE_FAILURE:
            message = _GENERIC_STORAGE_MESSAGE
        return Response(
            {'error': exc.kind.value, 'msg': message},
            status=_STATUS_BY_KIND[exc.kind],
        )

    response = drf_exception_handler(exc, context)
    if response is None:
        return None

    kind = _KIND_BY_STATUS.get(response.status_code)
    response.data = {
        'error': kind.value if kind else getattr(exc, 'default_code', 'error'),
        'msg': _first_message(response.data),
    }
    return response


def _first_message(detail: Any) -> str:
    # Validation errors nest messages in dicts and lists
    if isinstance(detail, dict):
        if 'detail' in detail:
            return _first_message(detail['detail'])
        field, errors = next(iter(detail.items()), ('', ''))
        message = _first_message(errors)
        if field and field != 'non_field_errors':
            return f'{field}: {message}'
        return message
    if isinstance(detail, list):
        return _first_message(detail[0]) if detail else ''
    return str(detail)
