"""Django REST framework settings for the files API."""

from typing import Any, Final

REST_FRAMEWORK: Final[dict[str, Any]] = {
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'server.apps.files.authentication.SignedTokenAuthentication',
    ),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.IsAuthenticated',
    ),
    'DEFAULT_PARSER_CLASSES': (
        'rest_framework.parsers.JSONParser',
    ),
    # JSON only, the API has no browsable front end
    'DEFAULT_RENDERER_CLASSES': (
        'rest_framework.renderers.JSONRenderer',
    ),
    'EXCEPTION_HANDLER': 'server.apps.files.handlers.exception_handler',
}
