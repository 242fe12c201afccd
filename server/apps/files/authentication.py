"""Django REST framework authentication for the files API."""

from typing import Final

from typing_extensions import override

from rest_framework import exceptions
from rest_framework.authentication import (
    BaseAuthentication,
    get_authorization_header,
)
from rest_framework.request import Request

from server.apps.files.exceptions import UnauthenticatedError
from server.apps.files.infrastructure.credentials import user_for_token

_KEYWORD: Final = 'Bearer'
_LEGACY_HEADER: Final = 'X-Auth-Token'


class SignedTokenAuthentication(BaseAuthentication):
    """Authenticate requests carrying a signed files API token.

    Accepts ``Authorization: Bearer <token>`` and the ``X-Auth-Token``
    header. Every request routed through this class needs a token, so a
    missing one fails with the same message as a bad one would.
    """

    @override
    def authenticate(self, request: Request) -> tuple[object, str]:
        """Resolve the requesting user from the token.

        Args:
            request: Incoming DRF request.

        Returns:
            Tuple of the user and the raw token.

        Raises:
            AuthenticationFailed: If the token is missing or invalid.
        """
        token = self._token_from_request(request)
        try:
            user = user_for_token(token)
        except UnauthenticatedError as error:
            raise exceptions.AuthenticationFailed(str(error)) from error
        return user, token

    @override
    def authenticate_header(self, request: Request) -> str:
        """Value of WWW-Authenticate, which turns failures into 401s."""
        return _KEYWORD

    def _token_from_request(self, request: Request) -> str | None:
        auth = get_authorization_header(request).split()
        if auth and auth[0].lower() == _KEYWORD.lower().encode():
            if len(auth) != 2:
                raise exceptions.AuthenticationFailed(
                    'Invalid token header. Expected one token.',
                )
            try:
                return auth[1].decode()
            except UnicodeError as error:
                raise exceptions.AuthenticationFailed(
                    'Invalid token header. Token contains invalid characters.',
                ) from error
        return request.headers.get(_LEGACY_HEADER) or None
