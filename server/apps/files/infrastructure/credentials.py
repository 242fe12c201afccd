"""Credential verification for the files API.

Tokens are Django-signed, timestamped payloads carrying the user id.
Identity is resolved here once per request and then passed explicitly
to the business logic.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from django.conf import settings
from django.contrib.auth import authenticate, get_user_model
from django.core import signing
from django.http import HttpRequest

from server.apps.files.exceptions import UnauthenticatedError

if TYPE_CHECKING:
    from django.contrib.auth.models import User

logger = logging.getLogger(__name__)

_TOKEN_SALT: Final = 'server.apps.files.credentials'
_USER_ID_CLAIM: Final = 'user_id'


@dataclass(frozen=True, slots=True)
class UserIdentity:
    """Verified identity of a requester."""

    user_id: int
    username: str


def _signer() -> signing.TimestampSigner:
    return signing.TimestampSigner(salt=_TOKEN_SALT)


def issue_token(user: 'User') -> str:
    """Issue a signed token for a user.

    Args:
        user: Authenticated Django user.

    Returns:
        Token string for the Authorization header.
    """
    token = _signer().sign_object({_USER_ID_CLAIM: user.pk})
    logger.info('Token issued for user: %s', user.username)
    return token


def user_for_token(token: str | None) -> 'User':
    """Resolve the user a token was issued for.

    Args:
        token: Token string from the request, may be missing.

    Returns:
        The existing, active user named by the token.

    Raises:
        UnauthenticatedError: If the token is missing, tampered with,
            expired, or names an unknown or inactive user.
    """
    if not token:
        raise UnauthenticatedError('No token, authorization denied')

    try:
        payload = _signer().unsign_object(
            token,
            max_age=settings.FILES_TOKEN_MAX_AGE,
        )
    except signing.SignatureExpired as error:
        logger.info('Expired token rejected')
        raise UnauthenticatedError('Token has expired') from error
    except signing.BadSignature as error:
        logger.warning('Invalid token rejected')
        raise UnauthenticatedError('Token is not valid') from error

    user_id = payload.get(_USER_ID_CLAIM) if isinstance(payload, dict) else None
    user = None
    if user_id is not None:
        user = get_user_model().objects.filter(
            pk=user_id,
            is_active=True,
        ).first()
    if user is None:
        logger.warning('Token for unknown or inactive user: %s', user_id)
        raise UnauthenticatedError('Token is not valid')

    return user


def verify_token(token: str | None) -> UserIdentity:
    """Verify a token and resolve the identity it carries.

    Args:
        token: Token string from the request, may be missing.

    Returns:
        UserIdentity of an existing, active user.

    Raises:
        UnauthenticatedError: If the token does not resolve to a user.
    """
    user = user_for_token(token)
    return UserIdentity(user_id=user.pk, username=user.get_username())


def authenticate_credentials(
    username: str,
    password: str,
    request: HttpRequest | None = None,
) -> 'User':
    """Check a username and password.

    Args:
        username: Login name.
        password: Plain password.
        request: Current request, passed on to auth backends.

    Returns:
        The authenticated, active user.

    Raises:
        UnauthenticatedError: If the credentials are invalid.
    """
    user = authenticate(request=request, username=username, password=password)

    if user is None:
        logger.warning('Authentication failed for user: %s', username)
        raise UnauthenticatedError('Invalid credentials')

    if not user.is_active:
        logger.warning('Inactive user attempted login: %s', username)
        raise UnauthenticatedError('Invalid credentials')

    logger.info('User authenticated successfully: %s', username)
    return user
