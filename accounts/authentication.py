"""
Bearer token authentication with distinct expired / invalid failures.
"""
import logging
import time

import jwt
from rest_framework import status
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken

logger = logging.getLogger(__name__)


class TokenExpired(AuthenticationFailed):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = 'Token expired'
    default_code = 'TOKEN_EXPIRED'


class TokenInvalid(AuthenticationFailed):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = 'Invalid token'
    default_code = 'INVALID_TOKEN'


def _is_expired(raw_token):
    """Read exp without verifying the signature; only used to pick the error message."""
    try:
        payload = jwt.decode(raw_token, options={'verify_signature': False})
    except jwt.PyJWTError:
        return False
    exp = payload.get('exp')
    return isinstance(exp, (int, float)) and exp < time.time()


class RoleJWTAuthentication(JWTAuthentication):
    """
    simplejwt authentication; missing header falls through to NotAuthenticated (401),
    expired token -> TOKEN_EXPIRED, anything else -> INVALID_TOKEN.
    """

    def get_validated_token(self, raw_token):
        try:
            return super().get_validated_token(raw_token)
        except InvalidToken:
            if _is_expired(raw_token):
                logger.info("auth token_expired")
                raise TokenExpired()
            logger.info("auth token_invalid")
            raise TokenInvalid()
