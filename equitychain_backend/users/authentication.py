from rest_framework.authentication import BaseAuthentication, get_authorization_header
from rest_framework.exceptions import AuthenticationFailed

from equitychain_backend import errors
from .services import UserService


class JWTAuthentication(BaseAuthentication):
    """``Authorization: Bearer <jwt>`` issued by UserService.generate_auth_token."""

    keyword = "Bearer"

    def authenticate(self, request):
        parts = get_authorization_header(request).split()
        if not parts or parts[0].lower() != self.keyword.lower().encode():
            return None
        if len(parts) != 2:
            raise AuthenticationFailed("Invalid authorization header")

        token = parts[1].decode("latin-1")
        try:
            user = UserService().decode_auth_token(token)
        except errors.Unauthorized as exc:
            raise AuthenticationFailed(exc.message)
        return user, token

    def authenticate_header(self, request):
        return self.keyword
