"""
Bearer-token identity provider.

Tokens are issued elsewhere; this side only verifies them and turns the
``userId`` claim into a UserIdentity.
"""
import jwt

from storefront.domain.errors import AuthError
from storefront.domain.identity import UserIdentity
from storefront.utils.logging import get_logger
from storefront.utils.settings import JWT_ALGORITHM, JWT_SECRET

logger = get_logger(__name__)


class IdentityProvider:
    def __init__(self, secret: str | None = None, algorithm: str | None = None):
        self.secret = secret or JWT_SECRET
        self.algorithm = algorithm or JWT_ALGORITHM

    def authenticate(self, authorization: str) -> UserIdentity:
        scheme, _, token = authorization.strip().partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise AuthError("Access token required", code="missing_token")

        try:
            claims = jwt.decode(token.strip(), self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthError("Token expired", code="token_expired")
        except jwt.InvalidTokenError as e:
            logger.info(f"Rejected bearer token: {e}")
            raise AuthError("Invalid token", code="invalid_token")

        user_id = claims.get("userId")
        if isinstance(user_id, str) and user_id.isdigit():
            user_id = int(user_id)
        if isinstance(user_id, bool) or not isinstance(user_id, int) or user_id < 1:
            raise AuthError("Invalid token", code="invalid_token")

        return UserIdentity(user_id=user_id)
