from datetime import timedelta

import jwt
import pytest

from conftest import make_token
from storefront.domain.errors import AuthError
from storefront.domain.identity import SessionIdentity, UserIdentity, owner_columns
from storefront.services.identity import IdentityProvider

SECRET = "test-signing-secret-with-enough-bytes"


def test_valid_token_yields_user_identity():
    identity = IdentityProvider().authenticate(f"Bearer {make_token(42)}")
    assert identity == UserIdentity(user_id=42)
    assert identity.owner_key == "user:42"


def test_numeric_string_claim_is_accepted():
    provider = IdentityProvider(secret=SECRET)
    token = jwt.encode({"userId": "17"}, SECRET, algorithm="HS256")
    assert provider.authenticate(f"bearer {token}").user_id == 17


@pytest.mark.parametrize(
    "header, code",
    [
        ("", "missing_token"),
        ("Bearer", "missing_token"),
        ("Token abc", "missing_token"),
        ("Bearer not.a.jwt", "invalid_token"),
    ],
)
def test_malformed_headers(header, code):
    with pytest.raises(AuthError) as exc:
        IdentityProvider().authenticate(header)
    assert exc.value.code == code


def test_expired_and_foreign_tokens():
    provider = IdentityProvider()
    with pytest.raises(AuthError) as exc:
        provider.authenticate(f"Bearer {make_token(1, expires_in=timedelta(minutes=-1))}")
    assert exc.value.code == "token_expired"

    with pytest.raises(AuthError) as exc:
        provider.authenticate(f"Bearer {make_token(1, secret='other')}")
    assert exc.value.code == "invalid_token"


@pytest.mark.parametrize("claims", [{}, {"userId": 0}, {"userId": "abc"}, {"userId": True}])
def test_token_without_usable_user_id(claims):
    provider = IdentityProvider(secret=SECRET)
    token = jwt.encode(claims, SECRET, algorithm="HS256")
    with pytest.raises(AuthError):
        provider.authenticate(f"Bearer {token}")


def test_owner_keys_never_collide():
    user = UserIdentity(user_id=5)
    guest = SessionIdentity(token="5")

    assert user.owner_key != guest.owner_key
    assert owner_columns(user) == {"user_id": 5, "session_token": None}
    assert owner_columns(guest) == {"user_id": None, "session_token": "5"}
