"""
FastAPI dependencies.

Store and identity resolution happen here, once per request; services
receive them as plain arguments.
"""
from typing import Iterator, Optional

from fastapi import Depends, Header, Request, Response
from sqlalchemy.orm import Session

from storefront.data.models.store import StoreModel
from storefront.domain.errors import AuthError, ForbiddenError, NotFoundError, ValidationError
from storefront.domain.identity import Identity, SessionIdentity
from storefront.repos.store_repo import StoreRepo
from storefront.services.cart_service import CartService
from storefront.services.checkout_service import CheckoutService
from storefront.services.identity import IdentityProvider
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import OrderService

SESSION_TOKEN_MAX_LENGTH = 128


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()


def get_identity_provider() -> IdentityProvider:
    return IdentityProvider()


def get_notifier() -> NotificationService:
    return NotificationService()


def resolve_store(store_domain: str, response: Response, db: Session = Depends(get_db)) -> StoreModel:
    store = StoreRepo(db).get_by_domain(store_domain)
    if not store:
        raise NotFoundError("Store not found", code="store_not_found")
    if not store.is_active:
        raise ForbiddenError("Store is inactive", code="store_inactive")

    response.headers["X-Store-ID"] = str(store.id)
    return store


def get_optional_identity(
    authorization: Optional[str] = Header(None),
    x_session_id: Optional[str] = Header(None),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> Optional[Identity]:
    # a bearer token wins over the session header
    if authorization:
        return provider.authenticate(authorization)

    if x_session_id is not None:
        token = x_session_id.strip()
        if not token or len(token) > SESSION_TOKEN_MAX_LENGTH:
            raise ValidationError("Invalid X-Session-ID header", code="invalid_session")
        return SessionIdentity(token=token)

    return None


def require_identity(identity: Optional[Identity] = Depends(get_optional_identity)) -> Identity:
    if identity is None:
        raise AuthError("Access token or X-Session-ID header required", code="missing_identity")
    return identity


def get_cart_service(db: Session = Depends(get_db)) -> CartService:
    return CartService(db)


def get_checkout_service(
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
) -> CheckoutService:
    return CheckoutService(db, notifier=notifier)


def get_order_service(db: Session = Depends(get_db)) -> OrderService:
    return OrderService(db)
