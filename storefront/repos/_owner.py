# storefront/repos/_owner.py
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from storefront.domain.identity import Identity, UserIdentity


def owner_clause(model, identity: Identity):
    """WHERE fragment matching rows owned by ``identity``."""
    if isinstance(identity, UserIdentity):
        return model.user_id == identity.user_id
    return model.session_token == identity.token


def dialect_insert(db: Session):
    """INSERT construct supporting ON CONFLICT for the bound dialect."""
    name = db.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert
    if name == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Conflict-tolerant insert not supported for dialect {name!r}")
