from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from storefront.data.models.store import StoreModel


class StoreRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_by_domain(self, token: str) -> StoreModel | None:
        #subdomain ("tech") or full custom domain ("shop.example.com")
        return self.db.execute(
            select(StoreModel)
            .where(or_(StoreModel.subdomain == token, StoreModel.domain == token))
            .limit(1)
        ).scalar_one_or_none()
