# storefront/api/routers/stores.py
from fastapi import APIRouter, Depends

from storefront.api.deps import resolve_store
from storefront.data.models.store import StoreModel
from storefront.domain.schemas import StoreOut

router = APIRouter(prefix="/stores", tags=["stores"])


@router.get("/{store_domain}", response_model=StoreOut)
def get_store(store: StoreModel = Depends(resolve_store)):
    return store
