# storefront/main.py
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront.api.routers import carts, health, orders, stores
from storefront.data.database import Database
from storefront.data.seed import seed
from storefront.domain.errors import AppError
from storefront.utils.logging import get_logger
from storefront.utils.settings import DATABASE_URL, SEED_DEMO_DATA

logger = get_logger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message, "code": exc.code})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg", "Invalid request"))
        return JSONResponse(status_code=400, content={"error": message, "code": "validation_error"})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"error": "Internal server error", "code": "internal_error"})


def create_app(database: Database | None = None, seed_demo_data: bool = SEED_DEMO_DATA) -> FastAPI:
    database = database or Database(DATABASE_URL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Initializing database")
        database.create_all()
        if seed_demo_data:
            with database.session() as db:
                seed(db)
        yield
        database.dispose()

    app = FastAPI(
        title="Storefront",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.database = database

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(stores.router)
    app.include_router(carts.router)
    app.include_router(orders.router)

    return app


if __name__ == "__main__":
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
