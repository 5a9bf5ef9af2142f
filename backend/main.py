# backend/main.py
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

load_dotenv()

from config import Settings, settings as default_settings
from database import init_db
from services.cart import Cart
from services.orders import OrderNumberSequence
from store.base import RelationStore
from utils.errors import (
    PosError, ValidationError, ReferentialIntegrityError, EmptyOrderError,
    NotFoundError, PersistenceError,
)
from utils.seed import seed_catalog

# Routers
from routes.catalog import router as catalog_router
from routes.categories import router as categories_router
from routes.products import router as products_router
from routes.cart import router as cart_router
from routes.orders import router as orders_router
from routes.reports import router as reports_router

logger = logging.getLogger(__name__)

# Checked in order; first isinstance match wins
ERROR_STATUS = (
    (ValidationError, 422),
    (ReferentialIntegrityError, 409),
    (EmptyOrderError, 400),
    (NotFoundError, 404),
    (PersistenceError, 503),
)


def create_app(app_settings: Optional[Settings] = None, store: Optional[RelationStore] = None) -> FastAPI:
    """Build the API around one explicitly owned store.

    Run with: uvicorn main:create_app --factory
    """
    app_settings = app_settings or default_settings
    logging.basicConfig(
        level=app_settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Store initialization
    if store is None:
        store = init_db(app_settings)
    else:
        store.initialize()
    if app_settings.SEED_DEMO_DATA:
        seed_catalog(store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        store.close()
        logger.info("Store closed")

    app = FastAPI(title=app_settings.APP_NAME, version="1.0.0", lifespan=lifespan)
    app.state.settings = app_settings
    app.state.store = store
    app.state.cart = Cart()
    app.state.clock = datetime.now
    app.state.order_numbers = OrderNumberSequence()

    # CORS Configuration
    origins = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
    if app_settings.FRONTEND_URL:
        origins.append(app_settings.FRONTEND_URL)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PosError)
    async def pos_error_handler(request: Request, exc: PosError):
        status_code = next((code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 400)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=status_code, content={"detail": exc.message})

    # Router registration
    app.include_router(catalog_router)
    app.include_router(categories_router)
    app.include_router(products_router)
    app.include_router(cart_router)
    app.include_router(orders_router)
    app.include_router(reports_router)

    @app.get("/")
    def read_root():
        return {"message": f"{app_settings.APP_NAME} API is running"}

    return app
