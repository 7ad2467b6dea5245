# app/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI
import uvicorn

from app.api.errors import register_exception_handlers
from app.api.routers import carts, orders, webhooks, health
from app.data.database import Base, init_db
from app.utils.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        init_db()
    except Exception:
        logger.exception("Failed to create database tables")
        raise
    logger.info(f"Database ready, tables: {sorted(Base.metadata.tables.keys())}")
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="Shop Order Service",
        version="1.0.0",
        lifespan=lifespan,
    )

    register_exception_handlers(app)

    # Include routers
    app.include_router(health.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(webhooks.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
