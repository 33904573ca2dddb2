from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from app.core.kafka import kafka_producer
from app.core.logging import setup_logging
from app.core.metrics import STORE_ERRORS_TOTAL
from app.core.redis import init_redis, close_redis
from app.db import engine
from app.middleware.logging import LoggingMiddleware
from app.routers import admin_orders, categories, orders, products, service
from env import SERVICE_NAME


setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup: initializing Redis and Kafka")
    await init_redis(app)
    try:
        await kafka_producer.start()
    except Exception as e:
        logger.warning("Kafka producer not started: {error}", error=str(e))
    logger.info("Application startup completed")
    yield
    logger.info("Application shutdown: closing Kafka, Redis and DB engine")
    await kafka_producer.stop()
    await close_redis()
    await engine.dispose()


app = FastAPI(
    title="Storefront Service",
    swagger_ui_parameters={"persistAuthorization": True},
    lifespan=lifespan,
)


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.opt(exception=exc).error(
        "Unexpected database error on {method} {path}",
        method=request.method,
        path=request.url.path,
    )
    route = request.scope.get("route")
    STORE_ERRORS_TOTAL.labels(
        service=SERVICE_NAME,
        path=getattr(route, "path", request.url.path),
    ).inc()
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal storage error"},
    )


app.add_middleware(LoggingMiddleware)

app.include_router(orders.router)
app.include_router(admin_orders.router)
app.include_router(products.router)
app.include_router(categories.router)
app.include_router(service.router)


if __name__ == "__main__":
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
