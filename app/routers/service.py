from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response
from loguru import logger
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.kafka import kafka_producer
from app.db_depends import get_db
from app.dependencies.depend import admin_required


router = APIRouter(tags=["Service"])


@router.get("/health")
async def health(db: AsyncSession = Depends(get_db)):
    """Database reachability; Kafka is reported but never fails the check."""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check could not reach the database")
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "database": "down", "kafka": kafka_producer.started},
        )
    return {"status": "ok", "database": "up", "kafka": kafka_producer.started}


@router.get("/metrics", dependencies=[Depends(admin_required)], include_in_schema=False)
async def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
