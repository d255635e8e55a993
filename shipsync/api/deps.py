"""API dependencies"""

from typing import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from shipsync.core.db import SessionLocal
from shipsync.services.scheduler import ShipSyncScheduler


def get_db() -> Generator[Session, None, None]:
    """Database session per request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_scheduler(request: Request) -> ShipSyncScheduler:
    """The scheduler created by the application lifespan"""
    return request.app.state.scheduler
