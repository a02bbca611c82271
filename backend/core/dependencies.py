from fastapi import HTTPException, Request, status

from core.config import Settings
from core.engine import BusinessEngine
from core.errors import EngineError, InsufficientStockError, NotFoundError, ValidationError
from core.reminders import ReminderScheduler
from db.persistence import DocumentStore


def get_engine(request: Request) -> BusinessEngine:
    return request.app.state.engine


def get_scheduler(request: Request) -> ReminderScheduler:
    return request.app.state.scheduler


def get_document_store(request: Request) -> DocumentStore:
    return request.app.state.document_store


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def http_error(e: EngineError) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.to_dict())
    if isinstance(e, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.to_dict())
    if isinstance(e, InsufficientStockError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.to_dict())
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
