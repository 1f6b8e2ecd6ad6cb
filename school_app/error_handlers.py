import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from school_app.services.storage_service import (
    ConflictError,
    InvalidFieldError,
    RecordNotFoundError,
)


logger = logging.getLogger(__name__)


def _field_name(loc: tuple) -> str:
    parts = [str(part) for part in loc if part not in ('body', 'query', 'path')]
    return '.'.join(parts) or 'body'


async def _validation_failed(request: Request, exc: RequestValidationError):
    errors = [{'field': _field_name(tuple(item.get('loc') or ())), 'message': item.get('msg', '')} for item in exc.errors()]
    logger.info('validation_failed path=%s fields=%s', request.url.path, ','.join(err['field'] for err in errors))
    return JSONResponse(status_code=400, content={'detail': 'Validation failed', 'errors': errors})


async def _invalid_field(request: Request, exc: InvalidFieldError):
    return JSONResponse(
        status_code=400,
        content={'detail': 'Validation failed', 'errors': [{'field': exc.field, 'message': str(exc)}]},
    )


async def _not_found(request: Request, exc: RecordNotFoundError):
    return JSONResponse(status_code=404, content={'detail': str(exc)})


async def _conflict(request: Request, exc: ConflictError):
    logger.info('write_conflict path=%s reason=%s', request.url.path, exc)
    return JSONResponse(status_code=409, content={'detail': str(exc)})


async def _integrity_conflict(request: Request, exc: IntegrityError):
    logger.warning('integrity_conflict method=%s path=%s', request.method, request.url.path)
    return JSONResponse(status_code=409, content={'detail': 'Record conflicts with existing data'})


async def _persistence_failure(request: Request, exc: SQLAlchemyError):
    logger.exception('persistence_failure method=%s path=%s', request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={'detail': 'Internal server error'})


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, _validation_failed)
    app.add_exception_handler(InvalidFieldError, _invalid_field)
    app.add_exception_handler(RecordNotFoundError, _not_found)
    app.add_exception_handler(ConflictError, _conflict)
    app.add_exception_handler(IntegrityError, _integrity_conflict)
    app.add_exception_handler(SQLAlchemyError, _persistence_failure)
