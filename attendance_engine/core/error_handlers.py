from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging

from .exceptions import AttendanceEngineException, CrossTenantViolation

logger = logging.getLogger(__name__)


async def engine_exception_handler(request: Request, exc: AttendanceEngineException):
    """Handle attendance engine exceptions"""
    logger.error(f"Engine error: {exc.message} - Path: {request.url.path}")
    if isinstance(exc, CrossTenantViolation):
        # Audited inside the engine; clients only learn that nothing was found
        return JSONResponse(
            status_code=404,
            content={"error": f"{exc.resource} not found", "type": "NotFoundError"}
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "type": exc.__class__.__name__}
    )

async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.error(f"Unexpected error: {str(exc)} - Path: {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "type": "InternalError"}
    )

def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AttendanceEngineException, engine_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
