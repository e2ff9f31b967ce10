import logging

from starlette.requests import Request
from starlette.responses import JSONResponse

from orchestrator.proc import CommandFailed
from orchestrator.services.errors import (
    InstanceNotFound,
    InvalidCommandOutput,
    MalformedInput,
    OrchestratorException,
)

ERROR_STATUS = {
    InstanceNotFound: 404,
    MalformedInput: 422,
    CommandFailed: 500,
    InvalidCommandOutput: 502,
}

logger = logging.getLogger(__name__)


def _exception_handler(request: Request, exc: Exception):
    status = ERROR_STATUS.get(type(exc), 500)
    if status >= 500:
        logger.exception(
            "Request failed path=%s status=%s error=%s", request.url.path, status, exc, exc_info=exc
        )
    else:
        logger.warning("Request failed path=%s status=%s error=%s", request.url.path, status, exc)
    return JSONResponse({"status": "error", "message": str(exc)}, status_code=status)


def register_exception_handlers(app):
    app.exception_handler(OrchestratorException)(_exception_handler)
