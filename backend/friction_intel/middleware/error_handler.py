import structlog
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from friction_intel.errors import FrictionIntelError

logger = structlog.get_logger()


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            response = await call_next(request)
            return response
        except FrictionIntelError as exc:
            log = logger.error if exc.status_code >= 500 else logger.warning
            log(
                "request_failed",
                path=request.url.path,
                error=exc.code,
                detail=exc.message,
                status=exc.status_code,
            )
            return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
        except Exception as exc:
            logger.error("unhandled_error", path=request.url.path, error=str(exc))
            return JSONResponse(
                status_code=500,
                content={"error": "internal_error", "detail": "Internal server error", "context": {}},
            )
