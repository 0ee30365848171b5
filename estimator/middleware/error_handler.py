"""
Global error handling middleware.
"""
import logging
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable

from estimator.config import settings
from estimator.domain.errors import RateTableError, ScoreValidationError


logger = logging.getLogger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.
    
    Catches unhandled exceptions and returns consistent error responses.
    """
    
    async def dispatch(self, request: Request, call_next: Callable):
        """
        Process the request and handle any exceptions.
        
        Args:
            request: The incoming request
            call_next: The next middleware or route handler
            
        Returns:
            Response object
        """
        try:
            response = await call_next(request)
            return response
        
        except ScoreValidationError as e:
            logger.warning(
                f"Rejected invalid score: {e.message}",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "validation_errors": e.errors,
                }
            )
            return JSONResponse(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                content={
                    "error": "Invalid measurements",
                    "detail": e.message,
                    "errors": e.errors,
                }
            )
        
        except ValueError as e:
            # Unknown factor names and other bad input
            logger.warning(
                f"Validation error: {str(e)}",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                }
            )
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={
                    "error": "Invalid request",
                    "detail": str(e),
                }
            )
        
        except RateTableError as e:
            logger.error(
                f"Rate table unavailable: {e.message}",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                }
            )
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={
                    "error": "Pricing unavailable",
                    "detail": "The rate table could not be loaded",
                }
            )
        
        except Exception as e:
            # Log unexpected errors
            logger.exception(
                f"Unhandled exception: {str(e)}",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                }
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": "Internal server error",
                    "detail": str(e) if settings.debug else "An unexpected error occurred",
                }
            )
