import traceback
from typing import Callable
from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError, OperationFailure

from app.core.errors import (
    BaseCustomException,
    PersistenceError,
    ValidationError,
    create_error_response,
    create_validation_error_response
)
from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    통합 에러 처리 미들웨어

    모든 예외를 캐치하고 표준화된 에러 응답을 반환합니다.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            response = await call_next(request)
            return response

        except BaseCustomException as e:
            # 우리가 정의한 커스텀 예외들
            return JSONResponse(
                status_code=e.status_code,
                content=e.to_dict()
            )

        except PydanticValidationError as e:
            # Pydantic 검증 에러
            validation_errors = []

            for error in e.errors():
                field_name = ".".join(str(loc) for loc in error["loc"])
                validation_errors.append(
                    ValidationError(
                        field=field_name,
                        message=error["msg"],
                        value=error.get("input")
                    )
                )

            error_response = create_validation_error_response(
                "Request validation failed",
                validation_errors
            )

            return JSONResponse(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                content=error_response.model_dump(mode="json")
            )

        except PersistenceError as e:
            # 노트 저장소 작업 실패
            logger.error(f"Persistence error: {e}")

            error_response = create_error_response(
                "persistence_error",
                "Note storage temporarily unavailable",
                status.HTTP_503_SERVICE_UNAVAILABLE,
                {"operation": e.operation, "detail": str(e) if settings.debug else None}
            )

            return JSONResponse(
                status_code=error_response.status_code,
                content=error_response.model_dump()
            )

        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            # MongoDB 연결 에러
            logger.error(f"MongoDB connection error: {type(e).__name__}: {str(e)}")

            error_response = create_error_response(
                "mongodb_connection_error",
                "MongoDB connection failed",
                status.HTTP_503_SERVICE_UNAVAILABLE,
                {"detail": str(e) if settings.debug else None}
            )

            return JSONResponse(
                status_code=error_response.status_code,
                content=error_response.model_dump()
            )

        except OperationFailure as e:
            # MongoDB 작업 실패 (권한, 유효하지 않은 쿼리 등)
            logger.error(f"MongoDB operation error: {str(e)}")

            error_response = create_error_response(
                "mongodb_operation_error",
                "MongoDB operation failed",
                status.HTTP_400_BAD_REQUEST,
                {"detail": str(e) if settings.debug else None}
            )

            return JSONResponse(
                status_code=error_response.status_code,
                content=error_response.model_dump()
            )

        except ValueError as e:
            # 값 에러 (타입 변환 실패 등)
            error_response = create_error_response(
                "value_error",
                str(e),
                status.HTTP_400_BAD_REQUEST
            )

            return JSONResponse(
                status_code=error_response.status_code,
                content=error_response.model_dump()
            )

        except Exception as e:
            # 예상하지 못한 모든 에러들
            error_detail = None
            if settings.debug:
                error_detail = {
                    "exception": str(e),
                    "type": type(e).__name__,
                    "traceback": traceback.format_exc()
                }

            logger.error(f"Unhandled exception: {type(e).__name__}: {str(e)}", exc_info=True)

            error_response = create_error_response(
                "internal_server_error",
                "An unexpected error occurred",
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                error_detail
            )

            return JSONResponse(
                status_code=error_response.status_code,
                content=error_response.model_dump()
            )


def create_http_exception_handler():
    """FastAPI HTTPException 핸들러 생성"""
    async def http_exception_handler(request: Request, exc):
        """HTTPException을 표준 형식으로 변환"""

        # 우리의 커스텀 예외인 경우 그대로 반환
        if isinstance(exc, BaseCustomException):
            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_dict(),
                headers=getattr(exc, "headers", None)
            )

        # 일반 HTTPException인 경우 표준 형식으로 변환
        error_response = create_error_response(
            "http_error",
            exc.detail if isinstance(exc.detail, str) else "HTTP error occurred",
            exc.status_code,
            {"detail": exc.detail} if not isinstance(exc.detail, str) else None
        )

        return JSONResponse(
            status_code=exc.status_code,
            content=error_response.model_dump()
        )

    return http_exception_handler
