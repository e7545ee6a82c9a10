import logging
import contextlib

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
from config import AdminAuthConfig, LockConfig, StorageConfig
from core.errors import ErrorCodes, HotUpdateError, Unauthorized
from core.response import failure
from core.state import VersionRegistry
from core.storage import StorageDriver, create_storage_driver
from routes import admin_router, client_router
from services import PublishService, UploadService

load_dotenv()

logger = logging.getLogger(__name__)


def configure_logging():
    logging.basicConfig(
        level=logging.INFO,
        format=config.LOG_FORMAT,
        datefmt=config.LOG_DATE_FORMAT,
    )


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(HotUpdateError)
    async def handle_hotupdate_error(request: Request, exc: HotUpdateError):
        if exc.status_code >= 500:
            logger.error(f"❌ [API] {request.method} {request.url.path}: {exc!r}")
        else:
            logger.info(f"⚠️ [API] {request.method} {request.url.path}: {exc.kind} ({exc.message})")

        headers = None
        if isinstance(exc, Unauthorized):
            headers = {"WWW-Authenticate": 'Basic realm="Pulzz Admin", charset="UTF-8"'}
        return JSONResponse(status_code=exc.status_code, content=failure(exc.code, exc.message), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        logger.info(f"⚠️ [API] {request.method} {request.url.path}: invalid request {exc.errors()}")
        return JSONResponse(status_code=400, content=failure(ErrorCodes.INVALID_REQUEST, 'invalid_request'))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=failure(exc.status_code, str(exc.detail)),
            headers=getattr(exc, 'headers', None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(f"❌ [API] Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(status_code=500, content=failure(ErrorCodes.INTERNAL, 'internal_error'))


def create_app(storage: StorageDriver = None) -> FastAPI:
    """
    앱 팩토리

    스토리지 드라이버와 경로는 생성 시점의 환경변수로 한 번만 결정된다.
    """
    configure_logging()

    registry = VersionRegistry(config.get_state_file_path())
    storage = storage or create_storage_driver(StorageConfig())
    admin_auth = AdminAuthConfig()
    if not admin_auth.enabled:
        logger.warning("⚠️ [AUTH] ADMIN_PASSWORD not set - admin routes are unauthenticated")

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        registry.ensure()
        logger.info(f"✅ [APP] State file ready: {registry.state_path}")
        yield

    app = FastAPI(title="Pulzz Hot Update", lifespan=lifespan)
    app.state.registry = registry
    app.state.storage = storage
    app.state.admin_auth = admin_auth
    app.state.upload_service = UploadService(registry, storage)
    app.state.publish_service = PublishService(registry, storage, LockConfig())

    register_exception_handlers(app)
    app.include_router(client_router)
    app.include_router(admin_router)
    return app


def main():
    import uvicorn

    host, port = config.get_server_bind()
    uvicorn.run("app:create_app", factory=True, host=host, port=port)


if __name__ == "__main__":
    main()
