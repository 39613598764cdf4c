"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from tortoise.contrib.fastapi import RegisterTortoise

from workshop import settings
from workshop.errors import LifecycleError
from workshop.routers.booking import router

ERROR_STATUS: dict[str, int] = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "validation": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "conflict": status.HTTP_409_CONFLICT,
    "storage": status.HTTP_503_SERVICE_UNAVAILABLE,
    "unavailable": status.HTTP_502_BAD_GATEWAY,
}


async def lifecycle_error_handler(request: Request, exc: LifecycleError) -> JSONResponse:
    status_code = ERROR_STATUS.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error("{} {} failed: {}", request.method, request.url.path, exc.reason)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.reason, "kind": exc.kind},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LifecycleError, lifecycle_error_handler)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    async with RegisterTortoise(
        app,
        config=settings.TORTOISE_ORM,
        generate_schemas=settings.db_url.startswith("sqlite"),
    ):
        yield


def create_app() -> FastAPI:
    app = FastAPI(title="Workshop bookings", lifespan=lifespan)
    app.include_router(router)
    register_error_handlers(app)
    return app


app = create_app()
