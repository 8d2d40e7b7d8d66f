from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from users_api.core.config import Settings, get_settings
from users_api.core.logging import configure_logging
from users_api.repositories.json_storage import JsonUserStore, StoreWriteError
from users_api.repositories.user_repository import (
    EmptyCollectionError,
    UserNotFoundError,
    UserRepository,
    ValidationError,
)
from users_api.routers import users as users_router

logger = logging.getLogger(__name__)

INVALID_USER_DATA = "Invalid user data"
USER_NOT_FOUND = "User not found"
NO_USERS_FOUND = "No users found"
ERROR_WRITING_USERS = "Error writing users"


def _invalid_user_data(_request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        {"detail": INVALID_USER_DATA, "errors": [e.to_dict() for e in exc.errors]},
        status_code=400,
    )


def _malformed_body(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse({"detail": INVALID_USER_DATA}, status_code=400)


def _user_not_found(_request: Request, exc: UserNotFoundError) -> JSONResponse:
    return JSONResponse({"detail": USER_NOT_FOUND}, status_code=404)


def _empty_collection(_request: Request, exc: EmptyCollectionError) -> JSONResponse:
    return JSONResponse({"detail": NO_USERS_FOUND}, status_code=404)


def _store_write_failed(_request: Request, exc: StoreWriteError) -> JSONResponse:
    return JSONResponse({"detail": ERROR_WRITING_USERS}, status_code=500)


def create_app(settings: Settings | None = None, repository: UserRepository | None = None) -> FastAPI:
    """Factory compatible with uvicorn (`uvicorn users_api.app:create_app --factory`)."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    if repository is None:
        store = JsonUserStore(settings.users_file)
        repository = UserRepository.from_store(store, on_load_error=settings.load_failure_policy)

    app = FastAPI(title="Users API")
    app.state.settings = settings
    app.state.user_repository = repository

    app.add_exception_handler(ValidationError, _invalid_user_data)
    app.add_exception_handler(RequestValidationError, _malformed_body)
    app.add_exception_handler(UserNotFoundError, _user_not_found)
    app.add_exception_handler(EmptyCollectionError, _empty_collection)
    app.add_exception_handler(StoreWriteError, _store_write_failed)

    @app.get("/health")
    def health():
        return {"status": "ok", "users": repository.count()}

    app.include_router(users_router.router)
    logger.info("Users API ready (%s, %s)", settings.app_env, settings.users_file)
    return app
