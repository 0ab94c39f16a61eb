"""FastAPI application exposing the user directory over HTTP."""
from __future__ import annotations

import logging
import re
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Response, status
from pydantic import BaseModel, Field, field_validator

from .config import Settings, load_settings
from .database import Database, DatabaseUserStore
from .errors import DuplicateKeyError, InvalidInputError
from .memory import InMemoryUserStore
from .models import User
from .service import UserService

logger = logging.getLogger("accounts.api")

MEMORY_PREFIX = "/api/inmemory/users"
DATABASE_PREFIX = "/api/db/users"

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PHONE_PATTERN = re.compile(r"^\+?[0-9 ()./-]{3,20}$")


class UserRequest(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=255)
    phone_number: Optional[str] = Field(default=None, max_length=20)

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str) -> str:
        stripped = value.strip()
        if not _EMAIL_PATTERN.fullmatch(stripped):
            raise ValueError("Invalid email format")
        return value

    @field_validator("phone_number")
    @classmethod
    def _validate_phone(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return value
        if not _PHONE_PATTERN.fullmatch(value.strip()):
            raise ValueError("Invalid phone number format")
        return value


class CreateUserRequest(UserRequest):
    pass


class UpdateUserRequest(UserRequest):
    pass


class UserResponse(BaseModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    full_name: str
    email: str
    phone_number: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime]


def user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        full_name=user.full_name,
        email=user.email,
        phone_number=user.phone_number,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def build_user_router(service: UserService, *, prefix: str) -> APIRouter:
    """Return CRUD routes bound to ``service``.

    The same router is mounted once per backend; only the service differs.
    """

    router = APIRouter(prefix=prefix)

    @router.post("", status_code=status.HTTP_201_CREATED, response_model=UserResponse)
    async def create_user(request: CreateUserRequest, response: Response) -> UserResponse:
        try:
            user = await service.create_user(
                request.first_name,
                request.last_name,
                request.email,
                request.phone_number,
            )
        except InvalidInputError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        except DuplicateKeyError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

        response.headers["Location"] = f"{prefix}/{user.id}"
        return user_to_response(user)

    @router.get("/{user_id}", response_model=UserResponse)
    async def get_user(user_id: uuid.UUID) -> UserResponse:
        user = await service.get_user(user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        return user_to_response(user)

    @router.get("", response_model=List[UserResponse])
    async def list_users() -> List[UserResponse]:
        users = await service.list_users()
        return [user_to_response(user) for user in users]

    @router.put("/{user_id}", response_model=UserResponse)
    async def update_user(user_id: uuid.UUID, request: UpdateUserRequest) -> UserResponse:
        try:
            user = await service.update_user(
                user_id,
                request.first_name,
                request.last_name,
                request.email,
                request.phone_number,
            )
        except InvalidInputError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        except DuplicateKeyError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        return user_to_response(user)

    @router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_user(user_id: uuid.UUID) -> Response:
        deleted = await service.delete_user(user_id)
        if not deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router


def _build_database_service(settings: Settings) -> UserService:
    database = Database(settings.database_path, timeout=settings.busy_timeout)
    database.initialize()
    logger.info("Using user database at %s", settings.database_path)
    return UserService(DatabaseUserStore(database), name="db")


def create_app(
    *,
    memory_service: UserService | None = None,
    database_service: UserService | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application with one route family per store."""

    if database_service is None:
        database_service = _build_database_service(settings or load_settings())
    if memory_service is None:
        memory_service = UserService(InMemoryUserStore(), name="inmemory")

    app = FastAPI(
        title="Account Directory API",
        version="0.1.0",
        description="User records served from an in-memory store and a SQLite store.",
    )
    app.state.memory_service = memory_service
    app.state.database_service = database_service

    @app.get("/healthz")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    app.include_router(build_user_router(memory_service, prefix=MEMORY_PREFIX))
    app.include_router(build_user_router(database_service, prefix=DATABASE_PREFIX))

    return app


__all__ = [
    "CreateUserRequest",
    "DATABASE_PREFIX",
    "MEMORY_PREFIX",
    "UpdateUserRequest",
    "UserResponse",
    "build_user_router",
    "create_app",
    "user_to_response",
]
