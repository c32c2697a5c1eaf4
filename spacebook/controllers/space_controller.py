"""HTTP controller layer for admin login and the space registry."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, Field

from spacebook.controllers.dependencies import (
    bearer_scheme,
    get_auth_service,
    get_space_service,
    require_admin,
)
from spacebook.domain.models import Space
from spacebook.services.auth_service import (
    AdminTokenNotConfiguredError,
    AuthService,
    InvalidAdminTokenError,
)
from spacebook.services.space_service import (
    SpaceNotFoundError,
    SpaceService,
    SpaceValidationError,
)


router = APIRouter(prefix="/api", tags=["spaces"])


class LoginRequest(BaseModel):
    admin_token: str = Field(min_length=1)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class SpaceResponse(BaseModel):
    id: str
    name: str
    type: str
    priority_order: int

    @classmethod
    def from_space(cls, space: Space) -> "SpaceResponse":
        return cls(
            id=space.space_id,
            name=space.name,
            type=space.space_type,
            priority_order=space.priority_order,
        )


class CreateSpaceRequest(BaseModel):
    name: str = Field(min_length=1)
    type: str = Field(min_length=1)
    priority_order: int


class OkResponse(BaseModel):
    ok: bool = True


@router.post("/login", response_model=LoginResponse, status_code=status.HTTP_200_OK)
async def login(
    payload: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    try:
        token = auth_service.login(payload.admin_token)
    except AdminTokenNotConfiguredError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    except InvalidAdminTokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
    return LoginResponse(access_token=token)


@router.post("/logout", response_model=OkResponse, dependencies=[Depends(require_admin)])
async def logout(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> OkResponse:
    if credentials is not None:
        auth_service.logout(credentials.credentials)
    return OkResponse()


@router.get("/spaces", response_model=list[SpaceResponse])
async def list_spaces(
    type: str | None = None,
    service: SpaceService = Depends(get_space_service),
) -> list[SpaceResponse]:
    return [SpaceResponse.from_space(space) for space in service.list_spaces(type)]


@router.post(
    "/spaces",
    response_model=SpaceResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_space(
    payload: CreateSpaceRequest,
    service: SpaceService = Depends(get_space_service),
) -> SpaceResponse:
    try:
        space = service.create_space(
            name=payload.name,
            space_type=payload.type,
            priority_order=payload.priority_order,
        )
    except SpaceValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return SpaceResponse.from_space(space)


@router.delete(
    "/spaces/{space_id}",
    response_model=OkResponse,
    dependencies=[Depends(require_admin)],
)
async def delete_space(
    space_id: str,
    service: SpaceService = Depends(get_space_service),
) -> OkResponse:
    try:
        service.delete_space(space_id)
    except SpaceNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    return OkResponse()
