"""
Authorization administration routes.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from taskguard.api.dependencies.services import get_authorization_service
from taskguard.core.auth.permissions import ANY, Permission, Resource
from taskguard.schemas.authorization import (
    AuthorizationCheckResponse,
    AuthorizationCreate,
    AuthorizationResponse,
    parse_authorization_type,
)
from taskguard.services.authorization import AuthorizationService

router = APIRouter()


@router.post("", response_model=AuthorizationResponse, status_code=status.HTTP_201_CREATED)
async def create_authorization(
    data: AuthorizationCreate,
    service: AuthorizationService = Depends(get_authorization_service),
):
    """Create (or extend) a grant, revoke or global authorization."""
    record = await service.create_authorization(
        data.type,
        data.resource,
        data.resource_id,
        data.permissions,
        user_id=data.user_id,
        group_id=data.group_id,
    )
    return AuthorizationResponse.from_record(record)


@router.get("", response_model=list[AuthorizationResponse])
async def list_authorizations(
    user_id: list[str] | None = Query(None),
    group_id: list[str] | None = Query(None),
    resource_type: str | None = None,
    resource_id: str | None = None,
    type: str | None = None,
    service: AuthorizationService = Depends(get_authorization_service),
):
    try:
        record_type = parse_authorization_type(type) if type else None
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    records = await service.query_authorizations(
        user_id_in=user_id,
        group_id_in=group_id,
        resource_type=Resource.from_name(resource_type) if resource_type else None,
        resource_id=resource_id,
        type=record_type,
    )
    return [AuthorizationResponse.from_record(r) for r in records]


@router.get("/check", response_model=AuthorizationCheckResponse)
async def check_authorization(
    user_id: str,
    permission: str,
    resource_type: str,
    resource_id: str = ANY,
    group_id: list[str] | None = Query(None),
    service: AuthorizationService = Depends(get_authorization_service),
):
    """Whether a user holds a permission (fallbacks included)."""
    resource = Resource.from_name(resource_type)
    checked = Permission.for_name(permission, resource)
    authorized = await service.is_user_authorized(
        user_id, group_id or [], checked, resource, resource_id
    )
    return AuthorizationCheckResponse(
        user_id=user_id,
        group_ids=group_id or [],
        permission=checked.name,
        resource_type=resource.resource_name,
        resource_id=resource_id,
        authorized=authorized,
    )


@router.get("/{authorization_id}", response_model=AuthorizationResponse)
async def get_authorization(
    authorization_id: str,
    service: AuthorizationService = Depends(get_authorization_service),
):
    record = await service.get_authorization(authorization_id)
    return AuthorizationResponse.from_record(record)


@router.delete("/{authorization_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_authorization(
    authorization_id: str,
    service: AuthorizationService = Depends(get_authorization_service),
):
    await service.delete_authorization(authorization_id)
