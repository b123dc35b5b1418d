"""
Authorization schemas.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from taskguard.core.auth.permissions import ANY, Resource
from taskguard.core.exceptions import InvalidPermissionError
from taskguard.models.authorization import Authorization, AuthorizationType


def parse_authorization_type(value) -> AuthorizationType:
    """Accept a type by number ("1", 1) or by name ("grant")."""
    if isinstance(value, str):
        if value.isdigit():
            value = int(value)
        else:
            try:
                return AuthorizationType[value.upper()]
            except KeyError:
                raise ValueError(f"Unknown authorization type: '{value}'") from None
    try:
        return AuthorizationType(value)
    except ValueError:
        raise ValueError(f"Unknown authorization type: {value!r}") from None


class AuthorizationCreate(BaseModel):
    """Authorization creation schema."""
    type: AuthorizationType = AuthorizationType.GRANT
    resource_type: str = Field(description="Resource name, e.g. 'Task' or 'PROCESS_DEFINITION'")
    resource_id: str = ANY
    permissions: list[str] = Field(min_length=1)
    user_id: str | None = None
    group_id: str | None = None

    @field_validator("type", mode="before")
    @classmethod
    def parse_type(cls, v):
        return parse_authorization_type(v)

    @field_validator("resource_type")
    @classmethod
    def validate_resource_type(cls, v: str) -> str:
        try:
            Resource.from_name(v)
        except InvalidPermissionError as e:
            raise ValueError(e.message) from e
        return v

    @property
    def resource(self) -> Resource:
        return Resource.from_name(self.resource_type)


class AuthorizationResponse(BaseModel):
    """Authorization response schema."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: str
    resource_type: str
    resource_id: str
    permissions: list[str]
    user_id: str | None = None
    group_id: str | None = None
    created_at: datetime

    @classmethod
    def from_record(cls, record: Authorization) -> "AuthorizationResponse":
        return cls(
            id=record.id,
            type=record.authorization_type.name,
            resource_type=record.resource.resource_name,
            resource_id=record.resource_id,
            permissions=record.permission_names,
            user_id=record.user_id,
            group_id=record.group_id,
            created_at=record.created_at,
        )


class AuthorizationCheckResponse(BaseModel):
    user_id: str
    group_ids: list[str]
    permission: str
    resource_type: str
    resource_id: str
    authorized: bool
