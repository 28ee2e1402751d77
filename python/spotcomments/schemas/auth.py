"""Identity exchange and profile schemas.

Field names follow the wire shapes the extension already speaks, which mix
camelCase (exchange) and snake_case (profile).
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from spotcomments.db.models import as_utc


class ExchangeRequest(BaseModel):
    privy_token: str = Field(alias="privyToken")

    model_config = ConfigDict(populate_by_name=True)


class ExchangeOut(BaseModel):
    """Issued session plus the external subject it was bound to."""

    token: str
    privy_user_id: str = Field(serialization_alias="privyUserId")


class DevLoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320)


class DevLoginOut(BaseModel):
    privy_token: str = Field(serialization_alias="privyToken")


class UserProfileOut(BaseModel):
    id: UUID
    privy_user_id: str
    email: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return as_utc(value).isoformat()
