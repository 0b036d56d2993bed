"""Location credentials as stored after the OAuth exchange."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class LocationCredentials(BaseModel):
    """Access credentials for one location (tenant).

    Only ``location_id`` and ``access_token`` are used by the build
    engine; refresh is handled elsewhere.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    access_token: str = Field(alias="accessToken")
    refresh_token: str = Field(default="", alias="refreshToken")
    expires_at: int = Field(default=0, alias="expiresAt")  # epoch millis
    location_id: str = Field(alias="locationId")
    scopes: list[str] = []

    def is_expired(self, now_ms: int) -> bool:
        return bool(self.expires_at) and now_ms >= self.expires_at
