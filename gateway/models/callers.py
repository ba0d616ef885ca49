"""
Registered caller (third-party app) configuration.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class CallerRegistration(BaseModel):
    """A registered integration allowed to call the proxied notes API."""

    model_config = ConfigDict(populate_by_name=True)

    secret: SecretStr = Field(..., alias="token")
    active: bool = True
    rate_limit: Optional[int] = Field(default=None, alias="rateLimit", ge=1)
    display_name: Optional[str] = Field(default=None, alias="name")
    owner: Optional[str] = None
    created_at: Optional[str] = Field(default=None, alias="createdAt")
