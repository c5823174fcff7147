"""
Pydantic schemas for the rate limit endpoint.
Responses are camelCase and omit unset fields.
"""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class RateLimitAction(str, Enum):
    LOGIN = "login"
    SIGNUP = "signup"


class RateLimitRequest(BaseModel):
    """Fields are optional so missing values can be reported as 400 instead of 422."""
    identifier: Optional[str] = Field(None, description="E-mail or IP address")
    action: Optional[str] = Field(None, description="login or signup")

    @field_validator("identifier", "action", mode="before")
    @classmethod
    def non_string_as_missing(cls, v: Any) -> Any:
        # Wrongly typed fields are reported like missing ones
        return v if isinstance(v, str) else None


class RateLimitDecision(BaseModel):
    """Outcome of a rate limit check."""
    allowed: bool
    remaining_attempts: Optional[int] = Field(None, ge=0)
    reset_time: Optional[int] = Field(None, description="Epoch milliseconds when a slot frees up")
    message: Optional[str] = None
    error: Optional[str] = None
    warning: Optional[str] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
