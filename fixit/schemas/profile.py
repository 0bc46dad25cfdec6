"""Schemas for profile updates."""

from __future__ import annotations

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ProfileUpdateRequest(BaseModel):
    """Profile fields a caller may send; provider-only fields are dropped for others."""

    model_config = ConfigDict(populate_by_name=True)

    full_name: Optional[str] = Field(None, alias="fullName")
    address: Optional[str] = None
    profile_url: Optional[str] = Field(None, alias="profileURL")
    service_type: Optional[str] = Field(None, alias="serviceType")
    experience: Optional[str] = None
    daily_rate: Optional[Union[int, float]] = Field(None, alias="dailyRate")
    hourly_rate: Optional[Union[int, float]] = Field(None, alias="hourlyRate")

    def changes(self) -> Dict[str, Any]:
        """Wire-named fields that were actually supplied."""
        return self.model_dump(by_alias=True, exclude_none=True)


__all__ = ["ProfileUpdateRequest"]
