"""Schemas for the marketplace endpoints."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class HireRequest(BaseModel):
    """Request to hire a provider for a job."""

    model_config = ConfigDict(populate_by_name=True)

    worker_id: Optional[str] = Field(None, alias="workerId")
    customer_id: Optional[str] = Field(None, alias="customerId")
    service_type: Optional[str] = Field(None, alias="serviceType")
    description: Optional[str] = None


__all__ = ["HireRequest"]
