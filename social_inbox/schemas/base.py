"""
Base Pydantic Schemas
Common schemas and base classes for request/response models
"""

from datetime import datetime, timezone
from typing import Optional, Any, Dict
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict
from enum import Enum


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin(BaseModel):
    """Mixin for timestamp fields"""
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


class BaseSchema(BaseModel):
    """Base schema with common configuration"""
    model_config = ConfigDict(
        from_attributes=True,
        validate_assignment=True,
        arbitrary_types_allowed=True,
        str_strip_whitespace=True,
        use_enum_values=True
    )


class BaseResponseSchema(BaseSchema, TimestampMixin):
    """Base schema for API responses"""
    id: UUID = Field(..., description="Unique identifier")


class SuccessResponse(BaseModel):
    """Success response schema"""
    message: str = Field(..., description="Success message")
    data: Optional[Dict[str, Any]] = Field(None, description="Additional data")
    timestamp: datetime = Field(default_factory=_utcnow, description="Response timestamp")


class HealthStatus(str, Enum):
    """Health status enumeration"""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthCheck(BaseModel):
    """Health check response"""
    status: HealthStatus = Field(..., description="Overall health status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")
    timestamp: datetime = Field(default_factory=_utcnow, description="Check timestamp")
    checks: Dict[str, Any] = Field(default_factory=dict, description="Individual health checks")
