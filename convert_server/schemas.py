# convert_server/schemas.py
from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from convert_server.catalog import ToolConfig
from convert_server.models import ApiKey, ConversionJob, User
from convert_server.quota import UsageSnapshot


class CamelModel(BaseModel):
    """Python names internally, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def dump(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# Auth schemas
class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class UserView(CamelModel):
    id: str
    email: str
    plan: str
    daily_limit: int
    monthly_limit: int
    daily_usage: int
    monthly_usage: int
    subscription_status: str
    created_at: Optional[datetime] = None

    @classmethod
    def of(cls, user: User) -> "UserView":
        return cls(
            id=user.id,
            email=user.email,
            plan=user.plan,
            daily_limit=user.daily_limit,
            monthly_limit=user.monthly_limit,
            daily_usage=user.daily_usage,
            monthly_usage=user.monthly_usage,
            subscription_status=user.subscription_status,
            created_at=user.created_at,
        )


class ApiKeyView(CamelModel):
    id: str
    key_prefix: str
    is_active: bool
    usage_count: int
    last_used: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def of(cls, api_key: ApiKey) -> "ApiKeyView":
        return cls(
            id=api_key.id,
            key_prefix=api_key.key_prefix,
            is_active=api_key.is_active,
            usage_count=api_key.usage_count,
            last_used=api_key.last_used,
            created_at=api_key.created_at,
        )


class CreatedApiKey(ApiKeyView):
    """Includes the secret, which is only ever returned once."""

    key: str


class AuthResponse(CamelModel):
    user: UserView
    token: str
    expires_in: int
    api_key: Optional[str] = None


# Conversion schemas
class JobAccepted(CamelModel):
    job_id: str
    status: str
    estimated_time: int
    tool_name: str
    input_file: str


class JobView(CamelModel):
    job_id: str
    tool_type: str
    status: str
    input_filename: str
    output_filename: Optional[str] = None
    input_file_size: Optional[int] = None
    output_file_size: Optional[int] = None
    processing_time: Optional[int] = None
    error_message: Optional[str] = None
    download_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def of(cls, job: ConversionJob) -> "JobView":
        return cls(
            job_id=job.id,
            tool_type=job.tool_type,
            status=job.status,
            input_filename=job.input_filename,
            output_filename=job.output_filename,
            input_file_size=job.input_file_size,
            output_file_size=job.output_file_size,
            processing_time=job.processing_time,
            error_message=job.error_message,
            download_url=job.download_url,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )


# Tool schemas
class ToolView(CamelModel):
    id: int
    name: str
    type: str
    category: str
    description: str
    input_formats: list[str]
    output_format: str
    max_file_size: int
    processing_time_estimate: int

    @classmethod
    def of(cls, tool: ToolConfig) -> "ToolView":
        return cls(
            id=tool.id,
            name=tool.name,
            type=tool.type.value,
            category=tool.category.value,
            description=tool.description,
            input_formats=list(tool.input_formats),
            output_format=tool.output_format,
            max_file_size=tool.max_file_size,
            processing_time_estimate=tool.processing_time_estimate,
        )


# Usage schemas
class UsageView(CamelModel):
    plan: str
    daily_usage: int
    daily_limit: int
    monthly_usage: int
    monthly_limit: int
    remaining_daily: int
    remaining_monthly: int

    @classmethod
    def of(cls, usage: UsageSnapshot) -> "UsageView":
        return cls(
            plan=usage.plan,
            daily_usage=usage.daily_usage,
            daily_limit=usage.daily_limit,
            monthly_usage=usage.monthly_usage,
            monthly_limit=usage.monthly_limit,
            remaining_daily=usage.remaining_daily,
            remaining_monthly=usage.remaining_monthly,
        )


class ResetUsageRequest(CamelModel):
    scope: str = Field(
        default="both",
        pattern="^(daily|monthly|both)$",
        validation_alias=AliasChoices("scope", "type"),
    )
    user_id: Optional[str] = None  # defaults to the caller


class PlanView(CamelModel):
    plan: str
    subscription_status: str
    daily_limit: int
    monthly_limit: int
    price: int
    price_formatted: str


# Payment schemas
class SubscriptionRequest(CamelModel):
    plan: str


# Health schemas
class HealthResponse(BaseModel):
    status: str
    version: str
