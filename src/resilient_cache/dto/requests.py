"""Request DTOs for API endpoints."""

from pydantic import BaseModel, Field


class PurgeRequest(BaseModel):
    """Request DTO for purging expired entries."""

    keys: list[str] = Field(
        ...,
        description="Cache keys to inspect; expired or corrupt entries among them are removed",
        min_length=1,
    )
