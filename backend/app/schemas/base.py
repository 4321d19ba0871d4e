"""Base schema configuration."""

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM mode
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class RequestSchema(BaseSchema):
    """Request bodies: unknown fields are rejected instead of dropped."""

    model_config = ConfigDict(extra="forbid")
