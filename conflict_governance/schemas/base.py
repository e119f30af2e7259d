"""Base schemas and common types for the Conflict Governance API."""

from pydantic import BaseModel, ConfigDict


class GovernanceBaseModel(BaseModel):
    """Base model with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM mode
        populate_by_name=True,
        use_enum_values=True,
    )


# =============================================================================
# ERROR RESPONSES
# =============================================================================


class ErrorDetail(GovernanceBaseModel):
    """Detailed error information."""

    field: str | None = None
    message: str
    code: str


class ErrorResponse(GovernanceBaseModel):
    """Standard error response format."""

    error: str
    message: str
    details: list[ErrorDetail] = []
    unlock_at: str | None = None
    available_at: str | None = None


class MessageResponse(GovernanceBaseModel):
    message: str
