"""
Strict Base Model for API Request/Response Validation

Base classes with strict validation settings for the API contract between
the engine and its clients.

Usage:
    # For request bodies (strictest validation)
    class ReviewRequest(StrictRequest):
        item_id: str
        rating: int

    # For response bodies (built from service records)
    class ReviewStateResponse(StrictResponse):
        item_id: str
        interval: int

Architecture:
    API Request → StrictRequest (extra="forbid") → Route Handler
    Service record → StrictResponse (extra="ignore") → API Response
"""

from pydantic import BaseModel, ConfigDict


class StrictRequest(BaseModel):
    """
    Base model for API request bodies with strict validation.

    Features:
        - extra="forbid": Unknown fields raise 422 Unprocessable Entity
        - validate_default=True: Validates default values
        - str_strip_whitespace=True: Trims whitespace from strings

    Example:
        >>> class XPRequest(StrictRequest):
        ...     xp: int
        >>>
        >>> XPRequest(xp=10)  # OK
        >>> XPRequest(amount=10)  # Raises ValidationError
    """

    model_config = ConfigDict(
        extra="forbid",  # Reject unknown fields
        validate_default=True,  # Validate defaults
        str_strip_whitespace=True,  # Clean string inputs
    )


class StrictResponse(BaseModel):
    """
    Base model for API response bodies.

    Features:
        - extra="ignore": Silently ignores extra fields
        - validate_default=True: Validates default values
        - from_attributes=True: Build directly from service dataclasses
    """

    model_config = ConfigDict(
        extra="ignore",  # Allow extra fields in responses
        validate_default=True,  # Validate defaults
        from_attributes=True,  # Enable dataclass/ORM conversion
    )
