"""
Pydantic models for API requests and responses.

- base.py: Strict request/response base classes
- progress.py: Review progress schemas
- league.py: Weekly league schemas
"""

from vocab_progress.models.base import StrictRequest, StrictResponse

__all__ = ["StrictRequest", "StrictResponse"]
