"""
Blog API Backend - Pydantic Request/Response Schemas
=====================================================

What:  Pydantic models defining the API contract.
How:   FastAPI uses these models to parse request bodies, serialize responses,
       and generate the OpenAPI document.

Schemas are separate from the SQLAlchemy model so the API controls exactly
which fields it accepts and exposes.
"""

from typing import Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class PostPayload(BaseModel):
    """
    What:  Body of POST /posts and PUT /posts/{id}.

    Every field is optional at the schema level. Presence and emptiness of
    title/content, and the shape of image, are checked by
    PostService.validate_payload so that all input errors share one
    `validation_error` response.
    """
    title: Optional[str] = Field(default=None, description="Post title (required, non-empty)")
    content: Optional[str] = Field(default=None, description="Post body (required, non-empty)")
    image: Optional[str] = Field(
        default=None,
        description="Optional image as a data URI: data:<mediatype>;base64,<payload>",
    )


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class PostResponse(BaseModel):
    """Full representation of a stored post."""
    id: int = Field(description="Database-assigned post identifier")
    title: str = Field(description="Post title")
    content: str = Field(description="Post body")
    image: Optional[str] = Field(default=None, description="Image data URI, null when absent")

    model_config = {"from_attributes": True}


class WriteResult(BaseModel):
    """
    What:  Outcome of a mutating statement.

    inserted_id is set for inserts only; affected_rows counts the rows the
    statement matched (0 when an update/delete targets a missing id).
    """
    inserted_id: Optional[int] = Field(default=None, description="Id assigned by an insert")
    affected_rows: int = Field(description="Number of rows affected by the statement")


# ══════════════════════════════════════════════════════════════════════════
# Error / Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error body for all JSON API errors.

    Example:
        {
            "error": "validation_error",
            "message": "Field 'image' must be a base64 data URI",
            "details": {"field": "image"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Returned by GET /health."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
