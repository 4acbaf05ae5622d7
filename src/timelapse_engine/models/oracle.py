"""
Oracle Wire Contract
====================

Pydantic models for the JSON exchanged with the existence oracle and the
location catalog.

Batch Check Contract:
    Request:
        {"location": "side_yard", "filenames": ["2024-01-01_12-00.jpg", ...]}

    Response (one entry per requested filename):
        [{"filename": "2024-01-01_12-00.jpg", "exists": true}, ...]

Single Check Contract:
    Response:
        {"exists": true}

Catalog Contract:
    Response:
        [{"value": "side_yard", "label": "Side Yard"}, ...]

Design Rules:
    - Responses are validated at the boundary; an entry with the wrong shape
      fails the whole payload instead of defaulting silently
    - ``exists`` must be a real boolean (strict), not a truthy string
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field, StrictBool, TypeAdapter


class BatchCheckRequest(BaseModel):
    """Body of a batched existence check."""

    location: str = Field(
        ...,
        min_length=1,
        description="Camera location identifier",
    )

    filenames: List[str] = Field(
        ...,
        description="Filenames to check, in request order",
    )


class BatchCheckEntry(BaseModel):
    """One entry of a batched existence response."""

    model_config = ConfigDict(extra="forbid")

    filename: str = Field(..., description="Filename as requested")
    exists: StrictBool = Field(..., description="Whether the frame exists")


class CheckResponse(BaseModel):
    """Response of a single-frame existence check."""

    exists: StrictBool = Field(..., description="Whether the frame exists")


class LocationEntry(BaseModel):
    """One location offered by the catalog."""

    value: str = Field(..., description="Storage identifier")
    label: str = Field(..., description="Human readable name")


BatchCheckResponse = TypeAdapter(List[BatchCheckEntry])
LocationList = TypeAdapter(List[LocationEntry])
