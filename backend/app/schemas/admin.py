"""Schemas for administrative endpoints."""

from pydantic import BaseModel, Field


class ResetPixelsRequest(BaseModel):
    adminKey: str = Field(..., min_length=1)


class ResetPixelsResponse(BaseModel):
    success: bool = True
    deletedKeys: int
