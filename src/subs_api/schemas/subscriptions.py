"""Pydantic schemas for subscription endpoints."""

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    cod: int = Field(..., description="HTTP status code")
    msg: str = Field(..., description="Result message")


class AddResponse(MessageResponse):
    id: int = Field(..., description="ID of the created subscription")


class ErrorResponse(BaseModel):
    cod: int
    error: str


class SumResponse(BaseModel):
    sum: int = Field(..., description="Summary monthly price", examples=[1000])
