"""Pydantic schemas for account endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class RegisterRequest(BaseModel):
    username: str = Field(min_length=1, max_length=256)
    password: str = Field(min_length=1, max_length=1024)


class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class VerifyRequest(BaseModel):
    code: str = Field(min_length=1)


class ForgotPasswordRequest(BaseModel):
    username: str = Field(min_length=1)


class ResetPasswordRequest(BaseModel):
    user_id: int = Field(gt=0)
    token: str = Field(min_length=1)
    new_password: str = Field(min_length=1, max_length=1024)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    verified: bool
    created_at: datetime
