# backend/schemas/user.py
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, Optional

# Schema for user authentication credentials
class UserLogin(BaseModel):
    name: str
    password: str

# Schema for creating a staff account (admin only)
class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=1)
    role: Literal["admin", "user"] = "user"

# Output schema for user details, never includes the hash
class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    role: str
    created_at: Optional[datetime] = None

# Schema for password changes
class PasswordChange(BaseModel):
    password: str = Field(min_length=1)

# Schema for JWT authentication token response
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
