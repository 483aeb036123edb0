# backend/schemas/user.py
from pydantic import BaseModel, EmailStr, Field
from typing import Optional

# Shared properties for user models
class UserBase(BaseModel):
    email: EmailStr

# Schema for user authentication credentials
class UserLogin(UserBase):
    password: str

# Schema for sign-up requests; admins are never created through the API
class UserCreate(UserBase):
    password: str = Field(min_length=6)
    name: str = Field(min_length=1)
    phone: Optional[str] = None

# Output schema for the current user (auth context)
class UserResponse(UserBase):
    id: int
    name: str
    phone: Optional[str] = None
    is_admin: bool

    class Config:
        from_attributes = True

# Schema for JWT authentication token response
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
