from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from shared.security.policy import Role


class UserCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=1)
    role: Role = Role.STUDENT


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: Role

    class Config:
        from_attributes = True


class UserDetail(UserResponse):
    created_at: datetime


class AuthResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserResponse


class UserSummary(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class UserUpdate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    role: Role
