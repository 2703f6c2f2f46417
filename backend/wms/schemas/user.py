"""User schemas"""
from typing import List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field

UserType = Literal[
    "admin", "warehouse_manager", "cutting_manager", "sorting_manager",
    "accountant", "order_tracker", "delivery_manager", "sales",
]


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, description="Username")
    password: str = Field(..., min_length=1, description="Password")


class UserBase(BaseModel):
    username: str = Field(..., min_length=3, max_length=50, description="Username")
    name: str = Field(..., min_length=1, max_length=100, description="Full name")
    email: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    user_type: UserType = Field(..., description="Role")


class UserCreate(UserBase):
    password: str = Field(..., min_length=6, description="Password")


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    user_type: Optional[UserType] = None
    is_active: Optional[bool] = None


class PasswordChange(BaseModel):
    current_password: Optional[str] = Field(None, description="Required when changing your own password")
    new_password: str = Field(..., min_length=6)


class UserResponse(UserBase):
    id: int
    is_active: bool
    permissions: List[str] = []
    created_at: datetime

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    data: List[UserResponse]
    total: int
    page: int
    limit: int


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class PermissionInfo(BaseModel):
    name: str
    label: str
