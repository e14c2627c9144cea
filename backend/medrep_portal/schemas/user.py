from datetime import datetime
from typing import Annotated, Literal, Optional
from pydantic import BaseModel, EmailStr, StringConstraints

Role = Literal["medrep", "supervisor", "admin"]
Username = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=50)]
Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
Password = Annotated[str, StringConstraints(min_length=6, max_length=72)]  # bcrypt input limit
RegionLabel = Annotated[str, StringConstraints(strip_whitespace=True, max_length=50)]


class UserCreate(BaseModel):
    username: Username
    password: Password
    name: Name
    email: EmailStr
    role: Role = "medrep"
    region: Optional[RegionLabel] = None


class UserUpdate(BaseModel):
    name: Optional[Name] = None
    email: Optional[EmailStr] = None
    role: Optional[Role] = None
    region: Optional[RegionLabel] = None
    is_active: Optional[bool] = None


class ProfileUpdate(BaseModel):
    name: Optional[Name] = None
    email: Optional[EmailStr] = None
    region: Optional[RegionLabel] = None


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    name: str
    role: str
    region: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
