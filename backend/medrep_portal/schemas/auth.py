from typing import Annotated
from pydantic import BaseModel, StringConstraints
from medrep_portal.schemas.user import Password

Required = Annotated[str, StringConstraints(min_length=1)]


class LoginRequest(BaseModel):
    username: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
    password: Required


class ChangePasswordRequest(BaseModel):
    current_password: Required
    new_password: Password
