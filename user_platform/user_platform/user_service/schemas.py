from pydantic import BaseModel, Field

from typing import List, Optional


class UserPayload(BaseModel):
    """Request body shared by register, login and update profile.

    Every field is optional here; the field rules live in ``validators`` so
    all violations can be reported together.
    """
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    password: Optional[str] = None


class ResponseHeader(BaseModel):
    success: bool = False
    messages: List[str] = Field(default_factory=list)


class UserOut(BaseModel):
    id: Optional[int] = None
    full_name: Optional[str] = None
    phone_number: Optional[str] = None


class RegisterUserResponse(BaseModel):
    header: ResponseHeader
    user: UserOut


class UserLoginResponse(BaseModel):
    header: ResponseHeader
    user: UserOut


class GetUserResponse(BaseModel):
    header: ResponseHeader
    user: UserOut


class UpdateUserResponse(BaseModel):
    header: ResponseHeader


class ErrorResponse(BaseModel):
    header: ResponseHeader
