from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from reztek_service.security import SessionEncoding
from reztek_service.session_negotiator import Portal


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class LoginTokenRequest(_CamelModel):
    id_token: Optional[str] = Field(None, alias="idToken")


class DirectLoginRequest(BaseModel):
    email: Optional[str] = None


class SignInRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    portal: Portal = Portal.ADMIN


class SignInResponse(BaseModel):
    success: bool = True
    encoding: SessionEncoding
    email: EmailStr


class VerifySessionResponse(BaseModel):
    valid: bool
    email: Optional[str] = None
    error: Optional[str] = None


class CheckAdminResponse(_CamelModel):
    is_admin: bool = Field(..., alias="isAdmin")
    error: Optional[str] = None


class CheckTenantRequest(BaseModel):
    email: EmailStr


class CheckTenantResponse(_CamelModel):
    is_tenant: bool = Field(..., alias="isTenant")
    error: Optional[str] = None


class AdminLoginPage(BaseModel):
    portal: Portal = Portal.ADMIN
    sign_in_url: str
    message: str = "Sign in to access the admin dashboard"
