from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

DIGITS_ONLY = r"^\d+$"


class TenantBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    surname: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    contact_number: str = Field(..., min_length=1, max_length=20, pattern=DIGITS_ONLY)
    room_number: str = Field(..., min_length=1, max_length=20)
    residence: str = Field(..., min_length=1, max_length=100)
    tenant_code: Optional[str] = Field(None, max_length=50)


class TenantRegisterRequest(TenantBase):
    password: str = Field(..., min_length=6)

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "name": "Thandi",
                    "surname": "Mokoena",
                    "email": "thandi@example.com",
                    "contact_number": "0821234567",
                    "room_number": "B204",
                    "residence": "Observatory",
                    "tenant_code": "OBS-204",
                    "password": "s3cret-pass",
                }
            ]
        }
    )


class TenantResponse(TenantBase):
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(extra="ignore")


class ContactNumberUpdateRequest(BaseModel):
    contact_number: str = Field(..., min_length=1, max_length=20, pattern=DIGITS_ONLY)

    model_config = ConfigDict(extra="forbid")


class TenantLoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class TenantLoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    email: EmailStr


class PasswordResetRequest(BaseModel):
    email: EmailStr
