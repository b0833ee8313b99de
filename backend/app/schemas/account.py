"""Practitioner account payloads."""

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator


class AccountCredentials(BaseModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()


class AccountCreate(AccountCredentials):
    full_name: str | None = None


class AccountRead(BaseModel):
    id: int
    email: EmailStr
    full_name: str | None = None

    model_config = ConfigDict(from_attributes=True)


class AccessToken(BaseModel):
    access_token: str
    token_type: str = "bearer"
