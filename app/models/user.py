from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Optional
from uuid import uuid4

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, field_validator


class Currency(str, Enum):
    INR = "INR"
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"


class Language(str, Enum):
    EN = "en"
    FR = "fr"
    ES = "es"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


def _check_name(value: str) -> str:
    value = value.strip()
    if len(value) < 2 or len(value) > 50:
        raise ValueError("Name must be between 2 and 50 characters")
    return value


def _check_password(value: str) -> str:
    if len(value) < 6:
        raise ValueError("Password must be at least 6 characters long")
    return value


Name = Annotated[str, AfterValidator(_check_name)]
Password = Annotated[str, AfterValidator(_check_password)]


class UserCreate(BaseModel):
    name: Name
    email: EmailStr
    password: Password

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.lower()


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserUpdate(BaseModel):
    name: Optional[Name] = None
    currency: Optional[Currency] = None
    language: Optional[Language] = None
    theme: Optional[Theme] = None
    notifications: Optional[bool] = None


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    token: str
    new_password: Password = Field(alias="newPassword")


class UserInDB(BaseModel):
    user_id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    email: EmailStr
    password_hash: str
    currency: Currency = Currency.INR
    language: Language = Language.EN
    theme: Theme = Theme.LIGHT
    notifications: bool = True
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    password_reset_token: Optional[str] = None
    password_reset_expires: Optional[str] = None


class UserPublic(BaseModel):
    id: str
    name: str
    email: EmailStr
    currency: Currency = Currency.INR
    language: Language = Language.EN
    theme: Theme = Theme.LIGHT
    notifications: bool = True

    @classmethod
    def from_item(cls, item: dict) -> "UserPublic":
        return cls(
            id=item["user_id"],
            name=item.get("name", ""),
            email=item["email"],
            currency=item.get("currency", Currency.INR),
            language=item.get("language", Language.EN),
            theme=item.get("theme", Theme.LIGHT),
            notifications=item.get("notifications", True),
        )
