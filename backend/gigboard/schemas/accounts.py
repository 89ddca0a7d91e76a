"""Account Schemas — signup, login, profile edits, password reset and email verification.

Invariants:
    - Emails are stripped and lower-cased before they reach a service
    - Profile update bodies only carry writable fields; unset fields are left alone
      (services read model_dump(exclude_unset=True))
"""

from pydantic import BaseModel, EmailStr, Field, field_validator

from gigboard.core.domain_types import UserRole


class _EmailBody(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()


class _SignupBody(_EmailBody):
    name: str = Field(min_length=1, max_length=200)
    password: str = Field(min_length=6, max_length=128)
    bio: str | None = Field(None, max_length=5000)
    location: str | None = Field(None, max_length=120)


class ClientSignup(_SignupBody):
    company_name: str | None = Field(None, max_length=200)
    industry: str | None = Field(None, max_length=120)
    website: str | None = Field(None, max_length=500)


class FreelancerSignup(_SignupBody):
    title: str | None = Field(None, max_length=200)
    skills: list[str] = Field(default_factory=list, max_length=50)
    hourly_rate: float | None = Field(None, ge=0)


class LoginRequest(_EmailBody):
    role: UserRole
    password: str = Field(min_length=1, max_length=128)


class _AccountUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    bio: str | None = Field(None, max_length=5000)
    location: str | None = Field(None, max_length=120)


class ClientProfileUpdate(_AccountUpdate):
    company_name: str | None = Field(None, max_length=200)
    industry: str | None = Field(None, max_length=120)
    website: str | None = Field(None, max_length=500)


class FreelancerProfileUpdate(_AccountUpdate):
    title: str | None = Field(None, max_length=200)
    skills: list[str] | None = Field(None, max_length=50)
    hourly_rate: float | None = Field(None, ge=0)
    availability: bool | None = None


class AvailabilityUpdate(BaseModel):
    availability: bool


class PasswordResetRequest(_EmailBody):
    role: UserRole


class PasswordResetConfirm(PasswordResetRequest):
    otp: str = Field(pattern=r"^\d{6}$")
    new_password: str = Field(min_length=6, max_length=128)


class EmailVerificationRequest(_EmailBody):
    pass


class EmailVerificationConfirm(_EmailBody):
    otp: str = Field(pattern=r"^\d{6}$")
