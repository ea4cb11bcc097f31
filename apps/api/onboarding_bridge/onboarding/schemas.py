from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


ProvisioningStatus = Literal["success", "already_provisioned"]


@dataclass(frozen=True)
class RegistrationInput:
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    tags: tuple[str, ...] = field(default_factory=tuple)

    def trimmed(self) -> RegistrationInput:
        return replace(
            self,
            first_name=self.first_name.strip(),
            last_name=self.last_name.strip(),
            email=self.email.strip(),
            phone=self.phone.strip(),
        )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: list[str]


@dataclass(frozen=True)
class ContactSyncResult:
    crm_contact_id: str
    is_new: bool


@dataclass(frozen=True)
class ProvisionRequest:
    full_name: str
    email: str
    phone: str
    crm_contact_id: str


@dataclass(frozen=True)
class ProvisionResult:
    external_account_id: str | None


@dataclass(frozen=True)
class NewProvisionedUser:
    first_name: str
    last_name: str
    email: str
    phone: str
    crm_contact_id: str
    external_account_id: str | None


class ProvisionedUserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: int
    first_name: str
    last_name: str
    email: str
    phone: str
    crm_contact_id: str
    external_account_id: str | None
    created_at: datetime


@dataclass(frozen=True)
class OnboardingResult:
    crm_contact_id: str
    provisioning_status: ProvisioningStatus
    record: ProvisionedUserRead


class OnboardRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    tags: list[str] | None = None

    def to_registration_input(self) -> RegistrationInput:
        return RegistrationInput(
            first_name=self.first_name or "",
            last_name=self.last_name or "",
            email=self.email or "",
            phone=self.phone or "",
            tags=tuple(self.tags or ()),
        )


class OnboardingData(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    crm_contact_id: str
    provisioning_status: ProvisioningStatus
    user: ProvisionedUserRead

    @classmethod
    def from_result(cls, result: OnboardingResult) -> OnboardingData:
        return cls(
            crm_contact_id=result.crm_contact_id,
            provisioning_status=result.provisioning_status,
            user=result.record,
        )


class OnboardSuccessResponse(BaseModel):
    success: bool = True
    message: str
    data: OnboardingData


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    error: Any = Field(default=None)


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
