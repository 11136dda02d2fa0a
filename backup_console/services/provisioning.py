"""Contract for the teacher-account provisioning workflow.

The console never provisions accounts itself; the workflow lives with the
identity provider. These types pin down what callers send and get back.
"""
from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator
from pydantic.alias_generators import to_camel

PROVISIONED_ROLE = "teacher"
ADMIN_ROLE = "school_admin"


class AdminIdentity(BaseModel):
    uid: str
    school_id: str
    role: str = ADMIN_ROLE


class ProvisionRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    full_name: str
    email: EmailStr

    @field_validator("full_name", mode="before")
    @classmethod
    def _strip_name(cls, value):
        if isinstance(value, str):
            value = value.strip()
        if not value:
            raise ValueError("fullName is required")
        return value

    @field_validator("email", mode="before")
    @classmethod
    def _strip_email(cls, value):
        return value.strip() if isinstance(value, str) else value


class ProvisionResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    uid: str
    temp_password: str
    role: str = PROVISIONED_ROLE
    message: str = "Teacher account created. Password reset link sent."


class AccountProvisioner(Protocol):
    """Creates a teacher identity inside the caller's school.

    Raises ``AlreadyExists`` when the email is taken. Otherwise creates the
    identity and a profile tagged with ``admin.school_id`` and the
    ``teacher`` role, issues a one-time password reset, records an audit
    entry and returns the temporary password with the new uid.
    """

    async def provision(self, admin: AdminIdentity, request: ProvisionRequest) -> ProvisionResult: ...
