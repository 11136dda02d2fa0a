import pytest
from pydantic import ValidationError

from backup_console.errors import AlreadyExists
from backup_console.services.provisioning import (
    ADMIN_ROLE,
    PROVISIONED_ROLE,
    AdminIdentity,
    ProvisionRequest,
    ProvisionResult,
)


class RecordingProvisioner:
    """Stands in for the identity provider side of the workflow."""

    def __init__(self):
        self.profiles = {}

    async def provision(self, admin: AdminIdentity, request: ProvisionRequest) -> ProvisionResult:
        if request.email in self.profiles:
            raise AlreadyExists()
        uid = f"uid_{len(self.profiles) + 1}"
        self.profiles[request.email] = {"uid": uid, "schoolId": admin.school_id, "role": PROVISIONED_ROLE}
        return ProvisionResult(uid=uid, temp_password="Temp-1234")


def test_request_is_trimmed_and_read_from_camel_case():
    request = ProvisionRequest.model_validate({"fullName": "  Abena Asante ", "email": " abena@school.edu "})
    assert request.full_name == "Abena Asante"
    assert request.email == "abena@school.edu"


@pytest.mark.parametrize("full_name", ["", "   ", None])
def test_full_name_is_required(full_name):
    with pytest.raises(ValidationError) as excinfo:
        ProvisionRequest.model_validate({"fullName": full_name, "email": "abena@school.edu"})
    assert "fullName is required" in str(excinfo.value)


def test_email_must_be_valid():
    with pytest.raises(ValidationError):
        ProvisionRequest(full_name="Abena Asante", email="not-an-email")


def test_result_defaults_to_teacher_role():
    result = ProvisionResult(uid="u1", temp_password="pw")
    assert result.model_dump(by_alias=True)["tempPassword"] == "pw"
    assert result.role == PROVISIONED_ROLE
    assert AdminIdentity(uid="a1", school_id="sch_a").role == ADMIN_ROLE


@pytest.mark.asyncio
async def test_provisioner_contract():
    provisioner = RecordingProvisioner()
    admin = AdminIdentity(uid="a1", school_id="sch_a")
    request = ProvisionRequest(full_name="Abena Asante", email="abena@school.edu")

    result = await provisioner.provision(admin, request)
    assert provisioner.profiles["abena@school.edu"]["schoolId"] == "sch_a"
    assert result.uid == "uid_1"

    with pytest.raises(AlreadyExists) as excinfo:
        await provisioner.provision(admin, request)
    assert excinfo.value.status_code == 409
