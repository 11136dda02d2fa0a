import asyncio

import pytest
from httpx import ASGITransport, AsyncClient

from backup_console.dependencies import get_repository, new_registry
from backup_console.main import app
from backup_console.services.repository import InMemoryBackupRepository

SCHOOLS = [
    {"id": "sch_a", "name": "Alpha School"},
    {"id": "sch_b", "name": "Beta School"},
]

# 2024-03-05T00:00:00Z in epoch milliseconds
MARCH_5 = 1709596800000
DAY = 86400000


def term_data():
    return {
        "students": [
            {"id": "s1", "name": "Ama Mensah", "gender": "Female", "classId": "c_p3"},
            {"id": "s2", "name": "Kofi Owusu", "gender": "Male", "classId": "c_p3"},
            {"id": "s3", "name": "Esi Boateng", "gender": "Female", "classId": "c_jhs1"},
            {"id": "s4", "name": "Yaw Darko", "gender": "Male", "classId": "c_kg1"},
        ],
        "attendanceRecords": [
            {"classId": "c_p3", "presentStudentIds": ["s1", "s2"]},
            {"classId": "c_p3", "presentStudentIds": ["s1"]},
            {"classId": "c_p3", "presentStudentIds": ["s1", "s2"]},
            {"classId": "c_jhs1"},
        ],
        "assessments": [
            {"studentId": "s1", "total": 80},
            {"studentId": "s1", "testScore": 10, "homeworkScore": 5, "projectScore": 5, "examScore": 40},
            {"studentId": "s2", "total": 64.5},
            {"studentId": "s2", "total": 65},
            {"studentId": "s3", "total": 70.25},
        ],
        "studentRemarks": [
            {"studentId": "s1", "remark": "Latest", "dateCreated": "2024-01-01T00:00:00Z"},
            {"studentId": "s1", "remark": "Older", "dateCreated": "2023-12-01T00:00:00Z"},
            {"studentId": "s2", "remark": "First", "dateCreated": 1704067200000},
            {"studentId": "s2", "remark": "Second", "dateCreated": "2024-01-01T00:00:00Z"},
            {"studentId": "s3", "remark": "Unreadable", "dateCreated": "not a date"},
            {"studentId": "s3", "remark": "Readable", "dateCreated": "2023-01-01"},
        ],
        "classSubjects": [
            {"classId": "c_p3", "subjects": ["Mathematics", "English Language"]},
            {"classId": "c_jhs1", "subjects": ["Integrated Science"]},
        ],
        "users": [{"id": "u1"}, {"id": "u2"}],
        "notices": [{"title": "Vacation"}],
        "schoolSettings": {"academicYear": "2023-2024", "currentTerm": ""},
        "schoolConfig": {"academicYear": "2022-2023", "currentTerm": "Term 1", "vacationDate": "2023-12-15"},
    }


def sample_bundles():
    return [
        {"id": "bk1", "schoolId": "sch_a", "term": "Term 1", "academicYear": "2023-2024",
         "timestamp": 1700000000000, "data": term_data()},
        {"id": "bk2", "schoolId": "sch_a", "term": "Term 2", "academicYear": "2023-2024",
         "timestamp": 1710000000000, "data": {"students": []}},
        {"id": "bk3", "schoolId": "sch_b", "term": "Term 1", "academicYear": "2023-2024",
         "timestamp": MARCH_5 + 3600000, "data": {"students": []}},
        {"id": "bk4", "schoolId": "sch_b", "term": "Term 1", "academicYear": "2023-2024",
         "timestamp": MARCH_5 + DAY},
        {"id": "bk5", "schoolId": "sch_a", "term": "Term 3", "academicYear": "2022-2023",
         "timestamp": MARCH_5 - 1, "data": {}},
    ]


class GatedRepository(InMemoryBackupRepository):
    """In-memory store whose calls can be held open to stage races."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.gates = {}
        self.get_calls = 0

    def hold(self, operation):
        gate = asyncio.Event()
        self.gates[operation] = gate
        return gate

    async def _wait(self, operation):
        gate = self.gates.pop(operation, None)
        if gate is not None:
            await gate.wait()

    async def list_bundles(self, predicate):
        result = await super().list_bundles(predicate)
        await self._wait("list")
        return result

    async def get_bundle(self, bundle_id):
        self.get_calls += 1
        result = await super().get_bundle(bundle_id)
        await self._wait("get")
        return result


@pytest.fixture(name="repository")
def repository_fixture():
    return GatedRepository(sample_bundles(), SCHOOLS)


@pytest.fixture(name="client")
def client_fixture(repository):
    def get_repository_override():
        return repository

    app.dependency_overrides[get_repository] = get_repository_override
    app.state.consoles = new_registry()
    client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
    yield client
    app.dependency_overrides.clear()
