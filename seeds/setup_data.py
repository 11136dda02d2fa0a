from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List

from backup_console.extensions import db
from backup_console.models import BackupRecord, School
from seeds.utils import get_or_create

DEMO_SCHOOLS = [
    {"id": "sch_noble", "name": "Noble Care Academy"},
    {"id": "sch_hillside", "name": "Hillside Basic School"},
]

DEMO_BACKUP_IDS = {"bk_noble_2023_t1", "bk_noble_2023_t2", "bk_hillside_2023_t1", "bk_hillside_meta"}


def _ms(year: int, month: int, day: int, hour: int = 9) -> int:
    return int(datetime(year, month, day, hour, tzinfo=timezone.utc).timestamp()) * 1000


def _term_payload(term: str, academic_year: str) -> dict:
    students = [
        {"id": "st_ama", "name": "Ama Mensah", "gender": "Female", "classId": "c_p3"},
        {"id": "st_kofi", "name": "Kofi Owusu", "gender": "Male", "classId": "c_p3"},
        {"id": "st_esi", "name": "Esi Boateng", "gender": "Female", "classId": "c_jhs1"},
        {"id": "st_yaw", "name": "Yaw Darko", "gender": "Male", "classId": "c_kg2"},
    ]
    attendance = [
        {"classId": "c_p3", "date": "2023-09-11", "presentStudentIds": ["st_ama", "st_kofi"]},
        {"classId": "c_p3", "date": "2023-09-12", "presentStudentIds": ["st_ama"]},
        {"classId": "c_p3", "date": "2023-09-13", "presentStudentIds": ["st_ama", "st_kofi"]},
        {"classId": "c_jhs1", "date": "2023-09-11", "presentStudentIds": ["st_esi"]},
    ]
    assessments = [
        {"studentId": "st_ama", "subject": "Mathematics", "total": 82},
        {"studentId": "st_ama", "subject": "English Language", "testScore": 15, "homeworkScore": 9,
         "projectScore": 8, "examScore": 45},
        {"studentId": "st_kofi", "subject": "Mathematics", "total": 64.5},
        {"studentId": "st_esi", "subject": "Integrated Science", "total": 71},
    ]
    remarks = [
        {"studentId": "st_ama", "remark": "Steady progress.", "dateCreated": "2023-10-02T10:00:00Z"},
        {"studentId": "st_ama", "remark": "Excellent term overall.", "dateCreated": "2023-12-08T10:00:00Z"},
        {"studentId": "st_kofi", "remark": "Needs to attend more regularly.", "dateCreated": "2023-12-08T11:30:00Z"},
    ]
    return {
        "students": students,
        "attendanceRecords": attendance,
        "assessments": assessments,
        "studentRemarks": remarks,
        "classSubjects": [
            {"classId": "c_p3", "subjects": ["Mathematics", "English Language", "Creative Arts"]},
            {"classId": "c_jhs1", "subjects": ["Mathematics", "Integrated Science", "Social Studies", "ICT"]},
        ],
        "users": [{"id": "u_admin", "role": "school_admin"}, {"id": "u_teacher", "role": "teacher"}],
        "notices": [{"title": "Vacation notice"}],
        "payments": [],
        "schoolSettings": {"academicYear": academic_year, "currentTerm": term},
        "schoolConfig": {"academicYear": academic_year, "vacationDate": "2023-12-15", "nextTermBegins": "2024-01-09"},
    }


def seed_schools() -> Dict[str, School]:
    schools = {}
    for row in DEMO_SCHOOLS:
        school, _ = get_or_create(School, defaults={"name": row["name"]}, id=row["id"])
        schools[school.id] = school
    db.session.commit()
    return schools


def seed_backups(schools: Dict[str, School]) -> List[BackupRecord]:
    rows = [
        ("bk_noble_2023_t1", "sch_noble", "Term 1", "2023-2024", _ms(2023, 12, 15), True),
        ("bk_noble_2023_t2", "sch_noble", "Term 2", "2023-2024", _ms(2024, 4, 5), True),
        ("bk_hillside_2023_t1", "sch_hillside", "Term 1", "2023-2024", _ms(2023, 12, 15, 14), True),
        ("bk_hillside_meta", "sch_hillside", "Term 2", "2023-2024", _ms(2024, 4, 5, 16), False),
    ]
    created = []
    for backup_id, school_id, term, year, timestamp, with_data in rows:
        record, _ = get_or_create(
            BackupRecord,
            defaults={
                "school_id": schools[school_id].id,
                "term": term,
                "academic_year": year,
                "timestamp": timestamp,
                "data": _term_payload(term, year) if with_data else None,
            },
            id=backup_id,
        )
        created.append(record)
    db.session.commit()
    return created
