from backup_console.extensions import db


class School(db.Model):
    __tablename__ = "schools"

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    def to_document(self) -> dict:
        return {"id": self.id, "name": self.name}

    def __repr__(self):
        return f"<School id={self.id} name={self.name}>"


class BackupRecord(db.Model):
    __tablename__ = "backups"

    id = db.Column(db.String(64), primary_key=True)
    school_id = db.Column(db.String(64), db.ForeignKey("schools.id"), nullable=True)
    term = db.Column(db.String(16), nullable=True)
    academic_year = db.Column(db.String(16), nullable=True)
    timestamp = db.Column(db.BigInteger, nullable=True)  # epoch milliseconds
    data = db.Column(db.JSON, nullable=True)

    __table_args__ = (
        db.Index("ix_backups_school_term", "school_id", "term"),
        db.Index("ix_backups_timestamp", "timestamp"),
    )

    def to_document(self) -> dict:
        """Return the stored envelope in its document (camelCase) shape."""
        return {
            "id": self.id,
            "schoolId": self.school_id,
            "term": self.term,
            "academicYear": self.academic_year,
            "timestamp": self.timestamp,
            "data": self.data,
        }

    def __repr__(self):
        return f"<BackupRecord id={self.id} school_id={self.school_id} term={self.term} year={self.academic_year}>"
