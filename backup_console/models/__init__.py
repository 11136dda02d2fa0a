# Re-export models so external code can keep using: from backup_console.models import BackupRecord, School
from .backup import BackupRecord, School

__all__ = ["BackupRecord", "School"]
