from drive.services.accounts import authenticate, make_user, seed_users
from drive.services.auditor import ConsistencyAuditor
from drive.services.backups import BackupManager
from drive.services.files import FileService

__all__ = [
    "BackupManager",
    "ConsistencyAuditor",
    "FileService",
    "authenticate",
    "make_user",
    "seed_users",
]
