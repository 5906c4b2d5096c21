from wickedfiles.models.user import User
from wickedfiles.models.s3_account import S3Account
from wickedfiles.models.shared_file import SharedFile, FileAccessLog
from wickedfiles.models.settings import UserSettings

__all__ = ["User", "S3Account", "SharedFile", "FileAccessLog", "UserSettings"]
