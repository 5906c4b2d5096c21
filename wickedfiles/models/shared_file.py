from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, BigInteger, Text, Boolean, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from wickedfiles.core.database import Base


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps from the database as UTC"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class SharedFile(Base):
    __tablename__ = "shared_files"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("s3_accounts.id", ondelete="CASCADE"), nullable=False, index=True)

    # Shared object
    bucket = Column(String, nullable=False)
    path = Column(String, nullable=False)
    filename = Column(String, nullable=False)
    filesize = Column(BigInteger, nullable=False, default=0)
    content_type = Column(String, nullable=True)

    # Link state
    share_token = Column(String, unique=True, nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    allow_download = Column(Boolean, nullable=False, default=True)
    is_expired = Column(Boolean, nullable=False, default=False)
    is_public = Column(Boolean, nullable=False, default=False)
    password = Column(String, nullable=True)  # bcrypt hash
    access_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    owner = relationship("User", back_populates="shared_files")
    account = relationship("S3Account", back_populates="shared_files")
    access_logs = relationship(
        "FileAccessLog",
        back_populates="shared_file",
        cascade="all, delete",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_shared_files_owner_object", "user_id", "account_id", "bucket", "path"),
    )

    @property
    def object_key(self) -> str:
        return self.path or self.filename

    @property
    def password_protected(self) -> bool:
        return bool(self.password)


class FileAccessLog(Base):
    __tablename__ = "file_access_logs"

    id = Column(Integer, primary_key=True, index=True)
    file_id = Column(Integer, ForeignKey("shared_files.id", ondelete="CASCADE"), nullable=False, index=True)
    accessed_at = Column(DateTime(timezone=True), server_default=func.now())
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    referrer = Column(Text, nullable=True)
    is_download = Column(Boolean, nullable=False, default=False)

    shared_file = relationship("SharedFile", back_populates="access_logs")
