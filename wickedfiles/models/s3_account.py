from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from wickedfiles.core.database import Base


class S3Account(Base):
    __tablename__ = "s3_accounts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)

    # Credentials
    access_key_id = Column(String, nullable=False)
    secret_access_key = Column(String, nullable=False)
    region = Column(String, nullable=False)
    default_bucket = Column(String, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    owner = relationship("User", back_populates="s3_accounts")
    shared_files = relationship("SharedFile", back_populates="account", cascade="all, delete", passive_deletes=True)
