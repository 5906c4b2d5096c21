from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from wickedfiles.core.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    full_name = Column(String, nullable=True)
    hashed_password = Column(String, nullable=True)  # null for OAuth-only users
    avatar_url = Column(String, nullable=True)

    # OAuth
    oauth_provider = Column(String, nullable=True)
    oauth_provider_id = Column(String, nullable=True)

    role = Column(String, nullable=False, default="user")  # user, admin
    is_active = Column(Boolean, nullable=False, default=True)
    is_verified = Column(Boolean, nullable=False, default=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    s3_accounts = relationship("S3Account", back_populates="owner", cascade="all, delete", passive_deletes=True)
    shared_files = relationship("SharedFile", back_populates="owner", cascade="all, delete", passive_deletes=True)
    settings = relationship("UserSettings", back_populates="user", uselist=False, cascade="all, delete", passive_deletes=True)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
