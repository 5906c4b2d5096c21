from sqlalchemy import Column, Integer, String, ForeignKey, Boolean, JSON
from sqlalchemy.orm import relationship

from wickedfiles.core.database import Base


class UserSettings(Base):
    __tablename__ = "user_settings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    theme = Column(String, nullable=False, default="light")
    accent_color = Column(String, nullable=False, default="#8BD3D6")
    view_mode = Column(String, nullable=False, default="grid")  # grid, list
    default_account_id = Column(Integer, ForeignKey("s3_accounts.id", ondelete="SET NULL"), nullable=True)
    notifications = Column(Boolean, nullable=False, default=True)
    last_accessed = Column(JSON, nullable=False, default=list)

    user = relationship("User", back_populates="settings")
