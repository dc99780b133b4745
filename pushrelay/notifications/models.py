from sqlalchemy import Column, String, DateTime, func
from sqlalchemy.dialects.postgresql import UUID
from pushrelay.database import Base


class UserProfile(Base):
    """
    Read/write view of the app's user_profiles table. Only the columns the
    relay needs are mapped; the table itself is owned by the mobile app.
    """
    __tablename__ = "user_profiles"

    id = Column(UUID(as_uuid=True), primary_key=True)
    username = Column(String, nullable=True)
    email = Column(String, nullable=True)
    # Latest Expo or FCM token registered by the user's device
    push_token = Column(String, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
