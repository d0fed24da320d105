from sqlalchemy import Column, Integer, String, DateTime
from datetime import datetime
from .db import Base


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(60), nullable=False)
    phone_number = Column(String(13), unique=True, index=True, nullable=False)
    # passlib hash, never the plaintext password
    password = Column(String, nullable=False)
    created_time = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_time = Column(DateTime, nullable=True)
    successful_login_count = Column(Integer, default=0, nullable=False)

    def to_dict(self) -> dict:
        """
        Serialize the public profile fields of a user.

        Returns:
            Dictionary with id, full name and phone number; the password
            hash is never included
        """
        return {
            "id": self.id,
            "full_name": self.full_name,
            "phone_number": self.phone_number,
        }
