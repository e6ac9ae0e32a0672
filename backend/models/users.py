# backend/models/users.py
import enum
from sqlalchemy import Column, Integer, String, DateTime, func
from database import Base


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"


# Staff account; logs in by name
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(64), unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String(16), nullable=False, default=UserRole.USER.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
