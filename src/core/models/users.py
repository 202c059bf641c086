import enum

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text, Enum, Index
from sqlalchemy.sql import func
from core.database import Base


class Role(str, enum.Enum):
    SUPERADMIN = "SUPERADMIN"
    MANAGER = "MANAGER"
    DOCTOR = "DOCTOR"
    USER = "USER"


class Gender(str, enum.Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


# --------------------------
# Accounts
# --------------------------
class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        Index("users_id_index", "id"),
    )

    id = Column(Integer, primary_key=True)
    email = Column(String(250), unique=True, nullable=False)
    username = Column(String(150), unique=True)
    password = Column(String(255), nullable=False)
    is_verified = Column(Boolean, nullable=False, default=False)
    verification_token = Column(String(255))
    role = Column(Enum(Role, name="Role"), nullable=False, default=Role.USER)
    reset_password_token = Column(String(255))

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True))

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None


class Profile(Base):
    __tablename__ = "users_profiles"
    __table_args__ = (
        Index("users_profiles_id_key", "id"),
    )

    id = Column(Integer, primary_key=True)
    first_name = Column(String(50))
    last_name = Column(String(50))
    phone = Column(String(50))
    birthday = Column(DateTime(timezone=True), nullable=False)
    social_id = Column(String(100), nullable=False)
    license = Column(String(255), unique=True)
    specialization = Column(String(150))
    bio = Column(Text, nullable=False)
    gender = Column(Enum(Gender, name="Gender"), nullable=False)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
        unique=True,
    )

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
