from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.sql import func
from core.database import Base


# --------------------------
# Organization Structure
# --------------------------
class Clinic(Base):
    __tablename__ = "clinics"
    __table_args__ = (
        Index("clinics_id_index", "id"),
    )

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False)
    address = Column(String(255))
    manager = Column(String(100))
    email = Column(String(100), unique=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True))


# Junction table between users and clinics
class UserClinic(Base):
    __tablename__ = "users_clinics"
    __table_args__ = (
        UniqueConstraint("user_id", "clinic_id", name="users_clinics_user_id_clinic_id_unique"),
        Index("users_clinics_user_id_index", "user_id"),
        Index("users_clinics_clinic_id_index", "clinic_id"),
    )

    id = Column(Integer, primary_key=True)
    # Users with clinic links cannot be dropped at the database level
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT", onupdate="CASCADE"),
        nullable=False,
    )
    clinic_id = Column(
        Integer,
        ForeignKey("clinics.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
    )
