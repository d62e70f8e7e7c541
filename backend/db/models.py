import uuid

from sqlalchemy import (
    Column, Text, Float, Boolean, ForeignKey, Index, Integer,
    Date, DateTime, Computed, UniqueConstraint, func,
)
from sqlalchemy.orm import relationship

from db.database import Base
from utils.datetime_utils import utcnow


def _uuid() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(Text, primary_key=True, default=_uuid)
    email = Column(Text, unique=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    profile = relationship("Profile", back_populates="user", uselist=False, cascade="all, delete-orphan")
    api_keys = relationship("ApiKey", back_populates="user", cascade="all, delete-orphan")
    day_logs = relationship("DayLog", back_populates="user", cascade="all, delete-orphan")
    meals = relationship("Meal", back_populates="user", cascade="all, delete-orphan")
    weight_entries = relationship("WeightEntry", back_populates="user", cascade="all, delete-orphan")


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Text, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    target_calories = Column(Integer)
    suggested_calories = Column(Integer)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="profile")


class ApiKey(Base):
    __tablename__ = "api_keys"

    id = Column(Text, primary_key=True, default=_uuid)
    user_id = Column(Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    hashed_key = Column(Text, nullable=False)  # scrypt$<salt-hex>$<hash-hex>
    created_at = Column(DateTime(timezone=True), default=utcnow)
    last_used_at = Column(DateTime(timezone=True))
    revoked_at = Column(DateTime(timezone=True))  # soft delete; NULL means active

    user = relationship("User", back_populates="api_keys")


class DayLog(Base):
    __tablename__ = "day_logs"
    __table_args__ = (
        UniqueConstraint("user_id", "log_date", name="uq_day_logs_user_date"),
    )

    id = Column(Text, primary_key=True, default=_uuid)
    user_id = Column(Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    log_date = Column(Date, nullable=False)
    target_calories_override = Column(Integer)
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    user = relationship("User", back_populates="day_logs")
    entries = relationship("MealEntry", back_populates="day_log", cascade="all, delete-orphan")


class Meal(Base):
    __tablename__ = "meals"

    id = Column(Text, primary_key=True, default=_uuid)
    user_id = Column(Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    order_index = Column(Integer, nullable=False, default=0)
    archived = Column(Boolean, nullable=False, default=False)
    target_protein_g = Column(Float)
    target_carbs_g = Column(Float)
    target_fat_g = Column(Float)
    target_calories = Column(Integer)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="meals")


class MealEntry(Base):
    __tablename__ = "meal_entries"

    id = Column(Text, primary_key=True, default=_uuid)
    day_log_id = Column(Text, ForeignKey("day_logs.id", ondelete="CASCADE"), nullable=False)
    meal_id = Column(Text, ForeignKey("meals.id", ondelete="SET NULL"))  # NULL = unassigned bucket
    name = Column(Text, nullable=False)
    protein_g = Column(Float, nullable=False, default=0)
    carbs_g = Column(Float, nullable=False, default=0)
    fat_g = Column(Float, nullable=False, default=0)
    calories_override = Column(Float)
    total_calories = Column(
        Float,
        Computed(
            "CASE WHEN calories_override IS NOT NULL THEN calories_override "
            "ELSE protein_g * 4 + carbs_g * 4 + fat_g * 9 END",
            persisted=True,
        ),
    )
    order_index = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    day_log = relationship("DayLog", back_populates="entries")


# Dense order per (day log, meal group); NULL meal_id groups collide too.
Index(
    "uq_meal_entries_group_order",
    MealEntry.day_log_id,
    func.coalesce(MealEntry.meal_id, ""),
    MealEntry.order_index,
    unique=True,
)


class WeightEntry(Base):
    __tablename__ = "weight_entries"
    __table_args__ = (
        Index("idx_weight_entries_user_date", "user_id", "entry_date"),
    )

    id = Column(Text, primary_key=True, default=_uuid)
    user_id = Column(Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    entry_date = Column(Date, nullable=False)
    weight_kg = Column(Float, nullable=False)
    source = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="weight_entries")
