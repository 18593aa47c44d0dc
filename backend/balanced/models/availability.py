from sqlalchemy import Column, Integer, String, Date, Boolean, Enum, JSON, DateTime, UniqueConstraint, func
import enum
from ..database import Base


class SlotTemplate(Base):
    """Recurring weekly slot, e.g. every Monday at 9am."""

    __tablename__ = "slot_templates"

    id = Column(Integer, primary_key=True)
    day_of_week = Column(String(3), nullable=False)   # mon..sun
    time_of_day = Column(String(8), nullable=False)   # "9am", "930am", ...
    value = Column(String(16), nullable=False)        # template key "mon-9am"
    label = Column(String(100), nullable=False)       # shown in the admin console
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (UniqueConstraint("day_of_week", "time_of_day", name="uniq_slot_template"),)


class AvailabilityWindow(Base):
    """Date range (inclusive) during which the weekly templates apply."""

    __tablename__ = "availability_windows"

    id = Column(Integer, primary_key=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    label = Column(String(100), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class OverrideKind(str, enum.Enum):
    BLOCKED = "blocked"                    # whole date unavailable
    BLOCKED_SPECIFIC = "blocked_specific"  # only blocked_times unavailable
    AVAILABLE_ONLY = "available_only"      # stored marker, no filtering effect


class DateOverride(Base):
    __tablename__ = "date_overrides"

    id = Column(Integer, primary_key=True)
    # either a single date or a start/end range; only single dates filter slots
    date = Column(Date, nullable=True, index=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)

    kind = Column(Enum(OverrideKind), nullable=False, default=OverrideKind.BLOCKED)
    blocked_times = Column(JSON, nullable=False, default=list)
    reason = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
