"""
Event model with seat inventory tracking.

Key design decisions:
- `available_seats` is denormalized (avoids COUNT over bookings) and is only
  ever changed through a version-checked UPDATE in the inventory service
- `version` is the optimistic-lock token; every seat or lifecycle change bumps it
- `is_active` is a soft-delete flag; events referenced by bookings are never deleted
- CHECK constraints keep 0 <= available_seats <= capacity even if code is wrong
"""

from sqlalchemy import Column, Integer, String, DateTime, Numeric, Boolean, Index, CheckConstraint

from eventbooking.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(String(1000), nullable=True)
    date = Column(DateTime(timezone=True), nullable=False)
    location = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    capacity = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("available_seats >= 0", name="check_available_seats_non_negative"),
        CheckConstraint("capacity > 0", name="check_capacity_positive"),
        CheckConstraint("available_seats <= capacity", name="check_available_lte_capacity"),
        CheckConstraint("price >= 0", name="check_price_non_negative"),
        Index("ix_events_date", "date"),
        Index("ix_events_category", "category"),
        Index("ix_events_location", "location"),
        # Listing query: active upcoming events ordered by date
        Index("ix_events_active_date", "is_active", "date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Event(id={self.id}, title={self.title}, "
            f"available={self.available_seats}/{self.capacity}, v{self.version})>"
        )
