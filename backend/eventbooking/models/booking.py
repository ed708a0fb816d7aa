"""
Booking model representing a user's reservation for an event.

Key design decisions:
- Append-only on creation; the only later mutation is CONFIRMED -> CANCELLED
  by the event retirement cascade (plus the post-commit resolved_place fill)
- `unit_price` snapshots the event price at booking time, so totals do not
  drift when an organizer edits the price afterwards
- Provenance (client address, coordinates, resolved place) is kept for audit
- A user may hold several bookings for the same event
"""

import enum

from sqlalchemy import Column, Integer, String, Float, Numeric, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship

from eventbooking.db.base import Base, TimestampMixin


class BookingStatus(str, enum.Enum):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    ticket_count = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)

    # Provenance snapshot
    client_address = Column(String(45), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    resolved_place = Column(String(255), nullable=True)

    event = relationship("Event", lazy="joined")

    __table_args__ = (
        CheckConstraint("ticket_count > 0", name="check_booking_ticket_count_positive"),
        CheckConstraint("status IN ('CONFIRMED', 'CANCELLED')", name="check_booking_status"),
        # Cascade query: confirmed bookings of one event
        Index("ix_bookings_event_status", "event_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, user={self.user_id}, event={self.event_id}, status={self.status})>"
