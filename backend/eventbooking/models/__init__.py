from eventbooking.models.user import User, UserRole
from eventbooking.models.event import Event
from eventbooking.models.booking import Booking, BookingStatus

__all__ = ["User", "UserRole", "Event", "Booking", "BookingStatus"]
