"""
Process-scoped collaborators, built in the app lifespan and kept on app.state.
"""

from fastapi import Request

from eventbooking.services.interfaces.admission import AdmissionStrategy
from eventbooking.services.location_service import LocationResolver


def get_admission(request: Request) -> AdmissionStrategy:
    return request.app.state.admission


def get_location_resolver(request: Request) -> LocationResolver:
    return request.app.state.location_resolver
