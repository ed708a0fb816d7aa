"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .admission import AdmissionStrategy
from .unlimited_admission import UnlimitedAdmission

__all__ = ['AdmissionStrategy', 'UnlimitedAdmission']
