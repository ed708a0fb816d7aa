"""
Unlimited admission strategy - no throttling.
"""

from eventbooking.services.interfaces.admission import AdmissionStrategy


class UnlimitedAdmission(AdmissionStrategy):
    """
    No rate limiting - always admit.

    Use when:
    - Running load tests that hammer one account
    - Local development
    """

    def admit(self, identity: str) -> None:
        """Always admit."""
        return None

    def reset(self) -> None:
        """No-op - no state to drop."""
        pass
