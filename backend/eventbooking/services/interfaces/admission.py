"""
Admission control strategy interface.
Allows swapping the per-user booking throttle without touching the workflow.
"""

from abc import ABC, abstractmethod


class AdmissionStrategy(ABC):
    """
    Interface for per-identity admission control.

    Implementations:
    - SlidingWindowRateLimiter: N requests per trailing window, per identity
    - UnlimitedAdmission: always admit (load tests, local development)

    Admission is a coarse throttle only. Inventory correctness never
    depends on it; the version-checked seat update does.
    """

    @abstractmethod
    def admit(self, identity: str) -> None:
        """
        Record and allow a request, or refuse it.

        Args:
            identity: Caller identity (user id as string)

        Raises:
            RateLimitExceededError: the identity is over its limit
        """
        pass

    @abstractmethod
    def reset(self) -> None:
        """Drop all in-memory state (process shutdown, tests)."""
        pass
