"""
Admission strategy factory.
Builds the process-scoped rate limiter from settings.
"""

from eventbooking.core.config import Settings, get_settings
from eventbooking.services.interfaces.admission import AdmissionStrategy
from eventbooking.services.interfaces.unlimited_admission import UnlimitedAdmission
from eventbooking.services.rate_limiter import SlidingWindowRateLimiter


def build_admission_strategy(settings: Settings | None = None) -> AdmissionStrategy:
    """
    Get configured admission strategy.

    RATE_LIMIT_ENABLED=false disables throttling entirely (load tests);
    otherwise a sliding window of RATE_LIMIT_MAX_REQUESTS per
    RATE_LIMIT_WINDOW_SECONDS per user.
    """
    settings = settings or get_settings()

    if not settings.RATE_LIMIT_ENABLED:
        return UnlimitedAdmission()
    return SlidingWindowRateLimiter(
        max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        purge_every=settings.RATE_LIMIT_PURGE_EVERY,
    )
