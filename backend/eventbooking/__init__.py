"""Event booking engine: rate-limited, concurrency-safe ticket reservations."""

__version__ = "1.0.0"
