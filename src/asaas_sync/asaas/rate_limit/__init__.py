"""Rate limit tracking for the Asaas API.

The governor is shared by every client in a run and waits out the reset
window before the remote budget is exhausted.
"""

from .governor import RateLimitGovernor
from .schemas import RateLimitState, RateLimitStatus

__all__ = [
    "RateLimitGovernor",
    "RateLimitState",
    "RateLimitStatus",
]
