"""
Resilience components for the likes archiver.
"""

from .concurrency_limiter import ConcurrencyLimiter
from .error_classifier import classify
from .error_ledger import ErrorLedger
from .progress_tracker import ProgressTracker
from .retry_handler import RetryHandler, RetryState

__all__ = [
    'ConcurrencyLimiter',
    'classify',
    'ErrorLedger',
    'ProgressTracker',
    'RetryHandler',
    'RetryState'
]
