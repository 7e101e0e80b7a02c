"""
Retry Policies

Uses tenacity to re-run a whole unit of work after a write conflict.

A conflict means another request created or changed the same row between
our read and our write. Re-running the operation from the start sees the
committed row and takes the "already exists" path, so one retry is enough.
"""

import logging

from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt

from vocab_progress.middleware.error_handling import ConflictError

logger = logging.getLogger(__name__)

# One transparent retry on ConflictError, no backoff. Other errors propagate.
conflict_retry = retry(
    stop=stop_after_attempt(2),
    retry=retry_if_exception_type(ConflictError),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
