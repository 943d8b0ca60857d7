from __future__ import annotations

from neo4j.exceptions import ServiceUnavailable, SessionExpired, TransientError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

TransientGraphError = (ServiceUnavailable, SessionExpired, TransientError)


def transient_retry(attempts: int = 3):
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts),
        wait=wait_exponential_jitter(initial=0.2, max=5.0),
        retry=retry_if_exception_type(TransientGraphError),
    )
