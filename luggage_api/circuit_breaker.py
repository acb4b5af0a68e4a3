import logging

from pybreaker import CircuitBreaker
from sqlalchemy.orm import Session

from .config import BREAKER_FAIL_MAX, BREAKER_RESET_TIMEOUT

logger = logging.getLogger(__name__)

# Wraps every unit-of-work commit against the store.
store_circuit_breaker = CircuitBreaker(
    fail_max=BREAKER_FAIL_MAX,
    reset_timeout=BREAKER_RESET_TIMEOUT,
    name="store_breaker",
)


def commit(db: Session) -> None:
    """
    Commit the session's pending changes as one atomic unit of work.

    A failing commit is rolled back and re-raised; after ``BREAKER_FAIL_MAX``
    consecutive failures the breaker opens and further commits fail fast with
    ``pybreaker.CircuitBreakerError`` until ``BREAKER_RESET_TIMEOUT`` elapses.
    """

    @store_circuit_breaker
    def _commit():
        try:
            db.commit()
        except Exception:
            logger.warning("Commit failed, rolling back", exc_info=True)
            db.rollback()
            raise

    _commit()
