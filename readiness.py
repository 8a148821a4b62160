"""
Bounded polling for asynchronous UI state changes.

Every wait in the search panel goes through ``wait_until`` so that each
suspension point has an explicit attempt/interval budget and a
deterministic failure outcome.
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 10
DEFAULT_INTERVAL = 0.1


@dataclass(frozen=True)
class WaitPolicy:
    """How many times to poll and how long to sleep between polls."""
    attempts: int = DEFAULT_ATTEMPTS
    interval: float = DEFAULT_INTERVAL

    @property
    def timeout(self) -> float:
        return self.attempts * self.interval

    @classmethod
    def from_config(cls, cfg: Optional[Dict[str, Any]], fallback: "WaitPolicy" = None) -> "WaitPolicy":
        """Build a policy from a ``{"attempts": n, "interval": s}`` config block."""
        base = fallback or cls()
        if not cfg:
            return base
        try:
            attempts = int(cfg.get("attempts", base.attempts))
            interval = float(cfg.get("interval", base.interval))
        except (TypeError, ValueError):
            logger.warning(f"Invalid polling config {cfg!r}, using {base}")
            return base
        return cls(attempts=max(1, attempts), interval=max(0.0, interval))


def wait_until(predicate: Callable[[], Any],
               attempts: int = DEFAULT_ATTEMPTS,
               interval: float = DEFAULT_INTERVAL,
               description: str = "condition") -> bool:
    """
    Calls ``predicate`` until it returns a truthy value or the attempts run out.

    The predicate is called once per attempt; an exception raised by it counts
    as a failed attempt and is logged at debug level.

    Returns:
        True as soon as the predicate succeeds, False after exhausting attempts.
    """
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        try:
            if predicate():
                if attempt > 1:
                    logger.debug(f"wait_until: '{description}' satisfied after {attempt} attempts")
                return True
        except Exception as e:
            logger.debug(f"wait_until: '{description}' attempt {attempt} raised: {e}")
        if attempt < attempts:
            time.sleep(interval)
    logger.error(f"wait_until: '{description}' not satisfied after {attempts} attempts ({attempts * interval:.1f}s)")
    return False


def wait_with_policy(predicate: Callable[[], Any], policy: WaitPolicy, description: str = "condition") -> bool:
    """``wait_until`` driven by a ``WaitPolicy``."""
    return wait_until(predicate, policy.attempts, policy.interval, description)
