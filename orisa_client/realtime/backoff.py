"""
Exponential reconnect backoff.

The delay starts at the floor, grows by the multiplier after every failed
attempt, is capped at the ceiling, and only returns to the floor once a
connection actually opens.
"""

from collections import deque
from dataclasses import dataclass, field

# Issued delays kept for diagnostics
HISTORY_LENGTH = 64


@dataclass
class ReconnectBackoff:
    """
    Stateful backoff schedule for one channel.

    Formula: delay_n = min(min_delay * multiplier**n, max_delay)
    """

    min_delay: float = 2.0
    max_delay: float = 60.0
    multiplier: float = 2.0
    current: float = field(init=False)
    history: deque[float] = field(default_factory=lambda: deque(maxlen=HISTORY_LENGTH), init=False)

    def __post_init__(self) -> None:
        self.current = self.min_delay

    def next_delay(self) -> float:
        """
        Return the delay to wait before the next attempt and grow the schedule.

        Returns:
            Delay in seconds
        """
        delay = self.current
        self.history.append(delay)
        self.current = min(self.current * self.multiplier, self.max_delay)
        return delay

    def reset(self) -> None:
        """Return to the floor after a successful open."""
        self.current = self.min_delay
