"""
Consecutive-hit confirmation.

A single matching frame can be a transition animation or a lucky score.
Require N hits in a row before treating a sign as real; any miss starts over.

Usage:
    debounce = Debouncer(confirm_count=3)

    # In watch loop:
    if debounce.check(result.hit):
        # Sign confirmed (counter already reset)
        ...
"""
from __future__ import annotations


class Debouncer:
    """Counts consecutive hits; fires once per unbroken run of confirm_count."""

    DEFAULT_CONFIRM_COUNT = 3

    def __init__(self, confirm_count: int = DEFAULT_CONFIRM_COUNT) -> None:
        if confirm_count < 1:
            raise ValueError(f"confirm_count must be >= 1, got {confirm_count}")
        self.confirm_count = confirm_count
        self.count = 0

    def check(self, hit: bool) -> bool:
        """
        Add one detection result.

        Returns:
            True exactly when this hit completes a run of confirm_count
        """
        if not hit:
            self.count = 0
            return False

        self.count += 1
        if self.count >= self.confirm_count:
            self.count = 0
            return True
        return False

    def reset(self) -> None:
        """Discard progress (used on state transitions)."""
        self.count = 0
