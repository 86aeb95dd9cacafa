# retailhub/utils/plan/quota.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional


class Quota:
    """
    Per-resource allowance of a plan: either Unlimited or Bounded(n).

    Persisted as null (unlimited) or a non-negative integer.
    """

    is_unlimited = False

    def spare(self, used: int) -> Optional[int]:
        """Units still available after `used`; None means no ceiling."""
        raise NotImplementedError

    def to_value(self) -> Optional[int]:
        raise NotImplementedError

    def __add__(self, other: "Quota") -> "Quota":
        raise NotImplementedError

    @staticmethod
    def from_value(value: Any) -> "Quota":
        """
        Normalise a stored limit. Anything that is not a finite,
        non-negative number is treated as unlimited.
        """
        if value is None or isinstance(value, bool):
            return UNLIMITED
        if isinstance(value, (int, float)):
            if isinstance(value, float) and not math.isfinite(value):
                return UNLIMITED
            if value < 0:
                return UNLIMITED
            return Bounded(int(value))
        return UNLIMITED


class Unlimited(Quota):
    is_unlimited = True

    def spare(self, used: int) -> Optional[int]:
        return None

    def to_value(self) -> Optional[int]:
        return None

    def __add__(self, other: Quota) -> Quota:
        return self

    def __eq__(self, other):
        return isinstance(other, Unlimited)

    def __hash__(self):
        return hash("unlimited")

    def __repr__(self):
        return "Unlimited"


@dataclass(frozen=True)
class Bounded(Quota):
    limit: int

    def spare(self, used: int) -> Optional[int]:
        return max(0, self.limit - (used or 0))

    def to_value(self) -> Optional[int]:
        return self.limit

    def __add__(self, other: Quota) -> Quota:
        if other.is_unlimited:
            return other
        return Bounded(self.limit + other.limit)


UNLIMITED = Unlimited()
ZERO = Bounded(0)
