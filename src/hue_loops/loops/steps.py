"""Evenly spaced angles around one full rotation."""

import math
from typing import Iterator


class Steps:
    """
    Lazy, finite sequence of ``num`` angles (radians) covering [0, 2*pi).

    The i-th angle is ``i * 2 * pi / num``. Each ``iter()`` starts again at 0,
    so one instance can drive any number of cycles. ``num <= 0`` is empty.

    Example:
        >>> [round(math.degrees(a)) for a in Steps(4)]
        [0, 90, 180, 270]
    """

    def __init__(self, num: int):
        self.num = num

    def __iter__(self) -> Iterator[float]:
        for index in range(max(self.num, 0)):
            yield index * 2 * math.pi / self.num

    def __len__(self) -> int:
        return max(self.num, 0)

    def __repr__(self) -> str:
        return f"Steps({self.num})"
