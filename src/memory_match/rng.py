from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import MutableSequence, Optional


@dataclass
class RNG:
    """Seedable source of deck shuffles, kept apart from Python's global RNG."""

    seed: Optional[int] = None
    _random: random.Random = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._random = random.Random(self.seed)

    def shuffle(self, cards: MutableSequence) -> None:
        """Shuffle in place; every permutation of ``cards`` is reachable."""
        self._random.shuffle(cards)
