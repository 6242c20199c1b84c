from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .exceptions import InvalidGridSizeError
from .rng import RNG

logger = logging.getLogger(__name__)

MIN_GRID_SIZE = 2
MAX_GRID_SIZE = 10


@dataclass(frozen=True)
class Card:
    """A single tile: its position index on the board and the symbol it hides."""

    id: int
    symbol: int


Deck = Tuple[Card, ...]


def is_valid_grid_size(grid_size: object) -> bool:
    if isinstance(grid_size, bool) or not isinstance(grid_size, int):
        return False
    return MIN_GRID_SIZE <= grid_size <= MAX_GRID_SIZE


def symbol_pool_size(grid_size: int) -> int:
    """Number of distinct symbols put into the pair pool for a grid.

    Even boards use symbols ``1..n*n//2``, one per pair. Odd boards widen the
    range by one, to ``1..n*n//2 + 1``, so the doubled pool covers every cell;
    after the shuffle the pool is cut back to ``n*n`` cards, which drops the
    partner of one random symbol.
    """
    total = grid_size * grid_size
    return (total + 1) // 2


def generate_deck(grid_size: int, rng: Optional[RNG] = None) -> Deck:
    """Build a shuffled deck for a ``grid_size`` x ``grid_size`` board.

    Args:
        grid_size: Board edge length, 2..10 inclusive.
        rng: Source of randomness; a fresh unseeded RNG when omitted.

    Returns:
        A tuple of ``grid_size**2`` cards whose ids equal their positions.

    Raises:
        InvalidGridSizeError: If ``grid_size`` is outside the supported range.
    """
    if not is_valid_grid_size(grid_size):
        raise InvalidGridSizeError(
            f"grid_size must be an int in [{MIN_GRID_SIZE}, {MAX_GRID_SIZE}], got {grid_size!r}"
        )
    rng = rng or RNG()
    total = grid_size * grid_size
    symbols = list(range(1, symbol_pool_size(grid_size) + 1))
    pool: List[int] = symbols + symbols
    rng.shuffle(pool)
    # Odd boards: the slice drops one card, leaving its twin without a partner.
    pool = pool[:total]
    deck = tuple(Card(id=index, symbol=symbol) for index, symbol in enumerate(pool))
    logger.debug("Generated deck for %dx%d grid (%d cards)", grid_size, grid_size, len(deck))
    return deck


def unpaired_symbols(deck: Deck) -> List[int]:
    """Symbols that occur only once in ``deck`` (non-empty only for odd boards)."""
    counts: dict[int, int] = {}
    for card in deck:
        counts[card.symbol] = counts.get(card.symbol, 0) + 1
    return sorted(symbol for symbol, count in counts.items() if count == 1)
