from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional, Set, Tuple

from .deck import Card, Deck


class Phase(str, Enum):
    """Position of a session in the flip/match state machine."""

    IDLE = "idle"
    ONE_REVEALED = "one_revealed"
    RESOLVING = "resolving"
    WON = "won"


@dataclass
class GameState:
    """Mutable state of one game session.

    Replaced wholesale on reset or grid-size change; ``session_id`` identifies
    the instance so deferred callbacks can detect that they outlived it.
    """

    session_id: int
    grid_size: int
    deck: Deck
    revealed_ids: List[int] = field(default_factory=list)
    solved_ids: Set[int] = field(default_factory=set)
    input_locked: bool = False
    won: bool = False
    elapsed_seconds: int = 0
    move_count: int = 0
    paused: bool = False

    @property
    def total_cards(self) -> int:
        return len(self.deck)

    @property
    def phase(self) -> Phase:
        if self.won:
            return Phase.WON
        if len(self.revealed_ids) >= 2:
            return Phase.RESOLVING
        if len(self.revealed_ids) == 1:
            return Phase.ONE_REVEALED
        return Phase.IDLE

    def has_card(self, card_id: int) -> bool:
        return 0 <= card_id < len(self.deck)

    def symbol_of(self, card_id: int) -> int:
        return self.deck[card_id].symbol

    def all_solved(self) -> bool:
        return len(self.deck) > 0 and len(self.solved_ids) == len(self.deck)


@dataclass(frozen=True)
class GameSnapshot:
    """Read-only view of the engine for rendering.

    ``best_time`` lives outside the session; it is copied here so a renderer
    only needs one object per frame.
    """

    session_id: int
    grid_size: int
    deck: Tuple[Card, ...]
    revealed_ids: Tuple[int, ...]
    solved_ids: FrozenSet[int]
    input_locked: bool
    won: bool
    elapsed_seconds: int
    move_count: int
    paused: bool
    best_time: Optional[int]
    phase: Phase

    @classmethod
    def capture(cls, state: GameState, best_time: Optional[int]) -> "GameSnapshot":
        return cls(
            session_id=state.session_id,
            grid_size=state.grid_size,
            deck=tuple(state.deck),
            revealed_ids=tuple(state.revealed_ids),
            solved_ids=frozenset(state.solved_ids),
            input_locked=state.input_locked,
            won=state.won,
            elapsed_seconds=state.elapsed_seconds,
            move_count=state.move_count,
            paused=state.paused,
            best_time=best_time,
            phase=state.phase,
        )

    @property
    def total_cards(self) -> int:
        return len(self.deck)

    @property
    def pairs_found(self) -> int:
        return len(self.solved_ids) // 2

    def is_revealed(self, card_id: int) -> bool:
        return card_id in self.revealed_ids

    def is_solved(self, card_id: int) -> bool:
        return card_id in self.solved_ids

    def is_face_up(self, card_id: int) -> bool:
        return self.is_revealed(card_id) or self.is_solved(card_id)

    def symbol_of(self, card_id: int) -> int:
        return self.deck[card_id].symbol
