from __future__ import annotations

import itertools
import logging
import threading
from functools import partial
from typing import Callable, List, Optional

from .deck import generate_deck, is_valid_grid_size, unpaired_symbols
from .events import GameEvent
from .exceptions import EngineClosedError
from .highscore import BestTimeStore, MemoryBestTimeStore
from .rng import RNG
from .scheduler import ScheduledTask, Scheduler, ThreadingScheduler
from .settings import GameSettings
from .state import GameSnapshot, GameState, Phase

logger = logging.getLogger(__name__)

Listener = Callable[[GameEvent, GameSnapshot], None]


class GameEngine:
    """Owns the memory game's state and reacts to player commands.

    The engine is UI agnostic: a presentation layer calls the command methods
    (``select_card``, ``set_grid_size``, ``reset``, ``toggle_pause``,
    ``reset_high_score``), reads :meth:`snapshot` to render, and may subscribe
    with :meth:`add_listener` to be told when something changed.

    Invalid commands are ignored rather than raised: every command returns
    ``True`` if it changed state and ``False`` if it was ignored.

    Two kinds of deferred work exist, both obtained from the injected
    :class:`Scheduler`: a periodic clock tick and the delayed hiding of a
    mismatched pair. Both are bound to the session that created them and are
    cancelled whenever the session is replaced, so they never touch a newer
    session's state.
    """

    def __init__(
        self,
        settings: Optional[GameSettings] = None,
        *,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[RNG] = None,
        best_time_store: Optional[BestTimeStore] = None,
    ) -> None:
        self.settings = settings or GameSettings()
        self._owns_scheduler = scheduler is None
        self._scheduler = scheduler or ThreadingScheduler()
        self._rng = rng or RNG(self.settings.seed)
        self._store = best_time_store or MemoryBestTimeStore()
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []
        self._session_ids = itertools.count(1)
        self._ticker: Optional[ScheduledTask] = None
        self._tick_token: Optional[object] = None
        self._pending_resolution: Optional[ScheduledTask] = None
        self._resolution_token: Optional[object] = None
        self._running = False
        self._closed = False
        self._grid_size = self.settings.grid_size
        self._best_time: Optional[int] = self._store.load()
        self._state = self._build_state(self._grid_size)

    # ------------------------ Lifecycle ------------------------
    @property
    def running(self) -> bool:
        return self._running

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Start accepting commands and run the clock for the current session.

        Safe to call multiple times; subsequent calls are no-ops.

        Raises:
            EngineClosedError: If the engine was already closed.
        """
        with self._lock:
            if self._closed:
                raise EngineClosedError("GameEngine has been closed and cannot be restarted")
            if self._running:
                logger.debug("GameEngine.start() called while already running")
                return
            self._running = True
            logger.info("GameEngine started (grid=%d, best_time=%s)", self._grid_size, self._best_time)
            self._start_clock()
            self._emit(GameEvent.SESSION_STARTED)

    def close(self) -> None:
        """Tear down: cancel the clock and any pending mismatch, ignore further commands."""
        with self._lock:
            if self._closed:
                return
            self._cancel_deferred()
            if self._owns_scheduler:
                self._scheduler.cancel_all()
            self._running = False
            self._closed = True
            logger.info("GameEngine closed (session=%d)", self._state.session_id)

    def __enter__(self) -> "GameEngine":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------ Observers ------------------------
    def add_listener(self, listener: Listener) -> None:
        """Subscribe to game events; the callback receives the event and a fresh snapshot."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: GameEvent) -> None:
        if not self._listeners:
            return
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(event, snap)
            except Exception as ex:
                logger.exception("Listener errored on %s: %s", event, ex)

    # ------------------------ Queries ------------------------
    @property
    def grid_size(self) -> int:
        return self._grid_size

    @property
    def best_time(self) -> Optional[int]:
        return self._best_time

    @property
    def phase(self) -> Phase:
        return self._state.phase

    def snapshot(self) -> GameSnapshot:
        with self._lock:
            return GameSnapshot.capture(self._state, self._best_time)

    def is_revealed(self, card_id: int) -> bool:
        return card_id in self._state.revealed_ids

    def is_solved(self, card_id: int) -> bool:
        return card_id in self._state.solved_ids

    def is_face_up(self, card_id: int) -> bool:
        return self.is_revealed(card_id) or self.is_solved(card_id)

    # ------------------------ Commands ------------------------
    def select_card(self, card_id: int) -> bool:
        """Turn a card face-up.

        The first selection of a turn reveals one card. The second either
        clears the selection (same card again, no move counted) or completes a
        move: a matching pair is solved at once, a mismatched pair stays
        visible and locks input until the mismatch delay elapses.
        """
        with self._lock:
            if not self._accepting("select_card"):
                return False
            state = self._state
            if isinstance(card_id, bool) or not isinstance(card_id, int) or not state.has_card(card_id):
                logger.debug("Ignoring selection of unknown card %r", card_id)
                return False
            if state.won:
                logger.debug("Ignoring selection of card %d: game already won", card_id)
                return False
            if state.input_locked:
                logger.debug("Ignoring selection of card %d: input locked", card_id)
                return False
            if card_id in state.solved_ids:
                logger.debug("Ignoring selection of card %d: already solved", card_id)
                return False

            if not state.revealed_ids:
                state.revealed_ids.append(card_id)
                logger.debug("Revealed card %d (symbol %d)", card_id, state.symbol_of(card_id))
                self._emit(GameEvent.CARD_REVEALED)
                return True

            first_id = state.revealed_ids[0]
            if card_id == first_id:
                state.revealed_ids.clear()
                logger.debug("Card %d selected twice; selection cleared", card_id)
                self._emit(GameEvent.SELECTION_CLEARED)
                return True

            state.revealed_ids.append(card_id)
            state.input_locked = True
            state.move_count += 1
            if state.symbol_of(first_id) == state.symbol_of(card_id):
                self._resolve_match(first_id, card_id)
            else:
                logger.debug("Mismatch: cards %d and %d (move %d)", first_id, card_id, state.move_count)
                self._emit(GameEvent.PAIR_MISMATCHED)
                token = object()
                self._resolution_token = token
                self._pending_resolution = self._scheduler.call_later(
                    self.settings.mismatch_delay,
                    partial(self._resolve_mismatch, state.session_id, token),
                )
            return True

    def set_grid_size(self, grid_size: int) -> bool:
        """Switch to a new board size and start a fresh session.

        Sizes outside 2..10, and the size already in play, are ignored.
        """
        with self._lock:
            if not self._accepting("set_grid_size"):
                return False
            if not is_valid_grid_size(grid_size):
                logger.debug("Ignoring out-of-range grid size %r", grid_size)
                return False
            if grid_size == self._grid_size:
                logger.debug("Grid size already %d; nothing to rebuild", grid_size)
                return False
            self._grid_size = grid_size
            self._replace_session()
            return True

    def reset(self) -> bool:
        """Start a fresh session on the current grid size (also "play again")."""
        with self._lock:
            if not self._accepting("reset"):
                return False
            self._replace_session()
            return True

    def toggle_pause(self) -> bool:
        with self._lock:
            if not self._accepting("toggle_pause"):
                return False
            state = self._state
            state.paused = not state.paused
            if state.paused:
                self._stop_clock()
                logger.debug("Paused at %ss", state.elapsed_seconds)
                self._emit(GameEvent.PAUSED)
            else:
                self._start_clock()
                logger.debug("Resumed at %ss", state.elapsed_seconds)
                self._emit(GameEvent.RESUMED)
            return True

    def reset_high_score(self) -> bool:
        """Forget the best time. Session state is left untouched."""
        with self._lock:
            if self._closed:
                logger.debug("Ignoring reset_high_score: engine closed")
                return False
            previous = self._best_time
            self._best_time = None
            self._store.save(None)
            logger.info("Best time cleared (was %s)", previous)
            if previous is not None:
                self._emit(GameEvent.BEST_TIME_CHANGED)
            return True

    # ------------------------ Internals ------------------------
    def _accepting(self, command: str) -> bool:
        if self._closed:
            logger.debug("Ignoring %s: engine closed", command)
            return False
        if not self._running:
            logger.debug("Ignoring %s: engine not started", command)
            return False
        return True

    def _build_state(self, grid_size: int) -> GameState:
        deck = generate_deck(grid_size, self._rng)
        state = GameState(session_id=next(self._session_ids), grid_size=grid_size, deck=deck)
        orphans = unpaired_symbols(deck)
        if orphans:
            logger.info("Odd %dx%d board: symbol %s has no partner", grid_size, grid_size, orphans)
        logger.info("Session %d created: %dx%d grid, %d cards", state.session_id, grid_size, grid_size, len(deck))
        return state

    def _replace_session(self) -> None:
        self._cancel_deferred()
        self._state = self._build_state(self._grid_size)
        self._start_clock()
        self._emit(GameEvent.SESSION_STARTED)

    def _cancel_deferred(self) -> None:
        if self._pending_resolution is not None:
            self._pending_resolution.cancel()
            self._pending_resolution = None
        self._resolution_token = None
        self._stop_clock()

    def _start_clock(self) -> None:
        state = self._state
        if self._ticker is not None or not self._running or state.won or state.paused:
            return
        token = object()
        self._tick_token = token
        self._ticker = self._scheduler.call_every(
            self.settings.tick_interval, partial(self._tick, state.session_id, token)
        )

    def _stop_clock(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None
        self._tick_token = None

    def _tick(self, session_id: int, token: object) -> None:
        with self._lock:
            state = self._state
            # A timer thread may have fired just before the task was cancelled.
            if not self._running or token is not self._tick_token or state.session_id != session_id:
                logger.debug("Discarding stale tick from session %d", session_id)
                return
            if state.won or state.paused:
                return
            state.elapsed_seconds += 1
            self._emit(GameEvent.TICK)

    def _resolve_match(self, first_id: int, second_id: int) -> None:
        state = self._state
        state.solved_ids.update((first_id, second_id))
        state.revealed_ids.clear()
        state.input_locked = False
        logger.debug(
            "Matched cards %d and %d (symbol %d, move %d)",
            first_id, second_id, state.symbol_of(first_id), state.move_count,
        )
        self._emit(GameEvent.PAIR_MATCHED)
        self._check_win()

    def _resolve_mismatch(self, session_id: int, token: object) -> None:
        with self._lock:
            state = self._state
            if not self._running or token is not self._resolution_token or state.session_id != session_id:
                logger.debug("Discarding stale mismatch resolution from session %d", session_id)
                return
            self._pending_resolution = None
            self._resolution_token = None
            state.revealed_ids.clear()
            state.input_locked = False
            self._emit(GameEvent.MISMATCH_RESOLVED)

    def _check_win(self) -> None:
        state = self._state
        if state.won or not state.all_solved():
            return
        state.won = True
        self._stop_clock()
        logger.info("Session %d won in %ss with %d moves", state.session_id, state.elapsed_seconds, state.move_count)
        improved = self._best_time is None or state.elapsed_seconds < self._best_time
        if improved:
            self._best_time = state.elapsed_seconds
            self._store.save(self._best_time)
            logger.info("New best time: %ss", self._best_time)
        self._emit(GameEvent.WON)
        if improved:
            self._emit(GameEvent.BEST_TIME_CHANGED)
