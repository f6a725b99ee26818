from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence

from loguru import logger

from .config import MustRollExactFallback, Ruleset
from .errors import IllegalMoveError, InvariantViolation
from .events import Event, EventBus, EventHandler, EventType
from .player import Player
from .rules import (
    begin_move,
    has_piece_in_exact_group,
    is_terminal,
    new_game,
    resolve_move,
)
from .state import GameState
from .sticks import roll_from_value, throw_sticks
from .strategy import choose_move as choose_ai_move
from .types import Difficulty, GamePhase, Move, MoveRecord, MoveResult, RollResult


@dataclass(slots=True)
class Game:
    """Turn controller: throw -> legal moves -> move -> effects -> handoff.

    The only owner allowed to replace its GameState. Every command runs to
    completion and commits the new state before any event is published.
    """

    players: List[Player]
    ruleset: Optional[Ruleset] = None
    seed: Optional[int] = None
    game_id: Optional[str] = None
    clock: Callable[[], float] = time.time
    rng: random.Random = field(init=False)
    state: GameState = field(init=False)
    last_throw: Optional[RollResult] = field(default=None, init=False)
    _bus: EventBus = field(default_factory=EventBus, init=False, repr=False)
    _busy: bool = field(default=False, init=False, repr=False)
    _pending: List[Event] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        self.rng = random.Random(self.seed)
        self.state = new_game(self.players, self.ruleset, game_id=self.game_id)
        self.ruleset = self.state.ruleset
        logger.info(
            f"Game {self.state.id} started: "
            + " vs ".join(self._describe(pl) for pl in self.state.players)
        )

    @classmethod
    def from_state(
        cls,
        state: GameState,
        seed: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ) -> "Game":
        """Resume a controller around a previously saved state."""
        obj = cls(
            players=state.players,
            ruleset=state.ruleset,
            seed=seed,
            game_id=state.id,
            clock=clock,
        )
        obj.state = state.copy()
        obj.state.check_invariants()
        return obj

    @staticmethod
    def _describe(pl: Player) -> str:
        return f"{pl.name} (AI {pl.difficulty.value})" if pl.is_ai else pl.name

    # --- Events ---
    def subscribe(self, event_type: EventType, callback: EventHandler) -> None:
        self._bus.subscribe(event_type, callback)

    def unsubscribe(self, event_type: EventType, callback: EventHandler) -> None:
        self._bus.unsubscribe(event_type, callback)

    def _queue(self, event_type: EventType, **payload) -> None:
        self._pending.append(Event(event_type, self.state.id, payload))

    def _flush(self) -> None:
        pending, self._pending = self._pending, []
        for event in pending:
            self._bus.publish(event)

    def _begin(self) -> None:
        if self._busy:
            raise IllegalMoveError("Another command is still being applied")
        self._busy = True

    def _end(self) -> None:
        self._busy = False
        self._flush()

    # --- Queries ---
    def get_state(self) -> GameState:
        """Read-only snapshot; mutating it does not affect the game."""
        return self.state.copy()

    def get_legal_moves(self) -> List[Move]:
        if self.state.phase is not GamePhase.MOVING:
            return []
        return list(self.state.available_moves)

    def get_winner(self) -> Optional[int]:
        return self.state.winner

    @property
    def phase(self) -> GamePhase:
        return self.state.phase

    @property
    def current_player(self) -> Player:
        return self.state.acting_player

    # --- Commands ---
    def throw(self) -> RollResult:
        """Throw the sticks for the acting player.

        With no legal move the turn is passed at once and the phase is
        back to THROWING when this returns.
        """
        self._begin()
        try:
            self._require_phase(GamePhase.THROWING, "throw")
            roll = throw_sticks(self.rng, self.ruleset)
            self._open_roll(roll)
        finally:
            self._end()
        return roll

    def choose_move(self, move: Move) -> MoveRecord:
        self._begin()
        try:
            self._require_phase(GamePhase.MOVING, "move")
            result = resolve_move(self.state, move, now=self.clock())
            self._commit_move(result)
        finally:
            self._end()
        return result.record

    def auto_move(self, difficulty: Difficulty | str | None = None) -> MoveRecord:
        """Let the AI move for the acting player.

        Without an explicit difficulty the player's own is used; human
        players (timer fallback) get the easy policy.
        """
        self._require_phase(GamePhase.MOVING, "move")
        if difficulty is None:
            difficulty = self.state.acting_player.difficulty or Difficulty.EASY
        move = choose_ai_move(
            self.state.copy(), self.get_legal_moves(), difficulty, self.rng
        )
        return self.choose_move(move)

    def pass_turn(self) -> None:
        """Hand the turn to the opponent without moving (host timeout)."""
        self._begin()
        try:
            if self.state.phase is GamePhase.FINISHED:
                raise IllegalMoveError("Cannot pass: the game is finished")
            logger.debug(f"Player {self.state.current_player} passed (timeout)")
            self._queue(
                EventType.TURN_PASSED,
                player=self.state.current_player,
                reason="timeout",
            )
            self._handoff(self.state.acting_player.opponent_id, extra_turn=False)
        finally:
            self._end()

    def play_ai_turn(self, difficulty: Difficulty | str | None = None) -> List[MoveRecord]:
        """Throw and move for the acting player until the turn changes hands."""
        player = self.state.current_player
        records: List[MoveRecord] = []
        while self.state.phase is not GamePhase.FINISHED:
            if self.state.phase is GamePhase.THROWING:
                if self.state.current_player != player:
                    break
                self.throw()
                continue
            records.append(self.auto_move(difficulty))
        return records

    # --- Transitions ---
    def _require_phase(self, phase: GamePhase, action: str) -> None:
        if self.state.phase is GamePhase.FINISHED:
            raise IllegalMoveError(f"Cannot {action}: the game is finished")
        if self.state.phase is not phase:
            raise IllegalMoveError(
                f"Cannot {action} during the '{self.state.phase.value}' phase"
            )

    def _open_roll(self, roll: RollResult) -> None:
        self.last_throw = roll
        self.state = begin_move(self.state, roll)
        logger.debug(
            f"Player {self.state.current_player} threw {roll.value}"
            + (" (extra turn)" if roll.extra_turn else "")
            + f", {len(self.state.available_moves)} legal moves"
        )
        self._queue(
            EventType.STICKS_THROWN,
            player=self.state.current_player,
            sticks=list(roll.sticks),
            value=roll.value,
            extra_turn=roll.extra_turn,
            legal_moves=list(self.state.available_moves),
        )
        if not self.state.available_moves:
            self._forced_pass(roll)

    def _forced_pass(self, roll: RollResult) -> None:
        player = self.state.acting_player
        keep_turn = (
            roll.extra_turn
            and has_piece_in_exact_group(self.state, player.id)
            and self.ruleset.must_roll_exact_fallback is MustRollExactFallback.SKIP
        )
        logger.debug(
            f"Player {player.id} has no legal move for {roll.value}; "
            + ("throws again" if keep_turn else "turn passes")
        )
        self._queue(
            EventType.TURN_PASSED,
            player=player.id,
            reason="no_legal_moves",
            roll=roll.value,
        )
        self._handoff(player.id if keep_turn else player.opponent_id, extra_turn=keep_turn)

    def _commit_move(self, result: MoveResult) -> None:
        self.state = result.state
        self._queue(EventType.MOVE_APPLIED, move=result.record)
        for square in result.events.special_squares:
            self._queue(
                EventType.SPECIAL_SQUARE_TRIGGERED,
                piece_id=result.record.piece_id,
                square=square,
                restarted_to=result.events.restarted_to,
            )

        winner = is_terminal(self.state)
        if winner is not None:
            self._finish(winner)
            return

        extra = self.state.roll_extra_turn or result.events.extra_turn_square
        mover = self.state.acting_player
        self._handoff(mover.id if extra else mover.opponent_id, extra_turn=extra)

    def _handoff(self, next_player: int, extra_turn: bool) -> None:
        state = self.state.copy()
        state.current_player = next_player
        state.phase = GamePhase.THROWING
        state.available_moves = []
        state.roll_extra_turn = False
        state.touch()
        self.state = state
        self._queue(EventType.TURN_CHANGED, player=next_player, extra_turn=extra_turn)

    def _finish(self, winner: int) -> None:
        state = self.state.copy()
        state.winner = winner
        state.phase = GamePhase.FINISHED
        state.available_moves = []
        state.touch()
        state.check_invariants()
        self.state = state
        logger.info(
            f"Game {state.id} finished: {state.player(winner).name} wins "
            f"after {len(state.move_history)} moves"
        )
        self._queue(
            EventType.GAME_FINISHED, winner=winner, moves=len(state.move_history)
        )

    # --- Replay ---
    @classmethod
    def replay(
        cls,
        players: Sequence[Player],
        ruleset: Ruleset,
        history: Iterable[MoveRecord],
        game_id: Optional[str] = None,
    ) -> "Game":
        """Rebuild a game by re-applying a recorded move history.

        Turn order is taken from the records themselves, so forced passes
        need not be recorded.
        """
        game = cls(players=list(players), ruleset=ruleset, game_id=game_id)
        for record in history:
            game._replay_record(record)
        return game

    def _replay_record(self, record: MoveRecord) -> None:
        if self.state.phase is GamePhase.FINISHED:
            raise InvariantViolation(
                f"History continues after the game finished ({record.piece_id})"
            )
        owner = self.state.piece(record.piece_id).player
        if self.state.current_player != owner or self.state.phase is not GamePhase.THROWING:
            state = self.state.copy()
            state.current_player = owner
            state.phase = GamePhase.THROWING
            state.available_moves = []
            self.state = state
        self._begin()
        try:
            roll = roll_from_value(record.roll, self.ruleset)
            self.last_throw = roll
            self.state = begin_move(self.state, roll)
            move = Move(
                player=owner,
                piece_id=record.piece_id,
                from_position=record.from_position,
                to_position=record.to_position,
                roll=record.roll,
            )
            result = resolve_move(self.state, move, now=record.timestamp)
            self._commit_move(result)
        finally:
            self._end()
