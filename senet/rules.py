from __future__ import annotations

import copy
import time
from typing import Iterable, List, Optional, Sequence

from loguru import logger

from .board import Board
from .config import (
    BLOCKADE_PASS_LENGTH,
    BLOCKADE_PROTECT_LENGTH,
    ENTRY_SQUARE,
    OFF_BOARD,
    PLAYER_IDS,
    BlockadeRule,
    CaptureOnSafeSquare,
    Ruleset,
    StartLayout,
)
from .errors import IllegalMoveError, InvalidConfigError, InvariantViolation
from .player import Player
from .state import GameState
from .types import (
    GamePhase,
    Move,
    MoveEvents,
    MoveRecord,
    MoveResult,
    RollResult,
    SquareEffect,
)


# --- Setup ---
def new_game(
    players: Sequence[Player],
    ruleset: Ruleset | None = None,
    game_id: str | None = None,
) -> GameState:
    """Create a game ready for the first throw.

    The given Player objects are copied; pieces are created per ruleset.
    Without a ruleset one is built from the defaults and `SENET_*`
    overrides; a bad override raises InvalidConfigError.
    """
    ruleset = copy.deepcopy(ruleset or Ruleset()).validate()
    if sorted(pl.id for pl in players) != list(PLAYER_IDS):
        raise InvalidConfigError(
            f"A game needs exactly the players {PLAYER_IDS}, got {[pl.id for pl in players]}"
        )
    seats = sorted((copy.deepcopy(pl) for pl in players), key=lambda pl: pl.id)
    board = Board(ruleset=ruleset)
    for pl in seats:
        pl.create_pieces(ruleset.pieces_per_player)

    if ruleset.start_layout is StartLayout.ALTERNATING:
        # p1_0, p2_0, p1_1, p2_1, ... on the first squares
        for i in range(ruleset.pieces_per_player):
            for offset, pl in enumerate(seats):
                board.place(pl.pieces[i], 2 * i + offset)

    kwargs = {} if game_id is None else {"id": game_id}
    state = GameState(board=board, players=seats, ruleset=ruleset, **kwargs)
    state.check_invariants()
    # setup -> throwing once players and board exist
    state.phase = GamePhase.THROWING
    logger.debug(
        f"New game {state.id}: {seats[0].name} vs {seats[1].name} "
        f"({ruleset.start_layout.value} layout, {ruleset.pieces_per_player} pieces)"
    )
    return state


# --- Rules: destinations and legality ---
def destination_for_roll(origin: int, roll: int) -> int:
    if origin == OFF_BOARD:
        return ENTRY_SQUARE + roll - 1
    return origin + roll


def _path_between(origin: int, dest: int) -> Iterable[int]:
    """Board squares strictly between origin and destination."""
    return range(max(origin + 1, ENTRY_SQUARE), dest)


def _blockade_enabled(ruleset: Ruleset) -> bool:
    return ruleset.blockade_rule is BlockadeRule.ENABLED


def is_passage_blocked(board: Board, origin: int, dest: int, mover: int) -> bool:
    """True if an impassable opponent run lies strictly between origin and dest."""
    if not _blockade_enabled(board.ruleset):
        return False
    for square in _path_between(origin, dest):
        occupant = board.piece_at(square)
        if occupant is None or occupant.player == mover:
            continue
        if board.run_length_at(square, occupant.player) >= BLOCKADE_PASS_LENGTH:
            return True
    return False


def is_protected(board: Board, position: int) -> bool:
    """True if the piece on `position` cannot be captured."""
    occupant = board.piece_at(position)
    if occupant is None:
        return False
    ruleset = board.ruleset
    if (
        board.is_safe(position)
        and ruleset.capture_on_safe_square is CaptureOnSafeSquare.DISALLOWED
    ):
        return True
    if (
        _blockade_enabled(ruleset)
        and board.run_length_at(position, occupant.player) >= BLOCKADE_PROTECT_LENGTH
    ):
        return True
    return False


def legal_moves(state: GameState, roll: int) -> List[Move]:
    """Legal moves of the acting player for `roll`.

    Waiting pieces are interchangeable, so only the first one is offered
    for entry. An empty list is a forced pass, not an error.
    """
    if state.phase is GamePhase.FINISHED or roll <= 0:
        return []
    ruleset = state.ruleset
    board = state.board
    mover = state.current_player
    exit_square = ruleset.exit_threshold
    exact_group = ruleset.exact_group

    moves: List[Move] = []
    entry_offered = False
    for pc in state.player(mover).pieces:
        if pc.retired:
            continue
        origin = pc.position
        if origin == OFF_BOARD:
            if entry_offered:
                continue
            entry_offered = True
        dest = destination_for_roll(origin, roll)
        if dest > exit_square:
            continue
        if origin in exact_group and dest != exit_square:
            continue
        if is_passage_blocked(board, origin, dest, mover):
            continue
        if dest == exit_square:
            moves.append(
                Move(
                    player=mover,
                    piece_id=pc.piece_id,
                    from_position=origin,
                    to_position=dest,
                    roll=roll,
                    retires=True,
                )
            )
            continue
        target = board.piece_at(dest)
        captures: Optional[str] = None
        if target is not None:
            if target.player == mover or is_protected(board, dest):
                continue
            captures = target.piece_id
        moves.append(
            Move(
                player=mover,
                piece_id=pc.piece_id,
                from_position=origin,
                to_position=dest,
                roll=roll,
                captures=captures,
            )
        )
    return moves


def has_piece_in_exact_group(state: GameState, player_id: int) -> bool:
    group = state.ruleset.exact_group
    return any(
        not pc.retired and pc.position in group
        for pc in state.player(player_id).pieces
    )


def begin_move(state: GameState, roll: RollResult) -> GameState:
    """Record a throw and open the moving phase with its legal moves."""
    if state.phase is not GamePhase.THROWING:
        raise IllegalMoveError(
            f"Cannot throw during the '{state.phase.value}' phase"
        )
    new_state = state.copy()
    new_state.last_roll = roll.value
    new_state.roll_extra_turn = roll.extra_turn
    new_state.available_moves = legal_moves(new_state, roll.value)
    new_state.phase = GamePhase.MOVING
    new_state.touch()
    return new_state


# --- Applying a move ---
def resolve_move(
    state: GameState, move: Move, now: float | None = None
) -> MoveResult:
    """Apply `move` to a copy of `state` and report what happened."""
    if state.phase is GamePhase.FINISHED:
        raise InvariantViolation("A move was applied to a finished game")
    if state.phase is not GamePhase.MOVING:
        raise IllegalMoveError("No throw is pending; throw the sticks first")

    legal = legal_moves(state, state.last_roll)
    canonical = next((m for m in legal if m.matches(move)), None)
    if canonical is None:
        raise IllegalMoveError(
            f"Move {move.piece_id} {move.from_position}->{move.to_position} "
            f"is not legal for roll {state.last_roll}"
        )

    new_state = state.copy()
    board = new_state.board
    piece = new_state.piece(canonical.piece_id)
    events = MoveEvents()
    old = piece.position
    if old != canonical.from_position:
        raise InvariantViolation(
            f"{piece.piece_id} is at {old}, legal set says {canonical.from_position}"
        )

    if canonical.captures is not None:
        victim = new_state.piece(canonical.captures)
        board.remove(victim)
        events.captured = victim.piece_id

    if canonical.retires:
        board.remove(piece)
        piece.retire()
        events.retired = True
        special = board.is_special(canonical.to_position)
        if special is not None:
            events.special_squares.append(special)
    else:
        board.place(piece, canonical.to_position)
        special = board.is_special(canonical.to_position)
        if special is not None:
            events.special_squares.append(special)
            if special.effect is SquareEffect.RESTART:
                target = board.ruleset.restart_target(
                    canonical.to_position, lambda pos: board.piece_at(pos) is None
                )
                if target == OFF_BOARD:
                    board.remove(piece)
                else:
                    board.place(piece, target)
                events.restarted_to = target
            elif special.effect is SquareEffect.EXTRA_TURN:
                events.extra_turn_square = True

    record = MoveRecord(
        piece_id=canonical.piece_id,
        from_position=old,
        to_position=canonical.to_position,
        captured=events.captured,
        timestamp=time.time() if now is None else now,
        roll=canonical.roll,
    )
    new_state.move_history.append(record)
    new_state.available_moves = []
    new_state.check_invariants()
    new_state.touch()

    logger.debug(
        f"Player {canonical.player} moved {record.piece_id} "
        f"{old}->{record.to_position} (roll {record.roll})"
        + (f", captured {record.captured}" if record.captured else "")
        + (", retired" if events.retired else "")
    )
    return MoveResult(
        state=new_state,
        record=record,
        events=events,
        final_position=piece.position,
    )


def apply_move(state: GameState, move: Move) -> GameState:
    return resolve_move(state, move).state


def is_terminal(state: GameState) -> Optional[int]:
    """Id of the player whose pieces have all retired, if any."""
    for pl in state.players:
        if pl.check_won():
            return pl.id
    return None
