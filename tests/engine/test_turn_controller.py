import unittest
from dataclasses import replace
from unittest.mock import patch

from senet.config import Ruleset
from senet.errors import IllegalMoveError
from senet.events import EventType
from senet.game import Game
from senet.player import Player
from senet.rules import new_game
from senet.sticks import roll_from_value
from senet.types import Difficulty, GamePhase


def scripted(*values):
    """Patch the stick throw to return the given values in order."""
    return patch(
        "senet.game.throw_sticks",
        side_effect=[roll_from_value(v) for v in values],
    )


def game_from(positions=None, retired=(), ruleset=None, current=1):
    state = new_game([Player(1), Player(2)], ruleset or Ruleset())
    for piece_id, pos in (positions or {}).items():
        state.board.place(state.piece(piece_id), pos)
    for piece_id in retired:
        state.piece(piece_id).retire()
    state.current_player = current
    return Game.from_state(state, seed=1, clock=lambda: 100.0)


LONE_PIECE = [f"p1_{i}" for i in range(1, 5)]


class TurnControllerTests(unittest.TestCase):
    def setUp(self):
        self.game = Game(players=[Player(1), Player(2)], ruleset=Ruleset(), seed=5)
        self.events = []
        for event_type in EventType:
            self.game.subscribe(event_type, self.events.append)

    def kinds(self):
        return [e.event_type for e in self.events]

    def test_starts_in_throwing_phase(self):
        self.assertEqual(self.game.phase, GamePhase.THROWING)
        self.assertEqual(self.game.current_player.id, 1)
        self.assertEqual(self.game.get_legal_moves(), [])
        self.assertIsNone(self.game.get_winner())

    def test_move_before_throw_is_rejected(self):
        with scripted(2):
            self.game.throw()
        move = self.game.get_legal_moves()[0]
        game = Game(players=[Player(1), Player(2)], seed=5)
        with self.assertRaises(IllegalMoveError):
            game.choose_move(move)

    def test_cannot_throw_twice(self):
        with scripted(2):
            self.game.throw()
        self.assertEqual(self.game.phase, GamePhase.MOVING)
        with self.assertRaises(IllegalMoveError):
            self.game.throw()

    def test_plain_roll_hands_turn_over(self):
        with scripted(2):
            roll = self.game.throw()
        self.assertEqual(roll.value, 2)
        (move,) = self.game.get_legal_moves()
        record = self.game.choose_move(move)
        self.assertEqual(record.to_position, 1)
        self.assertEqual(self.game.phase, GamePhase.THROWING)
        self.assertEqual(self.game.current_player.id, 2)
        self.assertEqual(
            self.kinds(),
            [EventType.STICKS_THROWN, EventType.MOVE_APPLIED, EventType.TURN_CHANGED],
        )
        self.assertEqual(self.events[-1].payload["player"], 2)

    def test_extra_turn_roll_keeps_the_turn(self):
        for value in (1, 4):
            game = Game(players=[Player(1), Player(2)], seed=5)
            with scripted(value):
                game.throw()
            game.choose_move(game.get_legal_moves()[0])
            self.assertEqual(game.current_player.id, 1, value)
            self.assertEqual(game.phase, GamePhase.THROWING)

    def test_illegal_move_leaves_state_alone(self):
        with scripted(3):
            self.game.throw()
        before = self.game.get_state().positions()
        (move,) = self.game.get_legal_moves()
        move = replace(move, to_position=5)
        with self.assertRaises(IllegalMoveError):
            self.game.choose_move(move)
        self.assertEqual(self.game.get_state().positions(), before)
        self.assertEqual(self.game.phase, GamePhase.MOVING)

    def test_snapshot_is_detached(self):
        snapshot = self.game.get_state()
        snapshot.piece("p1_0").position = 12
        self.assertEqual(self.game.get_state().piece("p1_0").position, -1)

    def test_pass_turn_on_timeout(self):
        self.game.pass_turn()
        self.assertEqual(self.game.current_player.id, 2)
        self.assertEqual(self.events[0].payload["reason"], "timeout")

    def test_auto_move_for_human_uses_easy_policy(self):
        with scripted(3):
            self.game.throw()
        record = self.game.auto_move()
        self.assertEqual(record.piece_id, "p1_0")
        self.assertEqual(self.game.current_player.id, 2)

    def test_auto_move_needs_a_pending_throw(self):
        with self.assertRaises(IllegalMoveError):
            self.game.auto_move(Difficulty.HARD)

    def test_failing_subscriber_does_not_break_the_game(self):
        def boom(event):
            raise RuntimeError("subscriber failure")

        self.game.subscribe(EventType.STICKS_THROWN, boom)
        with scripted(2):
            self.game.throw()
        self.assertEqual(self.game.phase, GamePhase.MOVING)
        self.game.unsubscribe(EventType.STICKS_THROWN, boom)


class ForcedPassTests(unittest.TestCase):
    def test_no_legal_moves_passes_the_turn(self):
        game = game_from({"p1_0": 27}, LONE_PIECE)
        events = []
        game.subscribe(EventType.TURN_PASSED, events.append)
        before = game.get_state().positions()
        with scripted(3):
            game.throw()
        self.assertEqual(game.phase, GamePhase.THROWING)
        self.assertEqual(game.current_player.id, 2)
        self.assertEqual(game.get_state().positions(), before)
        self.assertEqual(events[0].payload["reason"], "no_legal_moves")

    def test_extra_roll_without_moves_still_passes(self):
        game = game_from({"p1_0": 26}, LONE_PIECE)
        with scripted(4):
            game.throw()
        self.assertEqual(game.current_player.id, 2)

    def test_stuck_piece_forfeits_by_default(self):
        game = game_from({"p1_0": 27}, LONE_PIECE)
        with scripted(1):
            game.throw()
        self.assertEqual(game.current_player.id, 2)

    def test_stuck_piece_throws_again_with_skip(self):
        ruleset = Ruleset(must_roll_exact_fallback="skip")
        game = game_from({"p1_0": 27}, LONE_PIECE, ruleset)
        with scripted(1):
            game.throw()
        self.assertEqual(game.current_player.id, 1)
        self.assertEqual(game.phase, GamePhase.THROWING)


class FinishTests(unittest.TestCase):
    def test_last_retirement_wins(self):
        game = game_from({"p1_0": 26, "p2_0": 4}, LONE_PIECE)
        finished = []
        game.subscribe(EventType.GAME_FINISHED, finished.append)
        with scripted(3):
            game.throw()
        (move,) = game.get_legal_moves()
        self.assertTrue(move.retires)
        record = game.choose_move(move)
        self.assertEqual(record.timestamp, 100.0)
        self.assertEqual(game.phase, GamePhase.FINISHED)
        self.assertEqual(game.get_winner(), 1)
        self.assertEqual(finished[0].payload["winner"], 1)

        with self.assertRaises(IllegalMoveError):
            game.throw()
        with self.assertRaises(IllegalMoveError):
            game.choose_move(move)
        with self.assertRaises(IllegalMoveError):
            game.pass_turn()
        self.assertEqual(game.get_legal_moves(), [])

    def test_ai_games_reach_a_winner(self):
        for seed, (first, second) in enumerate(
            [("easy", "hard"), ("medium", "easy"), ("hard", "medium")]
        ):
            players = [
                Player(1, is_ai=True, difficulty=first),
                Player(2, is_ai=True, difficulty=second),
            ]
            game = Game(players=players, ruleset=Ruleset(), seed=seed)
            moves = []
            for _ in range(5000):
                if game.phase is GamePhase.FINISHED:
                    break
                moves.extend(game.play_ai_turn())
                game.state.check_invariants()
            self.assertEqual(game.phase, GamePhase.FINISHED)
            winner = game.state.player(game.get_winner())
            self.assertTrue(all(pc.retired for pc in winner.pieces))
            self.assertEqual(len(moves), len(game.state.move_history))


if __name__ == "__main__":
    unittest.main()
