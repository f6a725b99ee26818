import random
import unittest

import numpy as np

from senet.board import CHANNEL_OPPONENT, CHANNEL_OWN, CHANNEL_SAFE, Board
from senet.config import BOARD_SIZE, Ruleset
from senet.errors import InvariantViolation
from senet.piece import Piece
from senet.sticks import roll_from_sticks, roll_from_value, roll_probabilities, throw_sticks
from senet.types import SquareEffect


class SticksTests(unittest.TestCase):
    def test_marked_count_maps_to_value_and_extra_turn(self):
        expected = {
            (False, False, False, False): (6, False),
            (True, False, False, False): (1, True),
            (True, True, False, False): (2, False),
            (False, True, True, True): (3, False),
            (True, True, True, True): (4, True),
        }
        for sticks, (value, extra) in expected.items():
            roll = roll_from_sticks(sticks, Ruleset())
            self.assertEqual(roll.value, value, sticks)
            self.assertEqual(roll.extra_turn, extra, sticks)
            self.assertEqual(roll.marked, sum(sticks))

    def test_zero_marked_value_follows_ruleset(self):
        roll = roll_from_sticks((False, False, False, False), Ruleset(zero_marked_value=5))
        self.assertEqual(roll.value, 5)
        self.assertFalse(roll.extra_turn)

    def test_throw_sticks_is_reproducible_with_seed(self):
        first = [throw_sticks(random.Random(7)) for _ in range(3)]
        second = [throw_sticks(random.Random(7)) for _ in range(3)]
        self.assertEqual(first, second)

    def test_throw_values_in_range(self):
        rng = random.Random(3)
        for _ in range(200):
            roll = throw_sticks(rng, Ruleset())
            self.assertIn(roll.value, (1, 2, 3, 4, 6))
            self.assertEqual(roll.extra_turn, roll.value in (1, 4))
            self.assertEqual(len(roll.sticks), 4)

    def test_roll_probabilities(self):
        probs = roll_probabilities(Ruleset())
        self.assertAlmostEqual(sum(probs.values()), 1.0)
        self.assertAlmostEqual(probs[2], 6 / 16)
        self.assertAlmostEqual(probs[6], 1 / 16)
        self.assertNotIn(5, probs)

    def test_roll_from_value(self):
        self.assertTrue(roll_from_value(1).extra_turn)
        self.assertEqual(roll_from_value(6).marked, 0)
        with self.assertRaises(ValueError):
            roll_from_value(5, Ruleset())


class BoardTests(unittest.TestCase):
    def setUp(self):
        self.board = Board(ruleset=Ruleset())
        self.mine = Piece(piece_id="p1_0", player=1)
        self.theirs = Piece(piece_id="p2_0", player=2)

    def test_place_and_remove(self):
        self.board.place(self.mine, 4)
        self.assertIs(self.board.piece_at(4), self.mine)
        self.assertEqual(self.mine.position, 4)
        self.assertTrue(self.board.is_occupied_by_own(4, 1))
        self.assertTrue(self.board.is_occupied_by_opponent(4, 2))
        self.assertFalse(self.board.is_occupied_by_opponent(4, 1))

        self.board.place(self.mine, 6)
        self.assertIsNone(self.board.piece_at(4))
        self.board.remove(self.mine)
        self.assertIsNone(self.board.piece_at(6))
        self.assertEqual(self.mine.position, -1)

    def test_two_pieces_never_share_a_square(self):
        self.board.place(self.mine, 4)
        with self.assertRaises(InvariantViolation):
            self.board.place(self.theirs, 4)

    def test_special_square_table(self):
        self.assertEqual(self.board.is_special(14).effect, SquareEffect.SAFE)
        self.assertEqual(self.board.is_special(25).effect, SquareEffect.RESTART)
        for pos in (27, 28, 29):
            self.assertEqual(self.board.is_special(pos).effect, SquareEffect.MUST_ROLL_EXACT)
        self.assertIsNone(self.board.is_special(3))
        self.assertIsNone(self.board.piece_at(-1))

    def test_run_length(self):
        for i, pos in enumerate((10, 11, 12)):
            self.board.place(Piece(piece_id=f"p2_{i}", player=2), pos)
        self.assertEqual(self.board.run_length_at(11, 2), 3)
        self.assertEqual(self.board.run_length_at(11, 1), 0)

    def test_build_tensor_channels(self):
        self.board.place(self.mine, 2)
        self.board.place(self.theirs, 5)
        tensor = self.board.build_tensor(1)
        self.assertEqual(tensor.shape, (4, BOARD_SIZE))
        self.assertEqual(tensor[CHANNEL_OWN, 2], 1.0)
        self.assertEqual(tensor[CHANNEL_OPPONENT, 5], 1.0)
        self.assertEqual(tensor[CHANNEL_SAFE, 14], 1.0)
        self.assertEqual(float(np.sum(tensor[CHANNEL_OWN])), 1.0)
        flipped = self.board.build_tensor(2)
        self.assertEqual(flipped[CHANNEL_OWN, 5], 1.0)

    def test_render(self):
        self.board.place(self.mine, 0)
        self.board.place(self.theirs, 1)
        text = self.board.render()
        self.assertEqual(len(text), BOARD_SIZE)
        self.assertTrue(text.startswith("12.."))
        self.assertEqual(text[14], "*")

    def test_check_invariants_detects_disagreement(self):
        self.board.place(self.mine, 3)
        self.theirs.position = 3
        with self.assertRaises(InvariantViolation):
            self.board.check_invariants([self.mine, self.theirs])


if __name__ == "__main__":
    unittest.main()
