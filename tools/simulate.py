import argparse
import os
import sys
import time
from collections import Counter

import numpy as np
from loguru import logger

from senet import Difficulty, Game, GamePhase, Player, Ruleset


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Simulate Senet games between two computer opponents"
    )
    parser.add_argument(
        "--player1",
        type=str,
        default="medium",
        choices=[d.value for d in Difficulty],
        help="Difficulty of player 1",
    )
    parser.add_argument(
        "--player2",
        type=str,
        default="hard",
        choices=[d.value for d in Difficulty],
        help="Difficulty of player 2",
    )
    parser.add_argument("--games", type=int, default=100, help="Number of games")
    parser.add_argument("--seed", type=int, default=42, help="Seed of the first game")
    parser.add_argument(
        "--max-turns",
        type=int,
        default=int(os.getenv("SENET_MAX_TURNS", 2000)),
        help="Safety cap on turns per game",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log every throw and move",
    )
    return parser.parse_args()


def play_one(args: argparse.Namespace, seed: int) -> tuple[int | None, int]:
    players = [
        Player(1, name=f"AI {args.player1}", is_ai=True, difficulty=args.player1),
        Player(2, name=f"AI {args.player2}", is_ai=True, difficulty=args.player2),
    ]
    game = Game(players=players, ruleset=Ruleset(), seed=seed)
    turns = 0
    while game.phase is not GamePhase.FINISHED and turns < args.max_turns:
        game.play_ai_turn()
        turns += 1
    if game.phase is not GamePhase.FINISHED:
        logger.warning(f"Game {seed} hit the {args.max_turns} turn cap without a winner")
    logger.debug(f"Game {seed} final board: {game.state.board.render()}")
    return game.get_winner(), turns


def main() -> None:
    args = parse_args()
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if args.verbose else "WARNING")

    print(f"--- Simulating {args.games} games: {args.player1} vs {args.player2} ---")
    start_time = time.time()
    wins: Counter = Counter()
    lengths: list[int] = []
    for i in range(args.games):
        winner, turns = play_one(args, args.seed + i)
        wins[winner] += 1
        lengths.append(turns)

    end_time = time.time()
    print("\n--- SIMULATION COMPLETE ---")
    print(f"Player 1 ({args.player1}) wins: {wins[1]}")
    print(f"Player 2 ({args.player2}) wins: {wins[2]}")
    if wins[None]:
        print(f"Unfinished: {wins[None]}")
    turns_arr = np.asarray(lengths, dtype=np.int64)
    print(f"Turns per game: mean {turns_arr.mean():.1f}, max {turns_arr.max()}")
    print(f"Simulation Time: {end_time - start_time:.2f} seconds")


if __name__ == "__main__":
    main()
