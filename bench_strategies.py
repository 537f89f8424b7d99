"""Deterministic self-play harness for the Morris strategies."""

from __future__ import annotations

import argparse
import math
import platform
import random
import statistics
import sys
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from morris_engine import (
    COMPUTER,
    HUMAN,
    SIDE_NAMES,
    GameState,
    Move,
    apply_turn,
    format_move,
    initial_state,
    is_terminal,
    key_to_state,
    legal_moves,
    opponent,
)
from morris_strategies import STRATEGY_NAMES, Strategy, attach_capture, choose_computer_move, create_strategy


@dataclass
class GameRecord:
    winner: Optional[int]
    plies: int
    moves: List[Move] = field(default_factory=list)
    decision_ms: Dict[int, List[float]] = field(default_factory=lambda: {HUMAN: [], COMPUTER: []})
    final_state: Optional[GameState] = None


def play_game(
    strategies: Dict[int, Strategy],
    first: int = HUMAN,
    max_plies: int = 200,
    opening_plies: int = 0,
    rng: Optional[random.Random] = None,
    start: Optional[GameState] = None,
) -> GameRecord:
    """
    Play one game between two strategies keyed by the side they control.

    The first ``opening_plies`` moves are drawn uniformly from the legal moves
    (with the first capture candidate after a mill) so that deterministic
    strategies do not replay the same game every time. A game that reaches
    ``max_plies`` without a winner is recorded as a draw. ``start`` replaces the
    empty board, for replaying a position saved with ``state_key``.
    """
    rng = rng if rng is not None else random.Random(0)
    state = start if start is not None else initial_state()
    to_move = first
    record = GameRecord(winner=None, plies=0)

    while record.plies < max_plies:
        winner = is_terminal(state, to_move)
        if winner is not None:
            record.winner = winner
            break

        if record.plies < opening_plies:
            move = attach_capture(state, rng.choice(legal_moves(state, to_move)), to_move)
        else:
            start_ns = time.perf_counter_ns()
            move = choose_computer_move(strategies[to_move], state, to_move, opponent(to_move))
            record.decision_ms[to_move].append((time.perf_counter_ns() - start_ns) / 1_000_000)
        if move is None:
            record.winner = opponent(to_move)
            break

        state = apply_turn(state, move, to_move)
        record.moves.append(move)
        record.plies += 1
        to_move = opponent(to_move)
    else:
        record.winner = is_terminal(state, to_move)

    record.final_state = state
    return record


def _percentile(values: Sequence[float], percentile: float) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    if len(ordered) == 1:
        return float(ordered[0])
    rank = (len(ordered) - 1) * percentile
    lo = math.floor(rank)
    hi = math.ceil(rank)
    if lo == hi:
        return float(ordered[lo])
    frac = rank - lo
    return float(ordered[lo] * (1.0 - frac) + ordered[hi] * frac)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Self-play benchmark between two strategies")
    parser.add_argument("--a", choices=STRATEGY_NAMES, default="DP", help="first strategy (default: DP)")
    parser.add_argument("--b", choices=STRATEGY_NAMES, default="Greedy", help="second strategy (default: Greedy)")
    parser.add_argument("--games", type=int, default=10, help="number of games (default: 10)")
    parser.add_argument("--max-plies", type=int, default=200, help="ply cap before a draw (default: 200)")
    parser.add_argument("--opening-plies", type=int, default=2, help="random opening plies (default: 2)")
    parser.add_argument("--seed", type=int, default=12345, help="seed for openings and the Greedy tie-break")
    parser.add_argument("--verbose", action="store_true", help="print every game's move list")
    parser.add_argument(
        "--start",
        default=None,
        help="state key (cells|placed_human|placed_computer) to start every game from",
    )
    args = parser.parse_args(argv)

    if args.games <= 0:
        print("--games must be > 0")
        return 2
    if args.max_plies <= 0:
        print("--max-plies must be > 0")
        return 2
    if args.opening_plies < 0:
        print("--opening-plies must be >= 0")
        return 2
    start: Optional[GameState] = None
    if args.start is not None:
        start = key_to_state(args.start)
        if start is None:
            print(f"invalid --start state key: {args.start!r}")
            return 2

    rng = random.Random(args.seed)
    print(
        f"python={sys.version.split()[0]} platform={platform.platform()} "
        f"a={args.a!r} b={args.b!r} games={args.games} seed={args.seed}"
    )
    print("game a_side winner plies a_ms_p50 b_ms_p50")

    wins = {"a": 0, "b": 0, "draw": 0}
    plies: List[int] = []
    a_times: List[float] = []
    b_times: List[float] = []
    for game in range(1, args.games + 1):
        # Alternate colours; HUMAN always moves first.
        a_side = HUMAN if game % 2 == 1 else COMPUTER
        b_side = opponent(a_side)
        strategies = {
            a_side: create_strategy(args.a, rng=random.Random(rng.getrandbits(32))),
            b_side: create_strategy(args.b, rng=random.Random(rng.getrandbits(32))),
        }
        record = play_game(
            strategies,
            first=HUMAN,
            max_plies=args.max_plies,
            opening_plies=args.opening_plies,
            rng=random.Random(rng.getrandbits(32)),
            start=start,
        )
        if record.winner == a_side:
            wins["a"] += 1
            outcome = "a"
        elif record.winner == b_side:
            wins["b"] += 1
            outcome = "b"
        else:
            wins["draw"] += 1
            outcome = "draw"
        plies.append(record.plies)
        a_times.extend(record.decision_ms[a_side])
        b_times.extend(record.decision_ms[b_side])
        print(
            f"{game:03d} {SIDE_NAMES[a_side]:>6} {outcome:>6} {record.plies:>5d} "
            f"{_percentile(record.decision_ms[a_side], 0.5):>8.1f} "
            f"{_percentile(record.decision_ms[b_side], 0.5):>8.1f}"
        )
        if args.verbose:
            print("    " + " ".join(format_move(m) for m in record.moves))

    print(
        "summary "
        f"a_wins={wins['a']} b_wins={wins['b']} draws={wins['draw']} "
        f"mean_plies={statistics.fmean(plies):.1f} "
        f"a_ms_p95={_percentile(a_times, 0.95):.1f} b_ms_p95={_percentile(b_times, 0.95):.1f}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
