"""CLI for playing Nine Men's Morris against the computer."""

from __future__ import annotations

import argparse
import random
import sys
from typing import List, Optional, Union

from morris_board import point_name, render_board
from morris_engine import (
    COMPUTER,
    HUMAN,
    MOVEMENT,
    SIDE_NAMES,
    GameState,
    Move,
    MorrisRuleError,
    apply_move,
    apply_move_fast,
    capture_candidates,
    count_on_board,
    format_move,
    forms_mill,
    initial_state,
    is_terminal,
    legal_moves,
    parse_move,
    placed,
    with_capture,
)
from morris_strategies import STRATEGY_NAMES, Strategy, attach_capture, create_strategy
from morris_telemetry import JsonlTelemetrySink, TelemetrySink


def prompt_yes_no(prompt: str) -> bool:
    while True:
        try:
            raw = input(prompt).strip().lower()
        except EOFError:
            print()
            sys.exit(0)
        if raw in {"y", "yes"}:
            return True
        if raw in {"n", "no"}:
            return False
        print("Please enter 'y' or 'n'.")


def print_help() -> None:
    print("Moves: P5 to place, P5->P6 to slide, append 'x P12' to capture after a mill.")
    print("Commands: m=list legal moves, u=undo, q=quit, h=help.")


def read_command(prompt: str) -> str:
    while True:
        try:
            raw = input(prompt).strip()
        except EOFError:
            print()
            return "q"
        if raw == "":
            print("Please enter a move, or a command.")
            continue
        return raw


def read_capture(candidates: List[int]) -> Optional[int]:
    names = ", ".join(point_name(idx) for idx in candidates)
    while True:
        raw = read_command(f"Mill! Remove a CPU piece ({names}, q=quit): ")
        if raw.lower() in {"q", "quit"}:
            return None
        try:
            picked = parse_move(raw)
        except ValueError:
            picked = None
        if picked is None or not picked.is_placement or picked.is_capture:
            print("Please enter a single point such as P7.")
            continue
        idx = picked.to
        if idx in candidates:
            return idx
        print("That CPU piece is protected in a mill. Choose one of the listed pieces.")


def describe_state(state: GameState, to_move: int) -> str:
    if state.phase == MOVEMENT:
        phase = "Movement"
        if count_on_board(state, to_move) == 3:
            phase += " (flying)"
    else:
        phase = (
            f"Placement (Human {placed(state, HUMAN)}/9, CPU {placed(state, COMPUTER)}/9)"
        )
    pieces = f"Human {count_on_board(state, HUMAN)}, CPU {count_on_board(state, COMPUTER)}"
    return f"Phase: {phase}  On board: {pieces}  Turn: {SIDE_NAMES[to_move]}"


def describe_move(side: int, move: Move) -> List[str]:
    who = SIDE_NAMES[side]
    if move.is_placement:
        lines = [f"{who} placed at {point_name(move.to)}."]
    else:
        lines = [f"{who} moved {point_name(move.from_)} -> {point_name(move.to)}."]
    if move.is_capture:
        if side == COMPUTER:
            lines.append(f"CPU formed a mill and removed your piece at {point_name(move.removed)}.")
        else:
            lines.append(f"Human formed a mill and removed CPU piece at {point_name(move.removed)}.")
    return lines


def describe_end(state: GameState, winner: int) -> str:
    loser = HUMAN if winner == COMPUTER else COMPUTER
    if count_on_board(state, loser) < 3:
        reason = "only 2 pieces left"
    else:
        reason = "no legal moves"
    if winner == HUMAN:
        return f"Hurray! You won! CPU has {reason}."
    return f"Oops! You lost. You have {reason}."


def computer_turn(strategy: Strategy, state: GameState, explain: bool) -> Optional[Move]:
    result = strategy.analyze(state, COMPUTER, HUMAN, topn=3)
    if result.best_move is None:
        return None
    if explain:
        top_str = ", ".join(f"{format_move(m)}:{s:+d}" for m, s in result.top_moves)
        print(f"{strategy.name}: {top_str}")
        print(
            f"Search: evaluated={result.evaluated} cache_hits={result.cache_hits} "
            f"elapsed_ms={result.elapsed_ms}"
        )
    return attach_capture(state, result.best_move, COMPUTER)


def human_turn(state: GameState) -> Union[Move, str, None]:
    """Returns a legal Move, a command string, or None to quit."""
    while True:
        raw = read_command("Your move (e.g. P5, P5->P6, m=moves, u=undo, q=quit, h=help): ")
        lowered = raw.lower()
        if lowered in {"q", "quit"}:
            return None
        if lowered in {"h", "help"}:
            print_help()
            continue
        if lowered in {"u", "undo"}:
            return "undo"
        if lowered in {"m", "moves"}:
            print("Legal: " + ", ".join(format_move(m) for m in legal_moves(state, HUMAN)))
            continue
        try:
            move = parse_move(raw)
        except ValueError as exc:
            print(str(exc))
            continue

        plain = Move(move.from_, move.to)
        if plain not in legal_moves(state, HUMAN):
            print("Illegal move: that point is occupied, not yours, or not adjacent.")
            continue

        after = apply_move_fast(state, plain, HUMAN)
        if forms_mill(after, HUMAN, move.to) and not move.is_capture:
            candidates = capture_candidates(after, COMPUTER)
            if candidates:
                print("Human formed a mill and must remove one CPU piece.")
                removed = read_capture(candidates)
                if removed is None:
                    return None
                move = with_capture(plain, removed)
            else:
                print("Human formed a mill, but no CPU piece could be removed.")
        return move


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Nine Men's Morris against the computer")
    parser.add_argument(
        "--strategy",
        choices=STRATEGY_NAMES,
        default="DP",
        help="computer strategy (default: DP)",
    )
    parser.add_argument("--seed", type=int, default=None, help="seed for the Greedy tie-break")
    parser.add_argument("--explain", action="store_true", help="print the computer's top candidate moves")
    parser.add_argument(
        "--telemetry",
        action="store_true",
        help="write strategy telemetry as JSON lines to stderr",
    )
    first = parser.add_mutually_exclusive_group()
    first.add_argument("--human-first", dest="human_first", action="store_true", default=None)
    first.add_argument("--computer-first", dest="human_first", action="store_false")
    parser.set_defaults(human_first=None)
    args = parser.parse_args(argv)

    sink: Optional[TelemetrySink] = JsonlTelemetrySink(sys.stderr) if args.telemetry else None
    rng = random.Random(args.seed) if args.seed is not None else None
    strategy = create_strategy(args.strategy, rng=rng, telemetry_sink=sink)

    human_first = args.human_first
    if human_first is None:
        human_first = prompt_yes_no("Do you go first? (y/n): ")

    state = initial_state()
    to_move = HUMAN if human_first else COMPUTER
    history: list[tuple[GameState, int]] = []
    print(f"Game start! Placement phase begins. CPU strategy: {strategy.name}.")

    try:
        while True:
            print()
            print(render_board(state.cells))
            print(describe_state(state, to_move))

            winner = is_terminal(state, to_move)
            if winner is not None:
                print()
                print(describe_end(state, winner))
                return 0

            if to_move == COMPUTER:
                move = computer_turn(strategy, state, args.explain)
                if move is None:
                    print("Hurray! You won! CPU is stuck.")
                    return 0
                history.append((state, to_move))
                state = apply_move(state, move, COMPUTER)
                for line in describe_move(COMPUTER, move):
                    print(line)
                to_move = HUMAN
                continue

            choice = human_turn(state)
            if choice is None:
                return 0
            if choice == "undo":
                if not any(side == HUMAN for _, side in history):
                    print("Nothing to undo.")
                    continue
                # Roll back to the last position where it was the human's turn.
                while True:
                    state, to_move = history.pop()
                    if to_move == HUMAN:
                        break
                continue

            assert isinstance(choice, Move)
            try:
                next_state = apply_move(state, choice, HUMAN)
            except MorrisRuleError as exc:
                print(str(exc))
                continue
            history.append((state, to_move))
            state = next_state
            for line in describe_move(HUMAN, choice):
                print(line)
            to_move = COMPUTER
    finally:
        if sink is not None:
            sink.close()


if __name__ == "__main__":
    raise SystemExit(main())
