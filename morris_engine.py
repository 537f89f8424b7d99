"""Core rules engine for Nine Men's Morris (placement, sliding, flying)."""

from __future__ import annotations

from dataclasses import dataclass, replace
import re
from typing import List, Optional, Tuple

from morris_board import ADJ, MILLS, MILLS_THROUGH, POINTS, point_name

EMPTY = 0
HUMAN = 1
COMPUTER = 2

PLACEMENT = "PLACEMENT"
MOVEMENT = "MOVEMENT"

PIECES_PER_SIDE = 9
TOTAL_PLACEMENTS = 2 * PIECES_PER_SIDE
FLYING_PIECES = 3
NO_INDEX = -1

SIDE_NAMES = {HUMAN: "Human", COMPUTER: "CPU"}


class MorrisRuleError(ValueError):
    """Base class for turn-contract violations raised by the engine."""


class IllegalMoveError(MorrisRuleError):
    """The move is not in legal_moves for the side submitting it."""


class CaptureRequiredError(MorrisRuleError):
    """The move formed a mill but no piece was selected for removal."""


class CaptureNotAllowedError(MorrisRuleError):
    """A removal was attached to a move that may not capture that piece."""


@dataclass(frozen=True)
class GameState:
    cells: Tuple[int, ...]
    placed_human: int = 0
    placed_computer: int = 0

    @property
    def phase(self) -> str:
        if self.placed_human + self.placed_computer < TOTAL_PLACEMENTS:
            return PLACEMENT
        return MOVEMENT

    def clone(self) -> "GameState":
        return replace(self)


@dataclass(frozen=True)
class Move:
    from_: int
    to: int
    removed: int = NO_INDEX

    @property
    def is_placement(self) -> bool:
        return self.from_ == NO_INDEX

    @property
    def is_capture(self) -> bool:
        return self.removed != NO_INDEX

    def __str__(self) -> str:
        return format_move(self)


def placement(to: int) -> Move:
    return Move(NO_INDEX, to, NO_INDEX)


def slide(from_: int, to: int) -> Move:
    return Move(from_, to, NO_INDEX)


def with_capture(move: Move, removed: int) -> Move:
    return Move(move.from_, move.to, removed)


def without_capture(move: Move) -> Move:
    if not move.is_capture:
        return move
    return Move(move.from_, move.to, NO_INDEX)


def format_move(move: Move) -> str:
    if move.is_placement:
        text = point_name(move.to)
    else:
        text = f"{point_name(move.from_)}->{point_name(move.to)}"
    if move.is_capture:
        text += f" x {point_name(move.removed)}"
    return text


_POINT_RE = r"P?\s*(\d{1,2})"
_MOVE_RE = re.compile(
    rf"^{_POINT_RE}(?:\s*(?:->|-|\s)\s*{_POINT_RE})?(?:\s*x\s*{_POINT_RE})?$",
    re.IGNORECASE,
)


def _parse_point(raw: str) -> int:
    idx = int(raw) - 1
    if idx < 0 or idx >= POINTS:
        raise ValueError(f"point out of range: P{raw} (expected P1..P{POINTS})")
    return idx


def parse_move(text: str) -> Move:
    """Parse ``P5``, ``P5->P6`` or either form followed by ``x P12``."""
    match = _MOVE_RE.match(text.strip())
    if match is None:
        raise ValueError(f"unrecognised move: {text!r}")
    first, second, removed = match.groups()
    if second is None:
        move = placement(_parse_point(first))
    else:
        move = slide(_parse_point(first), _parse_point(second))
    if removed is not None:
        move = with_capture(move, _parse_point(removed))
    return move


def initial_state() -> GameState:
    return GameState((EMPTY,) * POINTS, 0, 0)


def opponent(side: int) -> int:
    if side == HUMAN:
        return COMPUTER
    if side == COMPUTER:
        return HUMAN
    raise ValueError(f"unknown side: {side!r}")


def placed(state: GameState, side: int) -> int:
    return state.placed_human if side == HUMAN else state.placed_computer


def count_on_board(state: GameState, side: int) -> int:
    return sum(1 for v in state.cells if v == side)


def state_key(state: GameState) -> str:
    cells = "".join(str(v) for v in state.cells)
    return f"{cells}|{state.placed_human}|{state.placed_computer}"


def key_to_state(key: str) -> Optional[GameState]:
    parts = key.split("|")
    if len(parts) != 3:
        return None
    cells_raw, human_raw, computer_raw = parts
    if len(cells_raw) != POINTS or any(ch not in "012" for ch in cells_raw):
        return None
    try:
        placed_human = int(human_raw)
        placed_computer = int(computer_raw)
    except ValueError:
        return None
    if not (0 <= placed_human <= PIECES_PER_SIDE and 0 <= placed_computer <= PIECES_PER_SIDE):
        return None
    return GameState(tuple(int(ch) for ch in cells_raw), placed_human, placed_computer)


def legal_moves(state: GameState, side: int) -> List[Move]:
    cells = state.cells
    if state.phase == PLACEMENT:
        return [placement(i) for i in range(POINTS) if cells[i] == EMPTY]

    moves: List[Move] = []
    flying = count_on_board(state, side) == FLYING_PIECES
    empties = [i for i in range(POINTS) if cells[i] == EMPTY]
    for f in range(POINTS):
        if cells[f] != side:
            continue
        targets = empties if flying else ADJ[f]
        for t in targets:
            if cells[t] == EMPTY:
                moves.append(slide(f, t))
    return moves


def forms_mill(state: GameState, side: int, pos: int) -> bool:
    cells = state.cells
    for idx in MILLS_THROUGH[pos]:
        a, b, c = MILLS[idx]
        if cells[a] == side and cells[b] == side and cells[c] == side:
            return True
    return False


def has_any_mill(state: GameState, side: int) -> bool:
    cells = state.cells
    return any(cells[a] == side and cells[b] == side and cells[c] == side for a, b, c in MILLS)


def is_in_mill(state: GameState, pos: int) -> bool:
    side = state.cells[pos]
    if side == EMPTY:
        return False
    return forms_mill(state, side, pos)


def capture_candidates(state: GameState, opponent_side: int) -> List[int]:
    owned = [i for i, v in enumerate(state.cells) if v == opponent_side]
    free = [i for i in owned if not is_in_mill(state, i)]
    return free if free else owned


def remove_piece(state: GameState, pos: int) -> GameState:
    cells = list(state.cells)
    cells[pos] = EMPTY
    return GameState(tuple(cells), state.placed_human, state.placed_computer)


def apply_move_fast(state: GameState, move: Move, side: int) -> GameState:
    """Apply without validation; strategies call this on their own snapshots."""
    cells = list(state.cells)
    placed_human = state.placed_human
    placed_computer = state.placed_computer

    cells[move.to] = side
    if move.from_ >= 0:
        cells[move.from_] = EMPTY
    else:
        if side == HUMAN:
            placed_human += 1
        else:
            placed_computer += 1
    if move.removed >= 0:
        cells[move.removed] = EMPTY
    return GameState(tuple(cells), placed_human, placed_computer)


def apply_move(state: GameState, move: Move, side: int) -> GameState:
    if side not in (HUMAN, COMPUTER):
        raise ValueError(f"unknown side: {side!r}")
    if without_capture(move) not in legal_moves(state, side):
        raise IllegalMoveError(f"illegal move for {SIDE_NAMES[side]}: {format_move(move)}")
    if not move.is_capture:
        return apply_move_fast(state, move, side)

    after = apply_move_fast(state, without_capture(move), side)
    if not forms_mill(after, side, move.to):
        raise CaptureNotAllowedError(f"{format_move(move)} does not form a mill")
    if move.removed not in capture_candidates(after, opponent(side)):
        raise CaptureNotAllowedError(f"{point_name(move.removed)} cannot be captured")
    return remove_piece(after, move.removed)


def capture_required(state: GameState, move: Move, side: int) -> bool:
    """True when ``move`` (played from ``state``) forms a mill with something to take."""
    after = apply_move_fast(state, without_capture(move), side)
    if not forms_mill(after, side, move.to):
        return False
    return bool(capture_candidates(after, opponent(side)))


def apply_turn(state: GameState, move: Move, side: int) -> GameState:
    """Apply a full turn, enforcing that a mill is always followed by a capture."""
    if not move.is_capture and without_capture(move) in legal_moves(state, side):
        if capture_required(state, move, side):
            raise CaptureRequiredError(f"{format_move(move)} forms a mill; choose a piece to remove")
    return apply_move(state, move, side)


def is_terminal(state: GameState, to_move: int) -> Optional[int]:
    """Winner of a finished game, or None while it is still going."""
    if state.phase != MOVEMENT:
        return None
    for side in (to_move, opponent(to_move)):
        if count_on_board(state, side) < FLYING_PIECES:
            return opponent(side)
    if not legal_moves(state, to_move):
        return opponent(to_move)
    return None
