"""Computer move selection: greedy, divide & conquer and shallow DP lookahead."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Sequence, Tuple
import random
import time

from morris_board import INNER, MIDDLE, OUTER, RING_OF, centrality
from morris_engine import (
    MOVEMENT,
    PLACEMENT,
    GameState,
    Move,
    apply_move_fast,
    apply_turn,
    capture_candidates,
    format_move,
    forms_mill,
    is_terminal,
    legal_moves,
    opponent,
    remove_piece,
    state_key,
    with_capture,
)
from morris_heuristics import (
    count_in_ring,
    largest_cluster,
    mill_potential,
    mill_threats,
    mobility,
    piece_count,
    two_in_row,
)
from morris_telemetry import (
    MoveScoredEvent,
    StrategyEndEvent,
    StrategyStartEvent,
    TelemetrySink,
    emit_dataclass_event,
)

GREEDY = "Greedy"
DIVIDE_AND_CONQUER = "Divide & Conquer"
DP = "DP"
STRATEGY_NAMES: Tuple[str, ...] = (GREEDY, DIVIDE_AND_CONQUER, DP)

GREEDY_MILL_BONUS = 1000
GREEDY_THREAT_BONUS = 800
GREEDY_REPLY_MILL = 600
GREEDY_REPLY_TWO_IN_ROW = 50
GREEDY_REPLY_MOBILITY = 5
GREEDY_MOBILITY = 15
GREEDY_OWN_TWO_IN_ROW = 60
GREEDY_OPP_TWO_IN_ROW = 80
GREEDY_CENTRALITY = 10
GREEDY_OWN_CLUSTER = 12
GREEDY_OPP_CLUSTER = 14
GREEDY_INNER = 20
GREEDY_MIDDLE = 10
GREEDY_TIE_BREAK = 3

DC_MILL_BONUS = 80
DC_BLOCK_BONUS = 1000
DC_IGNORE_THREAT_PENALTY = 200
DC_MOBILITY = 4
DC_INNER = 12
DC_MIDDLE = 6

DP_WIN_SCORE = 100_000
DP_STALEMATE_BONUS = 50_000
DP_PIECES = 120
DP_MOBILITY = 10
DP_OWN_POTENTIAL = 40
DP_OPP_POTENTIAL = 45
DP_OWN_TWO_IN_ROW = 6
DP_OPP_TWO_IN_ROW = 8
DP_MIDDLE = 5
DP_INNER = 8

ScoredMove = Tuple[Move, int]


@dataclass(frozen=True)
class StrategyResult:
    best_move: Optional[Move]
    score: Optional[int]
    top_moves: List[ScoredMove]
    evaluated: int
    cache_hits: int
    elapsed_ms: int


class Strategy(Protocol):
    name: str

    def best_move(self, state: GameState, computer: int, human: int) -> Optional[Move]:
        ...

    def analyze(self, state: GameState, computer: int, human: int, topn: int = 3) -> StrategyResult:
        ...


@dataclass
class _RunContext:
    strategy: str
    sink: Optional[TelemetrySink]
    evaluated: int = 0
    cache_hits: int = 0
    cache: Dict[str, int] = field(default_factory=dict)

    def record(self, move: Move, score: int, region: Optional[str] = None) -> None:
        if self.sink is None:
            return
        emit_dataclass_event(
            self.sink,
            "move_scored",
            MoveScoredEvent(strategy=self.strategy, move=format_move(move), score=score, region=region),
        )


class _BaseStrategy:
    name = ""

    def __init__(self, telemetry_sink: Optional[TelemetrySink] = None) -> None:
        self._telemetry_sink = telemetry_sink

    def best_move(self, state: GameState, computer: int, human: int) -> Optional[Move]:
        return self.analyze(state, computer, human, topn=0).best_move

    def analyze(self, state: GameState, computer: int, human: int, topn: int = 3) -> StrategyResult:
        start = time.perf_counter()
        moves = legal_moves(state, computer)
        sink = self._telemetry_sink
        if sink is not None:
            emit_dataclass_event(
                sink,
                "strategy_start",
                StrategyStartEvent(
                    strategy=self.name,
                    state_key=state_key(state),
                    phase=state.phase,
                    side=computer,
                    legal_moves=len(moves),
                ),
            )

        context = _RunContext(strategy=self.name, sink=sink)
        if is_terminal(state, computer) is not None or not moves:
            reason = "terminal" if moves else "no_moves"
            return self._finish(start, context, None, None, [], topn, reason)

        best, score, ranked = self._select(state, moves, computer, human, context)
        return self._finish(start, context, best, score, ranked, topn, "complete")

    def _select(
        self,
        state: GameState,
        moves: List[Move],
        computer: int,
        human: int,
        context: _RunContext,
    ) -> Tuple[Optional[Move], Optional[int], List[ScoredMove]]:
        raise NotImplementedError

    def _finish(
        self,
        start: float,
        context: _RunContext,
        best: Optional[Move],
        score: Optional[int],
        ranked: List[ScoredMove],
        topn: int,
        reason: str,
    ) -> StrategyResult:
        topn = max(0, topn)
        top_moves = ranked[:topn] if topn > 0 else []
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        result = StrategyResult(
            best_move=best,
            score=score,
            top_moves=top_moves,
            evaluated=context.evaluated,
            cache_hits=context.cache_hits,
            elapsed_ms=elapsed_ms,
        )
        if self._telemetry_sink is not None:
            emit_dataclass_event(
                self._telemetry_sink,
                "strategy_end",
                StrategyEndEvent(
                    strategy=self.name,
                    best_move=format_move(best) if best is not None else None,
                    score=score,
                    top_moves=[(format_move(m), s) for m, s in top_moves],
                    evaluated=context.evaluated,
                    cache_hits=context.cache_hits,
                    cache_size=len(context.cache),
                    elapsed_ms=elapsed_ms,
                    reason=reason,
                ),
            )
        return result


def _rank(scored: Sequence[ScoredMove]) -> List[ScoredMove]:
    # sorted() is stable, so equal scores keep generation order.
    return sorted(scored, key=lambda item: item[1], reverse=True)


def _first_best(scored: Sequence[ScoredMove]) -> Tuple[Optional[Move], Optional[int]]:
    best_move: Optional[Move] = None
    best_score: Optional[int] = None
    for move, score in scored:
        if best_score is None or score > best_score:
            best_move = move
            best_score = score
    return best_move, best_score


# ---------------------------------------------------------------------------
# Greedy
# ---------------------------------------------------------------------------


def worst_opponent_reply(state: GameState, human: int) -> int:
    """Best one-ply reply available to ``human``, scored from its side (0 if none)."""
    worst = 0
    for reply in legal_moves(state, human):
        after = apply_move_fast(state, reply, human)
        reply_score = 0
        if forms_mill(after, human, reply.to):
            reply_score += GREEDY_REPLY_MILL
        reply_score += two_in_row(after, human) * GREEDY_REPLY_TWO_IN_ROW
        reply_score += mobility(after, human) * GREEDY_REPLY_MOBILITY
        worst = max(worst, reply_score)
    return worst


def greedy_move_score(
    after: GameState,
    move: Move,
    computer: int,
    human: int,
    threat_before: bool,
) -> int:
    score = 0
    if forms_mill(after, computer, move.to):
        score += GREEDY_MILL_BONUS
    if threat_before:
        score += GREEDY_THREAT_BONUS
    score -= worst_opponent_reply(after, human)
    score += (mobility(after, computer) - mobility(after, human)) * GREEDY_MOBILITY
    score += two_in_row(after, computer) * GREEDY_OWN_TWO_IN_ROW
    score -= two_in_row(after, human) * GREEDY_OPP_TWO_IN_ROW
    score += centrality(move.to) * GREEDY_CENTRALITY
    score += largest_cluster(after, computer) * GREEDY_OWN_CLUSTER
    score -= largest_cluster(after, human) * GREEDY_OPP_CLUSTER
    score += count_in_ring(after, computer, INNER) * GREEDY_INNER
    score += count_in_ring(after, computer, MIDDLE) * GREEDY_MIDDLE
    return score


class GreedyStrategy(_BaseStrategy):
    """One-ply evaluator with a one-ply look at the opponent's best reply."""

    name = GREEDY

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        telemetry_sink: Optional[TelemetrySink] = None,
    ) -> None:
        super().__init__(telemetry_sink)
        self._rng = rng if rng is not None else random.Random()

    def _select(self, state, moves, computer, human, context):
        threat_before = bool(mill_threats(state, human))
        scored: List[ScoredMove] = []
        for move in moves:
            after = apply_move_fast(state, move, computer)
            context.evaluated += 1
            score = greedy_move_score(after, move, computer, human, threat_before)
            score += self._rng.randrange(GREEDY_TIE_BREAK)
            context.record(move, score)
            scored.append((move, score))
        best, best_score = _first_best(scored)
        return best, best_score, _rank(scored)


# ---------------------------------------------------------------------------
# Divide & Conquer
# ---------------------------------------------------------------------------


def partition_by_ring(moves: Sequence[Move]) -> Dict[str, List[Move]]:
    regions: Dict[str, List[Move]] = {OUTER: [], MIDDLE: [], INNER: []}
    for move in moves:
        regions[RING_OF[move.to]].append(move)
    return regions


def merge_desc(left: Sequence[ScoredMove], right: Sequence[ScoredMove]) -> List[ScoredMove]:
    """Stable descending merge; on equal scores the left item comes first."""
    merged: List[ScoredMove] = []
    i = 0
    j = 0
    while i < len(left) and j < len(right):
        if left[i][1] >= right[j][1]:
            merged.append(left[i])
            i += 1
        else:
            merged.append(right[j])
            j += 1
    merged.extend(left[i:])
    merged.extend(right[j:])
    return merged


def merge_sort_desc(items: Sequence[ScoredMove]) -> List[ScoredMove]:
    if len(items) <= 1:
        return list(items)
    mid = len(items) // 2
    return merge_desc(merge_sort_desc(items[:mid]), merge_sort_desc(items[mid:]))


def divide_and_conquer_score(
    after: GameState,
    move: Move,
    computer: int,
    human: int,
    threats: Sequence[int],
) -> int:
    score = 0
    if forms_mill(after, computer, move.to):
        score += DC_MILL_BONUS
    if threats:
        if move.to in threats:
            score += DC_BLOCK_BONUS
        else:
            score -= DC_IGNORE_THREAT_PENALTY
    score += mobility(after, computer) * DC_MOBILITY
    score -= mobility(after, human) * DC_MOBILITY
    ring = RING_OF[move.to]
    if ring == INNER:
        score += DC_INNER
    elif ring == MIDDLE:
        score += DC_MIDDLE
    return score


class DivideAndConquerStrategy(_BaseStrategy):
    """Split candidates by destination ring, rank each region, merge the rankings."""

    name = DIVIDE_AND_CONQUER

    def _select(self, state, moves, computer, human, context):
        threats = mill_threats(state, human)
        regions = partition_by_ring(moves)

        ranked_regions: Dict[str, List[ScoredMove]] = {}
        for ring, region_moves in regions.items():
            scored: List[ScoredMove] = []
            for move in region_moves:
                after = apply_move_fast(state, move, computer)
                context.evaluated += 1
                score = divide_and_conquer_score(after, move, computer, human, threats)
                context.record(move, score, region=ring)
                scored.append((move, score))
            ranked_regions[ring] = merge_sort_desc(scored)

        merged = merge_desc(
            merge_desc(ranked_regions[OUTER], ranked_regions[MIDDLE]),
            ranked_regions[INNER],
        )
        if not merged:
            return None, None, []
        best, best_score = merged[0]
        return best, best_score, merged


# ---------------------------------------------------------------------------
# Shallow DP lookahead
# ---------------------------------------------------------------------------


def evaluate_position(state: GameState, computer: int, human: int) -> int:
    """Static evaluation from the computer's point of view."""
    computer_pieces = piece_count(state, computer)
    human_pieces = piece_count(state, human)
    if state.phase == MOVEMENT:
        if computer_pieces <= 2:
            return -DP_WIN_SCORE
        if human_pieces <= 2:
            return DP_WIN_SCORE

    score = (computer_pieces - human_pieces) * DP_PIECES
    score += (mobility(state, computer) - mobility(state, human)) * DP_MOBILITY
    score += mill_potential(state, computer) * DP_OWN_POTENTIAL
    score -= mill_potential(state, human) * DP_OPP_POTENTIAL
    score += two_in_row(state, computer) * DP_OWN_TWO_IN_ROW
    score -= two_in_row(state, human) * DP_OPP_TWO_IN_ROW
    score += count_in_ring(state, computer, MIDDLE) * DP_MIDDLE
    score += count_in_ring(state, computer, INNER) * DP_INNER
    score -= count_in_ring(state, human, MIDDLE) * DP_MIDDLE
    score -= count_in_ring(state, human, INNER) * DP_INNER
    return score


def occupancy_key(state: GameState) -> str:
    # Occupancy only: positions differing just in placed counters share an entry.
    return "".join(str(v) for v in state.cells)


class DpStrategy(_BaseStrategy):
    """
    Placement: fixed priority cascade (mill, block, inner ring, middle ring, first).

    Movement: every computer move is scored by the worst leaf over all human
    replies, with captures resolved by the evaluator on both sides. Leaf
    evaluations are memoised per call by board occupancy, so the cache is a
    heuristic and not a correct transposition table.
    """

    name = DP

    def _select(self, state, moves, computer, human, context):
        if state.phase == PLACEMENT:
            move = self._choose_placement(state, moves, computer, human)
            after = apply_move_fast(state, move, computer)
            score = self._evaluate(after, computer, human, context)
            context.record(move, score)
            return move, score, [(move, score)]

        scored: List[ScoredMove] = []
        for move in moves:
            score = self._score_two_ply(state, move, computer, human, context)
            context.record(move, score)
            scored.append((move, score))
        best, best_score = _first_best(scored)
        return best, best_score, _rank(scored)

    def _choose_placement(self, state: GameState, moves: List[Move], computer: int, human: int) -> Move:
        for move in moves:
            if forms_mill(apply_move_fast(state, move, computer), computer, move.to):
                return move
        for reply in legal_moves(state, human):
            if forms_mill(apply_move_fast(state, reply, human), human, reply.to):
                for move in moves:
                    if move.to == reply.to:
                        return move
        for move in moves:
            if RING_OF[move.to] == INNER:
                return move
        for move in moves:
            if RING_OF[move.to] == MIDDLE:
                return move
        return moves[0]

    def _score_two_ply(
        self,
        state: GameState,
        move: Move,
        computer: int,
        human: int,
        context: _RunContext,
    ) -> int:
        after = apply_move_fast(state, move, computer)
        if forms_mill(after, computer, move.to):
            after = self._apply_best_capture(after, computer, computer, human, context)

        replies = legal_moves(after, human)
        if not replies:
            return self._evaluate(after, computer, human, context) + DP_STALEMATE_BONUS

        worst: Optional[int] = None
        for reply in replies:
            leaf = apply_move_fast(after, reply, human)
            if forms_mill(leaf, human, reply.to):
                leaf = self._apply_best_capture(leaf, human, computer, human, context)
            value = self._evaluate(leaf, computer, human, context)
            if worst is None or value < worst:
                worst = value
        assert worst is not None
        return worst

    def _apply_best_capture(
        self,
        state: GameState,
        mover: int,
        computer: int,
        human: int,
        context: _RunContext,
    ) -> GameState:
        candidates = capture_candidates(state, opponent(mover))
        if not candidates:
            return state
        maximize = mover == computer
        best_index: Optional[int] = None
        best_score: Optional[int] = None
        for idx in candidates:
            score = self._evaluate(remove_piece(state, idx), computer, human, context)
            if best_score is None or (score > best_score if maximize else score < best_score):
                best_index = idx
                best_score = score
        assert best_index is not None
        return remove_piece(state, best_index)

    def _evaluate(self, state: GameState, computer: int, human: int, context: _RunContext) -> int:
        key = occupancy_key(state)
        cached = context.cache.get(key)
        if cached is not None:
            context.cache_hits += 1
            return cached
        context.evaluated += 1
        value = evaluate_position(state, computer, human)
        context.cache[key] = value
        return value


# ---------------------------------------------------------------------------
# Selection and turn protocol
# ---------------------------------------------------------------------------


def create_strategy(
    name: str,
    rng: Optional[random.Random] = None,
    telemetry_sink: Optional[TelemetrySink] = None,
) -> Strategy:
    if name == GREEDY:
        return GreedyStrategy(rng=rng, telemetry_sink=telemetry_sink)
    if name == DIVIDE_AND_CONQUER:
        return DivideAndConquerStrategy(telemetry_sink=telemetry_sink)
    if name == DP:
        return DpStrategy(telemetry_sink=telemetry_sink)
    raise ValueError(f"unknown strategy {name!r}; expected one of {', '.join(STRATEGY_NAMES)}")


def attach_capture(state: GameState, move: Move, side: int) -> Move:
    """Attach the first capture candidate when ``move`` forms a mill for ``side``."""
    after = apply_move_fast(state, move, side)
    if not forms_mill(after, side, move.to):
        return move
    candidates = capture_candidates(after, opponent(side))
    if not candidates:
        return move
    return with_capture(move, candidates[0])


def choose_computer_move(strategy: Strategy, state: GameState, computer: int, human: int) -> Optional[Move]:
    move = strategy.best_move(state, computer, human)
    if move is None:
        return None
    return attach_capture(state, move, computer)


def play_computer_turn(
    strategy: Strategy,
    state: GameState,
    computer: int,
    human: int,
) -> Tuple[GameState, Optional[Move]]:
    move = choose_computer_move(strategy, state, computer, human)
    if move is None:
        return state, None
    return apply_turn(state, move, computer), move
