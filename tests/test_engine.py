import random
import unittest

from morris_board import (
    ADJ,
    INNER,
    INNER_RING,
    MIDDLE_RING,
    MILLS,
    MILLS_THROUGH,
    OUTER_RING,
    RING_OF,
    centrality,
    render_board,
)
from morris_engine import (
    COMPUTER,
    EMPTY,
    HUMAN,
    MOVEMENT,
    NO_INDEX,
    PLACEMENT,
    CaptureNotAllowedError,
    CaptureRequiredError,
    GameState,
    IllegalMoveError,
    Move,
    apply_move,
    apply_turn,
    capture_candidates,
    count_on_board,
    format_move,
    forms_mill,
    has_any_mill,
    initial_state,
    is_in_mill,
    is_terminal,
    key_to_state,
    legal_moves,
    opponent,
    parse_move,
    placement,
    placed,
    slide,
    state_key,
    with_capture,
)

# (row, col) of each point on the 7x7 grid, used for the symmetry audit.
COORDS = [
    (0, 0), (0, 3), (0, 6), (1, 1), (1, 3), (1, 5),
    (2, 2), (2, 3), (2, 4), (3, 0), (3, 1), (3, 2),
    (3, 4), (3, 5), (3, 6), (4, 2), (4, 3), (4, 4),
    (5, 1), (5, 3), (5, 5), (6, 0), (6, 3), (6, 6),
]


def make_state(human=(), computer=(), placed_human=9, placed_computer=9):
    cells = [EMPTY] * 24
    for idx in human:
        cells[idx] = HUMAN
    for idx in computer:
        cells[idx] = COMPUTER
    return GameState(tuple(cells), placed_human, placed_computer)


def random_capture(state, move, side, rng):
    after = apply_move(state, move, side)
    if forms_mill(after, side, move.to):
        candidates = capture_candidates(after, opponent(side))
        if candidates:
            return with_capture(move, rng.choice(candidates))
    return move


class TestBoard(unittest.TestCase):
    def test_adjacency_is_symmetric_with_32_edges(self):
        edges = set()
        for p, neighbors in enumerate(ADJ):
            self.assertEqual(list(neighbors), sorted(neighbors))
            self.assertIn(len(neighbors), (2, 3, 4))
            for q in neighbors:
                self.assertIn(p, ADJ[q])
                edges.add(frozenset((p, q)))
        self.assertEqual(len(edges), 32)

    def test_every_point_is_in_exactly_two_mills(self):
        self.assertEqual(len(MILLS), 16)
        for p in range(24):
            self.assertEqual(len(MILLS_THROUGH[p]), 2)
            for idx in MILLS_THROUGH[p]:
                self.assertIn(p, MILLS[idx])

    def test_rings_partition_the_board(self):
        self.assertEqual(sorted(OUTER_RING + MIDDLE_RING + INNER_RING), list(range(24)))
        self.assertEqual(RING_OF[7], INNER)
        self.assertEqual(centrality(4), 4)
        self.assertEqual(centrality(0), 2)

    def test_mills_and_edges_closed_under_board_symmetries(self):
        index_of = {coord: idx for idx, coord in enumerate(COORDS)}
        rotate = [index_of[(c, 6 - r)] for r, c in COORDS]
        reflect = [index_of[(r, 6 - c)] for r, c in COORDS]
        mills = {frozenset(m) for m in MILLS}
        edges = {frozenset((p, q)) for p in range(24) for q in ADJ[p]}
        for perm in (rotate, reflect):
            self.assertEqual({frozenset(perm[p] for p in m) for m in mills}, mills)
            self.assertEqual({frozenset(perm[p] for p in e) for e in edges}, edges)

    def test_render_board_shows_pieces(self):
        state = make_state(human=[0], computer=[23])
        text = render_board(state.cells)
        lines = text.splitlines()
        self.assertTrue(lines[0].startswith("H-"))
        self.assertTrue(lines[-1].split()[0].endswith("-C"))


class TestMoveCodec(unittest.TestCase):
    def test_format_move_variants(self):
        self.assertEqual(format_move(placement(4)), "P5")
        self.assertEqual(format_move(slide(4, 5)), "P5->P6")
        self.assertEqual(format_move(with_capture(slide(13, 2), 11)), "P14->P3 x P12")

    def test_parse_move_accepts_loose_forms(self):
        self.assertEqual(parse_move("p5"), placement(4))
        self.assertEqual(parse_move(" P5 -> P6 "), slide(4, 5))
        self.assertEqual(parse_move("P3 x P12"), Move(NO_INDEX, 2, 11))
        self.assertEqual(parse_move("14->3 x 12"), Move(13, 2, 11))

    def test_parse_move_rejects_garbage(self):
        for raw in ("", "P0", "P25", "hello", "P1->"):
            with self.assertRaises(ValueError):
                parse_move(raw)

    def test_moves_compare_structurally(self):
        self.assertEqual(slide(1, 2), Move(1, 2, NO_INDEX))
        self.assertNotEqual(slide(1, 2), with_capture(slide(1, 2), 5))
        self.assertTrue(placement(3).is_placement)
        self.assertFalse(slide(3, 4).is_placement)


class TestRules(unittest.TestCase):
    def test_initial_state(self):
        state = initial_state()
        self.assertEqual(state.phase, PLACEMENT)
        self.assertEqual(state.cells, (EMPTY,) * 24)
        self.assertEqual(legal_moves(state, HUMAN), [placement(i) for i in range(24)])

    def test_placement_forms_mill_and_captures(self):
        state = initial_state()
        for side, point in ((HUMAN, 0), (COMPUTER, 3), (HUMAN, 1), (COMPUTER, 4), (HUMAN, 2)):
            state = apply_move(state, placement(point), side)
        self.assertTrue(forms_mill(state, HUMAN, 2))
        self.assertTrue(has_any_mill(state, HUMAN))
        self.assertEqual(capture_candidates(state, COMPUTER), [3, 4])
        self.assertEqual(placed(state, HUMAN), 3)
        self.assertEqual(placed(state, COMPUTER), 2)

    def test_only_mills_left_falls_back_to_all_pieces(self):
        state = make_state(human=[3, 4, 5, 12], computer=[0, 1, 2])
        self.assertTrue(is_in_mill(state, 0))
        self.assertEqual(capture_candidates(state, COMPUTER), [0, 1, 2])

    def test_capture_candidates_skip_mill_pieces(self):
        state = make_state(human=[3], computer=[0, 1, 2, 7, 20])
        self.assertEqual(capture_candidates(state, COMPUTER), [7, 20])

    def test_flying_side_may_move_anywhere(self):
        state = make_state(human=[21, 22, 23], computer=[0, 1, 3, 4, 6, 12])
        empties = [i for i in range(24) if state.cells[i] == EMPTY]
        moves = legal_moves(state, HUMAN)
        self.assertEqual(moves, [slide(f, t) for f in (21, 22, 23) for t in empties])
        self.assertIn(slide(21, 5), moves)

    def test_movement_slides_follow_adjacency(self):
        state = make_state(human=[0, 4, 9, 19], computer=[1, 10, 13, 16, 20])
        moves = legal_moves(state, HUMAN)
        self.assertEqual(moves, sorted(moves, key=lambda m: (m.from_, m.to)))
        for move in moves:
            self.assertIn(move.to, ADJ[move.from_])
            self.assertEqual(state.cells[move.to], EMPTY)
        self.assertNotIn(slide(0, 1), moves)
        self.assertIn(slide(4, 3), moves)

    def test_terminal_by_piece_count(self):
        state = make_state(human=[0, 4, 9, 19], computer=[12, 23])
        self.assertEqual(state.phase, MOVEMENT)
        self.assertEqual(is_terminal(state, HUMAN), HUMAN)
        self.assertEqual(is_terminal(state, COMPUTER), HUMAN)

    def test_terminal_by_immobility(self):
        state = make_state(human=[4, 9, 10, 14], computer=[0, 1, 2, 3])
        self.assertGreater(count_on_board(state, COMPUTER), 3)
        self.assertEqual(legal_moves(state, COMPUTER), [])
        self.assertEqual(is_terminal(state, COMPUTER), HUMAN)
        self.assertIsNone(is_terminal(state, HUMAN))

    def test_placement_phase_is_never_terminal(self):
        state = make_state(computer=[0], placed_human=0, placed_computer=1)
        self.assertIsNone(is_terminal(state, HUMAN))

    def test_phase_switches_after_eighteen_placements(self):
        state = initial_state()
        side = HUMAN
        for point in (0, 3, 6, 9, 12, 15, 18, 21, 1, 4, 7, 10, 13, 16, 19, 22, 2, 5):
            self.assertEqual(state.phase, PLACEMENT)
            state = apply_move(state, placement(point), side)
            side = opponent(side)
        self.assertEqual(state.phase, MOVEMENT)
        self.assertTrue(all(not m.is_placement for m in legal_moves(state, HUMAN)))
        with self.assertRaises(IllegalMoveError):
            apply_move(state, placement(23), HUMAN)

    def test_apply_move_rejects_illegal_moves(self):
        state = make_state(human=[0, 4, 9, 19], computer=[1, 10, 13, 16, 20])
        with self.assertRaises(IllegalMoveError):
            apply_move(state, slide(0, 1), HUMAN)
        with self.assertRaises(IllegalMoveError):
            apply_move(state, slide(1, 2), HUMAN)
        with self.assertRaises(IllegalMoveError):
            apply_move(state, slide(0, 5), HUMAN)

    def test_apply_turn_requires_capture_after_mill(self):
        state = make_state(human=[0, 1], computer=[5, 12], placed_human=2, placed_computer=2)
        with self.assertRaises(CaptureRequiredError):
            apply_turn(state, placement(2), HUMAN)
        after = apply_turn(state, with_capture(placement(2), 12), HUMAN)
        self.assertEqual(after.cells[12], EMPTY)
        self.assertEqual(after.cells[2], HUMAN)

    def test_capture_rejected_without_mill_or_on_protected_piece(self):
        state = make_state(human=[0, 1], computer=[3, 4, 5, 12], placed_human=2, placed_computer=4)
        with self.assertRaises(CaptureNotAllowedError):
            apply_move(state, with_capture(placement(20), 12), HUMAN)
        with self.assertRaises(CaptureNotAllowedError):
            apply_move(state, with_capture(placement(2), 4), HUMAN)
        with self.assertRaises(CaptureNotAllowedError):
            apply_move(state, with_capture(placement(2), 1), HUMAN)

    def test_clone_and_apply_leave_original_untouched(self):
        state = make_state(human=[0], computer=[5], placed_human=1, placed_computer=1)
        snapshot = state.clone()
        apply_move(state, placement(7), HUMAN)
        self.assertEqual(state, snapshot)

    def test_state_key_round_trip(self):
        state = make_state(human=[0, 7], computer=[5], placed_human=2, placed_computer=1)
        self.assertEqual(key_to_state(state_key(state)), state)
        self.assertIsNone(key_to_state("bogus"))
        self.assertIsNone(key_to_state("0" * 23 + "3|0|0"))

    def test_random_playouts_preserve_invariants(self):
        rng = random.Random(5)
        for _ in range(25):
            state = initial_state()
            side = HUMAN
            captured = {HUMAN: 0, COMPUTER: 0}
            reached_movement = False
            for _ in range(120):
                if is_terminal(state, side) is not None:
                    break
                moves = legal_moves(state, side)
                self.assertEqual(moves, legal_moves(state, side))
                for m in moves:
                    self.assertEqual(state.cells[m.to], EMPTY)
                move = random_capture(state, rng.choice(moves), side, rng)
                state = apply_turn(state, move, side)

                self.assertEqual(state.cells[move.to], side)
                if not move.is_placement:
                    self.assertEqual(state.cells[move.from_], EMPTY)
                if move.is_capture:
                    captured[opponent(side)] += 1
                    self.assertEqual(state.cells[move.removed], EMPTY)
                if forms_mill(state, side, move.to):
                    self.assertTrue(has_any_mill(state, side))
                for s in (HUMAN, COMPUTER):
                    on_board = count_on_board(state, s)
                    self.assertLessEqual(on_board, 9 - captured[s])
                    self.assertLessEqual(on_board, placed(state, s))
                    self.assertLessEqual(placed(state, s), 9)
                if reached_movement:
                    self.assertEqual(state.phase, MOVEMENT)
                reached_movement = state.phase == MOVEMENT
                side = opponent(side)


if __name__ == "__main__":
    unittest.main()
