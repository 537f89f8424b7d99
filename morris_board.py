"""Static topology of the standard 24-point Nine Men's Morris board."""

from __future__ import annotations

from typing import Dict, Sequence, Tuple

POINTS = 24

OUTER = "OUTER"
MIDDLE = "MIDDLE"
INNER = "INNER"

OUTER_RING: Tuple[int, ...] = (0, 1, 2, 14, 23, 22, 21, 9)
MIDDLE_RING: Tuple[int, ...] = (3, 4, 5, 13, 20, 19, 18, 10)
INNER_RING: Tuple[int, ...] = (6, 7, 8, 12, 17, 16, 15, 11)

RINGS: Dict[str, Tuple[int, ...]] = {
    OUTER: OUTER_RING,
    MIDDLE: MIDDLE_RING,
    INNER: INNER_RING,
}

_EDGES: Dict[int, Tuple[int, ...]] = {
    0: (1, 9),
    1: (0, 2, 4),
    2: (1, 14),
    3: (4, 10),
    4: (1, 3, 5, 7),
    5: (4, 13),
    6: (7, 11),
    7: (4, 6, 8),
    8: (7, 12),
    9: (0, 10, 21),
    10: (3, 9, 11, 18),
    11: (6, 10, 15),
    12: (8, 13, 17),
    13: (5, 12, 14, 20),
    14: (2, 13, 23),
    15: (11, 16),
    16: (15, 17, 19),
    17: (12, 16),
    18: (10, 19),
    19: (16, 18, 20, 22),
    20: (13, 19),
    21: (9, 22),
    22: (19, 21, 23),
    23: (14, 22),
}

ADJ: Tuple[Tuple[int, ...], ...] = tuple(tuple(sorted(_EDGES[p])) for p in range(POINTS))

# Order matters: strategies and tests index mills by position in this tuple.
MILLS: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (15, 16, 17),
    (18, 19, 20),
    (21, 22, 23),
    (0, 9, 21),
    (3, 10, 18),
    (6, 11, 15),
    (2, 14, 23),
    (5, 13, 20),
    (8, 12, 17),
    (1, 4, 7),
    (16, 19, 22),
    (9, 10, 11),
    (12, 13, 14),
)


def _build_ring_of() -> Tuple[str, ...]:
    ring_of = [""] * POINTS
    for name, members in RINGS.items():
        for p in members:
            ring_of[p] = name
    return tuple(ring_of)


def _build_mills_through() -> Tuple[Tuple[int, ...], ...]:
    through: list[list[int]] = [[] for _ in range(POINTS)]
    for idx, mill in enumerate(MILLS):
        for p in mill:
            through[p].append(idx)
    return tuple(tuple(indices) for indices in through)


RING_OF: Tuple[str, ...] = _build_ring_of()
MILLS_THROUGH: Tuple[Tuple[int, ...], ...] = _build_mills_through()


def centrality(pos: int) -> int:
    return len(ADJ[pos])


def point_name(pos: int) -> str:
    return f"P{pos + 1}"


_GLYPHS = {0: ".", 1: "H", 2: "C"}


def render_board(cells: Sequence[int]) -> str:
    """
    ASCII board in the classical three-square layout.

    Points are numbered P1..P24 row by row from the top-left corner, which is
    the same order as the cell indices 0..23.
    """
    g = [_GLYPHS.get(v, "?") for v in cells]
    lines = [
        f"{g[0]}-----------{g[1]}-----------{g[2]}      P1----P2----P3",
        "|           |           |",
        f"|   {g[3]}-------{g[4]}-------{g[5]}   |      P4----P5----P6",
        "|   |       |       |   |",
        f"|   |   {g[6]}---{g[7]}---{g[8]}   |   |      P7----P8----P9",
        "|   |   |       |   |   |",
        f"{g[9]}---{g[10]}---{g[11]}       {g[12]}---{g[13]}---{g[14]}      P10-P11-P12 P13-P14-P15",
        "|   |   |       |   |   |",
        f"|   |   {g[15]}---{g[16]}---{g[17]}   |   |      P16---P17---P18",
        "|   |       |       |   |",
        f"|   {g[18]}-------{g[19]}-------{g[20]}   |      P19---P20---P21",
        "|           |           |",
        f"{g[21]}-----------{g[22]}-----------{g[23]}      P22---P23---P24",
    ]
    return "\n".join(lines)
