"""
Shared type definitions for the pearls engine.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterator


class Direction(Enum):
    """Cardinal direction for a slide."""

    UP = "UP"  # decreasing row
    DOWN = "DOWN"  # increasing row
    LEFT = "LEFT"  # decreasing col
    RIGHT = "RIGHT"  # increasing col


class StateTag(Enum):
    """What a cell holds. Whether it stops a slide is decided by is_boundary()."""

    EMPTY = "EMPTY"
    PEARL = "PEARL"
    SPIKES = "SPIKES"
    WALL = "WALL"
    GATE_OPEN = "GATE_OPEN"
    GATE_CLOSED = "GATE_CLOSED"
    MOVABLE_POS = "MOVABLE_POS"  # pushable down or right
    MOVABLE_NEG = "MOVABLE_NEG"  # pushable up or left
    PORTAL = "PORTAL"


_ALWAYS_BOUNDARY = frozenset({StateTag.WALL, StateTag.GATE_CLOSED, StateTag.SPIKES})


def is_movable(state: StateTag) -> bool:
    return state is StateTag.MOVABLE_POS or state is StateTag.MOVABLE_NEG


def is_boundary(state: StateTag, movable_seen: bool) -> bool:
    """
    Check whether a state terminates a slide.

    Walls, closed gates and spikes always do. A movable block does only when
    another movable block was already seen earlier in the same sequence,
    since a block cannot push another block.
    """
    if state in _ALWAYS_BOUNDARY:
        return True
    return movable_seen and is_movable(state)


# =============================================================================
# Errors
# =============================================================================


class PearlsError(Exception):
    """Base class for engine errors."""


class MalformedLevel(PearlsError):
    """The level data breaks a precondition of the engine (no reachable boundary, stray portal)."""


class InvariantViolation(PearlsError):
    """A caller handed the engine data that is structurally inconsistent with the grid."""


# =============================================================================
# Grid Definition Types
# =============================================================================


@dataclass(frozen=True)
class Cell:
    """A single grid cell. Offsets only mean something for portals."""

    state: StateTag = StateTag.EMPTY
    player_present: bool = False
    row_offset: int = 0
    col_offset: int = 0


@dataclass(frozen=True)
class CellPosition:
    """A position within the grid."""

    row: int
    col: int


@dataclass
class MoveRecord:
    """Where the content of one sequence entry ended up after a move."""

    original_state: StateTag
    original_index: int
    moved_to: int | None = None
    disappeared: bool = False

    @property
    def moved(self) -> bool:
        return self.moved_to is not None and self.moved_to != self.original_index


@dataclass(frozen=True)
class RuleSet:
    """Rules governing engine and push behavior."""

    step_limit_factor: int = 4  # discovery gives up after factor * grid area steps
    close_gates_behind: bool = True


@dataclass
class Grid:
    """
    A mutable 2D grid of cells on a torus.

    The last `margin` rows and columns are a sentinel border that some level
    encodings carry; they are still part of the torus and the player may
    slide onto them, but pearls there are not counted.
    """

    cells: list[list[Cell]]
    margin: int = 0

    def __post_init__(self) -> None:
        if not self.cells or not self.cells[0]:
            raise ValueError("Grid must have at least one row and one column")

        cols = len(self.cells[0])
        mismatched = [(i, len(row)) for i, row in enumerate(self.cells) if len(row) != cols]
        if mismatched:
            error_msg = (
                f"Inconsistent row lengths in grid\n"
                f"  Expected: {cols} columns (from row 0)\n"
                f"  Mismatched rows:\n"
            )
            for row_idx, actual_cols in mismatched:
                error_msg += f"    Row {row_idx}: {actual_cols} columns\n"
            raise ValueError(error_msg)

        if self.margin < 0 or self.margin >= min(len(self.cells), cols):
            raise ValueError(
                f"Invalid margin {self.margin} for a {len(self.cells)}x{cols} grid"
            )

    @property
    def rows(self) -> int:
        return len(self.cells)

    @property
    def cols(self) -> int:
        return len(self.cells[0])

    @property
    def area(self) -> int:
        return self.rows * self.cols

    def contains(self, pos: CellPosition) -> bool:
        return 0 <= pos.row < self.rows and 0 <= pos.col < self.cols

    def cell(self, pos: CellPosition) -> Cell:
        return self.cells[pos.row][pos.col]

    def state_at(self, pos: CellPosition) -> StateTag:
        return self.cells[pos.row][pos.col].state

    def set_state(self, pos: CellPosition, state: StateTag) -> None:
        self.cells[pos.row][pos.col] = replace(self.cells[pos.row][pos.col], state=state)

    def set_player_present(self, pos: CellPosition, present: bool) -> None:
        self.cells[pos.row][pos.col] = replace(
            self.cells[pos.row][pos.col], player_present=present
        )

    def playable_positions(self) -> Iterator[CellPosition]:
        """Iterate over positions inside the margin, row-major."""
        for r in range(self.rows - self.margin):
            for c in range(self.cols - self.margin):
                yield CellPosition(r, c)

    def count(self, state: StateTag) -> int:
        return sum(1 for pos in self.playable_positions() if self.state_at(pos) is state)

    def find_player(self) -> CellPosition:
        for r, row in enumerate(self.cells):
            for c, cell in enumerate(row):
                if cell.player_present:
                    return CellPosition(r, c)
        raise InvariantViolation("No cell in the grid holds the player")

    def copy(self) -> Grid:
        return Grid([row[:] for row in self.cells], self.margin)
