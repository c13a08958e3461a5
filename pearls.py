"""
Move resolution for the Pearls sliding puzzle.

A move is resolved in three phases over one shared traversal:
discover (read the state sequence) -> push policy -> write back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Sequence

from level_parser import format_level, parse_level
from pearl_types import (
    Cell,
    CellPosition,
    Direction,
    Grid,
    InvariantViolation,
    MalformedLevel,
    MoveRecord,
    RuleSet,
    StateTag,
    is_boundary,
    is_movable,
)
from push_policy import PushPolicy, StandardPushPolicy, resolve_push

logger = logging.getLogger(__name__)

# Direction deltas: (row_delta, col_delta)
DELTAS = {
    Direction.UP: (-1, 0),
    Direction.DOWN: (1, 0),
    Direction.LEFT: (0, -1),
    Direction.RIGHT: (0, 1),
}

# States that a push policy may never move or create
_FIXED_STATES = frozenset({StateTag.WALL, StateTag.PORTAL})


# =============================================================================
# Geometry
# =============================================================================


def next_position(grid: Grid, pos: CellPosition, direction: Direction) -> CellPosition:
    """Step one cell in direction, wrapping around the torus."""
    dr, dc = DELTAS[direction]
    return CellPosition((pos.row + dr) % grid.rows, (pos.col + dc) % grid.cols)


def portal_jump(grid: Grid, pos: CellPosition) -> CellPosition:
    """
    Jump by the offset of the portal at pos. No wrapping.

    Raises:
        MalformedLevel: If the destination lies outside the grid
    """
    cell = grid.cell(pos)
    dest = CellPosition(pos.row + cell.row_offset, pos.col + cell.col_offset)
    if not grid.contains(dest):
        raise MalformedLevel(
            f"Portal at ({pos.row}, {pos.col}) leads outside the grid to ({dest.row}, {dest.col})"
        )
    return dest


# =============================================================================
# Traversal
# =============================================================================


@dataclass(frozen=True)
class Step:
    """One visited cell of a slide."""

    index: int
    position: CellPosition
    state: StateTag


def trace(
    grid: Grid,
    start: CellPosition,
    direction: Direction,
    rules: RuleSet | None = None,
) -> Iterator[Step]:
    """
    Walk a slide from start to the boundary that ends it, yielding each cell.

    The first step is the start cell itself (index 0), the last one is the
    boundary. Stepping onto a portal by a directional step makes the next
    step a jump by that portal's offset; the cell landed on does not jump
    again, so a pair of portals leading to each other does not bounce.
    Once a movable block has been passed, a second block ends the slide.

    Args:
        grid: The grid to walk (read only)
        start: Starting cell, normally the player's
        direction: Direction of the slide
        rules: RuleSet providing the step limit

    Yields:
        Step for each visited cell, in order

    Raises:
        MalformedLevel: If no boundary is reached within the step limit
    """
    if rules is None:
        rules = RuleSet()
    max_steps = rules.step_limit_factor * grid.area

    current = start
    yield Step(0, current, grid.state_at(current))

    movable_seen = False
    pending_jump = False
    for index in range(1, max_steps + 1):
        jumped = pending_jump
        if pending_jump:
            current = portal_jump(grid, current)
            pending_jump = False
        else:
            current = next_position(grid, current, direction)

        state = grid.state_at(current)
        yield Step(index, current, state)

        if is_boundary(state, movable_seen):
            return
        movable_seen = movable_seen or is_movable(state)
        pending_jump = state is StateTag.PORTAL and not jumped

    raise MalformedLevel(
        f"No boundary reached sliding {direction.value} from ({start.row}, {start.col}) "
        f"within {max_steps} steps"
    )


def discover_sequence(
    grid: Grid,
    row: int,
    col: int,
    direction: Direction,
    rules: RuleSet | None = None,
) -> list[StateTag]:
    """
    Return the state sequence of a slide without touching the grid.

    Index 0 is the state at (row, col); the last element is the boundary.
    """
    return [step.state for step in trace(grid, CellPosition(row, col), direction, rules)]


def _check_consistent(steps: list[Step], new_states: Sequence[StateTag], player_index: int) -> None:
    if len(new_states) != len(steps):
        raise InvariantViolation(
            f"Sequence length mismatch: path has {len(steps)} cells, got {len(new_states)} states"
        )
    if player_index < 0:
        raise InvariantViolation(f"Negative player index {player_index}")

    for step, new_state in zip(steps, new_states):
        was_fixed = step.state in _FIXED_STATES
        is_fixed = new_state in _FIXED_STATES
        if (was_fixed or is_fixed) and step.state is not new_state:
            raise InvariantViolation(
                f"State at index {step.index} ({step.position.row}, {step.position.col}) "
                f"cannot change from {step.state.value} to {new_state.value}"
            )


def apply_sequence(
    grid: Grid,
    row: int,
    col: int,
    direction: Direction,
    new_states: Sequence[StateTag],
    player_index: int,
    rules: RuleSet | None = None,
) -> CellPosition:
    """
    Write a modified state sequence back along the path it was discovered on.

    The path is retraced from the grid as it is before any write, so the
    walk is the same one discover_sequence() saw. The player moves from
    (row, col) to the cell at player_index; when player_index is past the
    end of the path (the slide ended on spikes or a wall first), the player
    lands on the boundary cell instead.

    Args:
        grid: The grid to update in place
        row: Player's row before the move
        col: Player's column before the move
        direction: Direction of the slide
        new_states: One state per path cell, as returned by a push policy
        player_index: Index within new_states where the player stops
        rules: RuleSet providing the step limit

    Returns:
        The player's new position

    Raises:
        InvariantViolation: If new_states does not fit the path
    """
    start = CellPosition(row, col)
    steps = list(trace(grid, start, direction, rules))
    _check_consistent(steps, new_states, player_index)

    grid.set_player_present(start, False)
    for step, state in zip(steps, new_states):
        grid.set_state(step.position, state)

    if player_index >= len(steps):
        logger.debug(
            "apply_sequence: player index %d beyond path of %d cells, landing on boundary",
            player_index,
            len(steps),
        )
        player_index = len(steps) - 1

    landing = steps[player_index].position
    grid.set_player_present(landing, True)
    return landing


# =============================================================================
# Game Session
# =============================================================================


class Pearls:
    """
    One game of Pearls: the grid plus move and score bookkeeping.

    Usage:
        game = Pearls("$.*#")
        records = game.move(Direction.RIGHT)
        print(game.score, game.moves, game.is_over())
    """

    def __init__(
        self,
        level: Grid | str | Sequence[str],
        policy: PushPolicy | None = None,
        rules: RuleSet | None = None,
    ) -> None:
        self.grid = level if isinstance(level, Grid) else parse_level(level)
        self.rules = rules if rules is not None else RuleSet()
        self.policy = policy if policy is not None else StandardPushPolicy(self.rules)
        self.moves = 0
        self.score = 0

    # -- queries --------------------------------------------------------------

    @property
    def rows(self) -> int:
        return self.grid.rows

    @property
    def columns(self) -> int:
        return self.grid.cols

    def get_cell(self, row: int, col: int) -> Cell:
        return self.grid.cell(CellPosition(row, col))

    @property
    def current_position(self) -> CellPosition:
        return self.grid.find_player()

    @property
    def current_row(self) -> int:
        return self.current_position.row

    @property
    def current_column(self) -> int:
        return self.current_position.col

    def count_pearls(self) -> int:
        return self.grid.count(StateTag.PEARL)

    def _on_spikes(self) -> bool:
        return self.grid.state_at(self.current_position) is StateTag.SPIKES

    def is_over(self) -> bool:
        """True when no pearls are left or the player sits on spikes."""
        return self.count_pearls() == 0 or self._on_spikes()

    def won(self) -> bool:
        return self.is_over() and not self._on_spikes()

    # -- sequences ------------------------------------------------------------

    def get_state_sequence(self, direction: Direction) -> list[StateTag]:
        pos = self.current_position
        return discover_sequence(self.grid, pos.row, pos.col, direction, self.rules)

    def set_state_sequence(
        self, states: Sequence[StateTag], direction: Direction, player_index: int
    ) -> CellPosition:
        pos = self.current_position
        return apply_sequence(
            self.grid, pos.row, pos.col, direction, states, player_index, self.rules
        )

    # -- moves ----------------------------------------------------------------

    def move(self, direction: Direction) -> list[MoveRecord]:
        """
        Slide the player in direction, updating grid, score and move count.

        Any direction is accepted; a slide that goes nowhere still counts as
        a move.

        Returns:
            One MoveRecord per entry of the original state sequence, annotated
            with where its content went
        """
        pearls_before = self.count_pearls()

        start = self.current_position
        states = discover_sequence(self.grid, start.row, start.col, direction, self.rules)
        records = [MoveRecord(state, i) for i, state in enumerate(states)]

        new_states, player_index = resolve_push(self.policy, states, records, direction)
        landing = apply_sequence(
            self.grid, start.row, start.col, direction, new_states, player_index, self.rules
        )

        collected = pearls_before - self.count_pearls()
        self.score += collected
        self.moves += 1

        logger.info(
            "move %d %s: %d cells, player (%d, %d) -> (%d, %d), pearls collected=%d",
            self.moves,
            direction.value,
            len(states),
            start.row,
            start.col,
            landing.row,
            landing.col,
            collected,
        )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("grid after move %d:\n%s", self.moves, format_level(self.grid, color=True))
        return records

    def __str__(self) -> str:
        return format_level(self.grid)
