"""
Test rotation framework for systematic directional testing.

This module provides utilities to write a move scenario once and automatically
run it in all 4 rotations (0°, 90°, 180°, 270°), ensuring comprehensive
directional coverage.

Block polarity is not rotation-invariant: MOVABLE_POS is pushed down/right and
MOVABLE_NEG up/left. Rotating 90° clockwise keeps the sign of a horizontal
direction (RIGHT -> DOWN, LEFT -> UP) but flips the sign of a vertical one
(DOWN -> LEFT, UP -> RIGHT), so '+' and '-' are swapped whenever a scenario
with a vertical direction is rotated.
"""

from dataclasses import dataclass, replace

from level_parser import parse_level
from pearl_types import CellPosition, Direction, Grid, RuleSet
from pearls import Pearls


# =============================================================================
# Rotation Utilities
# =============================================================================


def _rows(level: str) -> list[str]:
    return [line.strip() for line in level.replace("|", "\n").split("\n") if line.strip()]


def rotate_level_90(level: str, swap_polarity: bool = False) -> str:
    """
    Rotate level text 90° clockwise.

    In an N×M level rotated 90° clockwise, it becomes M×N.
    Position (row, col) → (col, N - 1 - row)
    """
    rows = _rows(level)
    n = len(rows)
    rotated = ["".join(rows[n - 1 - k][c] for k in range(n)) for c in range(len(rows[0]))]
    if swap_polarity:
        rotated = [row.translate(str.maketrans("+-", "-+")) for row in rotated]
    return "|".join(rotated)


def rotate_direction_90(direction: Direction) -> Direction:
    """Rotate a direction 90° clockwise."""
    rotation_map = {
        Direction.UP: Direction.RIGHT,
        Direction.RIGHT: Direction.DOWN,
        Direction.DOWN: Direction.LEFT,
        Direction.LEFT: Direction.UP,
    }
    return rotation_map[direction]


# =============================================================================
# Test Case Data Structures
# =============================================================================


@dataclass
class MoveScenario:
    """
    One move from a starting level to an expected level.

    Example usage:
        scenario = MoveScenario(
            name="collect_pearl",
            level="$.*.#",
            direction=Direction.RIGHT,
            expected="...$#",
            score=1,
        )
        run_rotational_scenario(scenario)

    In `expected`, '$' marks where the player must end up; the state under
    the player is not checked, since the text form cannot show it.
    """

    name: str
    level: str
    direction: Direction
    expected: str
    score: int = 0
    won: bool | None = None  # None = don't check

    def rotate_90(self) -> "MoveScenario":
        """Create a new MoveScenario rotated 90° clockwise."""
        swap = self.direction in (Direction.UP, Direction.DOWN)
        return replace(
            self,
            level=rotate_level_90(self.level, swap),
            direction=rotate_direction_90(self.direction),
            expected=rotate_level_90(self.expected, swap),
        )

    def get_all_rotations(self) -> list[tuple[int, "MoveScenario"]]:
        """
        Generate all 4 rotations of this scenario.

        Returns:
            List of (rotation_degrees, scenario) tuples
        """
        results = []
        current = self
        for rotation in [0, 90, 180, 270]:
            results.append((rotation, current))
            current = current.rotate_90()
        return results


# =============================================================================
# Test Runner
# =============================================================================


def assert_level(grid: Grid, expected: str) -> None:
    """
    Check that a grid matches expected level text.

    Args:
        grid: The resulting grid
        expected: Level text; '$' marks the player, its cell's state is not compared
    """
    expected_grid = parse_level(expected)
    assert (grid.rows, grid.cols) == (expected_grid.rows, expected_grid.cols), (
        f"Expected {expected_grid.rows}x{expected_grid.cols} grid, got {grid.rows}x{grid.cols}"
    )

    player = expected_grid.find_player()
    assert grid.find_player() == player, (
        f"Expected player at ({player.row}, {player.col}), got {grid.find_player()}"
    )

    for r in range(grid.rows):
        for c in range(grid.cols):
            pos = CellPosition(r, c)
            if pos == player:
                continue
            assert grid.state_at(pos) is expected_grid.state_at(pos), (
                f"Expected {expected_grid.state_at(pos).value} at ({r},{c}), "
                f"got {grid.state_at(pos).value}"
            )


def run_rotational_scenario(scenario: MoveScenario, rules: RuleSet | None = None) -> None:
    """
    Run a move scenario through all 4 rotations.

    Args:
        scenario: The scenario to run
        rules: Optional RuleSet for the game session
    """
    for rotation, variant in scenario.get_all_rotations():
        game = Pearls(variant.level, rules=rules)
        game.move(variant.direction)

        try:
            assert_level(game.grid, variant.expected)
            assert game.moves == 1, f"Expected 1 move, got {game.moves}"
            assert game.score == variant.score, (
                f"Expected score {variant.score}, got {game.score}"
            )
            if variant.won is not None:
                assert game.won() == variant.won, f"Expected won() == {variant.won}"
        except AssertionError as e:
            raise AssertionError(
                f"{scenario.name} at {rotation}° ({variant.direction.value}): {e}"
            ) from e
