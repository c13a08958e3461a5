"""
Level text parsing and formatting for Pearls.

One character per cell, rows separated by newlines or |:

    .  empty            #  wall
    *  pearl            ^  spikes
    o  open gate        x  closed gate
    +  movable block (pushable down/right)
    -  movable block (pushable up/left)
    $  the player, standing on an empty cell
    A-Z  portal; each letter appears exactly twice and the two ends lead to each other
"""

from __future__ import annotations

from typing import Callable, Sequence

import simple_chalk as chalk  # type: ignore[import-untyped]

from pearl_types import Cell, CellPosition, Grid, StateTag

__all__ = ["parse_level", "format_level"]

PLAYER_CHAR = "$"

STATE_CHARS: dict[str, StateTag] = {
    ".": StateTag.EMPTY,
    "*": StateTag.PEARL,
    "^": StateTag.SPIKES,
    "#": StateTag.WALL,
    "o": StateTag.GATE_OPEN,
    "x": StateTag.GATE_CLOSED,
    "+": StateTag.MOVABLE_POS,
    "-": StateTag.MOVABLE_NEG,
}

CHAR_FOR_STATE: dict[StateTag, str] = {state: char for char, state in STATE_CHARS.items()}

STATE_COLORS: dict[StateTag, Callable[[str], str]] = {
    StateTag.EMPTY: chalk.white,
    StateTag.PEARL: chalk.yellowBright,
    StateTag.SPIKES: chalk.red,
    StateTag.WALL: chalk.blue,
    StateTag.GATE_OPEN: chalk.green,
    StateTag.GATE_CLOSED: chalk.greenBright,
    StateTag.MOVABLE_POS: chalk.cyan,
    StateTag.MOVABLE_NEG: chalk.cyan,
    StateTag.PORTAL: chalk.magenta,
}


def _split_rows(definition: str | Sequence[str]) -> list[str]:
    if isinstance(definition, str):
        lines = definition.strip().replace("|", "\n").split("\n")
    else:
        lines = list(definition)
    return [line.strip() for line in lines if line.strip()]


def parse_level(definition: str | Sequence[str], margin: int = 0) -> Grid:
    """
    Parse a level from its text form.

    Example:
        parse_level("$.*A|##.#|..A^")

        Creates a 3x4 grid with the player at (0, 0), a pearl at (0, 2) and a
        portal pair at (0, 3) <-> (2, 2).

    Args:
        definition: Level string (rows separated by newlines or |) or a sequence of rows
        margin: Number of trailing sentinel rows/columns, see Grid

    Returns:
        Grid with portal offsets resolved and exactly one player

    Raises:
        ValueError: If the text is not a valid level
    """
    row_strings = _split_rows(definition)
    if not row_strings:
        raise ValueError("Empty level definition")

    cols = len(row_strings[0])
    mismatched = [(i, len(row)) for i, row in enumerate(row_strings) if len(row) != cols]
    if mismatched:
        error_msg = (
            f"Inconsistent row lengths in level\n"
            f"  Expected: {cols} columns (from row 0)\n"
            f"  Mismatched rows:\n"
        )
        for row_idx, actual_cols in mismatched:
            error_msg += f"    Row {row_idx}: {actual_cols} columns - \"{row_strings[row_idx]}\"\n"
        error_msg += "  All rows must have the same number of cells"
        raise ValueError(error_msg)

    cells: list[list[Cell]] = []
    portals: dict[str, list[CellPosition]] = {}
    players: list[CellPosition] = []

    for row_idx, row_str in enumerate(row_strings):
        row: list[Cell] = []
        for col_idx, char in enumerate(row_str):
            if char in STATE_CHARS:
                row.append(Cell(STATE_CHARS[char]))
            elif char == PLAYER_CHAR:
                players.append(CellPosition(row_idx, col_idx))
                row.append(Cell(StateTag.EMPTY, player_present=True))
            elif "A" <= char <= "Z":
                portals.setdefault(char, []).append(CellPosition(row_idx, col_idx))
                row.append(Cell(StateTag.PORTAL))
            else:
                raise ValueError(
                    f"Invalid character '{char}' in level\n"
                    f"  Row {row_idx}: \"{row_str}\"\n"
                    f"  Position: column {col_idx}\n"
                    f"  Valid characters: {''.join(STATE_CHARS)}{PLAYER_CHAR} and A-Z for portals"
                )
        cells.append(row)

    if len(players) != 1:
        raise ValueError(
            f"Level must contain exactly one player ('{PLAYER_CHAR}'), found {len(players)}"
        )

    for letter, ends in sorted(portals.items()):
        if len(ends) != 2:
            raise ValueError(
                f"Portal '{letter}' must appear exactly twice, found {len(ends)}\n"
                f"  Positions: {', '.join(f'({p.row}, {p.col})' for p in ends)}"
            )
        first, second = ends
        cells[first.row][first.col] = Cell(
            StateTag.PORTAL, row_offset=second.row - first.row, col_offset=second.col - first.col
        )
        cells[second.row][second.col] = Cell(
            StateTag.PORTAL, row_offset=first.row - second.row, col_offset=first.col - second.col
        )

    return Grid(cells, margin)


def format_level(grid: Grid, color: bool = False) -> str:
    """
    Format a grid back to level text, one line per row.

    Portals are relabelled A, B, ... in row-major order of their first end,
    so letters may differ from the text the grid was parsed from. The player
    is always shown as '$', whatever it stands on.

    Args:
        grid: The grid to format
        color: Colorize characters with ANSI codes (for debug output)

    Returns:
        Level text
    """
    labels: dict[CellPosition, str] = {}
    next_label = 0
    lines: list[str] = []

    for r, cell_row in enumerate(grid.cells):
        chars: list[str] = []
        for c, cell in enumerate(cell_row):
            pos = CellPosition(r, c)
            if cell.player_present:
                char = PLAYER_CHAR
            elif cell.state is StateTag.PORTAL:
                if pos not in labels:
                    label = chr(ord("A") + next_label % 26)
                    next_label += 1
                    labels[pos] = label
                    labels[CellPosition(r + cell.row_offset, c + cell.col_offset)] = label
                char = labels[pos]
            else:
                char = CHAR_FOR_STATE[cell.state]

            if color:
                colorize = chalk.redBright if cell.player_present else STATE_COLORS[cell.state]
                char = colorize(char)
            chars.append(char)
        lines.append("".join(chars))

    return "\n".join(lines)
