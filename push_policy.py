"""
Push policies: how a discovered state sequence changes during a move.

A policy works on the sequence only, never on the grid. Index 0 is the
player's cell and the last index is the boundary that ended the slide.
"""

from __future__ import annotations

from typing import Protocol

from pearl_types import Direction, MoveRecord, RuleSet, StateTag, is_movable

__all__ = ["PushPolicy", "StandardPushPolicy", "can_push", "resolve_push"]

_PUSHABLE = {
    StateTag.MOVABLE_POS: {Direction.DOWN, Direction.RIGHT},
    StateTag.MOVABLE_NEG: {Direction.UP, Direction.LEFT},
}

_PLAYER_STOPS_BEFORE = frozenset({StateTag.WALL, StateTag.GATE_CLOSED})


class PushPolicy(Protocol):
    """Decides block relocation and the player's stop index for one sequence."""

    def move_blocks(
        self, states: list[StateTag], records: list[MoveRecord], direction: Direction
    ) -> None:
        ...

    def move_player(
        self, states: list[StateTag], records: list[MoveRecord], direction: Direction
    ) -> int:
        ...


def resolve_push(
    policy: PushPolicy,
    states: list[StateTag],
    records: list[MoveRecord],
    direction: Direction,
) -> tuple[list[StateTag], int]:
    """
    Run a policy over a sequence: blocks first, then the player.

    Args:
        policy: The push policy to apply
        states: Discovered state sequence (left unchanged)
        records: One MoveRecord per state, annotated in place
        direction: Direction of the move

    Returns:
        (new_states, player_index)
    """
    new_states = list(states)
    policy.move_blocks(new_states, records, direction)
    player_index = policy.move_player(new_states, records, direction)
    return new_states, player_index


def can_push(state: StateTag, direction: Direction) -> bool:
    return direction in _PUSHABLE.get(state, ())


class StandardPushPolicy:
    """
    Quell-style rules.

    The first movable block inside the sequence slides over empty cells as far
    as it can if its polarity allows the direction. The player then slides
    until it meets a wall, a closed gate or a block, or dies on spikes,
    collecting pearls and closing open gates behind it on the way. The gate
    it stops on stays open until the player leaves it.
    """

    def __init__(self, rules: RuleSet | None = None) -> None:
        self.rules = rules if rules is not None else RuleSet()

    def move_blocks(
        self, states: list[StateTag], records: list[MoveRecord], direction: Direction
    ) -> None:
        last = len(states) - 1  # the boundary never moves
        for index in range(1, last):
            state = states[index]
            if not is_movable(state):
                continue
            if not can_push(state, direction):
                return

            target = index
            while target + 1 < last and states[target + 1] is StateTag.EMPTY:
                target += 1
            if target != index:
                states[index] = StateTag.EMPTY
                states[target] = state
                records[index].moved_to = target
            return

    def move_player(
        self, states: list[StateTag], records: list[MoveRecord], direction: Direction
    ) -> int:
        stop = 0
        for index in range(1, len(states)):
            state = states[index]
            if state is StateTag.SPIKES:
                stop = index
                break
            if state in _PLAYER_STOPS_BEFORE or is_movable(state):
                break
            stop = index

        # index 0 is the gate the player may be leaving
        for index in range(stop + 1):
            if index > 0 and states[index] is StateTag.PEARL:
                states[index] = StateTag.EMPTY
                records[index].disappeared = True
            elif (
                states[index] is StateTag.GATE_OPEN
                and index < stop
                and self.rules.close_gates_behind
            ):
                states[index] = StateTag.GATE_CLOSED

        return stop
