from __future__ import annotations

from collections import defaultdict
from itertools import combinations
import logging
import random

from app.services.block_assigner import BlockDraft, TeacherLimit, code_counts, gap_cost
from app.services.conflict_graph import ConflictGraph

logger = logging.getLogger(__name__)


def block_students(block: BlockDraft, graph: ConflictGraph) -> set[str]:
    students: set[str] = set()
    for member in block.members:
        students.update(graph.instances[member].students)
    return students


def can_merge_blocks(
    first: BlockDraft,
    second: BlockDraft,
    graph: ConflictGraph,
    teacher_limit: TeacherLimit,
) -> bool:
    if first.is_pure or second.is_pure:
        return False
    if not block_students(first, graph).isdisjoint(block_students(second, graph)):
        return False
    if any(graph.conflicts(left, right) for left in first.members for right in second.members):
        return False
    for code, count in code_counts((first, second), graph).items():
        limit = teacher_limit(code)
        if limit is not None and count > limit:
            return False
    return True


def merge_blocks(
    blocks: list[BlockDraft],
    graph: ConflictGraph,
    teacher_limit: TeacherLimit,
) -> list[BlockDraft]:
    """Merge compatible mixed blocks until no pair can be merged.

    The scan restarts from the first pair after every successful merge.
    """
    merged = [block for block in blocks if not block.is_pure]
    merge_count = 0
    changed = True
    while changed:
        changed = False
        for left, right in combinations(range(len(merged)), 2):
            if not can_merge_blocks(merged[left], merged[right], graph, teacher_limit):
                continue
            merged[left].members.extend(merged[right].members)
            del merged[right]
            merge_count += 1
            changed = True
            logger.debug("Merged block %d into block %d (%d blocks left)", right + 1, left + 1, len(merged))
            break
    if merge_count:
        logger.info("Block merge removed %d block(s)", merge_count)
    return merged


def total_gap_cost(blocks: list[BlockDraft], graph: ConflictGraph) -> int:
    positions: dict[str, set[int]] = defaultdict(set)
    for position, block in enumerate(blocks):
        for member in block.members:
            for student_id in graph.instances[member].students:
                positions[student_id].add(position)
    return sum(gap_cost(occupied) for occupied in positions.values())


def optimize_sequence(
    blocks: list[BlockDraft],
    graph: ConflictGraph,
    *,
    iterations: int,
    rng: random.Random,
) -> tuple[list[BlockDraft], int]:
    """Hill-climb over pairwise block swaps, keeping only strict improvements."""
    sequence = list(blocks)
    best_cost = total_gap_cost(sequence, graph)
    if len(sequence) < 2 or iterations <= 0:
        return sequence, best_cost

    initial_cost = best_cost
    accepted = 0
    for _ in range(iterations):
        left, right = rng.sample(range(len(sequence)), 2)
        sequence[left], sequence[right] = sequence[right], sequence[left]
        cost = total_gap_cost(sequence, graph)
        if cost < best_cost:
            best_cost = cost
            accepted += 1
        else:
            sequence[left], sequence[right] = sequence[right], sequence[left]

    logger.debug(
        "Sequence optimizer accepted %d of %d swaps (gap cost %d -> %d)",
        accepted,
        iterations,
        initial_cost,
        best_cost,
    )
    return sequence, best_cost
