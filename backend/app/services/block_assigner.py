from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
import logging

from app.core.exceptions import SchedulerError
from app.schemas.moving_class import ScheduleOption
from app.services.conflict_graph import ConflictGraph

logger = logging.getLogger(__name__)

TeacherLimit = Callable[[str], "int | None"]


@dataclass
class BlockDraft:
    members: list[int] = field(default_factory=list)
    is_pure: bool = False


def gap_cost(positions: Iterable[int]) -> int:
    """Empty block slots between a student's first and last block."""
    occupied = set(positions)
    if not occupied:
        return 0
    return max(occupied) - min(occupied) + 1 - len(occupied)


def _gap_with(positions: set[int], candidate: int) -> int:
    if not positions:
        return 0
    low = min(min(positions), candidate)
    high = max(max(positions), candidate)
    count = len(positions) + (0 if candidate in positions else 1)
    return high - low + 1 - count


class BlockAssigner:
    """Greedy placement of subject instances into concurrent blocks.

    Placement never backtracks. Mixed instances are placed under the chosen
    policy; pure instances always get a singleton block of their own after
    every mixed instance is placed.
    """

    def __init__(self, graph: ConflictGraph, teacher_limit: TeacherLimit) -> None:
        self.graph = graph
        self.instances = graph.instances
        self.teacher_limit = teacher_limit

    def can_fit(self, index: int, block: BlockDraft) -> bool:
        inst = self.instances[index]
        if any(member in inst.conflicts for member in block.members):
            return False
        limit = self.teacher_limit(inst.code)
        if limit is None:
            return True
        same_code = sum(1 for member in block.members if self.instances[member].code == inst.code)
        return same_code < limit

    def _roster_gap_cost(self, index: int, position: int, positions: dict[str, set[int]]) -> int:
        return sum(_gap_with(positions[student_id], position) for student_id in self.instances[index].students)

    def assign_min_blocks(self, order: list[int]) -> list[BlockDraft]:
        blocks: list[BlockDraft] = []
        positions: dict[str, set[int]] = defaultdict(set)

        for index in order:
            best_position: int | None = None
            best_cost = 0
            for position, block in enumerate(blocks):
                if not self.can_fit(index, block):
                    continue
                cost = self._roster_gap_cost(index, position, positions)
                if best_position is None or cost < best_cost:
                    best_position = position
                    best_cost = cost

            new_cost = self._roster_gap_cost(index, len(blocks), positions)
            if best_position is None or new_cost < best_cost:
                blocks.append(BlockDraft())
                best_position = len(blocks) - 1

            blocks[best_position].members.append(index)
            for student_id in self.instances[index].students:
                positions[student_id].add(best_position)
        return blocks

    def compute_minimum_block_count(self, order: list[int]) -> int:
        return len(self.assign_min_blocks(order))

    def assign_with_fixed_block_count(self, order: list[int], block_count: int) -> list[BlockDraft]:
        blocks = [BlockDraft() for _ in range(block_count)]
        for index in order:
            candidates = [block for block in blocks if self.can_fit(index, block)]
            if candidates:
                target = min(candidates, key=lambda block: len(block.members))
            else:
                target = BlockDraft()
                blocks.append(target)
            target.members.append(index)
        if len(blocks) > block_count:
            logger.debug("Space balancing opened %d block(s) beyond the target of %d", len(blocks) - block_count, block_count)
        return blocks

    def place_pure(self, order: list[int]) -> list[BlockDraft]:
        return [BlockDraft(members=[index], is_pure=True) for index in order]

    def assign(self, option: ScheduleOption | str) -> tuple[list[BlockDraft], list[BlockDraft]]:
        order = self.graph.degree_order()
        mixed_order = [index for index in order if not self.instances[index].is_pure]
        pure_order = [index for index in order if self.instances[index].is_pure]

        if option == "min-blocks":
            mixed_blocks = self.assign_min_blocks(mixed_order)
        elif option == "min-space":
            target = self.compute_minimum_block_count(mixed_order)
            mixed_blocks = self.assign_with_fixed_block_count(mixed_order, target)
        else:
            raise SchedulerError(
                message=f"Unsupported schedule option: {option}",
                details={"allowed": ["min-blocks", "min-space"]},
            )
        return mixed_blocks, self.place_pure(pure_order)


def code_counts(blocks: Iterable[BlockDraft], graph: ConflictGraph) -> Counter[str]:
    counts: Counter[str] = Counter()
    for block in blocks:
        counts.update(graph.instances[member].code for member in block.members)
    return counts
