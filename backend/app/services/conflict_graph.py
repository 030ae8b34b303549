from __future__ import annotations

from collections import defaultdict
from itertools import combinations

from app.services.instance_builder import SubjectInstance


class ConflictGraph:
    """Mutual-exclusion graph over an arena of subject instances.

    Instances are referenced by their arena index. An edge means the two
    instances can never share a block.
    """

    def __init__(self, instances: list[SubjectInstance]) -> None:
        self.instances = instances
        self.edge_count = 0

    def add_conflict(self, left: int, right: int) -> bool:
        if left == right:
            return False
        inst_a = self.instances[left]
        inst_b = self.instances[right]
        added = False
        if right not in inst_a.conflicts:
            inst_a.conflicts.add(right)
            added = True
        if left not in inst_b.conflicts:
            inst_b.conflicts.add(left)
            added = True
        if added:
            self.edge_count += 1
        return added

    def add_roster_conflicts(self) -> None:
        indices_by_student: dict[str, list[int]] = defaultdict(list)
        for inst in self.instances:
            for student_id in inst.students:
                indices_by_student[student_id].append(inst.index)
        for indices in indices_by_student.values():
            for left, right in combinations(indices, 2):
                self.add_conflict(left, right)

    def add_sibling_conflicts(self) -> None:
        # Sessions of one group must never run together, even with an empty roster.
        indices_by_group: dict[tuple[str, int], list[int]] = defaultdict(list)
        for inst in self.instances:
            indices_by_group[inst.group_key].append(inst.index)
        for indices in indices_by_group.values():
            for left, right in combinations(indices, 2):
                self.add_conflict(left, right)

    def conflicts(self, left: int, right: int) -> bool:
        return right in self.instances[left].conflicts

    def degree_order(self) -> list[int]:
        return sorted(range(len(self.instances)), key=lambda index: -self.instances[index].degree)


def build_conflict_graph(instances: list[SubjectInstance]) -> ConflictGraph:
    graph = ConflictGraph(instances)
    graph.add_roster_conflicts()
    graph.add_sibling_conflicts()
    return graph
