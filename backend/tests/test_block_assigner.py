import pytest

from app.core.exceptions import SchedulerError
from app.services.block_assigner import BlockAssigner, BlockDraft, gap_cost
from app.services.conflict_graph import build_conflict_graph
from app.services.instance_builder import SubjectInstance


def make_instance(
    index: int, code: str, students: tuple[str, ...], *, group: int = 1, is_pure: bool = False
) -> SubjectInstance:
    return SubjectInstance(
        index=index,
        instance_id=f"{code}_{group}_1",
        code=code,
        group_index=group,
        session=1,
        students=students,
        is_pure=is_pure,
        homeroom="1" if is_pure else None,
    )


def unbounded(_code: str):
    return None


def members(blocks: list[BlockDraft]) -> list[list[int]]:
    return [block.members for block in blocks]


def test_gap_cost_counts_holes_between_first_and_last_block():
    assert gap_cost([]) == 0
    assert gap_cost([2]) == 0
    assert gap_cost([0, 1, 2]) == 0
    assert gap_cost([0, 3]) == 2
    assert gap_cost([1, 3, 4]) == 1


def test_can_fit_checks_conflicts_and_teacher_count():
    instances = [
        make_instance(0, "MAT", ("a",)),
        make_instance(1, "MAT", ("b",), group=2),
        make_instance(2, "ENG", ("a",)),
    ]
    graph = build_conflict_graph(instances)
    assert graph.instances[1].conflicts == set()
    block = BlockDraft(members=[0])

    single_teacher = BlockAssigner(graph, lambda code: 1)
    assert not single_teacher.can_fit(1, block)
    assert not single_teacher.can_fit(2, block)

    two_teachers = BlockAssigner(graph, lambda code: 2)
    assert two_teachers.can_fit(1, block)


def test_min_blocks_prefers_block_that_avoids_gaps():
    instances = [
        make_instance(0, "A", ("a",)),
        make_instance(1, "B", ("a",)),
        make_instance(2, "C", ("a", "b")),
        make_instance(3, "D", ("b",)),
    ]
    graph = build_conflict_graph(instances)
    assigner = BlockAssigner(graph, unbounded)

    blocks = assigner.assign_min_blocks([0, 1, 2, 3])

    # Block 0 is feasible for D but would leave a hole in b's timetable.
    assert members(blocks) == [[0], [1, 3], [2]]


def test_min_blocks_reuses_existing_block_on_tie():
    instances = [make_instance(0, "A", ("a",)), make_instance(1, "B", ("b",))]
    graph = build_conflict_graph(instances)
    blocks = BlockAssigner(graph, unbounded).assign_min_blocks([0, 1])
    assert members(blocks) == [[0, 1]]


def test_teacher_count_opens_new_block():
    instances = [make_instance(0, "MAT", ("a",)), make_instance(1, "MAT", ("b",), group=2)]
    graph = build_conflict_graph(instances)

    assert len(BlockAssigner(graph, lambda code: 1).assign_min_blocks([0, 1])) == 2
    assert len(BlockAssigner(graph, lambda code: 2).assign_min_blocks([0, 1])) == 1


def test_fixed_block_count_balances_load():
    instances = [
        make_instance(0, "A", ("a",)),
        make_instance(1, "A", ("a",)),
        make_instance(2, "B", ("b",)),
        make_instance(3, "C", ("c",)),
    ]
    graph = build_conflict_graph(instances)
    assigner = BlockAssigner(graph, lambda code: 1)
    order = [0, 1, 2, 3]

    assert members(assigner.assign_min_blocks(order)) == [[0, 2, 3], [1]]
    assert assigner.compute_minimum_block_count(order) == 2
    assert members(assigner.assign_with_fixed_block_count(order, 2)) == [[0, 2], [1, 3]]


def test_fixed_block_count_appends_when_nothing_fits():
    instances = [make_instance(0, "A", ("a",)), make_instance(1, "B", ("a",))]
    graph = build_conflict_graph(instances)
    blocks = BlockAssigner(graph, unbounded).assign_with_fixed_block_count([0, 1], 1)
    assert members(blocks) == [[0], [1]]


def test_pure_instances_get_singleton_blocks():
    instances = [
        make_instance(0, "A", ("a",)),
        make_instance(1, "B", ("p", "q"), is_pure=True),
        make_instance(2, "C", ("r",), is_pure=True),
    ]
    graph = build_conflict_graph(instances)

    mixed, pure = BlockAssigner(graph, unbounded).assign("min-blocks")

    assert members(mixed) == [[0]]
    assert members(pure) == [[1], [2]]
    assert all(block.is_pure for block in pure)


def test_unknown_option_raises_scheduler_error():
    graph = build_conflict_graph([make_instance(0, "A", ("a",))])
    with pytest.raises(SchedulerError) as exc_info:
        BlockAssigner(graph, unbounded).assign("max-chaos")
    assert exc_info.value.status_code == 400
    assert exc_info.value.details["allowed"] == ["min-blocks", "min-space"]
