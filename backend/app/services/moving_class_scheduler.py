from __future__ import annotations

from collections import Counter
import logging
import random
from time import perf_counter

from app.core.config import get_settings
from app.schemas.moving_class import (
    ClassDetail,
    ClassMovement,
    InstanceInfo,
    InstancePreview,
    InstancePreviewItem,
    MovingClassScheduleRequest,
    ScheduleBlock,
    ScheduleMetrics,
    ScheduleResult,
)
from app.services.block_assigner import BlockAssigner, BlockDraft
from app.services.block_optimizer import merge_blocks, optimize_sequence
from app.services.conflict_graph import ConflictGraph, build_conflict_graph
from app.services.instance_builder import (
    InstanceBuildResult,
    SubjectInstance,
    build_subject_instances,
    homeroom_number,
)

logger = logging.getLogger(__name__)


class MovingClassScheduler:
    """Runs one moving-class scheduling request end to end.

    Each instance owns its arena, blocks and random source, so separate
    schedulers can run concurrently.
    """

    def __init__(self, request: MovingClassScheduleRequest, *, default_max_size: int | None = None) -> None:
        settings = get_settings()
        self.request = request
        self.default_max_size = (
            default_max_size if default_max_size is not None else settings.default_moving_class_size
        )
        self.iterations = (
            request.sequence_iterations
            if request.sequence_iterations is not None
            else settings.sequence_optimizer_iterations
        )
        self.random = random.Random(request.random_seed)
        self.students = {student.id: student for student in request.students}

    def build_instances(self) -> InstanceBuildResult:
        return build_subject_instances(
            self.request.students,
            self.request.subjects,
            self.request.classes,
            min_size=self.request.min_size,
            default_max_size=self.default_max_size,
        )

    def preview(self) -> InstancePreview:
        built = self.build_instances()
        return InstancePreview(
            instances=[
                InstancePreviewItem(
                    instance_id=inst.instance_id,
                    code=inst.code,
                    group_index=inst.group_index,
                    session=inst.session,
                    is_pure=inst.is_pure,
                    homeroom=inst.homeroom,
                    students=list(inst.students),
                )
                for inst in built.instances
            ],
            max_size=built.max_size,
            warnings=built.warnings,
            violations=list(built.violations),
        )

    def run(self) -> ScheduleResult:
        started = perf_counter()
        logger.info(
            "Scheduling moving classes: students=%d subjects=%d option=%s",
            len(self.request.students),
            len(self.request.subjects),
            self.request.option,
        )

        built = self.build_instances()
        graph = build_conflict_graph(built.instances)
        assigner = BlockAssigner(graph, built.teacher_limit)
        mixed_blocks, pure_blocks = assigner.assign(self.request.option)
        mixed_blocks = merge_blocks(mixed_blocks, graph, built.teacher_limit)
        ordered, gap_total = optimize_sequence(
            mixed_blocks + pure_blocks,
            graph,
            iterations=self.iterations,
            rng=self.random,
        )

        result = self._assemble(ordered, graph, built, gap_total)
        logger.info(
            "Moving-class schedule ready: blocks=%d max_concurrent=%d gap_cost=%d instances=%d runtime_ms=%d",
            result.metrics.total_blocks,
            result.metrics.max_concurrent,
            gap_total,
            len(built.instances),
            int((perf_counter() - started) * 1000),
        )
        return result

    def _display_name(self, inst: SubjectInstance, built: InstanceBuildResult) -> str:
        name = built.subject_name(inst.code)
        if inst.is_pure:
            return f"{name} ({inst.homeroom} 학급)"
        return f"{name} ({inst.group_index}반)"

    def _movements(self, inst: SubjectInstance) -> list[ClassMovement]:
        counts: Counter[str] = Counter()
        for student_id in inst.students:
            student = self.students.get(student_id)
            if student and student.homeroom:
                counts[student.homeroom] += 1
        return [
            ClassMovement(admin_class=homeroom, count=count)
            for homeroom, count in sorted(counts.items(), key=lambda item: homeroom_number(item[0]))
        ]

    def _assemble(
        self,
        ordered: list[BlockDraft],
        graph: ConflictGraph,
        built: InstanceBuildResult,
        gap_total: int,
    ) -> ScheduleResult:
        blocks: list[ScheduleBlock] = []
        for position, draft in enumerate(ordered, start=1):
            block = ScheduleBlock(id=position)
            for member in draft.members:
                inst = graph.instances[member]
                label = self._display_name(inst, built)
                block.subjects.append(inst.instance_id)
                block.display_names.append(label)
                block.class_details.append(
                    ClassDetail(
                        instance_id=inst.instance_id,
                        subject_name=label,
                        total_students=len(inst.students),
                        is_pure=inst.is_pure,
                        movements=self._movements(inst),
                    )
                )
            blocks.append(block)

        return ScheduleResult(
            blocks=blocks,
            metrics=ScheduleMetrics(
                total_blocks=len(blocks),
                max_concurrent=max((len(block.subjects) for block in blocks), default=0),
                total_gap_cost=gap_total,
            ),
            warnings=built.warnings,
            violations=list(built.violations),
            instance_map={
                inst.instance_id: InstanceInfo(code=inst.code, students=list(inst.students))
                for inst in built.instances
            },
        )


def calculate_moving_classes(request: MovingClassScheduleRequest) -> ScheduleResult:
    return MovingClassScheduler(request).run()
