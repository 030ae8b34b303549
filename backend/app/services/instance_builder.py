from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
import logging
import math
import re

from app.core.exceptions import ConfigurationError
from app.schemas.moving_class import ClassRoom, Student, SubjectMeta

DEFAULT_MOVING_CLASS_SIZE = 25

_LEADING_DIGITS = re.compile(r"^\s*(\d+)")

logger = logging.getLogger(__name__)


def homeroom_number(value: str) -> int:
    match = _LEADING_DIGITS.match(value or "")
    return int(match.group(1)) if match else 0


@dataclass
class SubjectInstance:
    index: int
    instance_id: str
    code: str
    group_index: int
    session: int
    students: tuple[str, ...]
    is_pure: bool = False
    homeroom: str | None = None
    conflicts: set[int] = field(default_factory=set)

    @property
    def group_key(self) -> tuple[str, int]:
        return (self.code, self.group_index)

    @property
    def degree(self) -> int:
        return len(self.conflicts)


@dataclass
class InstanceBuildResult:
    instances: list[SubjectInstance]
    subjects: dict[str, SubjectMeta]
    max_size: int
    excluded_subjects: list[str] = field(default_factory=list)
    violations: list[str] = field(default_factory=list)

    @property
    def warnings(self) -> list[str]:
        if not self.excluded_subjects:
            return []
        return [f"Excluded Mandatory Subjects: {', '.join(self.excluded_subjects)}"]

    def teacher_limit(self, code: str) -> int | None:
        meta = self.subjects.get(code)
        return meta.teacher_count if meta else None

    def subject_name(self, code: str) -> str:
        meta = self.subjects.get(code)
        return meta.name if meta else code


def resolve_max_size(classes: list[ClassRoom], default_max_size: int = DEFAULT_MOVING_CLASS_SIZE) -> int:
    if classes:
        return classes[0].max_size
    if default_max_size < 1:
        raise ConfigurationError(f"Default moving class size must be positive, got {default_max_size}")
    return default_max_size


def split_into_balanced_chunks(items: list[str], min_size: int, max_size: int) -> list[list[str]]:
    """Split ``items`` into the fewest groups that respect ``max_size``.

    ``max_size`` is a hard cap. Group sizes differ by at most one, larger groups
    first. When ``min_size`` is disabled or cannot coexist with ``max_size`` the
    items are cut sequentially into ``max_size`` pieces instead.
    """
    total = len(items)
    if total == 0:
        return []

    if min_size <= 0 or min_size > max_size:
        return [items[start:start + max_size] for start in range(0, total, max_size)]

    group_count = max(1, math.ceil(total / max_size))
    base_size, remainder = divmod(total, group_count)

    chunks: list[list[str]] = []
    start = 0
    for group in range(group_count):
        size = base_size + (1 if group < remainder else 0)
        chunks.append(items[start:start + size])
        start += size
    return chunks


def resolve_active_subjects(
    students: list[Student],
    subjects: list[SubjectMeta],
) -> tuple[list[str], list[str]]:
    """Return (active subject codes, names of subjects taken by every student)."""
    population = len(students)
    selection_counts: Counter[str] = Counter()
    first_seen: list[str] = []
    for student in students:
        for code in student.selected_subjects:
            if code not in selection_counts:
                first_seen.append(code)
            selection_counts[code] += 1

    catalogue_codes = [meta.code for meta in subjects]
    names = {meta.code: meta.name for meta in subjects}
    candidates = catalogue_codes + [code for code in first_seen if code not in names]

    active: list[str] = []
    excluded: list[str] = []
    for code in candidates:
        count = selection_counts.get(code, 0)
        if population > 0 and count == population:
            excluded.append(names.get(code, code))
        elif count > 0:
            active.append(code)
    return active, excluded


def build_subject_instances(
    students: list[Student],
    subjects: list[SubjectMeta],
    classes: list[ClassRoom],
    *,
    min_size: int = 0,
    default_max_size: int = DEFAULT_MOVING_CLASS_SIZE,
) -> InstanceBuildResult:
    max_size = resolve_max_size(classes, default_max_size)
    result = InstanceBuildResult(
        instances=[],
        subjects={meta.code: meta for meta in subjects},
        max_size=max_size,
    )

    active_codes, result.excluded_subjects = resolve_active_subjects(students, subjects)
    if result.excluded_subjects:
        logger.warning(
            "Excluding %d mandatory subject(s) from moving-class scheduling: %s",
            len(result.excluded_subjects),
            ", ".join(result.excluded_subjects),
        )

    homeroom_sizes: Counter[str] = Counter(student.homeroom for student in students if student.homeroom)
    selectors_by_code: dict[str, list[Student]] = defaultdict(list)
    for student in students:
        for code in student.selected_subjects:
            selectors_by_code[code].append(student)

    for code in active_codes:
        selectors = selectors_by_code.get(code, [])
        if not selectors:
            continue

        by_homeroom: dict[str, list[str]] = defaultdict(list)
        for student in selectors:
            if student.homeroom:
                by_homeroom[student.homeroom].append(student.id)
        pure_homerooms = sorted(
            (room for room, ids in by_homeroom.items() if len(ids) == homeroom_sizes[room]),
            key=homeroom_number,
        )
        pure_set = set(pure_homerooms)
        mixed_pool = [student.id for student in selectors if student.homeroom not in pure_set]

        subject_name = result.subject_name(code)
        chunks = split_into_balanced_chunks(mixed_pool, min_size, max_size)
        for group_index, chunk in enumerate(chunks, start=1):
            if min_size > 0 and len(chunk) < min_size:
                result.violations.append(
                    f"[{subject_name}] {group_index}반 인원 부족: {len(chunk)}명 (최소 {min_size}명)"
                )
            _expand_credits(result, code, group_index, chunk, is_pure=False)

        # Intact homerooms are exempt from the minimum-size check.
        for offset, homeroom in enumerate(pure_homerooms, start=1):
            _expand_credits(
                result,
                code,
                len(chunks) + offset,
                by_homeroom[homeroom],
                is_pure=True,
                homeroom=homeroom,
            )

    if result.violations:
        logger.warning("%d moving-class group(s) fall below the minimum size of %d", len(result.violations), min_size)
    return result


def _expand_credits(
    result: InstanceBuildResult,
    code: str,
    group_index: int,
    roster: list[str],
    *,
    is_pure: bool,
    homeroom: str | None = None,
) -> None:
    meta = result.subjects.get(code)
    credit = meta.credit if meta else 1
    members = tuple(roster)
    for session in range(1, credit + 1):
        result.instances.append(
            SubjectInstance(
                index=len(result.instances),
                instance_id=f"{code}_{group_index}_{session}",
                code=code,
                group_index=group_index,
                session=session,
                students=members,
                is_pure=is_pure,
                homeroom=homeroom,
            )
        )
