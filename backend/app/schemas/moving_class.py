from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

ScheduleOption = Literal["min-blocks", "min-space"]

CATEGORY_FACTORS = {
    "수학": 2.0,
    "과학": 2.0,
    "사회": 2.0,
    "국어": 1.5,
    "영어": 1.5,
    "기술": 1.0,
    "가정": 1.0,
    "제2외국어": 1.0,
    "체육": 0.5,
    "예술": 0.5,
    "교양": 0.5,
}
DEFAULT_CATEGORY_FACTOR = 1.0


def calculate_weight(credit: int, category: str) -> float:
    return credit * CATEGORY_FACTORS.get(category, DEFAULT_CATEGORY_FACTOR)


class SubjectMeta(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=200)
    credit: int = Field(default=1, ge=1, le=20)
    teacher_count: int = Field(default=1, ge=1, le=100)
    category: str = Field(default="", max_length=50)
    weight: float | None = Field(default=None, ge=0.0)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        code = value.strip()
        if not code:
            raise ValueError("Subject code cannot be blank")
        return code

    @model_validator(mode="after")
    def fill_weight(self) -> "SubjectMeta":
        if self.weight is None:
            self.weight = calculate_weight(self.credit, self.category.strip())
        return self


class Student(BaseModel):
    id: str = Field(min_length=1, max_length=50)
    homeroom: str = Field(default="", max_length=50)
    selected_subjects: list[str] = Field(default_factory=list)
    name: str | None = Field(default=None, max_length=200)
    student_no: str | None = Field(default=None, max_length=50)

    @field_validator("homeroom")
    @classmethod
    def strip_homeroom(cls, value: str) -> str:
        return value.strip()

    @field_validator("selected_subjects")
    @classmethod
    def dedupe_subjects(cls, value: list[str]) -> list[str]:
        unique: list[str] = []
        seen: set[str] = set()
        for item in value:
            code = item.strip()
            if not code or code in seen:
                continue
            seen.add(code)
            unique.append(code)
        return unique


class ClassRoom(BaseModel):
    id: str = Field(min_length=1, max_length=50)
    name: str = Field(default="", max_length=100)
    min_size: int = Field(default=0, ge=0, le=1000)
    max_size: int = Field(ge=1, le=1000)


class MovingClassScheduleRequest(BaseModel):
    students: list[Student] = Field(default_factory=list)
    subjects: list[SubjectMeta] = Field(default_factory=list)
    classes: list[ClassRoom] = Field(default_factory=list)
    option: ScheduleOption = "min-blocks"
    min_size: int = Field(default=0, ge=0, le=1000)
    random_seed: int | None = Field(default=None, ge=0, le=2_000_000_000)
    sequence_iterations: int | None = Field(default=None, ge=0, le=100_000)

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "MovingClassScheduleRequest":
        seen: set[str] = set()
        for student in self.students:
            if student.id in seen:
                raise ValueError(f"Duplicate student id: {student.id}")
            seen.add(student.id)
        codes = [subject.code for subject in self.subjects]
        if len(codes) != len(set(codes)):
            raise ValueError("Subject codes must be unique")
        return self


class ClassMovement(BaseModel):
    admin_class: str
    count: int


class ClassDetail(BaseModel):
    instance_id: str
    subject_name: str
    total_students: int
    is_pure: bool = False
    movements: list[ClassMovement] = Field(default_factory=list)


class ScheduleBlock(BaseModel):
    id: int
    subjects: list[str] = Field(default_factory=list)
    display_names: list[str] = Field(default_factory=list)
    class_details: list[ClassDetail] = Field(default_factory=list)


class ScheduleMetrics(BaseModel):
    total_blocks: int
    max_concurrent: int
    total_gap_cost: int = 0


class InstanceInfo(BaseModel):
    code: str
    students: list[str]


class ScheduleResult(BaseModel):
    blocks: list[ScheduleBlock]
    metrics: ScheduleMetrics
    warnings: list[str] = Field(default_factory=list)
    violations: list[str] = Field(default_factory=list)
    instance_map: dict[str, InstanceInfo] = Field(default_factory=dict)

    model_config = {"frozen": True}


class InstancePreviewItem(BaseModel):
    instance_id: str
    code: str
    group_index: int
    session: int
    is_pure: bool
    homeroom: str | None = None
    students: list[str]


class InstancePreview(BaseModel):
    instances: list[InstancePreviewItem]
    max_size: int
    warnings: list[str] = Field(default_factory=list)
    violations: list[str] = Field(default_factory=list)
