import pytest
from pydantic import ValidationError

from app.core.config import Settings
from app.schemas.moving_class import MovingClassScheduleRequest, Student, SubjectMeta


def test_settings_defaults_and_cors_parsing():
    settings = Settings(cors_origins="http://a.test, http://b.test")
    assert settings.cors_origins == ["http://a.test", "http://b.test"]
    assert settings.default_moving_class_size == 25
    assert settings.sequence_optimizer_iterations == 1000

    from_json = Settings(cors_origins='["http://c.test"]')
    assert from_json.cors_origins == ["http://c.test"]


def test_subject_weight_derived_from_category():
    assert SubjectMeta(code="MAT", name="수학", credit=4, category="수학").weight == 8.0
    assert SubjectMeta(code="PE", name="체육", credit=2, category="체육").weight == 1.0
    assert SubjectMeta(code="ETC", name="기타", credit=3, category="없음").weight == 3.0
    assert SubjectMeta(code="ART", name="미술", credit=2, category="예술", weight=5.0).weight == 5.0


def test_subject_meta_requires_positive_credit():
    with pytest.raises(ValidationError):
        SubjectMeta(code="MAT", name="수학", credit=0)


def test_student_selected_subjects_are_an_ordered_set():
    student = Student(id="s1", homeroom=" 3 ", selected_subjects=["MAT", "ENG", "MAT", " ", "ART"])
    assert student.selected_subjects == ["MAT", "ENG", "ART"]
    assert student.homeroom == "3"


def test_request_rejects_duplicate_subject_codes():
    with pytest.raises(ValidationError):
        MovingClassScheduleRequest(subjects=[SubjectMeta(code="MAT", name="수학"), SubjectMeta(code="MAT", name="수학2")])
