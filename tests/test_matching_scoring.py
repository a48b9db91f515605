"""Scoring rules for teacher/job matches."""

from perfectmatch.services.matching_service import (
    find_matching_teachers,
    location_matches,
    score_teacher_for_job,
)


def make_teacher(teacher_id=1, **overrides):
    teacher = {
        "id": teacher_id,
        "user_id": 100 + teacher_id,
        "full_name": f"Teacher {teacher_id}",
        "subjects": ["Math"],
        "grade_levels": ["6-8"],
        "location": "Austin, TX",
        "archetype": "The Innovator",
    }
    teacher.update(overrides)
    return teacher


JOB = {
    "id": 7,
    "subject": "Math",
    "grade_level": "6-8",
    "location": "Austin, TX",
    "archetype_tags": ["The Innovator", "The Coach"],
}


def test_perfect_match_scores_100():
    result = score_teacher_for_job(JOB, make_teacher())
    assert result.match_score == 100
    assert result.teacher_id == 1
    assert result.user_id == 101
    assert "Teaches Math" in result.match_reason


def test_subject_mismatch_is_not_a_match():
    assert score_teacher_for_job(JOB, make_teacher(subjects=["English"])) is None


def test_grade_mismatch_is_not_a_match():
    assert score_teacher_for_job(JOB, make_teacher(grade_levels=["9-12"])) is None


def test_all_grades_job_accepts_any_grade():
    job = {**JOB, "grade_level": "All Grades"}
    result = score_teacher_for_job(job, make_teacher(grade_levels=["K-5"]))
    assert result is not None
    assert result.match_score == 100


def test_distant_location_gets_fallback_points():
    result = score_teacher_for_job(JOB, make_teacher(location="Portland, OR"))
    # subject 40 + grade 30 + fallback 5 + archetype 10
    assert result.match_score == 85


def test_archetype_outside_tags_scores_nothing_extra():
    result = score_teacher_for_job(JOB, make_teacher(archetype="The Mentor"))
    assert result.match_score == 90


def test_min_score_filters_weak_matches():
    job = {"id": 8, "subject": None, "grade_level": None, "location": "Austin, TX", "archetype_tags": []}
    # only location points (20) are available
    assert score_teacher_for_job(job, make_teacher(), min_score=40) is None
    assert score_teacher_for_job(job, make_teacher(), min_score=20).match_score == 20


def test_location_matching_by_city_or_state():
    assert location_matches("Austin, TX", "Round Rock, TX")
    assert location_matches("Austin", "austin, texas")
    assert not location_matches("Austin, TX", "Denver, CO")
    assert not location_matches(None, "Austin, TX")
    assert not location_matches("Austin, TX", "")


def test_find_matching_teachers_sorts_and_limits():
    teachers = [
        make_teacher(1, location="Denver, CO"),
        make_teacher(2),
        make_teacher(3, subjects=["Art"]),
        make_teacher(4, archetype=None),
    ]
    matches = find_matching_teachers(JOB, teachers, min_score=40, limit=2)
    assert [m.teacher_id for m in matches] == [2, 4]
    assert [m.match_score for m in matches] == [100, 90]
