"""Application timeline display."""

from perfectmatch.services.application_service import build_timeline


def states(timeline):
    return [(step["status"], step["state"]) for step in timeline["steps"]]


def test_pending_is_first_step():
    timeline = build_timeline("pending")
    assert timeline["current_label"] == "Submitted"
    assert states(timeline)[0] == ("pending", "current")
    assert all(state == "upcoming" for _, state in states(timeline)[1:])
    assert [s["status"] for s in timeline["next_steps"]] == ["under_review"]


def test_middle_status_completes_earlier_steps():
    timeline = build_timeline("contacted")
    assert states(timeline)[:4] == [
        ("pending", "completed"),
        ("under_review", "completed"),
        ("reviewed", "completed"),
        ("contacted", "current"),
    ]
    assert [s["status"] for s in timeline["next_steps"]] == ["shortlisted"]


def test_interview_scheduled_sits_on_shortlisted_step():
    timeline = build_timeline("interview_scheduled")
    assert ("shortlisted", "current") in states(timeline)
    assert timeline["current_label"] == "Interview Scheduled"


def test_hired_has_no_next_steps():
    timeline = build_timeline("hired")
    assert states(timeline)[-1] == ("hired", "current")
    assert timeline["next_steps"] == []


def test_rejected_shows_progress_reached_then_terminal_step():
    history = [
        {"old_status": None, "new_status": "pending"},
        {"old_status": "pending", "new_status": "under_review"},
        {"old_status": "under_review", "new_status": "rejected"},
    ]
    timeline = build_timeline("rejected", history)
    assert states(timeline) == [
        ("pending", "completed"),
        ("under_review", "completed"),
        ("rejected", "current"),
    ]
    assert timeline["current_label"] == "Not Selected"
    assert timeline["next_steps"] == []


def test_withdrawn_without_history():
    timeline = build_timeline("withdrawn")
    assert states(timeline) == [("pending", "completed"), ("withdrawn", "current")]
