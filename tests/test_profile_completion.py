"""Profile strength calculations."""

from perfectmatch.services import profile_service


FULL_PROFILE = {
    "full_name": "Maria Lopez",
    "email": "maria@example.com",
    "phone": "555-0101",
    "location": "Austin, TX",
    "bio": "Bio",
    "years_experience": "5-10",
    "subjects": ["Math"],
    "grade_levels": ["6-8"],
    "archetype": "The Innovator",
    "teaching_philosophy": "Philosophy",
}


def test_complete_teacher_profile():
    report = profile_service.completion_report(FULL_PROFILE)
    assert report == {"percentage": 100, "missing_fields": [], "is_complete": True}


def test_empty_lists_and_blank_strings_count_as_missing():
    profile = {**FULL_PROFILE, "subjects": [], "bio": "   "}
    report = profile_service.completion_report(profile)
    assert report["percentage"] == 80
    assert report["missing_fields"] == ["Bio", "Subjects"]
    assert not report["is_complete"]


def test_percentage_rounds_half_up():
    profile = {"school_name": "Lakeside", "school_type": "Public"}
    assert profile_service.calculate_school_profile_completion(profile) == 50
    assert profile_service.calculate_school_profile_completion({"school_name": "Lakeside"}) == 25


def test_school_completion_report_lists_missing_labels():
    report = profile_service.school_completion_report({"school_name": "Lakeside", "location": "Austin"})
    assert report["missing_fields"] == ["School Type", "Description"]
    assert report["percentage"] == 50
