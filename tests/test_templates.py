"""Placeholder handling for school email templates."""

from perfectmatch.services.template_service import (
    extract_variables,
    preview_template,
    replace_template_variables,
)


def test_known_variables_are_replaced():
    text = "Hi {{teacher_first_name}}, thanks for applying to {{job_title}}."
    result = replace_template_variables(text, {"teacher_first_name": "Maria", "job_title": "Math Teacher"})
    assert result == "Hi Maria, thanks for applying to Math Teacher."


def test_missing_values_render_as_labels():
    result = replace_template_variables("Dear {{teacher_first_name}} at {{school_name}}", {"school_name": None})
    assert result == "Dear [First Name] at [School Name]"


def test_unknown_placeholders_are_left_alone():
    assert replace_template_variables("{{favorite_color}}", {}) == "{{favorite_color}}"


def test_extract_variables_in_order_without_duplicates():
    text = "{{job_title}} - {{teacher_name}} - {{job_title}}"
    assert extract_variables(text) == ["{{job_title}}", "{{teacher_name}}"]


def test_preview_fills_subject_and_body():
    template = {"subject": "Interview for {{job_title}}", "body": "See you on {{interview_date}}"}
    preview = preview_template(template, {"job_title": "Science Teacher"})
    assert preview == {"subject": "Interview for Science Teacher", "body": "See you on [Interview Date]"}
