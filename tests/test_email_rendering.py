import pytest

from perfectmatch.services.email_service import EmailError, html_to_text, render_template


def test_html_to_text_strips_markup_and_styles():
    markup = "<html><style>p{color:red}</style><p>Hello&nbsp;<b>Maria</b></p>\n\n\n<p>Bye</p></html>"
    assert html_to_text(markup) == "Hello\xa0Maria\n\nBye"


def test_status_email_mentions_job_and_message():
    rendered = render_template("application_status_changed", {
        "teacher_name": "Maria",
        "job_title": "Math Teacher",
        "school_name": "Lakeside",
        "new_status": "shortlisted",
        "dashboard_url": "https://example.com/teacher/dashboard",
    })
    assert "Math Teacher" in rendered.html
    assert "shortlisted" in rendered.text
    assert "https://example.com/teacher/dashboard" in rendered.html


def test_values_are_html_escaped():
    rendered = render_template("new_message", {"sender_name": "<script>", "message_preview": "hi"})
    assert "<script>" not in rendered.html.split("<h1")[1]
    assert "&lt;script&gt;" in rendered.html


def test_unknown_template():
    with pytest.raises(EmailError):
        render_template("birthday", {})
