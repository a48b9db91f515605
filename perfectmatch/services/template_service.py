"""
School email templates with {{variable}} placeholders.

Schools keep reusable rejection/interview/offer messages. Rendering
replaces every known placeholder; a variable with no value renders as
its bracketed label so the gap is obvious in the preview.
"""

import logging
import re
from typing import Dict, List, Optional

from sqlalchemy import delete, insert, select, update

from perfectmatch.db import tables
from perfectmatch.db.postgres import get_db_session
from perfectmatch.db.tables import utcnow

logger = logging.getLogger(__name__)

# placeholder -> label shown when the value is missing
TEMPLATE_VARIABLES = {
    "teacher_name": "Teacher Name",
    "teacher_first_name": "First Name",
    "job_title": "Job Title",
    "school_name": "School Name",
    "department": "Department",
    "interview_date": "Interview Date",
    "interview_time": "Interview Time",
    "interview_location": "Interview Location",
    "salary": "Salary",
    "start_date": "Start Date",
}

_VARIABLE_RE = re.compile(r"\{\{(\w+)\}\}")


def replace_template_variables(template: str, values: Dict[str, Optional[str]]) -> str:
    """Fill known placeholders; unknown placeholders are left as-is."""
    result = template
    for key, label in TEMPLATE_VARIABLES.items():
        value = values.get(key)
        result = result.replace("{{" + key + "}}", str(value) if value else f"[{label}]")
    return result


def extract_variables(template: str) -> List[str]:
    """Distinct {{placeholders}} in order of first appearance."""
    found = []
    for match in _VARIABLE_RE.finditer(template):
        if match.group(0) not in found:
            found.append(match.group(0))
    return found


def _with_variables(row) -> dict:
    template = dict(row)
    template["variables"] = extract_variables(template["subject"] + "\n" + template["body"])
    return template


# ============================================================
# CRUD
# ============================================================

def list_templates(school_id: int, category: Optional[str] = None) -> List[dict]:
    et = tables.email_templates
    query = select(et).where(et.c.school_id == school_id).order_by(et.c.is_default.desc(), et.c.name)
    if category:
        query = query.where(et.c.category == category)
    with get_db_session() as db:
        return [_with_variables(r) for r in db.execute(query).mappings().fetchall()]


def get_template(template_id: int, school_id: int) -> Optional[dict]:
    et = tables.email_templates
    with get_db_session() as db:
        row = db.execute(
            select(et).where(et.c.id == template_id, et.c.school_id == school_id)
        ).mappings().fetchone()
    return _with_variables(row) if row else None


def create_template(school_id: int, data: dict) -> dict:
    et = tables.email_templates
    with get_db_session() as db:
        template_id = db.execute(insert(et).values(school_id=school_id, **data)).inserted_primary_key[0]
        row = db.execute(select(et).where(et.c.id == template_id)).mappings().fetchone()
    logger.info("School %s created email template %s", school_id, template_id)
    return _with_variables(row)


def update_template(template_id: int, school_id: int, updates: dict) -> Optional[dict]:
    et = tables.email_templates
    with get_db_session() as db:
        result = db.execute(
            update(et).where(et.c.id == template_id, et.c.school_id == school_id)
            .values(**updates, updated_at=utcnow())
        )
        if result.rowcount == 0:
            return None
        row = db.execute(select(et).where(et.c.id == template_id)).mappings().fetchone()
    return _with_variables(row)


def delete_template(template_id: int, school_id: int) -> bool:
    et = tables.email_templates
    with get_db_session() as db:
        result = db.execute(delete(et).where(et.c.id == template_id, et.c.school_id == school_id))
        return result.rowcount > 0


# ============================================================
# PREVIEW
# ============================================================

def application_variables(application_id: int, school_id: int) -> Optional[Dict[str, Optional[str]]]:
    """
    Build template values for an application to one of the school's jobs.

    Interview values come from the latest invite, salary and start date
    from the latest offer. Returns None if the application isn't the school's.
    """
    a, j, s, t = tables.applications, tables.jobs, tables.schools, tables.teachers
    ii, o = tables.interview_invites, tables.offers

    with get_db_session() as db:
        row = db.execute(
            select(
                a.c.id,
                t.c.full_name.label("teacher_name"),
                j.c.title.label("job_title"),
                j.c.department,
                j.c.salary,
                s.c.school_name,
            )
            .select_from(a.join(j, a.c.job_id == j.c.id).join(s, j.c.school_id == s.c.id)
                         .join(t, a.c.teacher_id == t.c.id))
            .where(a.c.id == application_id, j.c.school_id == school_id)
        ).mappings().fetchone()
        if not row:
            return None

        invite = db.execute(
            select(ii).where(ii.c.application_id == application_id).order_by(ii.c.created_at.desc(), ii.c.id.desc())
        ).mappings().first()
        offer = db.execute(
            select(o).where(o.c.application_id == application_id).order_by(o.c.created_at.desc(), o.c.id.desc())
        ).mappings().first()

    teacher_name = row["teacher_name"] or ""
    values = {
        "teacher_name": teacher_name,
        "teacher_first_name": teacher_name.split(" ")[0] if teacher_name else None,
        "job_title": row["job_title"],
        "school_name": row["school_name"],
        "department": row["department"],
        "salary": row["salary"],
    }
    if invite:
        values["interview_date"] = invite["scheduled_at"].strftime("%B %d, %Y")
        values["interview_time"] = invite["scheduled_at"].strftime("%I:%M %p")
        values["interview_location"] = invite["meeting_link"] or invite["location"]
    if offer:
        if offer["salary_amount"]:
            values["salary"] = f"${offer['salary_amount']:,.0f}"
        if offer["start_date"]:
            values["start_date"] = offer["start_date"].strftime("%B %d, %Y")
    return values


def preview_template(template: dict, values: Dict[str, Optional[str]]) -> Dict[str, str]:
    return {
        "subject": replace_template_variables(template["subject"], values),
        "body": replace_template_variables(template["body"], values),
    }
