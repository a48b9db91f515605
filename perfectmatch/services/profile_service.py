"""
Profile strength scoring for teachers and schools.

A profile is complete when every required field is filled:
lists must be non-empty, strings must be non-empty, numbers positive.
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import select, update

from perfectmatch.db import tables

# Ordered: missing fields are reported in this order
TEACHER_REQUIRED_FIELDS = {
    "full_name": "Full Name",
    "email": "Email",
    "phone": "Phone Number",
    "location": "Location",
    "bio": "Bio",
    "years_experience": "Years of Experience",
    "subjects": "Subjects",
    "grade_levels": "Grade Levels",
    "archetype": "Teaching Archetype",
    "teaching_philosophy": "Teaching Philosophy",
}

SCHOOL_REQUIRED_FIELDS = {
    "school_name": "School Name",
    "school_type": "School Type",
    "location": "Location",
    "description": "Description",
}


def _is_filled(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (list, tuple, set)):
        return len(value) > 0
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value > 0
    return str(value).strip() != ""


def _percentage(done: int, total: int) -> int:
    # Half-up rounding
    return int(done * 100 / total + 0.5)


def calculate_profile_completion(profile: Mapping[str, Any]) -> int:
    done = sum(1 for field in TEACHER_REQUIRED_FIELDS if _is_filled(profile.get(field)))
    return _percentage(done, len(TEACHER_REQUIRED_FIELDS))


def get_missing_fields(profile: Mapping[str, Any]) -> List[str]:
    return [
        label for field, label in TEACHER_REQUIRED_FIELDS.items()
        if not _is_filled(profile.get(field))
    ]


def is_profile_complete(profile: Mapping[str, Any]) -> bool:
    return calculate_profile_completion(profile) == 100


def calculate_school_profile_completion(profile: Mapping[str, Any]) -> int:
    done = sum(1 for field in SCHOOL_REQUIRED_FIELDS if _is_filled(profile.get(field)))
    return _percentage(done, len(SCHOOL_REQUIRED_FIELDS))


def is_school_profile_complete(profile: Mapping[str, Any]) -> bool:
    return calculate_school_profile_completion(profile) == 100


def school_completion_report(profile: Mapping[str, Any]) -> Dict[str, Any]:
    percentage = calculate_school_profile_completion(profile)
    return {
        "percentage": percentage,
        "missing_fields": [
            label for field, label in SCHOOL_REQUIRED_FIELDS.items()
            if not _is_filled(profile.get(field))
        ],
        "is_complete": percentage == 100,
    }


def completion_report(profile: Mapping[str, Any]) -> Dict[str, Any]:
    percentage = calculate_profile_completion(profile)
    return {
        "percentage": percentage,
        "missing_fields": get_missing_fields(profile),
        "is_complete": percentage == 100,
    }


# ============================================================
# ROW LOOKUPS
# ============================================================

def get_teacher(db, teacher_id: int) -> Optional[dict]:
    row = db.execute(
        select(tables.teachers).where(tables.teachers.c.id == teacher_id)
    ).mappings().fetchone()
    return dict(row) if row else None


def get_teacher_by_user(db, user_id: int) -> Optional[dict]:
    row = db.execute(
        select(tables.teachers).where(tables.teachers.c.user_id == user_id)
    ).mappings().fetchone()
    return dict(row) if row else None


def get_school(db, school_id: int) -> Optional[dict]:
    row = db.execute(
        select(tables.schools).where(tables.schools.c.id == school_id)
    ).mappings().fetchone()
    return dict(row) if row else None


def get_school_by_user(db, user_id: int) -> Optional[dict]:
    row = db.execute(
        select(tables.schools).where(tables.schools.c.user_id == user_id)
    ).mappings().fetchone()
    return dict(row) if row else None


def refresh_profile_complete(db, table, row_id: int) -> Tuple[dict, bool]:
    """
    Recompute profile_complete for a teacher or school row.

    Returns:
        (updated row, True if the profile just became complete)
    """
    row = db.execute(select(table).where(table.c.id == row_id)).mappings().fetchone()
    profile = dict(row)
    if table is tables.teachers:
        complete = is_profile_complete(profile)
    else:
        complete = is_school_profile_complete(profile)

    became_complete = complete and not profile["profile_complete"]
    if complete != profile["profile_complete"]:
        db.execute(update(table).where(table.c.id == row_id).values(profile_complete=complete))
        profile["profile_complete"] = complete
    return profile, became_complete
