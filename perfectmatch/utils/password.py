"""
Password strength scoring.

Score is one point per satisfied rule (length, lowercase, uppercase,
digit, special character), minus two when the password contains a
well-known weak password. A score of 4 or more meets the minimum.
"""

import re
from dataclasses import dataclass, field
from typing import List

MIN_LENGTH = 8
MINIMUM_SCORE = 4
SPECIAL_CHARACTERS = re.compile(r'[!@#$%^&*(),.?":{}|<>]')
WEAK_PASSWORDS = ("password", "12345678", "qwerty", "admin", "letmein")


@dataclass
class PasswordStrength:
    score: int
    feedback: List[str] = field(default_factory=list)

    @property
    def meets_minimum(self) -> bool:
        return self.score >= MINIMUM_SCORE

    @property
    def label(self) -> str:
        return get_password_strength_label(self.score)


def validate_password_strength(password: str) -> PasswordStrength:
    feedback = []
    score = 0

    if len(password) >= MIN_LENGTH:
        score += 1
    else:
        feedback.append(f"Password must be at least {MIN_LENGTH} characters")

    if re.search(r"[a-z]", password):
        score += 1
    else:
        feedback.append("Include at least one lowercase letter")

    if re.search(r"[A-Z]", password):
        score += 1
    else:
        feedback.append("Include at least one uppercase letter")

    if re.search(r"\d", password):
        score += 1
    else:
        feedback.append("Include at least one number")

    if SPECIAL_CHARACTERS.search(password):
        score += 1
    else:
        feedback.append("Include at least one special character (!@#$%^&*)")

    lowered = password.lower()
    if any(weak in lowered for weak in WEAK_PASSWORDS):
        score = max(0, score - 2)
        feedback.append("Avoid common passwords")

    return PasswordStrength(score=score, feedback=feedback)


def get_password_strength_label(score: int) -> str:
    if score <= 1:
        return "Very Weak"
    if score == 2:
        return "Weak"
    if score == 3:
        return "Fair"
    if score == 4:
        return "Strong"
    return "Very Strong"
