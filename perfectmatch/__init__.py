"""
PerfectMatchSchools
A K-12 hiring marketplace that matches teachers with school job postings.

Architecture:
- Relational database (PostgreSQL in production) through SQLAlchemy Core
- Rule-based teacher/job match scoring
- Resend for transactional email
"""

__version__ = "1.0.0"
