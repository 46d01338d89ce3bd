"""
Shift Roster

Monthly day/night shift generation with rest rules, availability,
quota pacing and fairness balancing, plus history import and
CSV/Excel/PDF export.
"""

__version__ = "1.0.0"
__author__ = "Shift Roster Team"
