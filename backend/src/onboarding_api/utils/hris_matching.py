"""Matching HRIS employee rows to directory users and computing attribute changes.

Everything here is pure so the dry run and the real sync plan identical changes.
"""

import re
from difflib import SequenceMatcher

from onboarding_api.models.dto.hris import DirectoryEmployee, HrisEmployee

EMPLOYEE_ID_PATTERN = re.compile(r"^MTI\d{6}$")
COUNTRY_CODE = "62"
MIN_PHONE_DIGITS = 10
MAX_PHONE_DIGITS = 15

# Minimum SequenceMatcher ratio for a match by name alone
FUZZY_MATCH_THRESHOLD = 0.9

# "Jane Doe [MTI]" compares as "jane doe"
_ORG_SUFFIX = re.compile(r"\s*\[[^\]]*\]\s*$")
_PHONE_CHARS = re.compile(r"[^\d+]")
_NON_DIGITS = re.compile(r"\D")


def is_valid_employee_id(value: str | None) -> bool:
    return bool(value) and EMPLOYEE_ID_PATTERN.match(value) is not None


def is_valid_phone_number(value: str | None) -> bool:
    """Indonesian mobile number, local (0...) or international (62...) form."""
    if not value:
        return False
    digits = _PHONE_CHARS.sub("", str(value)).lstrip("+")
    return MIN_PHONE_DIGITS <= len(digits) <= MAX_PHONE_DIGITS and digits.startswith(("0", COUNTRY_CODE))


def standardize_phone_number(value: str) -> str:
    """Digits in international form without the plus, e.g. ``6281234567890``."""
    digits = _NON_DIGITS.sub("", str(value))
    if digits.startswith(COUNTRY_CODE):
        return digits
    return COUNTRY_CODE + digits.lstrip("0")


def _comparable_name(name: str) -> str:
    return " ".join(_ORG_SUFFIX.sub("", name or "").lower().split())


def fuzzy_match(
    users: list[DirectoryEmployee],
    employee_name: str,
    threshold: float = FUZZY_MATCH_THRESHOLD,
) -> DirectoryEmployee | None:
    """Directory user whose name is closest to ``employee_name``, if close enough."""
    target = _comparable_name(employee_name)
    if not target:
        return None

    best: DirectoryEmployee | None = None
    best_score = 0.0
    for user in users:
        candidate = _comparable_name(user.name or user.display_name)
        if not candidate:
            continue
        score = SequenceMatcher(None, target, candidate).ratio()
        if score > best_score:
            best, best_score = user, score

    return best if best_score >= threshold else None


def match_directory_user(
    employee: HrisEmployee,
    users: list[DirectoryEmployee],
    by_employee_id: dict[str, DirectoryEmployee],
) -> tuple[DirectoryEmployee | None, bool]:
    """Directory user for an HRIS row.

    Returns:
        Tuple of (user or None, whether the match was by name only)
    """
    exact = by_employee_id.get(employee.employee_id)
    if exact is not None:
        return exact, False
    fuzzy = fuzzy_match(users, employee.employee_name or "")
    return fuzzy, fuzzy is not None


def compute_changes(
    employee: HrisEmployee,
    user: DirectoryEmployee,
    manager_dn: str | None = None,
) -> dict[str, str]:
    """Directory attributes whose value differs from the HRIS row.

    Blank HRIS values never clear a directory attribute.
    """
    changes: dict[str, str] = {}

    if employee.department and employee.department != user.department:
        changes["department"] = employee.department
    if employee.position_title and employee.position_title != user.title:
        changes["title"] = employee.position_title

    if is_valid_phone_number(employee.phone):
        mobile = standardize_phone_number(employee.phone or "")
        if mobile != user.mobile:
            changes["mobile"] = mobile

    if manager_dn and manager_dn != user.manager:
        changes["manager"] = manager_dn

    return changes


def manager_dn_for(employee: HrisEmployee, by_employee_id: dict[str, DirectoryEmployee]) -> str | None:
    """DN of the supervisor's directory account, when the supervisor id is valid and known."""
    if not is_valid_employee_id(employee.supervisor_id):
        return None
    manager = by_employee_id.get(employee.supervisor_id or "")
    return manager.dn if manager else None
