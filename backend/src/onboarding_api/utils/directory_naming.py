"""Naming rules for directory accounts derived from hire records.

All functions are pure: the same hire and organization settings always give
the same account specification.
"""

import re

from onboarding_api.models.dto.directory import AccountSpec
from onboarding_api.models.dto.hire import MAX_USERNAME_LENGTH
from onboarding_api.models.dto.settings import ActiveDirectorySettings, DirectoryOrganization
from onboarding_api.models.orm.hire import HireORM

# Departments whose OU or ACL group does not follow the generic pattern
OU_OVERRIDES = {"Copper Cathode Plant": "CCP"}
ACL_OVERRIDES = {
    "Occupational Health and Safety": "OHSE",
    "Environment": "OHSE",
    "Copper Cathode Plant": "Copper Cathode",
}
PASSWORD_SUFFIX = "#Mb23"
PASSWORD_SUBSTITUTIONS = (("a", "4"), ("i", "1"), ("e", "3"), ("o", "0"), ("u", "00"))

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def derive_username(email: str) -> str:
    """Local part of the e-mail, at most 20 characters.

    Without an ``@`` the whole string is truncated instead.
    """
    email = (email or "").strip()
    at = email.find("@")
    if at == -1:
        return email[:MAX_USERNAME_LENGTH]
    return email[: min(at, MAX_USERNAME_LENGTH)]


def split_name(name: str) -> tuple[str, str]:
    """First token and the remaining tokens of a full name."""
    parts = (name or "").split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def display_name(name: str, suffix: str = "MTI") -> str:
    """Directory display name, e.g. ``Jane Doe [MTI]``."""
    return f"{name.strip()} [{suffix}]"


def ou_path(department: str | None, org_name: str, base_dn: str) -> str:
    """Organizational unit a new account is created in."""
    root = f"OU={org_name},{base_dn}"
    department = (department or "").strip()
    if not department:
        return root
    return f"OU={OU_OVERRIDES.get(department, department)},{root}"


def acl_group(department: str | None, org_code: str = "MTI") -> str:
    """Access-control group for a department."""
    department = (department or "").strip()
    if not department:
        return f"ACL {org_code} Users"
    if department in ACL_OVERRIDES:
        return f"ACL {org_code} {ACL_OVERRIDES[department]}"
    return f"ACL {org_code} {department.replace(' Plant', '')}"


def suggest_email(name: str, domain: str) -> str:
    """``first.last@domain`` from a full name; empty when nothing usable remains."""
    parts = (name or "").lower().split()
    if not parts:
        return ""
    first = _NON_ALNUM.sub("", parts[0])
    if not first:
        return ""
    if len(parts) == 1:
        return f"{first}@{domain}"
    last = _NON_ALNUM.sub("", parts[-1])
    local = f"{first}.{last}" if last else first
    return f"{local}@{domain}"


def suggest_initial_password(name: str) -> str:
    """Advisory first-login password built from the first name.

    Vowels are swapped for digits (a=4, i=1, e=3, o=0, u=00, any case) and a
    fixed suffix is appended. Empty input gives an empty string.
    """
    first, _ = split_name(name)
    if not first:
        return ""
    for letter, digit in PASSWORD_SUBSTITUTIONS:
        first = re.sub(letter, digit, first, flags=re.IGNORECASE)
    return f"{first}{PASSWORD_SUFFIX}"


def build_account_spec(hire: HireORM, settings: ActiveDirectorySettings) -> AccountSpec:
    """Compute the full directory account for a hire."""
    org: DirectoryOrganization = settings.organization
    username = hire.username or derive_username(hire.email or "")
    first, last = split_name(hire.name or "")
    shown = display_name(hire.name or "", org.display_suffix)
    ou = ou_path(hire.department, org.org_name, settings.base_dn)
    acl = acl_group(hire.department, org.org_code)

    groups = [acl]
    for group in org.default_groups:
        if group not in groups:
            groups.append(group)

    return AccountSpec(
        username=username,
        display_name=shown,
        first_name=first,
        last_name=last,
        user_principal_name=f"{username}@{settings.domain}" if settings.domain else username,
        email=hire.email or "",
        title=hire.title or "",
        department=hire.department or "",
        company=org.company,
        office=org.office,
        ou=ou,
        distinguished_name=f"CN={shown},{ou}",
        acl_group=acl,
        groups=groups,
    )
