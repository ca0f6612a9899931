"""Active Directory integration over LDAP.

ldap3 is synchronous, so every operation opens its own connection inside a
worker thread and unbinds when done. Connections are never shared between
requests.
"""

import asyncio
import logging
import re
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, TypeVar

from ldap3 import BASE, MODIFY_ADD, MODIFY_REPLACE, NONE, SUBTREE, Connection, Server
from ldap3.core.exceptions import LDAPCommunicationError, LDAPException, LDAPInvalidDnError
from ldap3.utils.conv import escape_filter_chars
from ldap3.utils.dn import safe_rdn

from onboarding_api.exceptions import DirectoryBindError, DirectoryError
from onboarding_api.models.dto.directory import AccountSpec
from onboarding_api.models.dto.hris import DirectoryChange, DirectoryEmployee
from onboarding_api.models.dto.settings import ActiveDirectorySettings
from onboarding_api.providers.base import BaseProvider

logger = logging.getLogger(__name__)

R = TypeVar("R")

# All directory calls run on this pool
_directory_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="ldap")

DEFAULT_PORTS = {"ldap": 389, "ldaps": 636}
NORMAL_ACCOUNT = 512
USER_OBJECT_CLASSES = ["top", "person", "organizationalPerson", "user"]
SEARCH_PAGE_SIZE = 200
SEARCH_RESULT_LIMIT = 25
SEARCH_ATTRIBUTES = ["cn", "displayName", "sAMAccountName", "mail", "title", "department", "distinguishedName"]
PERSON_FILTER = "(&(objectClass=user)(objectCategory=person))"
EMPLOYEE_ATTRIBUTES = [
    "sAMAccountName",
    "displayName",
    "name",
    "employeeID",
    "department",
    "title",
    "manager",
    "mobile",
]

# AD data codes reported inside the bind error message ("... data 52e, v4563")
_AD_DATA_CODE = re.compile(r"data ([0-9a-f]{3})", re.IGNORECASE)
RESTRICTION_MESSAGES = {
    "530": "Logon is not permitted at this time",
    "531": "Logon is not permitted from this workstation",
    "532": "Password has expired",
    "533": "Account is disabled",
    "701": "Account has expired",
    "773": "Password must be reset before logging on",
    "775": "Account is locked out",
}
RESULT_INVALID_CREDENTIALS = 49
RESULT_INVALID_DN_SYNTAX = 34
RESULT_ENTRY_EXISTS = 68


def bind_identity(settings: ActiveDirectorySettings) -> str:
    """Credential string used to bind, depending on the configured auth format."""
    user = settings.username.strip()
    if settings.auth_format == "dn":
        if "=" in user:
            return user
        return f"CN={user},CN=Users,{settings.base_dn}"
    if "@" in user or "\\" in user or not settings.domain:
        return user
    return f"{user}@{settings.domain}"


def classify_bind_failure(result: dict[str, Any] | None) -> DirectoryBindError:
    """Turn an ldap3 bind result into a typed bind error."""
    result = result or {}
    code = result.get("result")
    message = result.get("message") or ""
    match = _AD_DATA_CODE.search(message)
    data_code = match.group(1).lower() if match else None

    if data_code in RESTRICTION_MESSAGES:
        return DirectoryBindError("account_restricted", RESTRICTION_MESSAGES[data_code])
    if code == RESULT_INVALID_CREDENTIALS or data_code == "52e":
        return DirectoryBindError("invalid_credentials", "Invalid username or password")
    if code == RESULT_INVALID_DN_SYNTAX:
        return DirectoryBindError("invalid_username", "Invalid username format for the selected authentication method")
    return DirectoryBindError("unknown", "Authentication with the directory server failed")


def encode_unicode_pwd(password: str) -> bytes:
    """AD expects the quoted password encoded as UTF-16LE."""
    return f'"{password}"'.encode("utf-16-le")


def _first(attributes: dict[str, Any], name: str) -> str:
    """Single string value of an attribute that ldap3 may return as a list."""
    value = attributes.get(name)
    if isinstance(value, list):
        value = value[0] if value else ""
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    return value or ""


class ActiveDirectoryClient:
    """One bound LDAP connection, used as a context manager."""

    def __init__(
        self,
        settings: ActiveDirectorySettings,
        connect_timeout: int = 10,
        receive_timeout: int = 5,
    ) -> None:
        if not settings.server or not settings.username or not settings.password:
            raise DirectoryError("Missing required connection parameters")
        self.settings = settings
        self.connect_timeout = connect_timeout
        self.receive_timeout = receive_timeout
        self._conn: Connection | None = None

    def __enter__(self) -> "ActiveDirectoryClient":
        self._conn = self._bind()
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self._conn is not None:
            try:
                self._conn.unbind()
            except LDAPException as e:
                logger.debug(f"LDAP unbind failed: {type(e).__name__}")
            self._conn = None

    @property
    def conn(self) -> Connection:
        if self._conn is None:
            raise DirectoryError("Directory connection is not open")
        return self._conn

    def _bind(self) -> Connection:
        protocol = self.settings.protocol
        server = Server(
            self.settings.server,
            port=DEFAULT_PORTS[protocol],
            use_ssl=protocol == "ldaps",
            get_info=NONE,
            connect_timeout=self.connect_timeout,
        )
        try:
            conn = Connection(
                server,
                user=bind_identity(self.settings),
                password=self.settings.password,
                receive_timeout=self.receive_timeout,
            )
            if not conn.bind():
                raise classify_bind_failure(conn.result)
        except LDAPInvalidDnError as e:
            raise DirectoryBindError(
                "invalid_username", "Invalid username format for the selected authentication method"
            ) from e
        except (LDAPCommunicationError, OSError) as e:
            raise DirectoryBindError(
                "server_unreachable", "Unable to reach the directory server. Check the server address and network"
            ) from e
        return conn

    def check_base(self) -> None:
        """Read the base DN to confirm the bound account can search."""
        if not self.conn.search(self.settings.base_dn, "(objectClass=*)", search_scope=BASE, attributes=[]):
            description = self.conn.result.get("description", "search failed")
            raise DirectoryError(f"Connected, but the base DN could not be read: {description}")

    def add_user(self, spec: AccountSpec, password: str) -> str:
        """Create an enabled user entry and return its DN."""
        attributes = {
            "cn": spec.display_name,
            "sAMAccountName": spec.username,
            "givenName": spec.first_name or spec.display_name,
            "displayName": spec.display_name,
            "userPrincipalName": spec.user_principal_name,
            "mail": spec.email,
            "title": spec.title,
            "department": spec.department,
            "company": spec.company,
            "physicalDeliveryOfficeName": spec.office,
            "unicodePwd": encode_unicode_pwd(password),
            "userAccountControl": NORMAL_ACCOUNT,
        }
        if spec.last_name:
            attributes["sn"] = spec.last_name
        # LDAP rejects empty attribute values
        attributes = {k: v for k, v in attributes.items() if v not in ("", None)}

        if not self.conn.add(spec.distinguished_name, USER_OBJECT_CLASSES, attributes):
            result = self.conn.result
            if result.get("result") == RESULT_ENTRY_EXISTS:
                raise DirectoryError("A directory account with this name already exists")
            raise DirectoryError(f"Failed to create user: {result.get('description', 'unknown error')}")
        return spec.distinguished_name

    def find_group_dn(self, group_name: str) -> str | None:
        """DN of the group whose cn matches, or None."""
        search_filter = f"(&(objectClass=group)(cn={escape_filter_chars(group_name)}))"
        self.conn.search(self.settings.base_dn, search_filter, search_scope=SUBTREE, attributes=["cn"])
        for entry in self.conn.response or []:
            if entry.get("type") == "searchResEntry":
                return entry["dn"]
        return None

    def add_to_group(self, group_name: str, member_dn: str) -> None:
        """Add a member to a group looked up by cn."""
        group_dn = self.find_group_dn(group_name)
        if group_dn is None:
            raise DirectoryError(f"Group {group_name} not found")
        if not self.conn.modify(group_dn, {"member": [(MODIFY_ADD, [member_dn])]}):
            description = self.conn.result.get("description", "unknown error")
            raise DirectoryError(f"Failed to add user to group {group_name}: {description}")

    def search_users(self, query: str, limit: int = SEARCH_RESULT_LIMIT) -> list[dict[str, str]]:
        """Find person entries whose name, account name or mail contains the query."""
        term = escape_filter_chars(query.strip())
        search_filter = (
            "(&(objectClass=user)(objectCategory=person)"
            f"(|(displayName=*{term}*)(sAMAccountName=*{term}*)(mail=*{term}*)(cn=*{term}*)))"
        )
        self.conn.search(
            self.settings.base_dn,
            search_filter,
            search_scope=SUBTREE,
            attributes=SEARCH_ATTRIBUTES,
            paged_size=SEARCH_PAGE_SIZE,
        )

        users: list[dict[str, str]] = []
        for entry in self.conn.response or []:
            if entry.get("type") != "searchResEntry":
                continue
            attrs = entry.get("attributes", {})
            users.append(
                {
                    "name": _first(attrs, "displayName") or _first(attrs, "cn"),
                    "username": _first(attrs, "sAMAccountName"),
                    "email": _first(attrs, "mail"),
                    "title": _first(attrs, "title"),
                    "department": _first(attrs, "department"),
                    "dn": entry.get("dn", ""),
                }
            )
            if len(users) >= limit:
                break
        return users

    def list_employees(self) -> list[DirectoryEmployee]:
        """Every person entry under the base DN, with the attributes HRIS sync compares."""
        entries = self.conn.extend.standard.paged_search(
            self.settings.base_dn,
            PERSON_FILTER,
            search_scope=SUBTREE,
            attributes=EMPLOYEE_ATTRIBUTES,
            paged_size=SEARCH_PAGE_SIZE,
            generator=True,
        )

        employees: list[DirectoryEmployee] = []
        for entry in entries:
            if entry.get("type") != "searchResEntry":
                continue
            attrs = entry.get("attributes", {})
            employees.append(
                DirectoryEmployee(
                    dn=entry["dn"],
                    sam_account_name=_first(attrs, "sAMAccountName"),
                    display_name=_first(attrs, "displayName"),
                    name=_first(attrs, "name"),
                    employee_id=_first(attrs, "employeeID"),
                    department=_first(attrs, "department"),
                    title=_first(attrs, "title"),
                    manager=_first(attrs, "manager"),
                    mobile=_first(attrs, "mobile"),
                )
            )
        return employees

    def replace_attributes(self, dn: str, attributes: dict[str, str]) -> None:
        """Overwrite single-valued attributes of an entry."""
        changes = {name: [(MODIFY_REPLACE, [value])] for name, value in attributes.items()}
        if not self.conn.modify(dn, changes):
            description = self.conn.result.get("description", "unknown error")
            raise DirectoryError(f"Failed to update {', '.join(sorted(attributes))}: {description}")

    def move_to_ou(self, dn: str, target_ou: str) -> str:
        """Move an entry under ``target_ou`` and return its new DN."""
        rdn = safe_rdn(dn)[0]
        new_dn = f"{rdn},{target_ou}"
        if new_dn.lower() == dn.lower():
            return dn
        if not self.conn.modify_dn(dn, rdn, new_superior=target_ou):
            description = self.conn.result.get("description", "unknown error")
            raise DirectoryError(f"Failed to move entry to {target_ou}: {description}")
        return new_dn


class ActiveDirectoryProvider(BaseProvider):
    """Async facade over :class:`ActiveDirectoryClient`.

    ldap3 exceptions raised after the bind surface as :class:`DirectoryError`.
    """

    def __init__(
        self,
        settings: ActiveDirectorySettings,
        connect_timeout: int = 10,
        receive_timeout: int = 5,
    ) -> None:
        self.settings = settings
        self.connect_timeout = connect_timeout
        self.receive_timeout = receive_timeout

    def _client(self) -> ActiveDirectoryClient:
        return ActiveDirectoryClient(self.settings, self.connect_timeout, self.receive_timeout)

    async def _run(self, func: Callable[[], R]) -> R:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(_directory_executor, func)
        except LDAPCommunicationError as e:
            raise DirectoryError("Communication with the directory server failed") from e
        except LDAPException as e:
            raise DirectoryError(f"Directory operation failed: {type(e).__name__}") from e

    def _test(self) -> str:
        with self._client() as client:
            client.check_base()
        return "Connected successfully"

    def _create(self, spec: AccountSpec, password: str) -> tuple[str, list[str]]:
        group_errors: list[str] = []
        with self._client() as client:
            dn = client.add_user(spec, password)
            for group in spec.groups:
                try:
                    client.add_to_group(group, dn)
                except DirectoryError as e:
                    logger.warning(f"Group assignment failed for {spec.username}: {e.message}")
                    group_errors.append(e.message)
                except LDAPException as e:
                    logger.warning(f"Group assignment failed for {spec.username}: {type(e).__name__}")
                    group_errors.append(f"Failed to add user to group {group}: {type(e).__name__}")
        return dn, group_errors

    def _search(self, query: str, limit: int) -> list[dict[str, str]]:
        with self._client() as client:
            return client.search_users(query, limit)

    async def test_connection(self) -> str:
        """Bind and read the base DN."""
        return await self._run(self._test)

    async def create_account(self, spec: AccountSpec, password: str) -> tuple[str, list[str]]:
        """Create the account and add it to its groups.

        Returns:
            Tuple of (distinguished name, group errors). Group failures do not
            fail the creation.
        """
        return await self._run(partial(self._create, spec, password))

    async def search_users(self, query: str, limit: int = SEARCH_RESULT_LIMIT) -> list[dict[str, str]]:
        """Search person entries."""
        return await self._run(partial(self._search, query, limit))

    def _list_employees(self) -> list[DirectoryEmployee]:
        with self._client() as client:
            return client.list_employees()

    def _apply(self, changes: list[DirectoryChange]) -> dict[str, str]:
        errors: dict[str, str] = {}
        with self._client() as client:
            for change in changes:
                try:
                    if change.attributes:
                        client.replace_attributes(change.dn, change.attributes)
                    if change.target_ou:
                        client.move_to_ou(change.dn, change.target_ou)
                except DirectoryError as e:
                    errors[change.dn] = e.message
                except LDAPException as e:
                    errors[change.dn] = f"Directory update failed: {type(e).__name__}"
        return errors

    async def list_employees(self) -> list[DirectoryEmployee]:
        """Person entries with the attributes HRIS sync compares."""
        return await self._run(self._list_employees)

    async def apply_changes(self, changes: list[DirectoryChange]) -> dict[str, str]:
        """Apply attribute replacements and moves over one connection.

        Returns:
            Error message per DN that could not be updated
        """
        return await self._run(partial(self._apply, changes))
