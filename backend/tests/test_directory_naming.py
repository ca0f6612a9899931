"""Tests for directory account naming rules."""

from datetime import date
from types import SimpleNamespace

import pytest

from onboarding_api.models.dto.settings import ActiveDirectorySettings
from onboarding_api.utils.directory_naming import (
    acl_group,
    build_account_spec,
    derive_username,
    display_name,
    ou_path,
    split_name,
    suggest_email,
    suggest_initial_password,
)


class TestUsername:
    """Username derivation from e-mail."""

    def test_local_part(self) -> None:
        assert derive_username("jane.doe@example.com") == "jane.doe"

    def test_truncated_to_twenty(self) -> None:
        assert derive_username("a.very.long.local.part.name@example.com") == "a.very.long.local.pa"

    def test_without_at_sign(self) -> None:
        assert derive_username("x" * 30) == "x" * 20

    def test_empty(self) -> None:
        assert derive_username("") == ""


class TestNames:
    def test_split_name(self) -> None:
        assert split_name("Jane Mary Doe") == ("Jane", "Mary Doe")
        assert split_name("Jane") == ("Jane", "")
        assert split_name("   ") == ("", "")

    def test_display_name(self) -> None:
        assert display_name(" Jane Doe ") == "Jane Doe [MTI]"
        assert display_name("Jane Doe", "ACME") == "Jane Doe [ACME]"


class TestOrganizationalUnit:
    """OU and ACL group placement."""

    def test_generic_department(self) -> None:
        assert ou_path("Finance", "Org", "DC=corp,DC=com") == "OU=Finance,OU=Org,DC=corp,DC=com"

    def test_override(self) -> None:
        assert ou_path("Copper Cathode Plant", "Org", "DC=corp") == "OU=CCP,OU=Org,DC=corp"

    def test_no_department(self) -> None:
        assert ou_path(None, "Org", "DC=corp") == "OU=Org,DC=corp"

    @pytest.mark.parametrize(
        ("department", "expected"),
        [
            ("Finance", "ACL MTI Finance"),
            ("Acid Plant", "ACL MTI Acid"),
            ("Environment", "ACL MTI OHSE"),
            ("Occupational Health and Safety", "ACL MTI OHSE"),
            ("Copper Cathode Plant", "ACL MTI Copper Cathode"),
            ("", "ACL MTI Users"),
        ],
    )
    def test_acl_group(self, department: str, expected: str) -> None:
        assert acl_group(department) == expected


class TestSuggestions:
    """Advisory e-mail and password suggestions."""

    def test_email(self) -> None:
        assert suggest_email("Jane Mary Doe", "example.com") == "jane.doe@example.com"
        assert suggest_email("O'Brien", "example.com") == "obrien@example.com"
        assert suggest_email("", "example.com") == ""

    def test_password(self) -> None:
        assert suggest_initial_password("Jane Doe") == "J4n3#Mb23"
        assert suggest_initial_password("Budi Santoso") == "B00d1#Mb23"
        assert suggest_initial_password("OTTO") == "0TT0#Mb23"
        assert suggest_initial_password("") == ""


class TestAccountSpec:
    """Full account computed from a hire."""

    def test_build_account_spec(self) -> None:
        hire = SimpleNamespace(
            name="Jane Doe",
            email="jane.doe@example.com",
            username=None,
            title="Engineer",
            department="Finance",
            on_site_date=date(2026, 1, 5),
        )
        settings = ActiveDirectorySettings(domain="corp.example.com", base_dn="DC=corp,DC=example,DC=com")

        spec = build_account_spec(hire, settings)

        assert spec.username == "jane.doe"
        assert spec.user_principal_name == "jane.doe@corp.example.com"
        assert spec.display_name == "Jane Doe [MTI]"
        assert spec.first_name == "Jane"
        assert spec.last_name == "Doe"
        assert spec.ou == "OU=Finance,OU=Merdeka Tsingshan Indonesia,DC=corp,DC=example,DC=com"
        assert spec.distinguished_name.startswith("CN=Jane Doe [MTI],OU=Finance,")
        assert spec.groups == ["ACL MTI Finance", "VPN-USERS"]

    def test_stored_username_wins(self) -> None:
        hire = SimpleNamespace(
            name="Jane Doe",
            email="jane.doe@example.com",
            username="jdoe",
            title="",
            department="",
        )
        spec = build_account_spec(hire, ActiveDirectorySettings())

        assert spec.username == "jdoe"
        assert spec.user_principal_name == "jdoe"
        assert spec.acl_group == "ACL MTI Users"
