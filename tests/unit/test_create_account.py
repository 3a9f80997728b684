"""
Tests for account provisioning: the first-admin claim and all-or-nothing rollback.
"""
from __future__ import annotations

import threading
from unittest.mock import Mock

import pytest

from src.application.use_cases.create_account import ADMIN_EXISTS_MESSAGE, CreateAccountUseCase
from src.domain.entities.registration import RegistrationRequest, Role
from src.domain.exceptions import (
    AdminClaimTakenError,
    AlreadyExistsError,
    IdentityStoreError,
    InternalError,
    InvalidArgumentError,
    PermissionDeniedError,
    ProfileStoreError,
)
from src.domain.services.admin_oracle import AdminExistenceOracle


def _request(email="a@x.com", role=Role.USER, password="secret1", full_name="A"):
    return RegistrationRequest(email=email, password=password, full_name=full_name, role=role)


def _emails(accounts):
    return [a.email for a in accounts.list_accounts()]


@pytest.fixture
def use_case(stores):
    accounts, profiles, oracle = stores
    return CreateAccountUseCase(accounts=accounts, profiles=profiles, oracle=oracle)


class TestSuccessfulProvisioning:
    def test_user_account_on_empty_store(self, use_case, stores):
        """A plain registration creates one account and one non-admin profile."""
        accounts, profiles, _ = stores

        account = use_case.execute(_request())

        assert accounts.get(account.id) is not None
        assert account.is_admin is False
        profile = profiles.get(account.id)
        assert profile.email == "a@x.com"
        assert profile.full_name == "A"
        assert profile.is_admin is False
        assert profile.created_at is not None

    def test_first_admin_gets_claim_and_profile_flag(self, use_case, stores):
        accounts, profiles, _ = stores

        account = use_case.execute(_request(role=Role.ADMIN))

        assert account.is_admin is True
        assert accounts.get(account.id).claims == {"admin": True}
        assert profiles.get(account.id).is_admin is True

    def test_display_name_is_full_name(self, use_case, stores):
        accounts, _, _ = stores
        account = use_case.execute(_request(full_name="Ada Lovelace"))
        assert accounts.get(account.id).display_name == "Ada Lovelace"

    def test_sequential_admin_requests_grant_exactly_one_admin(self, use_case, stores):
        accounts, _, _ = stores
        outcomes = []
        for i in range(4):
            try:
                use_case.execute(_request(email=f"admin{i}@x.com", role=Role.ADMIN))
                outcomes.append("ok")
            except PermissionDeniedError:
                outcomes.append("denied")

        assert outcomes == ["ok", "denied", "denied", "denied"]
        assert sum(a.is_admin for a in accounts.list_accounts()) == 1
        assert _emails(accounts) == ["admin0@x.com"]


class TestRejectedRequests:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"email": ""},
            {"email": None},
            {"password": ""},
            {"password": None},
            {"full_name": ""},
            {"full_name": None},
        ],
    )
    def test_missing_fields_are_invalid_argument(self, use_case, stores, overrides):
        accounts, _, _ = stores
        with pytest.raises(InvalidArgumentError) as excinfo:
            use_case.execute(_request(**overrides))
        assert excinfo.value.code == "invalid-argument"
        assert accounts.list_accounts() == []

    def test_second_admin_is_denied_and_leaves_nothing(self, use_case, stores):
        accounts, profiles, _ = stores
        first = use_case.execute(_request(email="first@x.com", role=Role.ADMIN))

        with pytest.raises(PermissionDeniedError) as excinfo:
            use_case.execute(_request(email="second@x.com", role=Role.ADMIN))

        assert excinfo.value.message == ADMIN_EXISTS_MESSAGE
        assert _emails(accounts) == ["first@x.com"]
        assert profiles.get(first.id) is not None

    def test_user_registration_still_allowed_after_admin(self, use_case, stores):
        use_case.execute(_request(email="boss@x.com", role=Role.ADMIN))
        account = use_case.execute(_request(email="staff@x.com"))
        assert account.is_admin is False

    def test_duplicate_email_is_already_exists(self, use_case, stores):
        accounts, profiles, _ = stores
        original = use_case.execute(_request())

        with pytest.raises(AlreadyExistsError) as excinfo:
            use_case.execute(_request(email="A@X.com", full_name="Impostor"))

        assert excinfo.value.code == "already-exists"
        assert [a.id for a in accounts.list_accounts()] == [original.id]
        assert profiles.get(original.id).full_name == "A"

    def test_identity_store_rejection_is_internal(self, use_case, stores):
        accounts, _, _ = stores
        with pytest.raises(InternalError) as excinfo:
            use_case.execute(_request(password="123"))
        assert excinfo.value.message == "Failed to create user account."
        assert accounts.list_accounts() == []

    def test_unreachable_store_blocks_admin_before_creating_anything(self, stores):
        accounts, profiles, _ = stores
        broken_listing = Mock(wraps=accounts)
        broken_listing.list_accounts.side_effect = IdentityStoreError("down")
        uc = CreateAccountUseCase(
            accounts=accounts, profiles=profiles, oracle=AdminExistenceOracle(broken_listing)
        )

        with pytest.raises(PermissionDeniedError):
            uc.execute(_request(role=Role.ADMIN))
        assert accounts.list_accounts() == []


class TestRollback:
    def test_profile_write_failure_rolls_back_account_and_claim(self, use_case, stores, monkeypatch):
        accounts, profiles, oracle = stores
        monkeypatch.setattr(profiles, "create", Mock(side_effect=ProfileStoreError("write timeout")))

        with pytest.raises(InternalError) as excinfo:
            use_case.execute(_request(role=Role.ADMIN))

        assert excinfo.value.message == "Failed to save user data."
        assert accounts.list_accounts() == []
        assert oracle.admin_exists() is False

    def test_profile_that_landed_before_failure_is_removed(self, use_case, stores, monkeypatch):
        accounts, profiles, _ = stores
        real_create = profiles.create
        created_ids = []

        def create_then_fail(**kwargs):
            real_create(**kwargs)
            created_ids.append(kwargs["account_id"])
            raise ProfileStoreError("response lost")

        monkeypatch.setattr(profiles, "create", create_then_fail)

        with pytest.raises(InternalError):
            use_case.execute(_request())

        assert accounts.list_accounts() == []
        assert profiles.get(created_ids[0]) is None

    def test_lost_race_on_recheck_deletes_new_account(self, stores):
        accounts, profiles, _ = stores
        oracle = Mock(spec=AdminExistenceOracle)
        # pre-check sees no admin, re-check after creation sees a concurrent winner
        oracle.admin_exists.side_effect = [False, True]
        uc = CreateAccountUseCase(accounts=accounts, profiles=profiles, oracle=oracle)

        with pytest.raises(PermissionDeniedError):
            uc.execute(_request(role=Role.ADMIN))

        assert accounts.list_accounts() == []
        recheck = oracle.admin_exists.call_args_list[1]
        assert recheck.kwargs["exclude_account_id"] is not None

    def test_claim_failure_is_internal_and_rolled_back(self, use_case, stores, monkeypatch):
        accounts, profiles, _ = stores
        monkeypatch.setattr(accounts, "set_claims", Mock(side_effect=IdentityStoreError("503")))
        profile_create = Mock()
        monkeypatch.setattr(profiles, "create", profile_create)

        with pytest.raises(InternalError) as excinfo:
            use_case.execute(_request(role=Role.ADMIN))

        assert excinfo.value.message == "An error occurred while setting the admin claim."
        assert accounts.list_accounts() == []
        profile_create.assert_not_called()

    def test_failed_rollback_keeps_original_error(self, use_case, stores, monkeypatch, caplog):
        accounts, profiles, _ = stores
        monkeypatch.setattr(profiles, "create", Mock(side_effect=ProfileStoreError("write failed")))
        monkeypatch.setattr(accounts, "delete", Mock(side_effect=IdentityStoreError("delete failed")))

        with pytest.raises(InternalError) as excinfo:
            use_case.execute(_request())

        assert excinfo.value.message == "Failed to save user data."
        assert "Rollback step failed: delete account" in caplog.text

    def test_rollback_runs_most_recent_first(self, use_case, stores, monkeypatch):
        accounts, profiles, _ = stores
        calls = Mock()
        monkeypatch.setattr(profiles, "create", Mock(side_effect=ProfileStoreError("boom")))
        monkeypatch.setattr(profiles, "delete", calls.delete_profile)
        monkeypatch.setattr(accounts, "delete", calls.delete_account)

        with pytest.raises(InternalError):
            use_case.execute(_request())

        assert [c[0] for c in calls.mock_calls] == ["delete_profile", "delete_account"]

    def test_claim_taken_at_write_time_is_denied_and_rolled_back(self, use_case, stores, monkeypatch):
        accounts, _, _ = stores
        monkeypatch.setattr(
            accounts, "grant_admin_if_none", Mock(side_effect=AdminClaimTakenError("held"))
        )

        with pytest.raises(PermissionDeniedError) as excinfo:
            use_case.execute(_request(role=Role.ADMIN))

        assert excinfo.value.message == ADMIN_EXISTS_MESSAGE
        assert accounts.list_accounts() == []


def test_concurrent_admin_registrations_grant_one_admin(use_case, stores, monkeypatch):
    accounts, profiles, _ = stores
    # both registrations pass the re-check before either writes the claim
    barrier = threading.Barrier(2, timeout=10)
    real_grant = accounts.grant_admin_if_none

    def grant_after_both_rechecked(account_id, **kwargs):
        barrier.wait()
        return real_grant(account_id, **kwargs)

    monkeypatch.setattr(accounts, "grant_admin_if_none", grant_after_both_rechecked)
    outcomes = []

    def register(i):
        try:
            use_case.execute(_request(email=f"admin{i}@x.com", role=Role.ADMIN))
            outcomes.append("ok")
        except PermissionDeniedError:
            outcomes.append("denied")

    threads = [threading.Thread(target=register, args=(i,)) for i in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert sorted(outcomes) == ["denied", "ok"]
    remaining = accounts.list_accounts()
    assert len(remaining) == 1
    assert remaining[0].is_admin is True
    assert profiles.get(remaining[0].id).is_admin is True


def test_role_parsing():
    assert Role.parse(None) is Role.USER
    assert Role.parse("") is Role.USER
    assert Role.parse("admin") is Role.ADMIN
    with pytest.raises(InvalidArgumentError):
        Role.parse("superuser")
