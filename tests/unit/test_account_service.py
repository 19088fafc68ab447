"""
Unit tests for AccountService and TreasuryResolver.

Tests cover:
- Account onboarding (one account per owner, encrypted key)
- Lookups by id and owner
- Treasury provisioning (idempotent) and resolution
"""

import pytest

from custody.core.exceptions import (
    AccountNotFound,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from custody.core.key_vault import KeyVault
from custody.domain.models import AccountRole
from custody.services import AccountService, TreasuryResolver

from tests.conftest import TREASURY_PRIVATE_KEY


# =============================================================================
# ONBOARDING TESTS
# =============================================================================


class TestCreateAccount:
    """Tests for account onboarding."""

    def test_create_account(self, account_service: AccountService, vault: KeyVault, gateway):
        """
        GIVEN no accounts exist
        WHEN I create an account for "alice"
        THEN it gets a fresh address and an encrypted private key
        """
        account = account_service.create_account("alice")

        assert account.account_id is not None
        assert account.owner_id == "alice"
        assert account.role == AccountRole.USER
        assert gateway.is_valid_address(account.address)
        # Stored key is ciphertext that opens to a 64-char hex key
        private_key = vault.decrypt(account.encrypted_private_key)
        assert private_key != account.encrypted_private_key
        assert len(private_key) == 64

    def test_second_account_for_owner_rejected(self, account_service: AccountService):
        """
        GIVEN "alice" already has an account
        WHEN I create another one for "alice"
        THEN ConflictError is raised
        """
        account_service.create_account("alice")

        with pytest.raises(ConflictError):
            account_service.create_account("alice")

    def test_distinct_owners_get_distinct_addresses(self, account_service: AccountService):
        first = account_service.create_account("alice")
        second = account_service.create_account("bob")

        assert first.address != second.address

    @pytest.mark.parametrize("owner_id", ["", "   "])
    def test_blank_owner_rejected(self, account_service: AccountService, owner_id):
        with pytest.raises(ValidationError):
            account_service.create_account(owner_id)


# =============================================================================
# LOOKUP TESTS
# =============================================================================


class TestLookups:
    """Tests for account retrieval."""

    def test_get_by_owner(self, account_service: AccountService):
        created = account_service.create_account("alice")

        assert account_service.get_by_owner("alice").account_id == created.account_id

    def test_get_account(self, account_service: AccountService):
        created = account_service.create_account("alice")

        assert account_service.get_account(created.account_id).owner_id == "alice"

    def test_missing_owner(self, account_service: AccountService):
        with pytest.raises(AccountNotFound):
            account_service.get_by_owner("nobody")

    def test_missing_account(self, account_service: AccountService):
        with pytest.raises(AccountNotFound):
            account_service.get_account("missing-id")

    def test_list_accounts(self, account_service: AccountService):
        account_service.create_account("alice")
        account_service.create_account("bob")

        owners = {a.owner_id for a in account_service.list_accounts()}

        assert owners == {"alice", "bob"}


# =============================================================================
# TREASURY TESTS
# =============================================================================


class TestTreasury:
    """Tests for treasury provisioning and resolution."""

    def test_ensure_treasury_account(self, account_service: AccountService, gateway, vault):
        """
        GIVEN a configured treasury key
        WHEN I provision the treasury
        THEN a TREASURY account is stored at the key's address
        """
        treasury = account_service.ensure_treasury_account(TREASURY_PRIVATE_KEY)

        assert treasury.role == AccountRole.TREASURY
        assert treasury.is_treasury
        assert treasury.address == gateway.address_from_private_key(TREASURY_PRIVATE_KEY)
        assert vault.decrypt(treasury.encrypted_private_key) == TREASURY_PRIVATE_KEY

    def test_ensure_treasury_is_idempotent(self, account_service: AccountService):
        first = account_service.ensure_treasury_account(TREASURY_PRIVATE_KEY)
        second = account_service.ensure_treasury_account(TREASURY_PRIVATE_KEY)

        assert first.account_id == second.account_id

    def test_ensure_treasury_requires_key(self, account_service: AccountService):
        with pytest.raises(ValidationError):
            account_service.ensure_treasury_account("")

    def test_resolver_finds_treasury(self, treasury_resolver: TreasuryResolver, treasury):
        assert treasury_resolver.resolve().account_id == treasury.account_id

    def test_resolver_without_treasury(self, treasury_resolver: TreasuryResolver):
        with pytest.raises(NotFoundError):
            treasury_resolver.resolve()
