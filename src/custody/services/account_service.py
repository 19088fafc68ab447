"""Custody account onboarding and treasury provisioning."""

import logging
import uuid

from custody.core.exceptions import AccountNotFound, ConflictError, ValidationError
from custody.core.key_vault import KeyVault
from custody.core.timezone import Clock, now_utc
from custody.domain.models import CustodyAccount, AccountRole
from custody.providers.blockchain_gateway import BlockchainGateway
from custody.repositories.protocols import AccountRepository

logger = logging.getLogger(__name__)


class AccountService:
    """
    Service for custody account lifecycle.

    Each owner gets exactly one system-held address. Private keys are
    encrypted by the KeyVault before they reach the repository.
    """

    def __init__(
        self,
        account_repo: AccountRepository,
        gateway: BlockchainGateway,
        vault: KeyVault,
        treasury_owner_id: str = "treasury",
        clock: Clock = now_utc,
    ):
        self._account_repo = account_repo
        self._gateway = gateway
        self._vault = vault
        self._treasury_owner_id = treasury_owner_id
        self._clock = clock

    def create_account(self, owner_id: str) -> CustodyAccount:
        """
        Create a custody account for an owner.

        Args:
            owner_id: Opaque identifier of the owning user

        Returns:
            Created CustodyAccount

        Raises:
            ConflictError: The owner already has an account
        """
        owner_id = (owner_id or "").strip()
        if not owner_id:
            raise ValidationError("owner_id is required")
        if self._account_repo.get_by_owner(owner_id):
            raise ConflictError(f"Owner {owner_id} already has a custody account")

        address, private_key = self._gateway.create_wallet()
        now = self._clock()
        account = CustodyAccount(
            account_id=str(uuid.uuid4()),
            owner_id=owner_id,
            address=address,
            encrypted_private_key=self._vault.encrypt(private_key),
            role=AccountRole.USER,
            created_at=now,
            updated_at=now,
        )
        created = self._account_repo.create(account)
        logger.info(f"Created custody account {created.account_id} for owner {owner_id}")
        return created

    def get_account(self, account_id: str) -> CustodyAccount:
        """Get account by ID."""
        account = self._account_repo.get_by_id(account_id)
        if not account:
            raise AccountNotFound(account_id)
        return account

    def get_by_owner(self, owner_id: str) -> CustodyAccount:
        """Get the account belonging to an owner."""
        account = self._account_repo.get_by_owner(owner_id)
        if not account:
            raise AccountNotFound(owner_id)
        return account

    def list_accounts(self) -> list[CustodyAccount]:
        """List all accounts."""
        return self._account_repo.list_all()

    def ensure_treasury_account(self, private_key: str) -> CustodyAccount:
        """
        Provision the treasury account from a configured custody key.

        Idempotent: an existing TREASURY account is returned unchanged.
        """
        existing = self._account_repo.get_by_role(AccountRole.TREASURY)
        if existing:
            return existing

        if not private_key:
            raise ValidationError("A treasury private key is required")

        address = self._gateway.address_from_private_key(private_key)
        now = self._clock()
        account = CustodyAccount(
            account_id=str(uuid.uuid4()),
            owner_id=self._treasury_owner_id,
            address=address,
            encrypted_private_key=self._vault.encrypt(private_key),
            role=AccountRole.TREASURY,
            created_at=now,
            updated_at=now,
        )
        created = self._account_repo.create(account)
        logger.info(f"Provisioned treasury account {created.account_id} at {address}")
        return created
