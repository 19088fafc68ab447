"""Custody account repository protocol."""

from typing import Protocol, Optional

from custody.domain.models import CustodyAccount, AccountRole


class AccountRepository(Protocol):
    """Interface for custody account data access."""

    def create(self, account: CustodyAccount) -> CustodyAccount:
        """Persist a new account."""
        ...

    def get_by_id(self, account_id: str) -> Optional[CustodyAccount]:
        """Retrieve account by ID."""
        ...

    def get_by_owner(self, owner_id: str) -> Optional[CustodyAccount]:
        """Retrieve the account owned by owner_id."""
        ...

    def get_by_address(self, address: str) -> Optional[CustodyAccount]:
        """Retrieve account by blockchain address."""
        ...

    def get_by_role(self, role: AccountRole) -> Optional[CustodyAccount]:
        """Retrieve the (first) account holding a role."""
        ...

    def list_all(self) -> list[CustodyAccount]:
        """List all accounts."""
        ...
