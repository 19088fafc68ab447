"""Treasury account resolution."""

from custody.core.exceptions import NotFoundError
from custody.domain.models import CustodyAccount, AccountRole
from custody.repositories.protocols import AccountRepository


class TreasuryResolver:
    """Looks up the single account flagged TREASURY."""

    def __init__(self, account_repo: AccountRepository):
        self._account_repo = account_repo

    def resolve(self) -> CustodyAccount:
        account = self._account_repo.get_by_role(AccountRole.TREASURY)
        if not account:
            raise NotFoundError("Treasury account", AccountRole.TREASURY.value)
        return account
