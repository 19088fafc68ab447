"""Custody account domain model."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from custody.domain.models.enums import AccountRole


@dataclass
class CustodyAccount:
    """
    System-held address/key pair representing one owner's funds.

    One account per owner; an address is never reused across accounts.
    The private key is only ever stored encrypted.
    """

    account_id: str
    owner_id: str
    address: str
    encrypted_private_key: str
    role: AccountRole = AccountRole.USER
    created_at: Optional[datetime] = field(default=None)
    updated_at: Optional[datetime] = field(default=None)

    def __post_init__(self) -> None:
        if isinstance(self.role, str):
            self.role = AccountRole(self.role)

    @property
    def is_treasury(self) -> bool:
        return self.role == AccountRole.TREASURY
