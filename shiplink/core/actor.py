"""Authenticated caller identity, as supplied by the authentication layer."""

from dataclasses import dataclass
from uuid import UUID

ROLE_USER = "user"
ROLE_SELLER = "seller"
ROLE_DRIVER = "driver"
ROLE_COMPANY = "logistics-company"
ROLE_SOURCING_AGENT = "sourcing-agent"
ROLE_IMPORT_COACH = "import-coach"
ROLE_ADMIN = "admin"

KNOWN_ROLES = frozenset({
    ROLE_USER,
    ROLE_SELLER,
    ROLE_DRIVER,
    ROLE_COMPANY,
    ROLE_SOURCING_AGENT,
    ROLE_IMPORT_COACH,
    ROLE_ADMIN,
})


@dataclass(frozen=True)
class Actor:
    user_id: UUID
    role: str = ROLE_USER

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_driver(self) -> bool:
        return self.role == ROLE_DRIVER

    @property
    def is_company(self) -> bool:
        return self.role == ROLE_COMPANY
