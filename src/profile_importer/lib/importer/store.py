"""Collaborator interfaces the pipeline reads from and writes to.

The importer library never talks to a database directly. Services provide
implementations of these protocols; tests provide in-memory fakes.
"""

import uuid
from collections.abc import Collection
from dataclasses import dataclass
from datetime import date
from typing import Protocol

from profile_importer.lib.importer.types import ExistingIdentityRef


@dataclass(frozen=True)
class NewIdentity:
    """Full field set for a single identity insert."""

    id: uuid.UUID
    referral_code: str
    full_name: str
    email: str | None
    phone: str | None
    account_type: str
    nationality: str | None = None
    country_of_residence: str | None = None
    town_city: str | None = None
    date_of_birth: date | None = None
    gender: str | None = None
    tin: str | None = None
    address: str | None = None
    import_batch_id: uuid.UUID | None = None


class IdentityStore(Protocol):
    """Record-oriented identity persistence."""

    async def find_existing(
        self,
        emails: Collection[str],
        phones: Collection[str],
    ) -> list[ExistingIdentityRef]:
        """Return stored identities matching any of the emails or phones."""
        ...

    async def insert_identity(self, identity: NewIdentity) -> None:
        """Insert one new identity.

        Raises:
            CommitError: If the insert fails.
        """
        ...

    async def update_phone(self, identity_id: uuid.UUID, phone: str) -> None:
        """Replace the phone of an existing identity.

        Raises:
            CommitError: If the update fails or the identity does not exist.
        """
        ...

    async def max_referral_code(self, prefix: str) -> str | None:
        """Return the highest referral code issued with ``prefix``, if any."""
        ...


class SubAccountProvisioner(Protocol):
    """Creates dependent records for a newly created identity."""

    async def provision(self, identity_id: uuid.UUID) -> None:
        """Provision sub-accounts for ``identity_id``.

        Raises:
            SideEffectError: If provisioning fails.
        """
        ...
