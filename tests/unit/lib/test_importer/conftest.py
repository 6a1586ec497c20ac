"""In-memory collaborators for importer pipeline tests."""

import uuid
from collections.abc import Collection

import pytest

from profile_importer.lib.importer.errors import CommitError, SideEffectError
from profile_importer.lib.importer.store import NewIdentity
from profile_importer.lib.importer.types import ExistingIdentityRef


class FakeIdentityStore:
    """Dict-backed identity store recording every call."""

    def __init__(self, existing: list[ExistingIdentityRef] | None = None, max_code: str | None = None) -> None:
        self.identities: dict[uuid.UUID, ExistingIdentityRef] = {ref.id: ref for ref in existing or []}
        self.inserted: list[NewIdentity] = []
        self.phone_updates: list[tuple[uuid.UUID, str]] = []
        self.lookups: list[tuple[list[str], list[str]]] = []
        self.max_code = max_code
        self.fail_insert_for: set[str] = set()
        self.crash_insert_for: set[str] = set()
        self.fail_update = False

    async def find_existing(self, emails: Collection[str], phones: Collection[str]) -> list[ExistingIdentityRef]:
        self.lookups.append((list(emails), list(phones)))
        return [ref for ref in self.identities.values() if ref.email in emails or ref.phone in phones]

    async def insert_identity(self, identity: NewIdentity) -> None:
        if identity.full_name in self.crash_insert_for:
            msg = "connection reset"
            raise RuntimeError(msg)
        if identity.full_name in self.fail_insert_for:
            msg = "duplicate key value violates unique constraint"
            raise CommitError(msg, identity.id)
        self.inserted.append(identity)
        self.identities[identity.id] = ExistingIdentityRef(id=identity.id, email=identity.email, phone=identity.phone)

    async def update_phone(self, identity_id: uuid.UUID, phone: str) -> None:
        if self.fail_update:
            msg = "row locked"
            raise CommitError(msg, identity_id)
        ref = self.identities[identity_id]
        self.identities[identity_id] = ExistingIdentityRef(id=ref.id, email=ref.email, phone=phone)
        self.phone_updates.append((identity_id, phone))

    async def max_referral_code(self, prefix: str) -> str | None:
        return self.max_code


class FakeProvisioner:
    """Records provisioned identities; optionally fails."""

    def __init__(self, *, fail: bool = False) -> None:
        self.provisioned: list[uuid.UUID] = []
        self.fail = fail

    async def provision(self, identity_id: uuid.UUID) -> None:
        if self.fail:
            msg = "wallet service unavailable"
            raise SideEffectError(msg)
        self.provisioned.append(identity_id)


@pytest.fixture
def fake_store() -> FakeIdentityStore:
    """An empty in-memory identity store."""
    return FakeIdentityStore()


@pytest.fixture
def fake_provisioner() -> FakeProvisioner:
    """A provisioner that always succeeds."""
    return FakeProvisioner()
