"""Tests for wallet provisioning (in-memory SQLite)."""

import uuid
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from profile_importer.lib.importer.errors import SideEffectError
from profile_importer.models.profile import Profile
from profile_importer.models.wallet import Wallet
from profile_importer.services.wallet_service import WalletProvisioner


class TestWalletProvisioner:
    """Tests for WalletProvisioner."""

    @pytest.mark.asyncio
    async def test_creates_wallet_per_currency(self, async_session: AsyncSession) -> None:
        """One zero-balance active wallet is created per currency."""
        profile = Profile(full_name="John", referral_code="YWT00001")
        async_session.add(profile)
        await async_session.commit()

        await WalletProvisioner(async_session, ["USD", "UGX"]).provision(profile.id)

        result = await async_session.execute(
            select(Wallet).where(Wallet.user_id == profile.id).order_by(Wallet.currency)
        )
        wallets = result.scalars().all()
        assert [w.currency for w in wallets] == ["UGX", "USD"]
        assert all(w.balance == Decimal("0") for w in wallets)
        assert all(w.status == "active" for w in wallets)

    @pytest.mark.asyncio
    async def test_no_currencies_is_noop(self) -> None:
        """No currencies means no database call."""
        session = AsyncMock()
        await WalletProvisioner(session, []).provision(uuid.uuid4())
        session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_raises_side_effect_error(self) -> None:
        """Database errors surface as SideEffectError."""
        session = AsyncMock()
        session.execute.side_effect = OperationalError("INSERT", {}, Exception("db down"))

        with pytest.raises(SideEffectError, match="Wallet creation failed"):
            await WalletProvisioner(session).provision(uuid.uuid4())

        session.rollback.assert_awaited_once()
