"""Wallet provisioning for newly imported profiles."""

import uuid
from collections.abc import Sequence
from decimal import Decimal

from loguru import logger
from sqlalchemy import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from profile_importer.lib.importer.errors import SideEffectError
from profile_importer.models.wallet import Wallet

DEFAULT_CURRENCIES = ("USD", "UGX")


class WalletProvisioner:
    """Creates one zero-balance active wallet per configured currency."""

    def __init__(self, session: AsyncSession, currencies: Sequence[str] = DEFAULT_CURRENCIES) -> None:
        self._session = session
        self._currencies = tuple(currencies)

    async def provision(self, identity_id: uuid.UUID) -> None:
        """Create the wallets of ``identity_id`` in one commit.

        Raises:
            SideEffectError: If the wallets could not be created.
        """
        if not self._currencies:
            return
        rows = [
            {
                "id": uuid.uuid4(),
                "user_id": identity_id,
                "currency": currency,
                "balance": Decimal("0"),
                "status": "active",
            }
            for currency in self._currencies
        ]
        try:
            await self._session.execute(insert(Wallet), rows)
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            msg = f"Wallet creation failed for {identity_id}: {exc}"
            raise SideEffectError(msg) from exc
        logger.debug(f"Provisioned {', '.join(self._currencies)} wallets for {identity_id}")

