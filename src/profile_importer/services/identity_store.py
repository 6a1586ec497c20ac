"""SQLAlchemy-backed identity store for the profile importer.

Every insert and update is committed on its own, so a failing row never
takes earlier rows with it.
"""

import uuid
from collections.abc import Collection

from loguru import logger
from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from profile_importer.lib.importer.errors import CommitError
from profile_importer.lib.importer.normalizer import DEFAULT_COUNTRY_CODE, phone_variants
from profile_importer.lib.importer.store import NewIdentity
from profile_importer.lib.importer.types import ExistingIdentityRef
from profile_importer.models.profile import Profile

# Values per IN-clause; keeps statements well under driver parameter limits
_DEFAULT_LOOKUP_BATCH = 500

# Referral codes fetched per page while skipping non-numeric ones
_CODE_SCAN_PAGE = 100


def _chunks(values: list[str], size: int) -> list[list[str]]:
    return [values[i : i + size] for i in range(0, len(values), size)]


class SqlAlchemyIdentityStore:
    """``IdentityStore`` over the ``profiles`` table."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        lookup_batch_size: int = _DEFAULT_LOOKUP_BATCH,
        country_code: str = DEFAULT_COUNTRY_CODE,
    ) -> None:
        self._session = session
        self._lookup_batch_size = lookup_batch_size
        self._country_code = country_code

    async def find_existing(
        self,
        emails: Collection[str],
        phones: Collection[str],
    ) -> list[ExistingIdentityRef]:
        """Return profiles whose email or phone matches any given value.

        Emails compare case-insensitively. Each canonical phone is expanded
        to its stored spellings (``0…``, ``+256…``, ``256…``).
        """
        phone_values = sorted({v for phone in phones for v in phone_variants(phone, self._country_code)})
        email_values = sorted({e.lower() for e in emails})

        found: dict[uuid.UUID, ExistingIdentityRef] = {}
        columns = (Profile.id, Profile.email, Profile.phone)

        for chunk in _chunks(email_values, self._lookup_batch_size):
            result = await self._session.execute(select(*columns).where(func.lower(Profile.email).in_(chunk)))
            for row in result.all():
                found.setdefault(row.id, ExistingIdentityRef(id=row.id, email=row.email, phone=row.phone))

        for chunk in _chunks(phone_values, self._lookup_batch_size):
            result = await self._session.execute(select(*columns).where(Profile.phone.in_(chunk)))
            for row in result.all():
                found.setdefault(row.id, ExistingIdentityRef(id=row.id, email=row.email, phone=row.phone))

        return list(found.values())

    async def insert_identity(self, identity: NewIdentity) -> None:
        """Insert one profile and commit.

        Raises:
            CommitError: If the insert fails; the transaction is rolled back.
        """
        values = {
            "id": identity.id,
            "referral_code": identity.referral_code,
            "full_name": identity.full_name,
            "email": identity.email,
            "phone": identity.phone,
            "account_type": identity.account_type,
            "nationality": identity.nationality,
            "country_of_residence": identity.country_of_residence,
            "town_city": identity.town_city,
            "date_of_birth": identity.date_of_birth,
            "gender": identity.gender,
            "tin": identity.tin,
            "address": identity.address,
            "import_batch_id": identity.import_batch_id,
        }
        try:
            await self._session.execute(insert(Profile).values(**values))
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise CommitError(str(getattr(exc, "orig", None) or exc), identity.id) from exc

    async def update_phone(self, identity_id: uuid.UUID, phone: str) -> None:
        """Set the phone of one profile and commit.

        Raises:
            CommitError: If the update fails or no such profile exists.
        """
        try:
            result = await self._session.execute(
                update(Profile).where(Profile.id == identity_id).values(phone=phone, updated_at=func.now())
            )
            if result.rowcount == 0:
                await self._session.rollback()
                msg = f"Profile {identity_id} not found"
                raise CommitError(msg, identity_id)
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise CommitError(str(getattr(exc, "orig", None) or exc), identity_id) from exc

    async def max_referral_code(self, prefix: str) -> str | None:
        """Return the highest numeric referral code starting with ``prefix``.

        Longer codes sort first so ``YWT100000`` beats ``YWT99999``. Codes
        whose suffix is not all digits (``YWTLEGACY``) are skipped.
        """
        query = (
            select(Profile.referral_code)
            .where(Profile.referral_code.like(f"{prefix}%"))
            .order_by(func.length(Profile.referral_code).desc(), Profile.referral_code.desc())
            .limit(_CODE_SCAN_PAGE)
        )
        offset = 0
        while True:
            codes = (await self._session.execute(query.offset(offset))).scalars().all()
            for code in codes:
                suffix = code[len(prefix) :]
                if suffix.isascii() and suffix.isdigit():
                    logger.debug(f"Highest existing referral code for prefix {prefix}: {code}")
                    return code
            if len(codes) < _CODE_SCAN_PAGE:
                logger.debug(f"No numeric referral code for prefix {prefix}")
                return None
            offset += _CODE_SCAN_PAGE
