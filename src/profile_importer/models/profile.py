"""Profile model: one imported person or organisation."""

import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Index, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from profile_importer.models.base import Base, UUIDMixin


class Profile(Base, UUIDMixin):
    """Identity record keyed by email and/or phone.

    Email is the primary match key during imports; phone is canonical
    ``0XXXXXXXXX`` for rows written by the importer.
    """

    __tablename__ = "profiles"

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    account_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="individual", server_default="individual"
    )

    nationality: Mapped[str | None] = mapped_column(String(100), nullable=True)
    country_of_residence: Mapped[str | None] = mapped_column(String(100), nullable=True)
    town_city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    gender: Mapped[str | None] = mapped_column(String(20), nullable=True)
    tin: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="unverified", server_default="unverified")
    user_role: Mapped[str] = mapped_column(String(20), nullable=False, default="user", server_default="user")
    referral_code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    account_activation_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", server_default="pending"
    )
    import_batch_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_profiles_phone", "phone"),
        Index("ix_profiles_import_batch_id", "import_batch_id"),
    )
