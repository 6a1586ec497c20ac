"""ORM model registry: import all models so Alembic autogenerate discovers them."""

from profile_importer.models.import_job import ImportJob
from profile_importer.models.profile import Profile
from profile_importer.models.wallet import Wallet

__all__ = [
    "ImportJob",
    "Profile",
    "Wallet",
]
