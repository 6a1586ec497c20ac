"""Exceptions raised by the profile importer.

Row-level problems are recorded as ``ValidationIssue`` data and never
raised. The exceptions here cover the batch-level fatal case and the
collaborator failures that the executor converts into row outcomes.
"""


class ProfileImportError(Exception):
    """Base class for profile importer errors."""


class FeedFormatError(ProfileImportError, ValueError):
    """The input cannot be processed at all (bad header or no data rows)."""


class CommitError(ProfileImportError):
    """An identity store insert or update failed.

    Args:
        message: Human-readable error description.
        identity_id: Identity the write targeted, when known.
    """

    def __init__(self, message: str, identity_id: object | None = None) -> None:
        self.message = message
        self.identity_id = identity_id
        super().__init__(message)


class SideEffectError(ProfileImportError):
    """Post-commit provisioning of dependent records failed."""
