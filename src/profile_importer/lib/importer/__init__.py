"""Importer library: public API for profile feed ingestion.

The pipeline runs parse → normalize → validate → classify → commit → report
as a single forward pass over one batch.
"""

from profile_importer.lib.importer.classifier import (
    BatchContext,
    IdentityLookup,
    classify_batch,
    classify_record,
    fetch_existing_identities,
)
from profile_importer.lib.importer.errors import CommitError, FeedFormatError, ProfileImportError, SideEffectError
from profile_importer.lib.importer.executor import BatchCommitExecutor, CommitPolicy, format_code, parse_code_number
from profile_importer.lib.importer.normalizer import build_candidate, normalize_phone, phone_variants
from profile_importer.lib.importer.parser import parse_feed, parse_line
from profile_importer.lib.importer.report import build_report, reason_text
from profile_importer.lib.importer.store import IdentityStore, NewIdentity, SubAccountProvisioner
from profile_importer.lib.importer.types import (
    CandidateRecord,
    ClassifiedRecord,
    Committed,
    ExistingIdentityRef,
    ImportReport,
    ImportStats,
    IssueKind,
    ParsedFeed,
    RecordCategory,
    Rejected,
    RowOutcome,
    Severity,
    ValidationIssue,
)
from profile_importer.lib.importer.validator import validate_record

__all__ = [
    "BatchCommitExecutor",
    "BatchContext",
    "CandidateRecord",
    "ClassifiedRecord",
    "CommitError",
    "CommitPolicy",
    "Committed",
    "ExistingIdentityRef",
    "FeedFormatError",
    "IdentityLookup",
    "IdentityStore",
    "ImportReport",
    "ImportStats",
    "IssueKind",
    "NewIdentity",
    "ParsedFeed",
    "ProfileImportError",
    "RecordCategory",
    "Rejected",
    "RowOutcome",
    "Severity",
    "SideEffectError",
    "SubAccountProvisioner",
    "ValidationIssue",
    "build_candidate",
    "build_report",
    "classify_batch",
    "classify_record",
    "fetch_existing_identities",
    "format_code",
    "normalize_phone",
    "parse_code_number",
    "parse_feed",
    "parse_line",
    "phone_variants",
    "reason_text",
    "validate_record",
]
