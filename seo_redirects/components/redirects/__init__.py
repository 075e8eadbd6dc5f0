"""
Redirects component - URL redirect rules.
"""

from ._csv import (
    CSV_HEADER,
    export_rows,
    import_csv,
    iter_csv,
    write_csv,
)
from ._impl import (
    DEFAULT_RESERVED_PATHS,
    RedirectConfig,
    RedirectResolver,
    RedirectService,
    create_redirect_service,
    create_resolver,
    has_host,
    is_same_destination,
    match_type_or_default,
    status_or_default,
    validate_match_type,
    validate_pattern,
    validate_source,
    validate_status,
    validate_target,
)
from ._matcher import (
    compile_pattern,
    ensure_delimiters,
    match_key_for,
    matches,
    normalize_uri,
    path_and_query,
)
from ._tracker import HitTracker
from .component import (
    run,
    run_bulk_delete,
    run_create,
    run_delete,
    run_export,
    run_get,
    run_import,
    run_list,
    run_resolve,
    run_update,
)
from .models import (
    ALLOWED_STATUS_CODES,
    MATCH_TYPES,
    BulkDeleteRedirectsInput,
    CreateRedirectInput,
    DeleteRedirectInput,
    ExportRedirectsInput,
    GetRedirectInput,
    ImportRedirectsInput,
    ImportResult,
    ListRedirectsInput,
    MatchType,
    RedirectListOutput,
    RedirectOperationOutput,
    RedirectOutput,
    RedirectPage,
    RedirectRule,
    RedirectStoreUnavailable,
    RedirectValidationError,
    Resolution,
    ResolveOutput,
    ResolveRedirectInput,
    TransferOutput,
    UpdateRedirectInput,
)
from .ports import HitRecorderPort, RuleStorePort, TimePort

__all__ = [
    # Entry points
    "run",
    "run_bulk_delete",
    "run_create",
    "run_delete",
    "run_export",
    "run_get",
    "run_import",
    "run_list",
    "run_resolve",
    "run_update",
    # Input models
    "BulkDeleteRedirectsInput",
    "CreateRedirectInput",
    "DeleteRedirectInput",
    "ExportRedirectsInput",
    "GetRedirectInput",
    "ImportRedirectsInput",
    "ListRedirectsInput",
    "ResolveRedirectInput",
    "UpdateRedirectInput",
    # Output models
    "ImportResult",
    "RedirectListOutput",
    "RedirectOperationOutput",
    "RedirectOutput",
    "RedirectPage",
    "RedirectRule",
    "RedirectStoreUnavailable",
    "RedirectValidationError",
    "Resolution",
    "ResolveOutput",
    "TransferOutput",
    # Constants
    "ALLOWED_STATUS_CODES",
    "CSV_HEADER",
    "DEFAULT_RESERVED_PATHS",
    "MATCH_TYPES",
    "MatchType",
    # Ports
    "HitRecorderPort",
    "RuleStorePort",
    "TimePort",
    # Services
    "HitTracker",
    "RedirectConfig",
    "RedirectResolver",
    "RedirectService",
    "create_redirect_service",
    "create_resolver",
    # Matching
    "compile_pattern",
    "ensure_delimiters",
    "match_key_for",
    "matches",
    "normalize_uri",
    "path_and_query",
    # Helpers
    "export_rows",
    "has_host",
    "import_csv",
    "is_same_destination",
    "iter_csv",
    "match_type_or_default",
    "status_or_default",
    "validate_match_type",
    "validate_pattern",
    "validate_source",
    "validate_status",
    "validate_target",
    "write_csv",
]
