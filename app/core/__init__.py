"""Public façade for the app.core package.

This module exposes logging helpers, the error hierarchy, shared enums, the
token cipher and the pure ordering / duplicate-detection algorithms. Callers
should import these cross-cutting concerns from this façade instead of the
internal submodules.
"""

from .crypto import decrypt, encrypt, generate_encryption_key
from .duplicates import (
    REASON_ISRC,
    REASON_NAME_ARTIST,
    DuplicateGroup,
    find_duplicates,
    normalize_key,
)
from .errors import (
    ConfigurationError,
    DecryptionError,
    NotFoundError,
    OAuthStateError,
    ProviderError,
    ProviderTransportError,
    UnifierError,
    ValidationError,
)
from .fs_utils import ensure_dir, ensure_parent_dir
from .logging_config import configure_logging
from .logging_utils import (
    log_error,
    log_info,
    log_section,
    log_step,
    log_success,
    log_warning,
)
from .models import (
    ConflictResolution,
    ConflictType,
    Provider,
    SyncStatus,
    SyncType,
    as_utc,
    utcnow,
)
from .ordering import (
    assign_positions,
    check_contiguous,
    collapse_after_remove,
    move_item,
    ordered,
    reorder_range,
    resolve_insert_position,
    shift_for_insert,
)

__all__ = [
    "configure_logging",
    "log_section",
    "log_info",
    "log_step",
    "log_success",
    "log_warning",
    "log_error",
    "ensure_parent_dir",
    "ensure_dir",
    "encrypt",
    "decrypt",
    "generate_encryption_key",
    "UnifierError",
    "NotFoundError",
    "ValidationError",
    "ConfigurationError",
    "DecryptionError",
    "OAuthStateError",
    "ProviderError",
    "ProviderTransportError",
    "Provider",
    "SyncType",
    "SyncStatus",
    "ConflictType",
    "ConflictResolution",
    "utcnow",
    "as_utc",
    "ordered",
    "check_contiguous",
    "assign_positions",
    "resolve_insert_position",
    "shift_for_insert",
    "collapse_after_remove",
    "move_item",
    "reorder_range",
    "DuplicateGroup",
    "REASON_NAME_ARTIST",
    "REASON_ISRC",
    "normalize_key",
    "find_duplicates",
]
