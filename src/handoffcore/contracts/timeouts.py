"""
Timeout, retry and history defaults for handoff contract validation.

Centralizes the values so the config layer, the validator and the CLI
agree on them.
"""

from __future__ import annotations

# =============================================================================
# Validation Timeouts
# =============================================================================

# Per-condition / per-rollback timeout (0 disables)
VALIDATION_DEFAULT_TIMEOUT_MS = 30000

# =============================================================================
# Retry Configuration
# =============================================================================

# Accepted for callers that want a retry budget; the validator never retries
DEFAULT_MAX_RETRIES = 3

# =============================================================================
# Validation History
# =============================================================================

# Number of records returned as ``recent_validations``
RECENT_VALIDATIONS_WINDOW = 10

# =============================================================================
# Log Sink
# =============================================================================

DEFAULT_VALIDATION_LOG_FILE = "/tmp/contract-validation.log"

# =============================================================================
# Restricted Evaluator
# =============================================================================

# Module names contract code may load through ``require()``
DEFAULT_ALLOWED_MODULES = ("os", "os.path", "pathlib", "shutil", "json")

# Absolute .py paths under this root may also be loaded
DEFAULT_MODULE_ROOT = "/opt/handoffcore/contracts"
