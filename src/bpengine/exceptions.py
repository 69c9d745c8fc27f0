import hashlib
from typing import Optional


class BuildpackError(Exception):
    """Base exception for all engine errors."""

    status = "UNKNOWN"

    @property
    def error_id(self) -> str:
        """Short stable digest of the message, used to group reports."""
        return hashlib.sha256(str(self).encode("utf-8")).hexdigest()[:8]


# --- 1. Errors attributed to the user's application or configuration ---
class UserError(BuildpackError):
    """Raised when the application source or its configuration is invalid.

    The message is shown verbatim to the person running the build.
    """

    status = "USER"


# --- 2. Errors attributed to the engine or the environment it runs in ---
class InternalError(BuildpackError):
    """Raised when an engine precondition is violated."""

    status = "INTERNAL"


class CacheError(InternalError):
    """Raised when a cache signature cannot be computed."""

    pass


class ExecError(InternalError):
    """Raised when a command cannot be started at all."""

    pass


class LayerError(InternalError):
    """Raised for invalid layer names or unreadable layer metadata."""

    pass


# --- 3. Errors related to phase settings ---
class ConfigurationError(BuildpackError):
    """Base class for errors encountered while reading phase settings."""

    status = "INTERNAL"


class ConfigValidationError(ConfigurationError):
    """Raised when phase settings fail structural validation (e.g., Pydantic)."""

    pass


class PluginLoadError(ConfigurationError):
    """Raised when a plugin module or its phase functions cannot be found."""

    pass


# --- 4. Test tooling ---
class ExecMockError(BuildpackError):
    """Raised when the exec mock table is malformed or a command has no mock."""

    status = "INTERNAL"


# --- 5. Control flow ---
class PhaseExit(Exception):
    """Unwinds the running phase and forces its exit code.

    Only the phase driver catches this; nothing raised after it is persisted.
    """

    def __init__(self, code: int, error: Optional[BaseException] = None):
        self.code = code
        self.error = error
        super().__init__(f"phase exit {code}" + (f": {error}" if error else ""))
