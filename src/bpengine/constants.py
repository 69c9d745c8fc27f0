from enum import Enum

# --- Log and Debug ---
# Short aliases for module names to keep CLI/env concise
LOG_ALIAS_MAP = {
    "ctx": "bpengine.context",
    "context": "bpengine.context",
    "phase": "bpengine.phase",
    "drv": "bpengine.phase",
    "layer": "bpengine.layers",
    "layers": "bpengine.layers",
    "cache": "bpengine.cache",
    "cc": "bpengine.cache",
    "env": "bpengine.environment",
    "exec": "bpengine.execution",
    "mock": "bpengine.execution.mock",
    "conf": "bpengine.config",
    "ver": "bpengine.version",
    "test": "bpengine.testing",
}

# Top-level modules within bpengine for auto-prefixing
KNOWN_TOP_MODULES = {
    "cache",
    "config",
    "context",
    "datacls",
    "environment",
    "execution",
    "layers",
    "phase",
    "testing",
    "utils",
    "version",
}


# --- Phase exit codes ---
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_DETECT_FAIL = 100


class Phase(str, Enum):
    DETECT = "detect"
    BUILD = "build"


# --- Environment variables consumed at the boundary ---
ENV_DEBUG = "GOOGLE_DEBUG"
ENV_RUNTIME_VERSION = "GOOGLE_RUNTIME_VERSION"
ENV_LANGUAGE_VERSION_TEMPLATE = "GOOGLE_{language}_VERSION"
ENV_BUILDPACK_DIR = "CNB_BUILDPACK_DIR"
ENV_LAYERS_DIR = "CNB_LAYERS_DIR"
ENV_PLATFORM_DIR = "CNB_PLATFORM_DIR"
ENV_EXEC_MOCKS = "BPENGINE_EXEC_MOCKS"
ENV_LOG_LEVELS = "BPENGINE_LOG_LEVELS"


# --- Layer metadata ---
LAYER_METADATA_SUFFIX = ".toml"
LAYER_TYPES_KEY = "types"
LAYER_METADATA_KEY = "metadata"
CACHE_SIGNATURE_KEY = "cache_signature"
LAUNCH_METADATA_FILENAME = "launch.toml"
# Files in the layers root which are never layers
RESERVED_LAYER_NAMES = {"launch", "build", "store"}


class LayerFlag(str, Enum):
    BUILD = "build"
    CACHE = "cache"
    LAUNCH = "launch"


# --- Environment files ---
class EnvScope(str, Enum):
    BUILD = "build"
    LAUNCH = "launch"

    @property
    def dirname(self) -> str:
        return f"env.{self.value}"


class EnvKind(str, Enum):
    DEFAULT = "default"
    OVERRIDE = "override"
    PREPEND = "prepend"
    APPEND = "append"


DELIM_SUFFIX = "delim"
DEFAULT_SEPARATOR = ""


# --- Exec ---
class Attribution(str, Enum):
    USER = "user"
    USER_TIMING = "user-timing"
    INTERNAL = "internal"


# Framing used when logging commands; test helpers match on it
EXEC_RUNNING_PREFIX = "Running"
EXEC_DONE_PREFIX = "Done"
