"""
Runtime version resolution

Every language plugin answers "which runtime version should be installed"
the same way, from the first non-empty of:

1. GOOGLE_<LANG>_VERSION
2. GOOGLE_RUNTIME_VERSION
3. the version constraint declared in the project manifest
4. "" (the installer picks its default)

Lower sources are never merged with or validated against a higher one.
"""

from typing import Any, Callable, Mapping, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from . import constants

ManifestField = Callable[[Mapping[str, Any]], Any]


def language_version_var(language: str) -> str:
    """``nodejs`` -> ``GOOGLE_NODEJS_VERSION``"""
    return constants.ENV_LANGUAGE_VERSION_TEMPLATE.format(language=language.upper())


def resolve_runtime_version(env: Mapping[str, str], language_var: str, manifest_version: Optional[str] = "") -> str:
    for candidate in (env.get(language_var), env.get(constants.ENV_RUNTIME_VERSION), manifest_version):
        if candidate:
            return candidate
    return ""


def manifest_path(*keys: str) -> ManifestField:
    """Manifest field selector for nested keys, e.g. ``manifest_path("engines", "node")``."""
    def lookup(manifest: Mapping[str, Any]) -> Any:
        node: Any = manifest
        for key in keys:
            if not isinstance(node, Mapping):
                return None
            node = node.get(key)
        return node
    return lookup


class RuntimeVersionPolicy(BaseModel):
    """
        Class binds the resolution order to one language.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    language: str
    manifest_field: Optional[ManifestField] = None

    @field_validator("language")
    @classmethod
    def check_language(cls, v: str) -> str:
        if not v or not v.replace("_", "").isalnum():
            raise ValueError(f"Invalid language name: {v!r}")
        return v.lower()

    @property
    def env_var(self) -> str:
        return language_version_var(self.language)

    def manifest_version(self, manifest: Optional[Mapping[str, Any]]) -> str:
        if manifest is None or self.manifest_field is None:
            return ""
        value = self.manifest_field(manifest)
        return value.strip() if isinstance(value, str) else ""

    def resolve(self, env: Mapping[str, str], manifest: Optional[Mapping[str, Any]] = None) -> str:
        """
        Resolve the requested version

        Args:
            env: environment snapshot
            manifest: parsed project manifest (e.g. package.json), if any

        Returns:
            str: the version, or "" to let the installer choose
        """
        return resolve_runtime_version(env, self.env_var, self.manifest_version(manifest))


NODEJS = RuntimeVersionPolicy(language="nodejs", manifest_field=manifest_path("engines", "node"))
PYTHON = RuntimeVersionPolicy(language="python")
RUBY = RuntimeVersionPolicy(language="ruby")
GO = RuntimeVersionPolicy(language="go")
PHP = RuntimeVersionPolicy(language="php", manifest_field=manifest_path("require", "php"))
DOTNET = RuntimeVersionPolicy(language="dotnet")
JAVA = RuntimeVersionPolicy(language="java")
