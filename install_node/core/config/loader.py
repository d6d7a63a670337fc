"""
Settings loader — turns environment-style key/values into ``InstallSettings``.

This is the only place configuration is read.  The CLI hands in a
mapping (normally ``os.environ``) and, optionally, a YAML file; the
result is a frozen, validated settings object that every other
component receives explicitly.

Precedence:
    environment  >  YAML config file  >  built-in defaults

Legacy ``NODE_*`` and ``YARN_*`` names (``NODE_VERSION``,
``YARN_MIRROR`` ...) are accepted as aliases.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from install_node.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

# ── Defaults ────────────────────────────────────────────────────

DEFAULT_RUNTIME_MIRROR = "https://nodejs.org/dist"
DEFAULT_RUNTIME_FOLDER = "/var/node"
DEFAULT_RUNTIME_VARIANT = "linux-x64"
DEFAULT_RUNTIME_INTEGRITY_HOST = "https://nodejs.org/download/release"

DEFAULT_PKGMGR_MIRROR = "https://github.com/yarnpkg/yarn/releases/download"
DEFAULT_PKGMGR_FOLDER = "/var/yarn"
DEFAULT_PKGMGR_INTEGRITY_HOST = "https://github.com/yarnpkg/yarn/releases/download"
DEFAULT_PKGMGR_KEY_URL = "https://dl.yarnpkg.com/debian/pubkey.gpg"

DEFAULT_BIN_DIR = "/usr/local/bin"
DEFAULT_SHELL_RC_FILE = "/etc/bash.bashrc"
DEFAULT_SOURCE_PREFIX = "/usr/local"

# Variant value that switches the runtime to a source build
MAKE_VARIANT = "make"

# Declaration order matters: it is the order diagnostics list keys in.
SETTING_KEYS: tuple[str, ...] = (
    "RUNTIME_VERSION",
    "RUNTIME_MIRROR",
    "RUNTIME_FOLDER",
    "PKGMGR_VERSION",
    "PKGMGR_MIRROR",
    "PKGMGR_FOLDER",
    "RUNTIME_VARIANT",
    "KEEP_EXTRAS",
    "RUNTIME_INTEGRITY_HOST",
    "PKGMGR_INTEGRITY_HOST",
    "PKGMGR_KEY_URL",
    "BIN_DIR",
    "SHELL_RC_FILE",
    "SOURCE_PREFIX",
    "SCRATCH_ROOT",
    "INTERLEAVE_LOGS",
)

REQUIRED_KEYS: tuple[str, ...] = ("RUNTIME_VERSION", "PKGMGR_VERSION")

ALIASES: dict[str, str] = {
    "RUNTIME_VERSION": "NODE_VERSION",
    "RUNTIME_MIRROR": "NODE_MIRROR",
    "RUNTIME_FOLDER": "NODE_FOLDER",
    "RUNTIME_VARIANT": "NODE_VARIANT",
    "PKGMGR_VERSION": "YARN_VERSION",
    "PKGMGR_MIRROR": "YARN_MIRROR",
    "PKGMGR_FOLDER": "YARN_FOLDER",
}


class InstallSettings(BaseModel):
    """Validated, immutable configuration for one install run."""

    model_config = ConfigDict(frozen=True)

    # ── Runtime (Node.js) ────────────────────────────────────────
    runtime_version: str
    runtime_mirror: str = DEFAULT_RUNTIME_MIRROR
    runtime_folder: Path = Path(DEFAULT_RUNTIME_FOLDER)
    runtime_variant: str = DEFAULT_RUNTIME_VARIANT
    runtime_integrity_host: str = DEFAULT_RUNTIME_INTEGRITY_HOST

    # ── Package manager (Yarn) ───────────────────────────────────
    pkgmgr_version: str
    pkgmgr_mirror: str = DEFAULT_PKGMGR_MIRROR
    pkgmgr_folder: Path = Path(DEFAULT_PKGMGR_FOLDER)
    pkgmgr_integrity_host: str = DEFAULT_PKGMGR_INTEGRITY_HOST
    pkgmgr_key_url: str = DEFAULT_PKGMGR_KEY_URL

    # ── System locations ─────────────────────────────────────────
    bin_dir: Path = Path(DEFAULT_BIN_DIR)
    shell_rc_file: Path = Path(DEFAULT_SHELL_RC_FILE)
    source_prefix: Path = Path(DEFAULT_SOURCE_PREFIX)
    scratch_root: Path | None = None

    # ── Behaviour ────────────────────────────────────────────────
    keep_extras: bool = False
    interleave_logs: bool = False

    @field_validator("runtime_version", "pkgmgr_version")
    @classmethod
    def _prefix_v(cls, value: str) -> str:
        # Both dist trees are laid out under "v<semver>"
        return f"v{value}" if value[:1].isdigit() else value

    @field_validator(
        "runtime_mirror",
        "runtime_integrity_host",
        "pkgmgr_mirror",
        "pkgmgr_integrity_host",
    )
    @classmethod
    def _strip_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def build_from_source(self) -> bool:
        """Whether the runtime is compiled from its source tarball."""
        return self.runtime_variant == MAKE_VARIANT

    def display_items(self) -> list[tuple[str, str]]:
        """Return ``(KEY, value)`` pairs in declaration order for echoing."""
        items: list[tuple[str, str]] = []
        for key in SETTING_KEYS:
            value = getattr(self, key.lower())
            if value is None:
                continue
            if isinstance(value, bool):
                value = "true" if value else "false"
            items.append((key, str(value)))
        return items

    def to_dict(self) -> dict[str, str]:
        return dict(self.display_items())


def read_config_file(path: Path) -> dict[str, str]:
    """Read a YAML mapping of setting keys to values.

    Keys are upper-cased so ``runtime_version`` and ``RUNTIME_VERSION``
    are equivalent.

    Raises:
        ConfigurationError: If the file is unreadable, not YAML or not a mapping.
    """
    if not path.is_file():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Expected a YAML mapping in {path}, got {type(data).__name__}"
        )

    values: dict[str, str] = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        values[str(key).upper()] = str(value)
    return values


def _lookup(source: Mapping[str, str], key: str) -> str | None:
    """Get a non-empty value for ``key`` or its legacy alias."""
    for name in (key, ALIASES.get(key)):
        if not name:
            continue
        value = source.get(name)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def resolve_setting(
    key: str,
    environ: Mapping[str, str],
    config_file: Path | None = None,
) -> str | None:
    """One raw setting, with the same precedence as ``load_settings``.

    For commands that need a single value without requiring a
    complete configuration.
    """
    file_values = read_config_file(config_file) if config_file else {}
    return _lookup(environ, key) or _lookup(file_values, key)


def load_settings(
    environ: Mapping[str, str],
    config_file: Path | None = None,
) -> InstallSettings:
    """Build validated settings from an environment mapping.

    Args:
        environ: Environment-style mapping, normally ``os.environ``.
        config_file: Optional YAML file with the same keys.

    Returns:
        Frozen ``InstallSettings``.

    Raises:
        ConfigurationError: Listing every missing required key, or
            describing the first invalid value.
    """
    file_values = read_config_file(config_file) if config_file else {}

    values: dict[str, str] = {}
    for key in SETTING_KEYS:
        value = _lookup(environ, key) or _lookup(file_values, key)
        if value is not None:
            values[key] = value

    missing = [key for key in REQUIRED_KEYS if key not in values]
    if missing:
        raise ConfigurationError(
            f"Following environment variables required: {', '.join(missing)}",
            missing=missing,
        )

    try:
        settings = InstallSettings.model_validate(
            {key.lower(): value for key, value in values.items()}
        )
    except ValidationError as e:
        problems = "; ".join(
            f"{str(err['loc'][0]).upper()}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {problems}") from e

    for key, value in settings.display_items():
        logger.info("%s: %s", key, value)

    return settings
