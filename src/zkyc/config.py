"""Protocol configuration.

Sources, in order of precedence:
    1. Environment variables (ZKYC_*)
    2. Keyword overrides passed to :meth:`ProtocolConfig.load`
    3. A YAML file
    4. Default values
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from zkyc.errors import ConfigError

ENV_PREFIX = "ZKYC_"
MAX_TREE_DEPTH = 32
OPTIONAL_KEYS = ("max_workers", "retained_versions")


@dataclass(frozen=True)
class ProtocolConfig:
    """Parameters shared by the issuer, the holders and the verifiers.

    Attributes:
        tree_depth (int): Depth of the revocation tree; the tree holds at most 2^tree_depth credentials.
        max_workers (int | None): Worker-pool size for batch hashing and batch verification. `None` lets the
            executor decide.
        minimum_age (int): Age in years required by the default KYC predicate.
        required_nationality (str): Nationality required by the default KYC predicate.
        retained_versions (int | None): Number of most recent revocation-tree versions whose snapshots are
            kept; older ones are retired on commit. `None` keeps every version.
    """

    tree_depth: int = 16
    max_workers: int | None = None
    minimum_age: int = 18
    required_nationality: str = "FRA"
    retained_versions: int | None = None

    def __post_init__(self):
        if not 0 < self.tree_depth <= MAX_TREE_DEPTH:
            msg = f"tree_depth must be in [1, {MAX_TREE_DEPTH}], got {self.tree_depth}"
            raise ConfigError(msg)
        if self.max_workers is not None and self.max_workers < 1:
            msg = f"max_workers must be positive, got {self.max_workers}"
            raise ConfigError(msg)
        if self.minimum_age < 0:
            msg = f"minimum_age must be non-negative, got {self.minimum_age}"
            raise ConfigError(msg)
        if self.retained_versions is not None and self.retained_versions < 1:
            msg = f"retained_versions must be positive, got {self.retained_versions}"
            raise ConfigError(msg)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "ProtocolConfig":
        """Build a configuration from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            msg = f"Unknown configuration keys: {sorted(unknown)}"
            raise ConfigError(msg)
        return cls(**values)

    @classmethod
    def load(cls, path: str | Path | None = None, **overrides: Any) -> "ProtocolConfig":
        """Load the configuration from an optional YAML file, overrides and the environment.

        Args:
            path (str | Path | None): A YAML file holding a mapping of configuration keys.
            **overrides: Values taking precedence over the file.

        Raises:
            ConfigError: If the file is not a mapping, a key is unknown or a value is invalid.
        """
        values: dict[str, Any] = {}
        if path is not None:
            with Path(path).open("r") as f:
                loaded = yaml.safe_load(f) or {}
            if not isinstance(loaded, dict):
                msg = f"{path} must contain a mapping"
                raise ConfigError(msg)
            values.update(loaded)
        values.update(overrides)
        return cls.from_mapping(values).with_environment()

    def with_environment(self, environ: Mapping[str, str] | None = None) -> "ProtocolConfig":
        """Return a copy updated with the `ZKYC_*` environment variables."""
        environ = os.environ if environ is None else environ
        updates: dict[str, Any] = {}
        for f in fields(self):
            key = ENV_PREFIX + f.name.upper()
            if key not in environ:
                continue
            raw = environ[key]
            if f.name == "required_nationality":
                updates[f.name] = raw
            elif f.name in OPTIONAL_KEYS and raw.lower() in ("", "none"):
                updates[f.name] = None
            else:
                try:
                    updates[f.name] = int(raw)
                except ValueError as e:
                    msg = f"{key} must be an integer, got {raw!r}"
                    raise ConfigError(msg) from e
        return replace(self, **updates)
