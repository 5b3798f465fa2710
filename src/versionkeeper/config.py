#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
versionkeeper.config — settings

Resolution order (later wins):
  1. dataclass defaults (Cargo workspace layout)
  2. YAML file: --config PATH, else <root>/versionkeeper.yaml when present
  3. VERSIONKEEPER_<FIELD> environment variables (scalar fields only)

Example versionkeeper.yaml:

    version_file: VERSION
    manifest: Cargo.toml
    manifest_section: workspace.package
    delegating_manifest: src/cortex-cli/Cargo.toml
    tag_prefix: v
    commit_template: "chore(release): v{version}"
    lock_command: [cargo, update, --workspace]
    lock_file: Cargo.lock

Copyright
---------
(c) 2025 versionkeeper authors. MIT License.
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .errors import ConfigError

CONFIG_FILENAME = "versionkeeper.yaml"
ENV_PREFIX = "VERSIONKEEPER_"


@dataclass
class Settings:
    root: Path = field(default_factory=Path.cwd)
    version_file: str = "VERSION"
    manifest: str = "Cargo.toml"
    manifest_section: str = "workspace.package"
    manifest_field: str = "version"
    delegating_manifest: Optional[str] = None
    delegating_section: str = "package"
    tag_prefix: str = "v"
    commit_template: str = "chore(release): v{version}"
    remote: str = "origin"
    lock_command: List[str] = field(default_factory=lambda: ["cargo", "update", "--workspace"])
    lock_file: Optional[str] = "Cargo.lock"
    audit_log: Optional[str] = None
    log_level: str = "INFO"

    def path(self, relative: Optional[str]) -> Optional[Path]:
        """Resolve a configured path against the repository root."""
        if not relative:
            return None
        p = Path(relative)
        return p if p.is_absolute() else self.root / p

    @property
    def version_path(self) -> Path:
        return self.path(self.version_file)

    @property
    def manifest_path(self) -> Path:
        return self.path(self.manifest)

    def to_dict(self) -> Dict[str, Any]:
        d = dataclasses.asdict(self)
        d["root"] = str(self.root)
        return d


_FIELDS = {f.name: f for f in dataclasses.fields(Settings) if f.name != "root"}
_OPTIONAL_STR = {"delegating_manifest", "lock_file", "audit_log"}


def _coerce(name: str, value: Any) -> Any:
    if name == "lock_command":
        if isinstance(value, str):
            return value.split()
        if isinstance(value, list) and all(isinstance(v, str) for v in value):
            return list(value)
        raise ConfigError(f"lock_command must be a list of strings, got {value!r}")
    if value is None and name in _OPTIONAL_STR:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{name} must be a string, got {value!r}")
    if name in _OPTIONAL_STR and value.strip() == "":
        return None
    if name == "commit_template":
        try:
            value.format(version="0.0.0", tag="v0.0.0")
        except (KeyError, IndexError, ValueError) as e:
            raise ConfigError(
                f"commit_template {value!r} uses an unknown field ({e!r}); available: {{version}}, {{tag}}"
            ) from None
    return value


def _apply(settings: Settings, values: Mapping[str, Any], source: str) -> None:
    unknown = sorted(set(values) - set(_FIELDS))
    if unknown:
        raise ConfigError(f"{source}: unknown setting(s): {', '.join(unknown)}")
    for name, value in values.items():
        setattr(settings, name, _coerce(name, value))


def load_yaml(path: Path) -> Dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except FileNotFoundError:
        raise ConfigError(f"config file not found: {path}") from None
    except yaml.YAMLError as e:
        raise ConfigError(f"{path}: invalid YAML: {e}") from None
    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: expected a mapping at top level")
    return raw


def env_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    environ = os.environ if environ is None else environ
    out: Dict[str, Any] = {}
    for name in _FIELDS:
        key = ENV_PREFIX + name.upper()
        if key in environ:
            out[name] = environ[key]
    return out


def load_settings(
    root: Optional[Path] = None,
    config: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    settings = Settings(root=Path(root or Path.cwd()).resolve())
    if config is None and (settings.root / CONFIG_FILENAME).is_file():
        config = settings.root / CONFIG_FILENAME
    if config is not None:
        _apply(settings, load_yaml(Path(config)), str(config))
    _apply(settings, env_overrides(environ), "environment")
    return settings
