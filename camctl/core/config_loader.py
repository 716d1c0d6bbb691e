"""Settings loading and validation for YAML-based camctl configuration."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from camctl.core.addressing import device_host_port, normalize_base_url
from camctl.core.errors import ConfigLoadError, ConfigValidationError
from camctl.core.model import DeviceDescriptor, QueryKind, Settings

PROBE_PATH = "/smokedetection-api/network_test.php"
PROBE_TIMEOUT_S = 8.0
SESSION_PATH = "ws"
_SECTIONS = ("backend", "session", "devices")
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class LoadedSettings:
    settings: Settings
    warnings: tuple[str, ...]


def _load_schema_validator() -> Any:
    schema_text = resources.files("camctl.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def user_config_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "camctl/config.yaml"


def _read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Config file {path} must contain a mapping at root")
    return loaded


def _validate(doc: dict[str, Any], source: Path | Traversable) -> None:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc


def _build_devices(entries: list[dict[str, Any]]) -> tuple[DeviceDescriptor, ...]:
    devices: list[DeviceDescriptor] = []
    seen: set[str] = set()
    for entry in entries:
        address = entry["address"].strip()
        if address in seen:
            raise ConfigValidationError(f"Device address '{address}' is listed more than once")
        try:
            host, _ = device_host_port(address)
        except ValueError as exc:
            raise ConfigValidationError(f"Device address '{address}' is invalid: {exc}") from exc
        if not host:
            raise ConfigValidationError(f"Device address '{address}' has no host")
        seen.add(address)
        name = (entry.get("name") or "").strip() or address
        devices.append(DeviceDescriptor(address=address, name=name))
    return tuple(devices)


def _build_settings(doc: dict[str, Any]) -> Settings:
    backend = doc.get("backend", {})
    session = doc.get("session", {})
    return Settings(
        candidates=tuple(normalize_base_url(c) for c in backend.get("candidates", [])),
        probe_path=backend.get("probe_path", PROBE_PATH),
        probe_timeout_s=float(backend.get("probe_timeout_s", PROBE_TIMEOUT_S)),
        session_path=session.get("path", SESSION_PATH),
        status_timeout_s=float(session.get("status_timeout_s", QueryKind.STATUS.timeout_s)),
        frame_timeout_s=float(session.get("frame_timeout_s", QueryKind.FRAME.timeout_s)),
        devices=_build_devices(doc.get("devices", [])),
    )


def load_settings(path: Path | None = None) -> LoadedSettings:
    """Merge packaged defaults with the user config, section by section.

    An explicit ``path`` replaces the XDG user config lookup and must exist.
    """
    packaged = resources.files("camctl.defaults").joinpath("config.yaml")
    doc = _read_yaml(packaged)
    _validate(doc, packaged)
    warnings: list[str] = []

    user_path = path if path is not None else user_config_path()
    if path is not None or user_path.is_file():
        user_doc = _read_yaml(user_path)
        _validate(user_doc, user_path)
        for section in _SECTIONS:
            if section not in user_doc:
                continue
            if section in doc and section != "devices":
                warning = f"User config {user_path} overrides packaged '{section}' section"
                LOGGER.warning(warning)
                warnings.append(warning)
            doc[section] = user_doc[section]

    return LoadedSettings(settings=_build_settings(doc), warnings=tuple(warnings))
