"""
Ownership declarations file loader.

Declarations can live next to the models (`__ownership__` class attribute)
or in a YAML file, which wins for the models it names:

    ownership:
      Folder: {owner: Account, parent: account}
      Item:   {owner: Account, parent: folder}
      Note:   {}                # explicit pass-through

Environment variable:
    OWNERCHAIN_OWNERSHIP_FILE - path to the declarations file (optional).

Unlike optional tuning files, a declarations file that is named but cannot
be read or validated is a ConfigurationError.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import ValidationError

from .errors import ConfigurationError
from .models import OwnershipDeclaration

_log = logging.getLogger("ownerchain.declarations")


def parse_declarations(data: object, source: str = "<memory>") -> Dict[str, OwnershipDeclaration]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{source}: top level must be a mapping, got {type(data).__name__}")

    section = data.get("ownership", {})
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"{source}: 'ownership' must be a mapping of model name to declaration")

    out: Dict[str, OwnershipDeclaration] = {}
    for name, raw in section.items():
        try:
            out[str(name)] = OwnershipDeclaration(**(raw or {}))
        except (TypeError, ValidationError) as e:
            raise ConfigurationError(f"{source}: invalid declaration for {name}: {e}") from e
    return out


def load_declarations(path: Optional[Path] = None) -> Dict[str, OwnershipDeclaration]:
    resolved = _resolve_path(path)
    if resolved is None:
        return {}

    try:
        raw_text = resolved.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read ownership declarations {resolved}: {e}") from e

    try:
        data = yaml.safe_load(raw_text)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse ownership declarations {resolved}: {e}") from e

    decls = parse_declarations(data, source=str(resolved))
    _log.info("Loaded %d ownership declarations from %s", len(decls), resolved)
    return decls


def _resolve_path(path: Optional[Path]) -> Optional[Path]:
    if path is not None:
        return Path(path)
    env_path = os.getenv("OWNERCHAIN_OWNERSHIP_FILE", "").strip()
    if env_path:
        return Path(env_path)
    return None
