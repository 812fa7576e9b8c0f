"""
Editor settings: defaults, then an optional YAML file, then the environment.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml


def _parse_version(value: Any) -> Optional[Tuple[int, int]]:
    """Accepts '3.10' or [3, 10]."""
    if value is None or value == '':
        return None
    if isinstance(value, float):
        # YAML reads an unquoted 3.10 as 3.1
        raise ValueError(f"quote feature_version, got {value!r}")
    if isinstance(value, (list, tuple)):
        major, minor = value
        return int(major), int(minor)
    major, _, minor = str(value).strip().partition('.')
    if not minor:
        raise ValueError(f"feature_version must look like '3.10', got {value!r}")
    return int(major), int(minor)


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass(frozen=True)
class EditorConfig:
    route: str = '/edit'
    namespace: str = '__main__'
    feature_version: Optional[Tuple[int, int]] = None
    debug: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base: Optional['EditorConfig'] = None) -> 'EditorConfig':
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"unknown editor settings: {', '.join(sorted(unknown))}")
        values = dict(data)
        if 'feature_version' in values:
            values['feature_version'] = _parse_version(values['feature_version'])
        if 'debug' in values:
            values['debug'] = _parse_bool(values['debug'])
        for name in ('route', 'namespace'):
            if name in values:
                values[name] = str(values[name])
        return replace(base or cls(), **values)

    @classmethod
    def from_file(cls, path: str | os.PathLike, base: Optional['EditorConfig'] = None) -> 'EditorConfig':
        text = Path(path).read_text(encoding="utf-8")
        data = yaml.safe_load(text) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping of editor settings")
        return cls.from_dict(data, base)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None,
                 base: Optional['EditorConfig'] = None) -> 'EditorConfig':
        env = os.environ if environ is None else environ
        data = {}
        for name in ('route', 'namespace', 'feature_version', 'debug'):
            raw = env.get(f"HOTEDIT_{name.upper()}")
            if raw is not None:
                data[name] = raw
        return cls.from_dict(data, base)

    @classmethod
    def load(cls, path: str | os.PathLike | None = None,
             environ: Optional[Dict[str, str]] = None) -> 'EditorConfig':
        cfg = cls()
        if path is not None:
            cfg = cls.from_file(path, cfg)
        return cls.from_env(environ, cfg)
