from __future__ import annotations

import json
import re
from typing import Any, Optional
from urllib.parse import parse_qs

import yaml

from hotedit.hotedit_datatypes import EditRequest, EditResponse


# --------------------------
# Helpers
# --------------------------

def _norm_text(data: bytes | bytearray | str, *, encoding: Optional[str] = None) -> str:
    if isinstance(data, (bytes, bytearray)):
        enc = encoding or 'utf-8'
        try:
            return data.decode(enc, errors='replace')
        except LookupError:
            # Unknown charset name
            return data.decode('utf-8', errors='replace')
    if isinstance(data, str):
        return data
    return str(data)


def _encoding_from_content_type(content_type: Optional[str]) -> Optional[str]:
    if not content_type:
        return None
    m = re.search(r'charset\s*=\s*([^\s;]+)', content_type, re.IGNORECASE)
    if m:
        return m.group(1).strip('"').strip("'")
    return None


def detect_format(content_type: Optional[str] = None, data_hint: Optional[str] = None) -> Optional[str]:
    """
    Returns a canonical format name among: 'json', 'yaml', 'form'.
    Uses Content-Type first; falls back to simple data sniffing if provided.
    """
    ct = (content_type or "").lower()
    if 'json' in ct:
        return 'json'
    if 'yaml' in ct or 'x-yaml' in ct:
        return 'yaml'
    if 'x-www-form-urlencoded' in ct:
        return 'form'

    if data_hint is not None:
        s = data_hint.lstrip()
        if s.startswith('{'):
            return 'json'
        if '=' in s and '\n' not in s.strip() and ': ' not in s:
            return 'form'
        if s:
            return 'yaml'
    return None


# --------------------------
# Public API
# --------------------------

def decode_request(data: bytes | bytearray | str,
                   *,
                   content_type: Optional[str] = None,
                   fmt: Optional[str] = None) -> EditRequest:
    """
    Convert a request body into an EditRequest.
    Supported fmt: 'json', 'yaml', 'form'.
    If fmt is None, uses content_type, then sniffing.
    """
    enc = _encoding_from_content_type(content_type)
    text = _norm_text(data, encoding=enc)
    f = (fmt or detect_format(content_type, text))
    if f == 'json':
        params = json.loads(text)
    elif f == 'yaml':
        params = yaml.safe_load(text)
    elif f == 'form':
        # keep_blank_values so an explicit empty key survives decoding
        params = parse_qs(text, keep_blank_values=True)
    else:
        raise ValueError(f"Unsupported request format: {f!r}")
    if not isinstance(params, dict):
        raise ValueError("edit request body must be a mapping")
    return EditRequest.from_params(params)


def encode_response(response: EditResponse, *, fmt: str = 'json', pretty: bool = True) -> str:
    """
    Convert an EditResponse into a textual payload.
    - fmt: 'json' | 'yaml'
    """
    f = (fmt or '').lower()
    built = response.to_dict()
    if f == 'json':
        return json.dumps(built, ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(built, sort_keys=False, allow_unicode=True)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


__all__ = [
    "decode_request",
    "encode_response",
    "detect_format",
]
