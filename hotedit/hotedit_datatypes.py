"""
Defines the core data types for the hotedit runtime.

This module provides the error taxonomy, the request/response records
exchanged with the transport, and the small set of predicates that decide
what counts as an editable object and what its own properties are.
"""

from __future__ import annotations

import collections.abc
import inspect
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

# =================================================================
# Errors
# =================================================================

class EditError(Exception):
    """Base class for every error raised by the edit round trip."""
    pass


class BadTarget(EditError):
    """The request does not name an editable object."""
    pass


class InvalidTarget(BadTarget):
    def __init__(self, value: Any):
        super().__init__(f"can only edit objects, not {type(value).__name__}")
        self.value = value


class HandleNotFound(BadTarget):
    def __init__(self, handle: Any):
        super().__init__(f"no object registered for handle {handle!r}")
        self.handle = handle


class ParseError(EditError):
    """Caller text does not begin with a single valid expression."""
    def __init__(self, msg: str, lineno: Optional[int] = None, col: Optional[int] = None):
        super().__init__(msg)
        self.msg = msg
        self.lineno = lineno
        self.col = col

    def __str__(self):
        if self.lineno is not None and self.col is not None:
            return f"ParseError: {self.msg} (line {self.lineno}, col {self.col})"
        return f"ParseError: {self.msg}"


class EvalError(EditError):
    def __init__(self, diagnostic: str):
        super().__init__(diagnostic)
        self.diagnostic = diagnostic

    def __str__(self):
        return f"EvalError: {self.diagnostic}"


def format_error(e: BaseException) -> str:
    """Formats any exception as a one-line diagnostic."""
    match e:
        case EditError():
            return str(e)
        case SyntaxError():
            line = e.lineno
            col = e.offset
            if line is not None and col is not None:
                return f"SyntaxError: {e.msg} (line {line}, col {col})"
            return f"SyntaxError: {e.msg}"
        case _:
            detail = str(e)
            name = type(e).__name__
            return f"{name}: {detail}" if detail else name

# =================================================================
# Value model
# =================================================================

PRIMITIVE_TYPES = (type(None), bool, int, float, complex, str, bytes)


def is_primitive(value: Any) -> bool:
    return isinstance(value, PRIMITIVE_TYPES)


def is_object(value: Any) -> bool:
    """True for values that can be registered and edited (objects and callables)."""
    return not is_primitive(value)


def supports_own_properties(value: Any) -> bool:
    """True when the value can enumerate properties stored directly on it."""
    if is_primitive(value):
        return False
    if isinstance(value, collections.abc.Mapping):
        return True
    try:
        vars(value)
    except TypeError:
        return False
    return True


def own_items(value: Any) -> List[Tuple[Any, Any]]:
    """Snapshot of the (key, value) pairs stored directly on `value`."""
    if isinstance(value, collections.abc.Mapping):
        return list(value.items())
    return list(vars(value).items())


def _index(obj: collections.abc.Sequence, key: Any) -> Optional[int]:
    try:
        i = int(key)
    except (TypeError, ValueError):
        return None
    return i if 0 <= i < len(obj) else None


def get_own(obj: Any, key: Any) -> Tuple[bool, Any]:
    """
    Looks up `key` among the own properties of `obj`.
    Returns (found, value); inherited values are reported as not found.
    """
    if isinstance(obj, collections.abc.Mapping):
        if key in obj:
            return True, obj[key]
        return False, None
    if isinstance(obj, collections.abc.MutableSequence):
        i = _index(obj, key)
        if i is None:
            return False, None
        return True, obj[i]
    try:
        d = vars(obj)
    except TypeError:
        return False, None
    if key in d:
        return True, d[key]
    return False, None


def has_own(obj: Any, key: Any) -> bool:
    return get_own(obj, key)[0]


def get_current(obj: Any, key: Any) -> Any:
    """
    The value a commit to obj[key] replaces, inherited values included.
    Class attributes are read without binding, so a function stays a function.
    """
    found, value = get_own(obj, key)
    if found:
        return value
    if isinstance(obj, (collections.abc.Mapping, collections.abc.Sequence)) or not isinstance(key, str):
        return None
    return inspect.getattr_static(obj, key, None)


def set_own(obj: Any, key: Any, value: Any) -> None:
    """Installs `value` as an own property of `obj`."""
    if isinstance(obj, collections.abc.MutableMapping):
        obj[key] = value
        return
    if isinstance(obj, collections.abc.MutableSequence):
        i = _index(obj, key)
        if i is None:
            raise IndexError(f"index {key!r} out of range")
        obj[i] = value
        return
    setattr(obj, key, value)

# =================================================================
# Request / response records
# =================================================================

@dataclass
class EditRequest:
    """One edit round trip. `text is None` selects the load path."""
    handle: Any
    key: Optional[str] = None
    name: Optional[str] = None
    text: Optional[str] = None

    @classmethod
    def from_params(cls, params: collections.abc.Mapping) -> 'EditRequest':
        def _one(v):
            # Form decoders hand back lists for repeated parameters
            if isinstance(v, (list, tuple)):
                return v[0] if v else None
            return v

        raw = _one(params.get('handle'))
        try:
            handle = int(raw)
        except (TypeError, ValueError):
            handle = raw
        text = _one(params.get('text'))
        return cls(
            handle=handle,
            key=_one(params.get('key')),
            name=_one(params.get('name')),
            # An empty submission is the same as no submission
            text=text if text else None,
        )


@dataclass
class EditResponse:
    """The structured result of an edit round trip."""
    handle: Any
    key: Optional[str]
    name: Optional[str] = None
    source_text: str = ''
    status: str = 'unmodified'
    error: Optional[EditError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def not_found(self) -> bool:
        return isinstance(self.error, BadTarget)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'handle': self.handle,
            'key': self.key,
            'name': self.name,
            'sourceText': self.source_text,
            'status': self.status,
        }
