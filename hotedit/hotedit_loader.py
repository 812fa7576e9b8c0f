"""
Renders the current value of a property as editable source text.
"""
import re

from hotedit.hotedit_datatypes import get_own

_STR_ESCAPES = {'\\': '\\\\', "'": "\\'", '\n': '\\n', '\r': '\\r', '\t': '\\t'}
_STR_ESCAPE_RE = re.compile(r"[\\'\n\r\t]")


def _escape_char(ch: str) -> str:
    if ch in _STR_ESCAPES:
        return _STR_ESCAPES[ch]
    if ch.isprintable():
        return ch
    code = ord(ch)
    if code < 0x100:
        return f"\\x{code:02x}"
    if code < 0x10000:
        return f"\\u{code:04x}"
    return f"\\U{code:08x}"


class Loader:
    """Formats property values into source strings the editor can send back."""

    def __init__(self):
        self._handlers = self._create_handlers()

    def load(self, obj, key) -> str:
        """
        Returns the initial editor contents for editing obj[key].

        Only an own property is read; a value the object merely inherits is
        rendered as if it were absent.
        """
        found, value = get_own(obj, key)
        if not found:
            return self._pformat_none(None)
        return self.pformat(value)

    def pformat(self, obj) -> str:
        handler = self._get_handler(obj)
        return handler(obj)

    def _get_handler(self, obj):
        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        if isinstance(obj, str):
            return self._pformat_str
        # Default to Python's str for everything else
        return str

    def _create_handlers(self):
        return {
            str: self._pformat_str,
            type(None): self._pformat_none,
        }

    def _pformat_str(self, obj):
        s = str(obj)
        if s.isprintable():
            escaped = _STR_ESCAPE_RE.sub(lambda m: _STR_ESCAPES[m.group(0)], s)
        else:
            # Control characters, NUL and line separators the tokenizer rejects
            escaped = ''.join(_escape_char(ch) for ch in s)
        return f"'{escaped}'"

    def _pformat_none(self, obj):
        return 'None'
