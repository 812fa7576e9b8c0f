"""
Bounds caller text to the single Python expression it starts with.

The extractor never evaluates anything. It runs the real tokenizer over the
text to find candidate end points, then asks the real parser which of the
candidates is the longest complete expression.

Candidate end points are narrowed with facts of the expression grammar
before the parser runs: the expression ends at the first statement
separator (`;` or a logical newline), it cannot contain two adjacent
operands (`1 x`) other than string literals, and it can only end after an
operand or a closing bracket.
"""
from __future__ import annotations

import ast
import io
import keyword
import tokenize
from typing import List, Optional, Tuple

from hotedit.hotedit_datatypes import ParseError

_SKIP_TOKENS = frozenset({
    tokenize.NL, tokenize.COMMENT,
    tokenize.INDENT, tokenize.DEDENT, tokenize.ENDMARKER,
})
_OPENERS = frozenset('([{')
_CLOSERS = frozenset(')]}')
_CONSTANTS = frozenset({'True', 'False', 'None'})

# f-strings are split into several tokens on 3.12+
_FSTRING_START = getattr(tokenize, 'FSTRING_START', None)
_FSTRING_END = getattr(tokenize, 'FSTRING_END', None)
_STRING_STARTS = frozenset(t for t in (tokenize.STRING, _FSTRING_START) if t is not None)
_STRING_ENDS = frozenset(t for t in (tokenize.STRING, _FSTRING_END) if t is not None)


def _is_name(tok) -> bool:
    return tok.type == tokenize.NAME and (not keyword.iskeyword(tok.string) or tok.string in _CONSTANTS)


def _starts_operand(tok) -> bool:
    return tok.type == tokenize.NUMBER or tok.type in _STRING_STARTS or _is_name(tok)


def _ends_operand(tok) -> bool:
    if tok.type == tokenize.OP:
        return tok.string in _CLOSERS or tok.string == '...'
    return tok.type == tokenize.NUMBER or tok.type in _STRING_ENDS or _is_name(tok)


class ExpressionExtractor:
    """Finds the leading expression of a piece of source text."""

    # Parser attempts per extraction before giving up.
    max_attempts = 256

    def __init__(self, feature_version: Optional[Tuple[int, int]] = None):
        self.feature_version = feature_version

    def extract(self, text: str) -> str:
        """
        Returns the substring of `text` spanning its leading expression.

        Leading whitespace and comments are skipped, everything after the
        expression is discarded. Raises ParseError when the text does not
        begin with a valid expression, including when it holds none at all.
        """
        if not isinstance(text, str):
            raise ParseError(f"expected source text, got {type(text).__name__}")
        # The tokenizer and the parser disagree on a lone '\r'
        text = text.replace('\r\n', '\n').replace('\r', '\n')
        tokens, scan_error = self._significant_tokens(text)
        if not tokens:
            if scan_error is not None:
                raise scan_error
            raise ParseError("empty expression")

        starts = _line_starts(text)
        start = _offset(starts, tokens[0].start)
        first_error: Optional[ParseError] = None
        ends = self._candidate_ends(tokens, starts)
        for end in ends[:self.max_attempts]:
            candidate = text[start:end]
            try:
                self.parse(candidate)
            except ParseError as e:
                if first_error is None:
                    first_error = e
                continue
            return candidate
        if first_error is None:
            # No usable prefix at all; let the parser explain the whole text.
            self.parse(text[start:].rstrip())
            first_error = ParseError("invalid expression")
        raise first_error

    def parse(self, candidate: str) -> ast.Expression:
        """Parses `candidate` as one parenthesized expression."""
        try:
            if self.feature_version is not None:
                return ast.parse(f"({candidate})", mode="eval", feature_version=self.feature_version)
            return ast.parse(f"({candidate})", mode="eval")
        except SyntaxError as e:
            # Line 1 carries the opening parenthesis of the wrapper.
            col = e.offset
            if col is not None and e.lineno == 1:
                col = max(col - 1, 1)
            raise ParseError(e.msg, e.lineno, col) from None
        except ValueError as e:
            # e.g. source containing null bytes
            raise ParseError(str(e)) from None
        except (MemoryError, RecursionError):
            # The parser gives up on deeply nested input this way
            raise ParseError("expression too complex") from None

    def _significant_tokens(self, text: str) -> Tuple[List[tokenize.TokenInfo], Optional[ParseError]]:
        """Tokens up to the first statement separator."""
        out = []
        depth = 0
        try:
            for tok in tokenize.generate_tokens(io.StringIO(text).readline):
                if tok.type in _SKIP_TOKENS:
                    continue
                if tok.type == tokenize.NEWLINE:
                    if out:
                        break
                    continue
                if tok.type == tokenize.OP:
                    if tok.string == ';' and depth == 0:
                        break
                    if tok.string in _OPENERS:
                        depth += 1
                    elif tok.string in _CLOSERS:
                        depth -= 1
                out.append(tok)
        except SyntaxError as e:
            # The tokens seen so far are still usable candidates.
            return out, ParseError(e.msg, e.lineno, e.offset)
        except tokenize.TokenError as e:
            msg = e.args[0] if e.args else "tokenize failed"
            return out, ParseError(str(msg))
        return out, None

    def _candidate_ends(self, tokens, starts) -> List[int]:
        """End offsets, longest first, where the expression may stop."""
        ends = []
        depth = 0
        prev = None
        for tok in tokens:
            if prev is not None and _ends_operand(prev) and _starts_operand(tok):
                # Adjacent string literals concatenate; any other pair cannot.
                if not (prev.type in _STRING_ENDS and tok.type in _STRING_STARTS):
                    break
            if tok.type == tokenize.OP:
                if tok.string in _OPENERS:
                    depth += 1
                elif tok.string in _CLOSERS:
                    depth -= 1
                    if depth < 0:
                        # A stray closer can never be inside the expression.
                        break
            if depth == 0 and _ends_operand(tok):
                ends.append(_offset(starts, tok.end))
            prev = tok
        ends.reverse()
        return ends


def _line_starts(text: str) -> List[int]:
    # Line endings are normalized to '\n' before tokenizing.
    starts = [0]
    pos = text.find('\n')
    while pos != -1:
        starts.append(pos + 1)
        pos = text.find('\n', pos + 1)
    return starts


def _offset(starts: List[int], position: Tuple[int, int]) -> int:
    row, col = position
    return starts[row - 1] + col


_default = ExpressionExtractor()


def extract(text: str) -> str:
    return _default.extract(text)
