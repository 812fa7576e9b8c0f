"""
Turns extracted expression text into a live value.

This is the one place where caller text is executed. It runs with the full
power of the host process: the namespace is a real module's globals, not a
restricted copy.
"""
import ast
import sys
from typing import Any, Dict, Optional, Tuple

from hotedit.hotedit_datatypes import EvalError, format_error


class Evaluator:
    def __init__(self, namespace: Optional[Dict[str, Any]] = None, *, module: str = '__main__',
                 feature_version: Optional[Tuple[int, int]] = None):
        self._namespace = namespace
        self.module = module
        self.feature_version = feature_version

    @property
    def namespace(self) -> Dict[str, Any]:
        """The global namespace evaluation runs in."""
        if self._namespace is not None:
            return self._namespace
        return vars(sys.modules[self.module])

    def compile(self, expression_text: str):
        # The parentheses keep dict displays, walrus and line-broken
        # operators in value position.
        source = f"({expression_text})"
        if self.feature_version is not None:
            tree = ast.parse(source, "<edit>", mode="eval", feature_version=self.feature_version)
            return compile(tree, "<edit>", "eval")
        return compile(source, "<edit>", "eval")

    def evaluate(self, expression_text: str) -> Any:
        """Evaluates one expression; any failure surfaces as EvalError."""
        try:
            code = self.compile(expression_text)
            return eval(code, self.namespace)
        except Exception as e:
            raise EvalError(format_error(e)) from e
