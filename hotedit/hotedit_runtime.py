# hotedit_runtime.py

import os
import sys
from typing import Any, Mapping, Optional
from urllib.parse import quote

from hotedit.hotedit_config import EditorConfig
from hotedit.hotedit_datatypes import (
    BadTarget, EditError, EditRequest, EditResponse, EvalError, InvalidTarget,
    format_error, get_current, is_object, set_own,
)
from hotedit.hotedit_evaluator import Evaluator
from hotedit.hotedit_extractor import ExpressionExtractor
from hotedit.hotedit_loader import Loader
from hotedit.hotedit_registry import IdentityRegistry
from hotedit.hotedit_transplant import transplant


def _quote_component(s: str) -> str:
    # Same reserved set as encodeURIComponent
    return quote(str(s), safe="-_.!~*'()")


class EditController:
    """Resolves edit targets, loads their source and saves edited source back."""

    def __init__(self, registry: Optional[IdentityRegistry] = None, *,
                 config: Optional[EditorConfig] = None,
                 namespace: Optional[dict] = None):
        self.config = config or EditorConfig()
        self.registry = registry if registry is not None else IdentityRegistry()
        self.extractor = ExpressionExtractor(self.config.feature_version)
        self.loader = Loader()
        self.evaluator = Evaluator(namespace, module=self.config.namespace,
                                   feature_version=self.config.feature_version)

    def _dbg(self, *parts):
        if self.config.debug or os.environ.get("HOTEDIT_DEBUG"):
            try:
                print("[DBG]", *parts, file=sys.stderr)
            except Exception:
                pass

    # --- Links ---

    def edit_url(self, obj, name: Optional[str] = None, key: Optional[str] = None) -> str:
        """Returns a URL for an editing session on obj[key], where obj is known as name."""
        handle = self.obj_id_for(obj)
        url = f"{self.config.route}?handle={handle}"
        if name:
            url += "&name=" + _quote_component(name)
        if key:
            url += "&key=" + _quote_component(key)
        return url

    def obj_id_for(self, obj) -> int:
        known = obj in self.registry
        handle = self.registry.register_or_lookup(obj)
        if not known:
            self._dbg("register", type(obj).__name__, "->", handle)
        return handle

    # --- Round trip ---

    def resolve(self, handle) -> Any:
        obj = self.registry.resolve(handle)
        if not is_object(obj):
            raise InvalidTarget(obj)
        return obj

    def load(self, handle, key) -> str:
        """Returns the editor contents for the property `key` of the object at `handle`."""
        obj = self.resolve(handle)
        self._dbg("load", handle, repr(key))
        return self.loader.load(obj, key)

    def save(self, handle, key, text: str) -> str:
        """
        Evaluates `text` and stores the result as the own property `key` of
        the object at `handle`.

        Only the leading expression of `text` is used, and that extracted
        source is returned. When the value being replaced (inherited or own)
        and the new value both carry own properties, those the new value does
        not define are copied over to it before the commit. Evaluation runs
        outside the registry lock; only transplant and commit hold it.
        Nothing is written unless every step succeeds.
        """
        obj = self.resolve(handle)
        src = self.extractor.extract(text)
        self._dbg("save", handle, repr(key), "src", repr(src))
        val = self.evaluator.evaluate(src)
        with self.registry.lock:
            old = get_current(obj, key)
            try:
                moved = transplant(old, val)
                set_own(obj, key, val)
            except Exception as e:
                raise EvalError(format_error(e)) from e
        if moved:
            self._dbg("transplanted", moved)
        self._dbg("commit", handle, repr(key), type(val).__name__)
        return src

    async def handle(self, request: EditRequest) -> EditResponse:
        """The request entry point. Runs to completion without yielding."""
        response = EditResponse(handle=request.handle, key=request.key, name=request.name)
        try:
            self.resolve(request.handle)
        except BadTarget as e:
            self._dbg("bad target", request.handle, str(e))
            response.status = 'not-found'
            response.error = e
            return response

        if request.text is None:
            response.source_text = self.load(request.handle, request.key)
            response.status = 'unmodified'
            return response

        try:
            response.source_text = self.save(request.handle, request.key, request.text)
            response.status = 'saved'
        except EditError as e:
            self._dbg("error", format_error(e))
            # Keep the caller's submission so it can be corrected and resent
            response.source_text = request.text
            response.status = f"error: {format_error(e)}"
            response.error = e
        return response

    async def handle_params(self, params: Mapping) -> EditResponse:
        return await self.handle(EditRequest.from_params(params))

