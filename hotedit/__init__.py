from hotedit.hotedit_config import EditorConfig
from hotedit.hotedit_datatypes import (
    EditError, BadTarget, InvalidTarget, HandleNotFound, ParseError, EvalError,
    EditRequest, EditResponse,
)
from hotedit.hotedit_evaluator import Evaluator
from hotedit.hotedit_extractor import ExpressionExtractor, extract
from hotedit.hotedit_loader import Loader
from hotedit.hotedit_registry import IdentityRegistry
from hotedit.hotedit_runtime import EditController
from hotedit.hotedit_serialize import decode_request, encode_response, detect_format
from hotedit.hotedit_transplant import transplant

__all__ = [
    "EditorConfig",
    "EditError", "BadTarget", "InvalidTarget", "HandleNotFound", "ParseError", "EvalError",
    "EditRequest", "EditResponse",
    "Evaluator", "ExpressionExtractor", "extract", "Loader",
    "IdentityRegistry", "EditController", "transplant",
    "decode_request", "encode_response", "detect_format",
]
