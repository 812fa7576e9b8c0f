"""
Carries attached state from a replaced value over to its replacement.
"""
from typing import Any, List

from hotedit.hotedit_datatypes import has_own, own_items, set_own, supports_own_properties


def transplant(old: Any, new: Any) -> List[Any]:
    """
    Copies every own property of `old` that `new` does not define itself.

    Only the top level of the two values is considered; keys defined by `new`
    always win. Values that cannot enumerate own properties (primitives,
    lists, tuples, ...) are left alone. Returns the transplanted keys.
    """
    if not (supports_own_properties(old) and supports_own_properties(new)):
        return []
    if old is new:
        return []
    moved = []
    for key, value in own_items(old):
        if has_own(new, key):
            continue
        set_own(new, key, value)
        moved.append(key)
    return moved
