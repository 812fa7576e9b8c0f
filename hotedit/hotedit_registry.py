"""
The handle table: stable integer references to live objects.
"""
import threading
from typing import Any, Dict, List

from hotedit.hotedit_datatypes import InvalidTarget, HandleNotFound, is_object


class IdentityRegistry:
    """
    Grow-only mapping between integer handles and live objects.

    Handles are list indexes, so a handle once issued always resolves to the
    same object. Lookup by object goes through an id()-keyed index; the
    registry keeps a strong reference to every object, which keeps ids from
    being recycled while they are in the index.
    """

    def __init__(self):
        self._objs: List[Any] = []
        self._ids: Dict[int, int] = {}
        # Guards registry growth and the controller's property commits.
        self.lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._objs)

    def __contains__(self, value) -> bool:
        return id(value) in self._ids

    def register_or_lookup(self, value: Any) -> int:
        """Returns the handle for `value`, registering it if it is new."""
        if not is_object(value):
            raise InvalidTarget(value)
        with self.lock:
            handle = self._ids.get(id(value))
            if handle is not None:
                return handle
            handle = len(self._objs)
            self._objs.append(value)
            self._ids[id(value)] = handle
            return handle

    def resolve(self, handle: Any) -> Any:
        # bool is a subclass of int, so reject it explicitly
        if not isinstance(handle, int) or isinstance(handle, bool):
            raise HandleNotFound(handle)
        if handle < 0 or handle >= len(self._objs):
            raise HandleNotFound(handle)
        return self._objs[handle]
