"""Process-wide scale multipliers, updated by scale-* requests."""

import threading
from dataclasses import dataclass

from mdmath.contexts.rendering.logger import log_scale_change


@dataclass(frozen=True)
class Scale:
    """
    Snapshot of the scale state used for one render.

    Attributes:
        internal: Oversampling factor applied to every physical dimension (HiDPI)
        dynamic: Extra zoom applied only in dynamic-fit mode
    """

    internal: float = 1
    dynamic: float = 1


class ScaleState:
    """
    Mutable holder for the two multipliers.

    Updates do not invalidate cached renders: an entry produced under an older
    scale keeps being served for its key.
    """

    def __init__(self, internal: float = 1, dynamic: float = 1):
        self._lock = threading.Lock()
        self._scale = Scale(internal=internal, dynamic=dynamic)

    def snapshot(self) -> Scale:
        with self._lock:
            return self._scale

    def set_internal(self, value: float) -> None:
        with self._lock:
            old = self._scale.internal
            self._scale = Scale(internal=value, dynamic=self._scale.dynamic)
        log_scale_change("internal", old, value)

    def set_dynamic(self, value: float) -> None:
        with self._lock:
            old = self._scale.dynamic
            self._scale = Scale(internal=self._scale.internal, dynamic=value)
        log_scale_change("dynamic", old, value)
