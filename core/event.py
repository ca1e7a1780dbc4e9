import bisect
import inspect
import weakref
import threading
from typing import Callable

from core import logger


class DefaultEvent:
    def __init__(self):
        self._slots = []
        self._lock = threading.RLock()

    def connect(self, slot: Callable, priority=0):
        """
        Connect slots with priority with higher being executed earlier.
        Bound methods are held weakly so a dead view model drops out on its own,
        plain functions and lambdas are held strongly.
        :param slot:
        :param priority:
        :return:
        """
        with self._lock:
            if inspect.ismethod(slot):
                ref = weakref.WeakMethod(slot, self._on_dead_reference)
            else:
                ref = _StrongRef(slot)

            entry = (-priority, ref)
            bisect.insort(self._slots, entry, key=lambda x: x[0])

    def disconnect(self, slot: Callable):
        """
        Remove every connection of this slot
        :param slot:
        :return: True if something was removed
        """
        with self._lock:
            remaining = [s for s in self._slots if s[1]() != slot]
            removed = len(remaining) != len(self._slots)
            self._slots = remaining
            return removed

    def _on_dead_reference(self, ref):
        # clean all matching dead ref
        with self._lock:
            self._slots = [s for s in self._slots if s[1] is not ref]

    def __len__(self):
        with self._lock:
            return sum(1 for _, ref in self._slots if ref() is not None)

    def emit(self, *args, **kwargs):
        with self._lock:
            current_slots = []
            for _, ref in self._slots:
                slot = ref()
                if slot is not None:
                    current_slots.append(slot)

        for slot in current_slots:
            try:
                slot(*args, **kwargs)
            except Exception as e:
                logger.warning(f"Priority Slot Error: {e}")


class Event(DefaultEvent):
    def __init__(self, *arg_types):
        super().__init__()
        self._arg_types = arg_types

    def _validate_types(self, args):
        """
        Checks if provided args match the defined schema
        :param args:
        :return:
        """
        if len(args) != len(self._arg_types):
            raise TypeError(
                f"Signal expected {len(self._arg_types)} arguments, got {len(args)}"
            )

        for i, (val, expected_type) in enumerate(zip(args, self._arg_types)):
            if not isinstance(val, expected_type):
                raise TypeError(
                    f"Argument {i} expected {expected_type.__name__}, got {type(val).__name__}"
                )

    def emit(self, *args, **kwargs):
        self._validate_types(args)
        super().emit(*args, **kwargs)


class _StrongRef:
    """Mimics the weakref call interface for slots that must stay alive"""

    __slots__ = ("_slot",)

    def __init__(self, slot):
        self._slot = slot

    def __call__(self):
        return self._slot
