import ctypes
from typing import Iterator, Optional


class Variables:
    """Session-wide variable storage.

    Every name maps to one ``ctypes.c_double``. Generated code reads and writes
    that object directly (natively through its address), so a slot is never
    replaced once it exists.
    """

    def __init__(self) -> None:
        self._slots: dict[str, ctypes.c_double] = dict()

    def __contains__(self, name: object) -> bool:
        return name in self._slots

    def __iter__(self) -> Iterator[str]:
        return iter(self._slots)

    def __len__(self) -> int:
        return len(self._slots)

    def __getitem__(self, name: str) -> float:
        return self._slots[name].value

    def lookup(self, name: str) -> Optional[ctypes.c_double]:
        return self._slots.get(name)

    def declare(self, name: str) -> ctypes.c_double:
        if name not in self._slots:
            self._slots[name] = ctypes.c_double(0.0)
        return self._slots[name]

    def forget(self, name: str) -> None:
        del self._slots[name]

    def as_dict(self) -> dict[str, float]:
        return {name: slot.value for name, slot in self._slots.items()}

    def __repr__(self) -> str:
        return f"Variables({self.as_dict()!r})"
