"""Foreign-object surface for managed arrays.

Foreign runtimes see an array as array-like (``shape[0]`` elements, each one
resolved through the indexing state machine), pointer-like (the base address)
and as carrying a single readable member, ``pointer``.  Nothing here holds
state; every message is answered from the public accessors.
"""

from __future__ import annotations

from numbers import Integral
from typing import Any, Tuple

from .errors import UnknownMember

MEMBERS: Tuple[str, ...] = ("pointer",)
PUBLIC_MEMBERS: Tuple[str, ...] = ()


class ArrayElementsMixin:
    __slots__ = ()

    def has_array_elements(self) -> bool:
        return True

    def get_array_size(self) -> int:
        return len(self)  # type: ignore[arg-type]

    def is_array_element_readable(self, index: Any) -> bool:
        if isinstance(index, bool) or not isinstance(index, Integral):
            return False
        return 0 <= index < len(self)  # type: ignore[arg-type]

    def is_array_element_modifiable(self, index: Any) -> bool:
        return self.is_array_element_readable(index) and self.is_terminal  # type: ignore[attr-defined]

    def read_array_element(self, index: int) -> Any:
        return self[index]  # type: ignore[index]

    def write_array_element(self, index: int, value: Any) -> None:
        self[index] = value  # type: ignore[index]


class PointerMembersMixin:
    __slots__ = ()

    def has_members(self) -> bool:
        return True

    def get_members(self, include_internal: bool = False) -> Tuple[str, ...]:
        return MEMBERS if include_internal else PUBLIC_MEMBERS

    def is_member_readable(self, member: str) -> bool:
        return member in MEMBERS

    def read_member(self, member: str) -> Any:
        if not self.is_member_readable(member):
            raise UnknownMember(member)
        return self.as_pointer()

    def is_pointer(self) -> bool:
        return True

    def as_pointer(self) -> int:
        return self.pointer  # type: ignore[attr-defined]


__all__ = ["MEMBERS", "PUBLIC_MEMBERS", "ArrayElementsMixin", "PointerMembersMixin"]
