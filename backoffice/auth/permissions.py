"""Permission bitmask.

A permission set is an unsigned 32-bit integer in which each bit grants one
capability. Sets compose with bitwise OR, and a set satisfies a requirement
when every required bit is present, so ``ADMIN`` (all bits) satisfies every
check and ``NONE`` (no bits) is satisfied by every principal.

Values read from storage are never checked against the named bits: an
unknown bit is carried along as part of an opaque mask.
"""

from collections.abc import Iterable
from typing import Any

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema

MAX_MASK = 0xFFFF_FFFF

# Canonical bit order. New capabilities go at the end of the bit list so
# stored masks keep their meaning.
PERMISSION_NAMES: tuple[str, ...] = (
    "INVENTORY_READ",
    "INVENTORY_WRITE",
    "ORDER_READ",
    "ORDER_WRITE",
    "CUSTOMERS_READ",
    "CUSTOMERS_WRITE",
    "SUPPLIERS_READ",
    "SUPPLIERS_CREATE",
    "SUPPLIERS_UPDATE",
    "PURCHASE_READ",
    "PURCHASE_WRITE",
    "PAYMENT_READ",
    "PAYMENT_WRITE",
    "EXPENSES_READ",
    "EXPENSES_WRITE",
    "REPORTS",
    "SETTINGS",
    "USER_READ",
    "USER_WRITE",
    "MANAGE_DB",
    "ADMIN",
)


class Permissions(int):
    """A set of granted capabilities stored as a 32-bit mask."""

    __slots__ = ()

    def __new__(cls, value: int = 0) -> "Permissions":
        value = int(value)
        if not 0 <= value <= MAX_MASK:
            raise ValueError(f"Permission mask out of range: {value}")
        return super().__new__(cls, value)

    def __or__(self, other: int) -> "Permissions":
        return Permissions(int(self) | int(other))

    __ror__ = __or__

    def __and__(self, other: int) -> "Permissions":
        return Permissions(int(self) & int(other))

    __rand__ = __and__

    def __repr__(self) -> str:
        names = self.to_list()
        if not names:
            return f"Permissions({int(self):#x})"
        return f"Permissions({'|'.join(names)})"

    def union(self, other: int) -> "Permissions":
        """Return the set holding every bit of either operand."""
        return self | other

    def contains(self, required: int) -> bool:
        """Check whether this set grants every bit of ``required``.

        Args:
            required: Permission set demanded by a route.

        Returns:
            bool: True if all required bits are present.
        """
        required = int(required)
        return (int(self) & required) == required

    def to_list(self) -> list[str]:
        """List the named capabilities contained in this set, in canonical order.

        Returns:
            list[str]: Capability names. ``ADMIN`` only appears when every bit is set.
        """
        return [name for name in PERMISSION_NAMES if self.contains(getattr(Permissions, name))]

    @classmethod
    def from_list(cls, names: Iterable[str]) -> "Permissions":
        """Build a permission set from capability names.

        Args:
            names: Capability names, in any order.

        Returns:
            Permissions: Union of the named bits.

        Raises:
            ValueError: If a name is not a known capability.
        """
        mask = cls.NONE
        for name in names:
            if name not in PERMISSION_NAMES:
                raise ValueError(f"Unknown permission: {name}")
            mask = mask | getattr(cls, name)
        return mask

    @classmethod
    def names(cls) -> list[str]:
        """Return every capability name in canonical order."""
        return list(PERMISSION_NAMES)

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_after_validator_function(
            cls,
            core_schema.int_schema(ge=0, le=MAX_MASK),
            serialization=core_schema.plain_serializer_function_ser_schema(int),
        )


Permissions.NONE = Permissions(0)
Permissions.INVENTORY_READ = Permissions(1 << 0)
Permissions.INVENTORY_WRITE = Permissions(1 << 1)
Permissions.ORDER_READ = Permissions(1 << 2)
Permissions.ORDER_WRITE = Permissions(1 << 3)
Permissions.CUSTOMERS_READ = Permissions(1 << 4)
Permissions.CUSTOMERS_WRITE = Permissions(1 << 5)
Permissions.SUPPLIERS_READ = Permissions(1 << 6)
Permissions.SUPPLIERS_CREATE = Permissions(1 << 7)
Permissions.SUPPLIERS_UPDATE = Permissions(1 << 8)
Permissions.PURCHASE_READ = Permissions(1 << 9)
Permissions.PURCHASE_WRITE = Permissions(1 << 10)
Permissions.PAYMENT_READ = Permissions(1 << 11)
Permissions.PAYMENT_WRITE = Permissions(1 << 12)
Permissions.EXPENSES_READ = Permissions(1 << 13)
Permissions.EXPENSES_WRITE = Permissions(1 << 14)
Permissions.REPORTS = Permissions(1 << 15)
Permissions.SETTINGS = Permissions(1 << 16)
Permissions.USER_READ = Permissions(1 << 17)
Permissions.USER_WRITE = Permissions(1 << 18)
Permissions.MANAGE_DB = Permissions(1 << 19)
Permissions.ADMIN = Permissions(MAX_MASK)
