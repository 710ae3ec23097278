"""Operations for OVSDB ``transact`` requests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol


class TransactOp(Protocol):
    """An operation that can be applied in a transaction."""

    def to_json(self) -> Any: ...


@dataclass(frozen=True)
class Cond:
    """A condition evaluated by the OVSDB server in a transaction."""

    column: str
    function: str
    value: str

    def to_json(self) -> list[str]:
        """Return the condition as a three-element array."""
        return [self.column, self.function, self.value]


def equal(column: str, value: str) -> Cond:
    """Return a condition requiring a column to equal a value."""
    return Cond(column=column, function="==", value=value)


@dataclass
class Select:
    """An operation that fetches rows from a table."""

    table: str
    where: list[Cond] = field(default_factory=list)

    def to_json(self) -> dict[str, Any]:
        """Return the operation in wire form."""
        return {
            "op": "select",
            "table": self.table,
            "where": [cond.to_json() for cond in self.where],
        }


def transact_params(database: str, ops: Iterable[TransactOp]) -> list[Any]:
    """Return the parameters of a ``transact`` request."""
    return [database, *(op.to_json() for op in ops)]