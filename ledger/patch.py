"""
Partial-update statement builder.

Repositories hand in only the columns present in the request body (pydantic
``model_dump(exclude_unset=True)``); absent fields never appear in the
statement.  ``updated_at`` is always touched.
"""
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional


@dataclass
class UpdateStatement:
    table: str
    key_column: str = "id"
    assignments: list[str] = field(default_factory=list)
    params: list[Any] = field(default_factory=list)

    def set(self, column: str, value: Any) -> "UpdateStatement":
        self.assignments.append(f"{column} = ?")
        self.params.append(value)
        return self

    def set_many(self, changes: Mapping[str, Any]) -> "UpdateStatement":
        for column, value in changes.items():
            self.set(column, value)
        return self

    def set_raw(self, expression: str, *params: Any) -> "UpdateStatement":
        """Append a raw assignment such as ``paid_at = COALESCE(paid_at, ?)``."""
        self.assignments.append(expression)
        self.params.extend(params)
        return self

    @property
    def has_changes(self) -> bool:
        return bool(self.assignments)

    def build(self, key: Any, touched_at: str) -> tuple[str, list[Any]]:
        assignments = [*self.assignments, "updated_at = ?"]
        sql = (
            f"UPDATE {self.table} SET {', '.join(assignments)} "
            f"WHERE {self.key_column} = ?"
        )
        return sql, [*self.params, touched_at, key]


def build_update(
    table: str,
    changes: Mapping[str, Optional[Any]],
    key: Any,
    touched_at: str,
) -> tuple[str, list[Any]]:
    """Shortcut: UPDATE *table* with exactly the columns in *changes*."""
    return UpdateStatement(table).set_many(changes).build(key, touched_at)
