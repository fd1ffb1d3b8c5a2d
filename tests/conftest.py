from typing import Any

import pytest


class FakeResult:
    def __init__(self, rows: list[Any]) -> None:
        self._rows = list(rows)

    def all(self) -> list[Any]:
        return list(self._rows)

    def scalars(self) -> "FakeResult":
        return self

    def first(self) -> Any:
        return self._rows[0] if self._rows else None

    def scalar_one_or_none(self) -> Any:
        return self.first()


class FakeSession:
    """Stands in for AsyncSession; `execute` answers by the first selected entity."""

    def __init__(self) -> None:
        self.rows: dict[tuple[type, int], Any] = {}
        self.results: dict[type, list[Any]] = {}
        self.added: list[Any] = []
        self.deleted: list[Any] = []
        self.commits = 0
        self.rollbacks = 0
        self.fail_commit = False

    async def get(self, model: type, ident: int) -> Any:
        return self.rows.get((model, ident))

    async def execute(self, stmt: Any) -> FakeResult:
        entity = stmt.column_descriptions[0]["entity"]
        return FakeResult(self.results.get(entity, []))

    def add(self, obj: Any) -> None:
        self.added.append(obj)

    async def delete(self, obj: Any) -> None:
        self.deleted.append(obj)

    async def commit(self) -> None:
        if self.fail_commit:
            raise RuntimeError("database unavailable")
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1

    async def refresh(self, obj: Any) -> None:
        return None


@pytest.fixture
def fake_db() -> FakeSession:
    return FakeSession()
