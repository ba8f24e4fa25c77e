"""In-memory record projection owned by one desk session."""

from collections.abc import Iterable
from typing import Any

from contentdesk.core.errors import NotFoundError
from contentdesk.modules.records.schemas import RecordSnapshot


class RecordView:
    """Ordered list of record snapshots with lookup by id.

    Edits replace a snapshot with an updated copy; a reload replaces the
    whole list. Nothing here talks to the store.
    """

    def __init__(self, records: Iterable[RecordSnapshot] = ()) -> None:
        self._records: list[RecordSnapshot] = []
        self._index: dict[str, int] = {}
        self.replace(records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._index

    @property
    def records(self) -> list[RecordSnapshot]:
        return list(self._records)

    def replace(self, records: Iterable[RecordSnapshot]) -> None:
        """Discard everything and hold ``records`` instead."""
        self._records = list(records)
        self._index = {record.id: i for i, record in enumerate(self._records)}

    def get(self, record_id: str) -> RecordSnapshot:
        """Look up one record.

        Raises:
            NotFoundError: If the record is not in view
        """
        position = self._index.get(record_id)
        if position is None:
            raise NotFoundError("Record not found", resource="record", resource_id=record_id)
        return self._records[position]

    def update(self, record_id: str, values: dict[str, Any]) -> RecordSnapshot:
        """Replace one record with a copy carrying ``values``."""
        updated = self.get(record_id).model_copy(update=values)
        self._records[self._index[record_id]] = updated
        return updated

    def note_revision(self, record_id: str, revision: int) -> None:
        """Remember a newer stored revision without touching field values."""
        if record_id in self._index and self.get(record_id).revision < revision:
            self.update(record_id, {"revision": revision})

    def add(self, record: RecordSnapshot) -> None:
        """Insert a record keeping date, then creation order."""
        if record.id in self._index:
            self._records[self._index[record.id]] = record
            return
        records = [*self._records, record]
        records.sort(key=lambda r: (r.date, r.created_at is None, r.created_at or r.date, r.id))
        self.replace(records)

    def remove(self, record_id: str) -> None:
        if record_id in self._index:
            self.replace(r for r in self._records if r.id != record_id)
