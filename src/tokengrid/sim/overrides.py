from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from tokengrid.sim.coords import CellId
from tokengrid.sim.field import ProceduralField

OVERRIDE_TAKEN = "taken"
OVERRIDE_MODIFIED = "modified"
OVERRIDE_KINDS = {OVERRIDE_TAKEN, OVERRIDE_MODIFIED}


@dataclass(frozen=True)
class OverrideEntry:
    cell: CellId
    kind: str
    value: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.cell, CellId):
            raise ValueError("override.cell must be a CellId")
        if self.kind not in OVERRIDE_KINDS:
            raise ValueError(f"override.kind must be one of {sorted(OVERRIDE_KINDS)}")
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValueError("override.value must be an integer")
        if self.kind == OVERRIDE_TAKEN and self.value != 0:
            raise ValueError("taken override must carry value 0")
        if self.kind == OVERRIDE_MODIFIED and self.value <= 0:
            raise ValueError("modified override value must be > 0")

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"i": self.cell.i, "j": self.cell.j, "kind": self.kind}
        if self.kind == OVERRIDE_MODIFIED:
            payload["value"] = self.value
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OverrideEntry":
        kind = str(data["kind"])
        value = data.get("value", 0) if kind == OVERRIDE_MODIFIED else 0
        return cls(cell=CellId.from_dict(data), kind=kind, value=value)


class OverrideStore:
    """Sparse ledger of player-caused deviations from the procedural field.

    A cell is either taken (forced empty), modified (forced to a positive
    value) or absent (intrinsic value applies), never two at once.
    """

    def __init__(self, field: ProceduralField) -> None:
        self.field = field
        self._taken: set[CellId] = set()
        self._modified: dict[CellId, int] = {}

    def __len__(self) -> int:
        return len(self._taken) + len(self._modified)

    def record_taken(self, cell: CellId) -> None:
        self._modified.pop(cell, None)
        self._taken.add(cell)

    def record_modified(self, cell: CellId, value: int) -> None:
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValueError(f"modified value must be a positive integer, got {value!r}")
        self._taken.discard(cell)
        self._modified[cell] = value

    def clear(self, cell: CellId) -> None:
        self._taken.discard(cell)
        self._modified.pop(cell, None)

    def clear_all(self) -> None:
        self._taken.clear()
        self._modified.clear()

    def is_taken(self, cell: CellId) -> bool:
        return cell in self._taken

    def modified_value(self, cell: CellId) -> int | None:
        return self._modified.get(cell)

    def resolve(self, cell: CellId) -> int:
        if cell in self._taken:
            return 0
        modified = self._modified.get(cell)
        if modified is not None:
            return modified
        return self.field.intrinsic(cell)

    def snapshot_entries(self) -> list[OverrideEntry]:
        entries = [OverrideEntry(cell=cell, kind=OVERRIDE_TAKEN) for cell in self._taken]
        entries.extend(
            OverrideEntry(cell=cell, kind=OVERRIDE_MODIFIED, value=value) for cell, value in self._modified.items()
        )
        return sorted(entries, key=lambda entry: entry.cell)

    def restore_entries(self, entries: Iterable[OverrideEntry]) -> None:
        normalized = list(entries)
        seen: set[CellId] = set()
        for index, entry in enumerate(normalized):
            if not isinstance(entry, OverrideEntry):
                raise ValueError(f"overrides[{index}] must be an OverrideEntry")
            if entry.cell in seen:
                raise ValueError(f"duplicate override for cell ({entry.cell.i},{entry.cell.j})")
            seen.add(entry.cell)

        self.clear_all()
        for entry in normalized:
            if entry.kind == OVERRIDE_TAKEN:
                self.record_taken(entry.cell)
            else:
                self.record_modified(entry.cell, entry.value)
