"""Undoable editing commands for a filter model, and a bounded undo stack."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable

from .biquad import Biquad
from .deflated import DeflatedBiquad
from .filter_model import FilterModel

_log = logging.getLogger(__name__)


class Command(ABC):
    """An edit that can be applied and reversed."""

    text: str = ""

    @abstractmethod
    def undo(self) -> None:
        """Reverse the effect of :meth:`redo`."""

    @abstractmethod
    def redo(self) -> None:
        """Apply, or apply again, the edit."""


def _ids_of_rows(model: FilterModel, rows: Iterable[int]) -> list[int]:
    return [model.filter_at(row).id for row in rows]


def _transform_by_id(model: FilterModel, ids: Iterable[int],
                     transform: Callable[[DeflatedBiquad], None]) -> None:
    """Apply ``transform`` to each filter's snapshot and notify once."""
    touched: list[int] = []
    for filter_id in ids:
        biquad = model.filter_by_id(filter_id)
        if biquad is None:
            _log.warning("filter id %s not found; skipping", filter_id)
            continue
        snapshot = DeflatedBiquad.from_biquad(biquad)
        transform(snapshot)
        row = model.replace_by_id(filter_id, snapshot, stealth=True)
        if row is not None:
            touched.append(row)
    if touched:
        model.notify_changed(min(touched), max(touched))


class AddCommand(Command):
    """Insert one filter."""

    def __init__(self, model: FilterModel, biquad: Biquad) -> None:
        self._model = model
        self._biquad = DeflatedBiquad.from_biquad(biquad)
        self.text = f"\"Add '{self._biquad.filter_type.display_name()}' filter\""

    def undo(self) -> None:
        self._model.remove_by_id(self._biquad.id)

    def redo(self) -> None:
        self._model.append(self._biquad.inflate())


class EditCommand(Command):
    """Switch one filter between two parameter snapshots."""

    def __init__(self, model: FilterModel, previous: DeflatedBiquad,
                 current: DeflatedBiquad, row: int) -> None:
        self._model = model
        self._previous = previous
        self._current = current
        self._row = row
        self.text = f'"Edit row {row + 1}"'

    def undo(self) -> None:
        self._model.replace_by_id(self._current.id, self._previous)

    def redo(self) -> None:
        self._model.replace_by_id(self._previous.id, self._current)


class InvertCommand(Command):
    """Negate the gain of the selected filters."""

    def __init__(self, model: FilterModel, rows: Iterable[int]) -> None:
        self._model = model
        self._ids = _ids_of_rows(model, rows)
        self.text = '"Invert gain of selection"'

    def _invert(self) -> None:
        def negate(snapshot: DeflatedBiquad) -> None:
            snapshot.gain = -snapshot.gain

        _transform_by_id(self._model, self._ids, negate)

    def undo(self) -> None:
        self._invert()

    def redo(self) -> None:
        self._invert()


class RemoveCommand(Command):
    """Remove the selected filters, or every filter when ``rows`` is None."""

    def __init__(self, model: FilterModel, rows: Iterable[int] | None = None) -> None:
        self._model = model
        if rows is None:
            biquads = list(model)
        else:
            biquads = [model.filter_at(row) for row in rows]
        self._cache = [DeflatedBiquad.from_biquad(b) for b in biquads]
        self.text = f'"Remove {len(self._cache)} row(s)"'

    def undo(self) -> None:
        self._model.append_all_deflated(self._cache)

    def redo(self) -> None:
        self._model.remove_all_by_id(snapshot.id for snapshot in self._cache)


class ShiftCommand(Command):
    """Move the frequency of the selected filters by a fixed amount."""

    def __init__(self, model: FilterModel, rows: Iterable[int], shift_amount: int) -> None:
        self._model = model
        self._ids = _ids_of_rows(model, rows)
        self._shift_amount = shift_amount
        self.text = '"Shift frequencies of selection"'

    def _shift(self, delta: int) -> None:
        def move(snapshot: DeflatedBiquad) -> None:
            snapshot.frequency = snapshot.frequency + delta

        _transform_by_id(self._model, self._ids, move)

    def undo(self) -> None:
        self._shift(-self._shift_amount)

    def redo(self) -> None:
        self._shift(self._shift_amount)


class UndoStack:
    """Linear command history; ``limit`` of 0 means unbounded."""

    def __init__(self, limit: int = 100) -> None:
        if limit < 0:
            raise ValueError("undo limit must not be negative")
        self.limit = limit
        self._commands: list[Command] = []
        self._index = 0

    def __len__(self) -> int:
        return len(self._commands)

    def push(self, command: Command) -> None:
        """Apply ``command`` and record it, dropping any redo history."""
        command.redo()
        del self._commands[self._index:]
        self._commands.append(command)
        if self.limit and len(self._commands) > self.limit:
            del self._commands[: len(self._commands) - self.limit]
        self._index = len(self._commands)

    def undo(self) -> bool:
        """Undo the latest command; False if there is none."""
        if not self.can_undo():
            return False
        self._index -= 1
        self._commands[self._index].undo()
        return True

    def redo(self) -> bool:
        """Redo the next command; False if there is none."""
        if not self.can_redo():
            return False
        self._commands[self._index].redo()
        self._index += 1
        return True

    def clear(self) -> None:
        self._commands.clear()
        self._index = 0

    def can_undo(self) -> bool:
        return self._index > 0

    def can_redo(self) -> bool:
        return self._index < len(self._commands)

    def undo_text(self) -> str:
        return self._commands[self._index - 1].text if self.can_undo() else ""

    def redo_text(self) -> str:
        return self._commands[self._index].text if self.can_redo() else ""