"""Table model holding the filter bank of a project."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from enum import IntEnum
from typing import Any

import numpy as np

from .biquad import (
    BW_MAX,
    BW_MIN,
    FREQ_MAX,
    FREQ_MIN,
    GAIN_MAX,
    GAIN_MIN,
    Biquad,
    bandwidth_sort_key,
    frequency_sort_key,
    gain_sort_key,
    type_sort_key,
)
from .deflated import DeflatedBiquad
from .filter_type import FilterType

_log = logging.getLogger(__name__)

EVENT_DATA_CHANGED = "data_changed"
EVENT_FILTER_EDITED = "filter_edited"
EVENT_RESET = "reset"

COLUMN_COUNT = 4


class Column(IntEnum):
    TYPE = 0
    FREQ = 1
    BW = 2
    GAIN = 3


_HEADERS = {
    Column.TYPE: "Type",
    Column.FREQ: "Frequency",
    Column.BW: "Q Value",
    Column.GAIN: "Gain",
}

_SORT_KEYS: dict[int, Callable[[Biquad], Any]] = {
    Column.TYPE: type_sort_key,
    Column.FREQ: frequency_sort_key,
    Column.BW: bandwidth_sort_key,
    Column.GAIN: gain_sort_key,
}

Listener = Callable[..., None]


def _apply(biquad: Biquad, current: DeflatedBiquad) -> None:
    if current.filter_type is FilterType.CUSTOM:
        biquad.refresh_custom(current.filter_type, current.c441, current.c48)
    else:
        biquad.refresh(current.filter_type, current.gain, current.frequency,
                       current.bandwidth_or_slope)


class FilterModel:
    """Ordered list of filters with change notifications.

    Listeners are called as ``callback(event, *args)`` where ``event`` is
    one of ``EVENT_DATA_CHANGED`` (first_row, last_row),
    ``EVENT_FILTER_EDITED`` (previous, current, row) or ``EVENT_RESET``.
    """

    def __init__(self) -> None:
        self._filters: list[Biquad] = []
        self._listeners: list[Listener] = []

    def __len__(self) -> int:
        return len(self._filters)

    def __iter__(self) -> Iterator[Biquad]:
        return iter(list(self._filters))

    # ---- notifications ---------------------------------------------------

    def subscribe(self, callback: Listener) -> Callable[[], None]:
        """Register ``callback``; the returned function unregisters it."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _emit(self, event: str, *args: Any) -> None:
        for callback in list(self._listeners):
            callback(event, *args)

    def notify_changed(self, first_row: int, last_row: int) -> None:
        """Tell listeners that rows ``first_row``..``last_row`` changed."""
        self._emit(EVENT_DATA_CHANGED, first_row, last_row)

    def notify_external_change(self, previous: DeflatedBiquad, current: DeflatedBiquad,
                               row: int) -> None:
        """Report an edit made outside :meth:`set_value`."""
        self._emit(EVENT_FILTER_EDITED, previous, current, row)
        self._emit(EVENT_DATA_CHANGED, row, row)

    # ---- lookup ----------------------------------------------------------

    def _check_row(self, row: int) -> None:
        if not 0 <= row < len(self._filters):
            raise IndexError(f"row {row} out of range")

    def _check(self, row: int, column: int) -> None:
        self._check_row(row)
        if not 0 <= column < COLUMN_COUNT:
            raise IndexError(f"column {column} out of range")

    def filter_at(self, row: int) -> Biquad:
        self._check_row(row)
        return self._filters[row]

    def filter_by_id(self, filter_id: int) -> Biquad | None:
        return next((f for f in self._filters if f.id == filter_id), None)

    def row_of_id(self, filter_id: int) -> int | None:
        return next((row for row, f in enumerate(self._filters) if f.id == filter_id), None)

    # ---- table access ----------------------------------------------------

    def value(self, row: int, column: int) -> str | float:
        """Display value of a cell."""
        self._check(row, column)
        biquad = self._filters[row]
        column = Column(column)
        if column is Column.TYPE:
            return biquad.filter_type.display_name()
        if column is Column.FREQ:
            return biquad.frequency
        if column is Column.BW:
            return biquad.bandwidth_or_slope
        return biquad.gain

    def set_value(self, row: int, column: int, value: Any) -> bool:
        """Edit a cell; True if the filter changed.

        Raises ValueError if the value is outside the allowed range.
        """
        self._check(row, column)
        biquad = self._filters[row]
        backup = DeflatedBiquad.from_biquad(biquad)
        column = Column(column)

        if column is Column.TYPE:
            kind = value if isinstance(value, FilterType) else FilterType.from_name(str(value))
            biquad.set_filter_type(kind)
        elif column is Column.FREQ:
            frequency = int(round(float(value)))
            if not FREQ_MIN <= frequency <= FREQ_MAX:
                raise ValueError(f"Frequency value '{frequency}' is out of range "
                                 f"({FREQ_MIN} ~ {FREQ_MAX})")
            biquad.set_frequency(frequency)
        elif column is Column.BW:
            bandwidth = float(value)
            if not BW_MIN <= bandwidth <= BW_MAX:
                raise ValueError(f"Bandwidth value '{bandwidth:g}' is out of range "
                                 f"({BW_MIN} ~ {BW_MAX})")
            biquad.set_bandwidth_or_slope(bandwidth)
        else:
            gain = float(value)
            if not GAIN_MIN <= gain <= GAIN_MAX:
                raise ValueError(f"Gain value '{gain:g}' is out of range "
                                 f"({GAIN_MIN} ~ {GAIN_MAX})")
            biquad.set_gain(gain)

        current = DeflatedBiquad.from_biquad(biquad)
        if current == backup:
            return False
        self._emit(EVENT_FILTER_EDITED, backup, current, row)
        self._emit(EVENT_DATA_CHANGED, row, row)
        return True

    def tooltip(self, row: int) -> str | None:
        """HTML listing of raw coefficients for custom filters, else None."""
        biquad = self.filter_at(row)
        if biquad.filter_type is not FilterType.CUSTOM:
            return None

        def listing(sample_rate: int) -> str:
            coeffs = biquad.custom_filter(sample_rate)
            return "".join(
                f"{name} = {getattr(coeffs, name):.16f}<br/>"
                for name in ("b0", "b1", "b2", "a0", "a1", "a2")
            )

        return ("<b>Coefficients (44100Hz)</b><br/>"
                f"{listing(44100)}<br/>"
                "<b>Coefficients (48000Hz)</b><br/>"
                f"{listing(48000)}")

    def header(self, section: int) -> str | None:
        """Column title, or None for an unknown section."""
        return _HEADERS.get(section)

    def sort(self, column: int, descending: bool = False) -> None:
        """Reorder the filters by ``column``; unused parameters sort last."""
        if not self._filters:
            return
        key = _SORT_KEYS.get(column)
        if key is not None:
            self._filters.sort(key=key)
        if descending:
            self._filters.reverse()
        self._emit(EVENT_RESET)

    # ---- editing ---------------------------------------------------------

    def append(self, biquad: Biquad) -> None:
        self._filters.append(biquad)
        last = len(self._filters) - 1
        self._emit(EVENT_DATA_CHANGED, last, last)
        self.sort(Column.FREQ)

    def append_all(self, biquads: Iterable[Biquad]) -> None:
        added = list(biquads)
        self._filters.extend(added)
        self._emit(EVENT_DATA_CHANGED, len(self._filters) - len(added), len(self._filters) - 1)
        self.sort(Column.FREQ)

    def append_all_deflated(self, filters: Iterable[DeflatedBiquad]) -> None:
        self.append_all(f.inflate() for f in filters)

    def _remove_row(self, row: int) -> None:
        del self._filters[row]
        self._emit(EVENT_DATA_CHANGED, row, row)

    def remove(self, biquad: Biquad) -> bool:
        for row, candidate in enumerate(self._filters):
            if candidate is biquad:
                self._remove_row(row)
                return True
        return False

    def remove_by_id(self, filter_id: int) -> bool:
        row = self.row_of_id(filter_id)
        if row is None:
            return False
        self._remove_row(row)
        return True

    def remove_all_by_id(self, ids: Iterable[int]) -> bool:
        wanted = set(ids)
        rows = [row for row, f in enumerate(self._filters) if f.id in wanted]
        if not rows:
            _log.warning("no matching rows found to remove")
            return False
        for row in reversed(rows):
            del self._filters[row]
        self._emit(EVENT_DATA_CHANGED, rows[0], rows[-1])
        return True

    def clear(self) -> None:
        if self._filters:
            self._filters.clear()
            self._emit(EVENT_RESET)

    def replace(self, row: int, current: DeflatedBiquad, stealth: bool = False) -> None:
        """Redesign the filter at ``row`` from ``current``."""
        _apply(self.filter_at(row), current)
        if not stealth:
            self._emit(EVENT_DATA_CHANGED, row, row)

    def replace_by_id(self, filter_id: int, current: DeflatedBiquad,
                      stealth: bool = False) -> int | None:
        """Redesign the filter with ``filter_id``; returns its row or None."""
        row = self.row_of_id(filter_id)
        if row is None:
            _log.warning("filter id %s not found", filter_id)
            return None
        _apply(self._filters[row], current)
        if not stealth:
            self._emit(EVENT_DATA_CHANGED, row, row)
        return row

    # ---- responses -------------------------------------------------------

    def _table(self, band_count: int, sample_rate: float,
               response: Callable[[Biquad, float, float], float]) -> np.ndarray:
        if band_count <= 0:
            return np.zeros(0, dtype=np.float32)
        step = (sample_rate / 2.0) / float(band_count)
        frequencies = [step * (j + 1.0) for j in range(band_count)]
        table = np.zeros(band_count, dtype=np.float32)
        for biquad in self._filters:
            values = np.fromiter((response(biquad, f, sample_rate) for f in frequencies),
                                 dtype=np.float64, count=band_count)
            table += values.astype(np.float32)
        return table

    def magnitude_response_table(self, band_count: int, sample_rate: float) -> np.ndarray:
        """Summed gain in dB at ``band_count`` evenly spaced frequencies."""
        return self._table(band_count, sample_rate, Biquad.gain_at)

    def phase_response_table(self, band_count: int, sample_rate: float) -> np.ndarray:
        """Summed phase in degrees at ``band_count`` evenly spaced frequencies."""
        return self._table(band_count, sample_rate, Biquad.phase_response_at)

    def group_delay_table(self, band_count: int, sample_rate: float) -> np.ndarray:
        """Summed group delay in ms at ``band_count`` evenly spaced frequencies."""
        return self._table(band_count, sample_rate, Biquad.group_delay_at)

    def export_coeffs(self, sample_rate: float, no_a0_divide: bool = False) -> list[float]:
        """Coefficients of all filters in order, skipping those that cannot export."""
        result: list[float] = []
        for biquad in self._filters:
            coeffs = biquad.export_coeffs(sample_rate, no_a0_divide)
            if not coeffs:
                _log.warning("filter %s exported no coefficients; skipping", biquad.id)
                continue
            result.extend(coeffs)
        return result