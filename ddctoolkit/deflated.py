"""Plain-value snapshot of a filter, used for undo history and serialisation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .biquad import Biquad, CustomFilter
from .filter_type import FilterType

_log = logging.getLogger(__name__)


@dataclass
class DeflatedBiquad:
    """Design parameters of one filter without its computed state.

    An ``id`` of 0 means no id has been assigned yet; inflating such a
    snapshot allocates a fresh one.
    """

    filter_type: FilterType = FilterType.INVALID
    frequency: int = 0
    bandwidth_or_slope: float = 1.0
    gain: float = 0.0
    c441: CustomFilter = field(default_factory=CustomFilter)
    c48: CustomFilter = field(default_factory=CustomFilter)
    id: int = 0

    @classmethod
    def from_biquad(cls, biquad: Biquad) -> "DeflatedBiquad":
        """Capture the parameters of ``biquad``, including its id."""
        kind = biquad.filter_type
        if kind is FilterType.CUSTOM:
            return cls(
                filter_type=kind,
                c441=biquad.custom_filter(44100),
                c48=biquad.custom_filter(48000),
                id=biquad.id,
            )
        return cls(
            filter_type=kind,
            frequency=int(biquad.frequency),
            bandwidth_or_slope=biquad.bandwidth_or_slope,
            gain=biquad.gain,
            id=biquad.id,
        )

    def inflate(self) -> Biquad:
        """Build a live filter from this snapshot, keeping its id if it has one."""
        if self.id != 0:
            biquad = Biquad(idless=True)
            biquad.id = self.id
        else:
            _log.debug("inflating a snapshot without id; allocating a new one")
            biquad = Biquad()

        if self.filter_type is FilterType.CUSTOM:
            biquad.refresh_custom(self.filter_type, self.c441, self.c48)
        else:
            biquad.refresh(self.filter_type, self.gain, self.frequency,
                           self.bandwidth_or_slope)
        return biquad