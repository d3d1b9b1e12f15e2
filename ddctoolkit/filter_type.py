"""Filter types supported by the biquad designer and the parameters each one needs."""

from __future__ import annotations

from enum import IntEnum, IntFlag


class SpecFlag(IntFlag):
    """Parameters a filter type depends on."""

    NO_FLAG = 1 << 0
    REQUIRE_FREQ = 1 << 1
    REQUIRE_BW = 1 << 2
    REQUIRE_SLOPE = 1 << 3
    REQUIRE_GAIN = 1 << 4


class FilterType(IntEnum):
    """Kind of second-order section; the value is its ordinal."""

    PEAKING = 0x00
    LOW_PASS = 0x01
    HIGH_PASS = 0x02
    BAND_PASS1 = 0x03
    BAND_PASS2 = 0x04
    NOTCH = 0x05
    ALL_PASS = 0x06
    LOW_SHELF = 0x07
    HIGH_SHELF = 0x08
    UNITY_GAIN = 0x09
    ONEPOLE_LOWPASS = 0x0A
    ONEPOLE_HIGHPASS = 0x0B
    CUSTOM = 0x0C
    INVALID = 0xFF

    @classmethod
    def from_name(cls, name: str) -> "FilterType":
        """Return the type whose display name is ``name``, or INVALID."""
        for member, display in _DISPLAY_NAMES.items():
            if display == name:
                return member
        return cls.INVALID

    def display_name(self) -> str:
        """Human-readable name used in tables and project files."""
        return _DISPLAY_NAMES[self]

    def specs(self) -> SpecFlag:
        """Flags describing which parameters this type uses."""
        return SpecFlag.NO_FLAG | _EXTRA_SPECS.get(self, SpecFlag(0))

    def requires(self, flag: SpecFlag) -> bool:
        """True if every bit of ``flag`` is part of this type's specs."""
        return (self.specs() & flag) == flag

    def __str__(self) -> str:
        return self.display_name()


_DISPLAY_NAMES: dict[FilterType, str] = {
    FilterType.PEAKING: "Peaking",
    FilterType.LOW_PASS: "Low Pass",
    FilterType.HIGH_PASS: "High Pass",
    FilterType.BAND_PASS1: "Band Pass",
    FilterType.BAND_PASS2: "Band Pass (peak gain = bw)",
    FilterType.NOTCH: "Notch",
    FilterType.ALL_PASS: "All Pass",
    FilterType.LOW_SHELF: "Low Shelf",
    FilterType.HIGH_SHELF: "High Shelf",
    FilterType.UNITY_GAIN: "Unity Gain",
    FilterType.ONEPOLE_LOWPASS: "One-Pole Low Pass",
    FilterType.ONEPOLE_HIGHPASS: "One-Pole High Pass",
    FilterType.CUSTOM: "Custom",
    FilterType.INVALID: "Invalid",
}

_FREQ_BW = SpecFlag.REQUIRE_FREQ | SpecFlag.REQUIRE_BW

_EXTRA_SPECS: dict[FilterType, SpecFlag] = {
    FilterType.PEAKING: SpecFlag.REQUIRE_FREQ | SpecFlag.REQUIRE_BW | SpecFlag.REQUIRE_GAIN,
    FilterType.LOW_SHELF: SpecFlag.REQUIRE_FREQ | SpecFlag.REQUIRE_SLOPE | SpecFlag.REQUIRE_GAIN,
    FilterType.HIGH_SHELF: SpecFlag.REQUIRE_FREQ | SpecFlag.REQUIRE_SLOPE | SpecFlag.REQUIRE_GAIN,
    FilterType.UNITY_GAIN: SpecFlag.REQUIRE_GAIN,
    FilterType.ONEPOLE_LOWPASS: SpecFlag.REQUIRE_FREQ,
    FilterType.ONEPOLE_HIGHPASS: SpecFlag.REQUIRE_FREQ,
    FilterType.LOW_PASS: _FREQ_BW,
    FilterType.HIGH_PASS: _FREQ_BW,
    FilterType.BAND_PASS1: _FREQ_BW,
    FilterType.BAND_PASS2: _FREQ_BW,
    FilterType.NOTCH: _FREQ_BW,
    FilterType.ALL_PASS: _FREQ_BW,
}


def selectable_types() -> list[FilterType]:
    """All types a user may choose, in ordinal order (INVALID excluded)."""
    return [member for member in FilterType if member is not FilterType.INVALID]