"""Second-order IIR sections: coefficient design, stability and responses."""

from __future__ import annotations

import logging
import math
import sys
from dataclasses import dataclass
from enum import IntEnum

from .filter_type import FilterType, SpecFlag

_log = logging.getLogger(__name__)

DBL_EPSILON = sys.float_info.epsilon

FREQ_MIN = 0
FREQ_MAX = 24000
BW_MIN = 0
BW_MAX = 100
GAIN_MIN = -40
GAIN_MAX = 40

_INTERNAL_RATE = 48000.0


@dataclass(frozen=True)
class CustomFilter:
    """User-supplied raw coefficients of one section."""

    a0: float = 1.0
    a1: float = 0.0
    a2: float = 0.0
    b0: float = 1.0
    b1: float = 0.0
    b2: float = 0.0

    def to_list(self) -> list[float]:
        """Coefficients in export order: b0, b1, b2, a0, a1, a2."""
        return [self.b0, self.b1, self.b2, self.a0, self.a1, self.a2]


class Stability(IntEnum):
    UNSTABLE = 0
    STABLE = 1
    PARTIALLY_STABLE = 2
    UNKNOWN = 0xFF


class IdAllocator:
    """Hands out sequential, unique filter ids starting at 1."""

    def __init__(self, max_id: int = 0xFFFFFFFF) -> None:
        self.max_id = max_id
        self._next = 1

    def allocate(self) -> int:
        if self._next > self.max_id:
            raise RuntimeError("no filter ids left to allocate")
        new_id = self._next
        self._next += 1
        return new_id

    def reset(self) -> None:
        self._next = 1


_ids = IdAllocator()


def reset_ids() -> None:
    """Restart id numbering, e.g. when a project is closed."""
    _ids.reset()


def _normalised_custom(coeffs: CustomFilter, no_a0_divide: bool = False) -> list[float]:
    if no_a0_divide:
        return coeffs.to_list()
    a0 = coeffs.a0
    return [
        coeffs.b0 / a0,
        coeffs.b1 / a0,
        coeffs.b2 / a0,
        -coeffs.a1 / a0,
        -coeffs.a2 / a0,
    ]


class Biquad:
    """One filter section with its design parameters and 48 kHz coefficients."""

    def __init__(self, idless: bool = False) -> None:
        self.id = 0 if idless else _ids.allocate()
        self._coeffs: tuple[float, ...] = (0.0,) * 5
        self._bandwidth_or_slope = 1.0
        self._frequency = 10.0
        self._gain = 0.0
        self._filter_type = FilterType.INVALID
        self._stability = Stability.UNKNOWN
        self._is_custom = False
        self._custom441 = CustomFilter()
        self._custom48 = CustomFilter()

    # ---- read-only state -------------------------------------------------

    @property
    def filter_type(self) -> FilterType:
        return self._filter_type

    @property
    def frequency(self) -> float:
        return self._frequency

    @property
    def bandwidth_or_slope(self) -> float:
        return self._bandwidth_or_slope

    @property
    def gain(self) -> float:
        return self._gain

    @property
    def stability(self) -> Stability:
        return self._stability

    @property
    def is_custom(self) -> bool:
        return self._is_custom

    @property
    def coefficients(self) -> tuple[float, ...]:
        """Normalised 48 kHz coefficients: b0, b1, b2, -a1, -a2 (over a0)."""
        return self._coeffs

    # ---- design ----------------------------------------------------------

    def refresh(self, filter_type: FilterType, gain: float, frequency: float,
                bandwidth_or_slope: float) -> None:
        """Redesign the section from its parameters."""
        self._is_custom = False
        self._filter_type = FilterType(filter_type)
        self._gain = gain
        self._frequency = frequency
        self._bandwidth_or_slope = bandwidth_or_slope

        coeffs = self._design(_INTERNAL_RATE)
        if not coeffs:
            _log.warning("failed to calculate coefficients; using zeros")
            coeffs = [0.0] * 5
        self._coeffs = tuple(coeffs)
        self._stability = self._compute_stability()

    def refresh_custom(self, filter_type: FilterType, c441: CustomFilter,
                       c48: CustomFilter) -> None:
        """Use raw coefficients for 44.1 kHz and 48 kHz."""
        self._is_custom = True
        self._custom441 = c441
        self._custom48 = c48
        self._filter_type = FilterType(filter_type)
        self._coeffs = tuple(_normalised_custom(c48))
        self._stability = self._compute_stability()

    def _design(self, fs: float, no_a0_divide: bool = False) -> list[float]:
        freq = self._frequency
        if freq <= DBL_EPSILON or fs <= DBL_EPSILON:
            _log.warning("invalid frequency or sample rate")
            return []

        kind = self._filter_type
        if kind in (FilterType.PEAKING, FilterType.LOW_SHELF, FilterType.HIGH_SHELF):
            d = 10.0 ** (self._gain / 40.0)
        else:
            d = 10.0 ** (self._gain / 20.0)
        omega = (2.0 * math.pi * freq) / fs
        sn = math.sin(omega)
        cs = math.cos(omega)
        q = self._bandwidth_or_slope
        alpha = sn / (2.0 * q) if q != 0 else math.copysign(math.inf, sn)
        beta = 2 * math.sqrt(d) * alpha

        if kind is FilterType.LOW_PASS:
            b0, b1, b2 = (1.0 - cs) / 2.0, 1.0 - cs, (1.0 - cs) / 2.0
            a0, a1, a2 = 1.0 + alpha, -2.0 * cs, 1.0 - alpha
        elif kind is FilterType.HIGH_PASS:
            b0, b1, b2 = (1.0 + cs) / 2.0, -(1.0 + cs), (1.0 + cs) / 2.0
            a0, a1, a2 = 1.0 + alpha, -2.0 * cs, 1.0 - alpha
        elif kind is FilterType.BAND_PASS1:
            b0, b1, b2 = q * alpha, 0.0, -q * alpha
            a0, a1, a2 = 1.0 + alpha, -2.0 * cs, 1.0 - alpha
        elif kind is FilterType.BAND_PASS2:
            b0, b1, b2 = alpha, 0.0, -alpha
            a0, a1, a2 = 1.0 + alpha, -2.0 * cs, 1.0 - alpha
        elif kind is FilterType.NOTCH:
            b0, b1, b2 = 1.0, -2.0 * cs, 1.0
            a0, a1, a2 = 1.0 + alpha, -2.0 * cs, 1.0 - alpha
        elif kind is FilterType.ALL_PASS:
            b0, b1, b2 = 1.0 - alpha, -2.0 * cs, 1.0 + alpha
            a0, a1, a2 = 1.0 + alpha, -2.0 * cs, 1.0 - alpha
        elif kind is FilterType.PEAKING:
            b0, b1, b2 = 1.0 + alpha * d, -2.0 * cs, 1.0 - alpha * d
            a0, a1, a2 = 1.0 + alpha / d, -2.0 * cs, 1.0 - alpha / d
        elif kind is FilterType.LOW_SHELF:
            b0 = d * ((d + 1.0) - (d - 1.0) * cs + beta)
            b1 = 2.0 * d * ((d - 1.0) - (d + 1.0) * cs)
            b2 = d * ((d + 1.0) - (d - 1.0) * cs - beta)
            a0 = (d + 1.0) + (d - 1.0) * cs + beta
            a1 = -2.0 * ((d - 1.0) + (d + 1.0) * cs)
            a2 = (d + 1.0) + (d - 1.0) * cs - beta
        elif kind is FilterType.HIGH_SHELF:
            b0 = d * ((d + 1.0) + (d - 1.0) * cs + beta)
            b1 = -2.0 * d * ((d - 1.0) + (d + 1.0) * cs)
            b2 = d * ((d + 1.0) + (d - 1.0) * cs - beta)
            a0 = (d + 1.0) - (d - 1.0) * cs + beta
            a1 = 2.0 * ((d - 1.0) - (d + 1.0) * cs)
            a2 = (d + 1.0) - (d - 1.0) * cs - beta
        elif kind is FilterType.UNITY_GAIN:
            b0, b1, b2 = d, 0.0, 0.0
            a0, a1, a2 = 1.0, 0.0, 0.0
        elif kind is FilterType.ONEPOLE_LOWPASS:
            t = math.tan(math.pi * freq / fs * 0.5)
            a1 = -(1.0 - t) / (1.0 + t)
            b0 = b1 = t / (1.0 + t)
            b2 = 0.0
            a0, a2 = 1.0, 0.0
        elif kind is FilterType.ONEPOLE_HIGHPASS:
            t = math.tan(math.pi * freq / fs * 0.5)
            a1 = -(1.0 - t) / (1.0 + t)
            b0 = 1.0 - t / (1.0 + t)
            b1, b2 = -b0, 0.0
            a0, a2 = 1.0, 0.0
        else:
            _log.warning("cannot design coefficients for filter type %s", kind.name)
            return []

        if no_a0_divide:
            return [b0, b1, b2, a0, a1, a2]
        return [b0 / a0, b1 / a0, b2 / a0, -a1 / a0, -a2 / a0]

    def export_coeffs(self, sample_rate: float, no_a0_divide: bool = False) -> list[float]:
        """Coefficients for ``sample_rate``; empty if they cannot be produced."""
        if not self._is_custom:
            return self._design(sample_rate, no_a0_divide)
        if math.isclose(sample_rate, 44100, rel_tol=1e-12):
            return _normalised_custom(self._custom441, no_a0_divide)
        if math.isclose(sample_rate, 48000, rel_tol=1e-12):
            return _normalised_custom(self._custom48, no_a0_divide)
        _log.warning("custom filters only support 44100 Hz and 48000 Hz; nothing exported")
        return []

    def _compute_stability(self) -> Stability:
        b = -self._coeffs[3]
        c = -self._coeffs[4]
        delta = b * b - 4.0 * c
        if delta >= 0.0:
            root = math.sqrt(delta)
            mag1 = abs((-b - root) / 2.0)
            mag2 = abs((-b + root) / 2.0)
        else:
            real = -b / 2.0
            imag = math.sqrt(-delta) / 2.0
            mag1 = mag2 = math.sqrt(real * real + imag * imag)

        if mag1 < 1.0 and mag2 < 1.0:
            if 1.0 - mag1 < 8e-14 or 1.0 - mag2 < 8e-14:
                return Stability.PARTIALLY_STABLE
            return Stability.STABLE
        return Stability.UNSTABLE

    # ---- responses -------------------------------------------------------

    def _complex_response(self, frequency: float, fs: float) -> complex | None:
        arg = math.pi * frequency / (fs * 0.5)
        z1 = complex(math.cos(arg), -math.sin(arg))
        z2 = z1 * z1
        c0, c1, c2, c3, c4 = self._coeffs
        numerator = c0 + c1 * z1 + c2 * z2
        denominator = 1.0 - c3 * z1 - c4 * z2
        if abs(denominator) < DBL_EPSILON:
            return None
        return numerator / denominator

    def gain_at(self, frequency: float, fs: float) -> float:
        """Magnitude response in dB at ``frequency``."""
        h = self._complex_response(frequency, fs)
        if h is None:
            return 0.0
        return 20.0 * math.log10(math.sqrt(h.real * h.real + h.imag * h.imag + DBL_EPSILON))

    def phase_response_at(self, frequency: float, fs: float) -> float:
        """Phase response in degrees at ``frequency``."""
        h = self._complex_response(frequency, fs)
        if h is None:
            return 0.0
        return math.atan2(h.imag, h.real) * 180.0 / math.pi

    def group_delay_at(self, frequency: float, fs: float) -> float:
        """Group delay in milliseconds at ``frequency``."""
        arg = math.pi * frequency / (fs * 0.5)
        cw = math.cos(arg)
        cw2 = math.cos(2.0 * arg)
        sw = math.sin(arg)
        sw2 = math.sin(2.0 * arg)

        b1, b2, b3 = self._coeffs[0], self._coeffs[1], self._coeffs[2]
        u = b1 * sw2 + b2 * sw
        v = b1 * cw2 + b2 * cw + b3
        du = 2.0 * b1 * cw2 + b2 * cw
        dv = -(2.0 * b1 * sw2 + b2 * sw)
        u2v2 = (b1 * b1 + b2 * b2 + b3 * b3
                + 2.0 * (b1 * b2 + b2 * b3) * cw + 2.0 * (b1 * b3) * cw2)
        numerator_delay = 2.0 - (v * du - u * dv) / u2v2

        a1 = -self._coeffs[3]
        a2 = -self._coeffs[4]
        u = sw2 + a1 * sw
        v = cw2 + a1 * cw + a2
        du = 2.0 * cw2 + a1 * cw
        dv = -(2.0 * sw2 + a1 * sw)
        u2v2 = 1.0 + a1 * a1 + a2 * a2 + 2.0 * (a1 + a1 * a2) * cw + 2.0 * a2 * cw2
        samples = numerator_delay - (2.0 - (v * du - u * dv) / u2v2)
        return samples / (fs / 1000.0)

    # ---- convenience edits -----------------------------------------------

    def custom_filter(self, sample_rate: int) -> CustomFilter:
        """Raw coefficients stored for 44100 Hz, or for 48000 Hz otherwise."""
        return self._custom441 if sample_rate == 44100 else self._custom48

    def _refresh_keeping(self, filter_type: FilterType, gain: float, frequency: float,
                         bandwidth_or_slope: float) -> None:
        if filter_type is FilterType.CUSTOM:
            self.refresh_custom(filter_type, self._custom441, self._custom48)
        else:
            self.refresh(filter_type, gain, frequency, bandwidth_or_slope)

    def set_filter_type(self, filter_type: FilterType) -> None:
        self._refresh_keeping(FilterType(filter_type), self._gain, self._frequency,
                              self._bandwidth_or_slope)

    def set_frequency(self, frequency: float) -> None:
        self._refresh_keeping(self._filter_type, self._gain, int(frequency),
                              self._bandwidth_or_slope)

    def set_bandwidth_or_slope(self, bandwidth_or_slope: float) -> None:
        self._refresh_keeping(self._filter_type, self._gain, self._frequency,
                              bandwidth_or_slope)

    def set_gain(self, gain: float) -> None:
        self._refresh_keeping(self._filter_type, gain, self._frequency,
                              self._bandwidth_or_slope)

    def set_custom_filter(self, c441: CustomFilter, c48: CustomFilter) -> None:
        self.refresh_custom(self._filter_type, c441, c48)

    def __repr__(self) -> str:
        return (f"Biquad(id={self.id}, type={self._filter_type.name}, "
                f"freq={self._frequency}, bw={self._bandwidth_or_slope}, gain={self._gain})")


# Sort keys: filters that do not use the parameter sort after those that do.

def frequency_sort_key(biquad: Biquad) -> tuple[int, float]:
    if not biquad.filter_type.requires(SpecFlag.REQUIRE_FREQ):
        return (1, 0.0)
    return (0, biquad.frequency)


def bandwidth_sort_key(biquad: Biquad) -> tuple[int, float]:
    kind = biquad.filter_type
    if not (kind.requires(SpecFlag.REQUIRE_BW) or kind.requires(SpecFlag.REQUIRE_SLOPE)):
        return (1, 0.0)
    return (0, biquad.bandwidth_or_slope)


def gain_sort_key(biquad: Biquad) -> tuple[int, float]:
    if not biquad.filter_type.requires(SpecFlag.REQUIRE_GAIN):
        return (1, 0.0)
    return (0, biquad.gain)


def type_sort_key(biquad: Biquad) -> int:
    return int(biquad.filter_type)