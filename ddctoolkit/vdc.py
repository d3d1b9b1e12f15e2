"""Classic VDC coefficient files: parsing, analysis and conversion to projects."""

from __future__ import annotations

import argparse
import math
import re
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from .biquad import DBL_EPSILON

TEST_LENGTH = 32768
_TWO_PI = 6.2831853071795862
_HALF_LN2 = 0.34657359027997264
_MAX_BANDWIDTH = 98.8

_NUMBER = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


@dataclass
class DirectForm2:
    """Second-order section ``(b0 + b1 z^-1 + b2 z^-2) / (1 + a1 z^-1 + a2 z^-2)``."""

    b0: float = 0.0
    b1: float = 0.0
    b2: float = 0.0
    a1: float = 0.0
    a2: float = 0.0
    v1_left: float = 0.0
    v2_left: float = 0.0
    v1_right: float = 0.0
    v2_right: float = 0.0

    def process(self, sample: float) -> float:
        """Filter one sample through the left-channel state."""
        w = sample - self.a1 * self.v1_left - self.a2 * self.v2_left
        y = self.b0 * w + self.b1 * self.v1_left + self.b2 * self.v2_left
        self.v2_left = self.v1_left
        self.v1_left = w
        return y

    def process_stereo(self, left: float, right: float) -> tuple[float, float]:
        """Filter one sample pair, each channel with its own state."""
        y_left = self.process(left)
        w = right - self.a1 * self.v1_right - self.a2 * self.v2_right
        y_right = self.b0 * w + self.b1 * self.v1_right + self.b2 * self.v2_right
        self.v2_right = self.v1_right
        self.v1_right = w
        return y_left, y_right


def parse_vdc(text: str) -> tuple[list[DirectForm2], list[DirectForm2]]:
    """Read the 44.1 kHz and 48 kHz section lists from VDC file text."""
    start44 = text.find("SR_44100")
    start48 = text.find("SR_48000")
    if start44 < 0 or start48 < 0:
        raise ValueError("VDC text lacks an SR_44100 or SR_48000 block")

    number_count = text.count(",", start48) + 1
    section_count = number_count // 5

    def read(start: int) -> list[DirectForm2]:
        values: list[float] = []
        for match in _NUMBER.finditer(text, start + 9):
            values.append(float(match.group()))
            if len(values) == number_count:
                break
        if len(values) < number_count:
            raise ValueError(f"expected {number_count} numbers, found {len(values)}")
        chunks = zip(*[iter(values[: section_count * 5])] * 5)
        return [DirectForm2(b0=b0, b1=b1, b2=b2, a1=-a1, a2=-a2)
                for b0, b1, b2, a1, a2 in chunks]

    return read(start44), read(start48)


def _unit_circle(points: int) -> tuple[np.ndarray, np.ndarray]:
    arg = np.pi * np.arange(points, dtype=np.float64) / float(points)
    z1 = np.cos(arg) - 1j * np.sin(arg)
    return z1, z1 * z1


def complex_response(sections: Sequence[DirectForm2], points: int) -> np.ndarray:
    """Cascade response at ``points`` frequencies spanning 0 to Nyquist."""
    z1, z2 = _unit_circle(points)
    h = np.ones(points, dtype=np.complex128)
    for s in sections:
        h = h * (s.b0 + s.b1 * z1 + s.b2 * z2)
        denominator = 1.0 + s.a1 * z1 + s.a2 * z2
        tiny = np.abs(denominator) < DBL_EPSILON
        h = np.where(tiny, 0.0, h / np.where(tiny, 1.0, denominator))
    return h


def magnitude_response_db(section: DirectForm2, points: int) -> np.ndarray:
    """Magnitude of one section in dB; 0 where the denominator vanishes."""
    z1, z2 = _unit_circle(points)
    numerator = section.b0 + section.b1 * z1 + section.b2 * z2
    denominator = 1.0 + section.a1 * z1 + section.a2 * z2
    tiny = np.abs(denominator) < DBL_EPSILON
    h = numerator / np.where(tiny, 1.0, denominator)
    with np.errstate(divide="ignore"):
        magnitude = 20.0 * np.log10(np.abs(h))
    return np.where(tiny, 0.0, magnitude)


def unwrap(angle: float) -> float:
    """Wrap an angle in radians into [-pi, pi]."""
    offset = 0.0
    dp = angle
    while dp > math.pi:
        offset -= 2.0 * math.pi
        dp -= 2.0 * math.pi
    while dp < -math.pi:
        offset += 2.0 * math.pi
        dp += 2.0 * math.pi
    return angle + offset


def design_peaking_filter(gain_db: float, centre_freq: float, fs: float,
                          bandwidth: float) -> DirectForm2:
    """Peaking section with bandwidth in octaves; all zeros for invalid input."""
    if centre_freq <= DBL_EPSILON or fs <= DBL_EPSILON:
        return DirectForm2()
    lingain = 10.0 ** (gain_db / 40.0)
    omega = (_TWO_PI * centre_freq) / fs
    sn = math.sin(omega)
    cs = math.cos(omega)
    alpha = sn * math.sinh((math.log(2.0) / 2.0 * bandwidth * omega) / sn)
    a0 = 1.0 + alpha / lingain
    return DirectForm2(
        b0=(1.0 + alpha * lingain) / a0,
        b1=(-2.0 * cs) / a0,
        b2=(1.0 - alpha * lingain) / a0,
        a1=(-2.0 * cs) / a0,
        a2=(1.0 - alpha / lingain) / a0,
    )


def _estimate_peaking(section: DirectForm2, fs: float) -> tuple[float, float, float]:
    """Recover (gain dB, centre Hz, bandwidth) of a peaking section."""
    magnitude = magnitude_response_db(section, TEST_LENGTH)
    index = int(np.argmax(np.abs(magnitude)))
    centre = float(math.floor(index * (fs / TEST_LENGTH / 2.0) + 0.5))
    centre = max(centre, DBL_EPSILON)

    b1 = section.b1
    if abs(b1) < DBL_EPSILON:
        b1 = -DBL_EPSILON if b1 < 0.0 else DBL_EPSILON

    gain = float(magnitude[index])
    with np.errstate(all="ignore"):
        omega = np.float64(_TWO_PI * centre / fs)
        a0 = (-2.0 * np.cos(omega)) / np.float64(b1)
        lingain = np.power(10.0, gain / 40.0)
        sn = np.sin(omega)
        bandwidth = float(((np.arcsinh(((a0 - 1.0) * lingain) / sn) * sn) / omega) / _HALF_LN2)
    if bandwidth > _MAX_BANDWIDTH - DBL_EPSILON:
        bandwidth = _MAX_BANDWIDTH
    return gain, centre, bandwidth


def resample_peaking(sections: Sequence[DirectForm2], in_fs: float,
                     out_fs: float) -> list[DirectForm2]:
    """Redesign peaking sections for another sample rate.

    Sections whose centre frequency is not below ``out_fs`` are dropped.
    """
    estimates = [_estimate_peaking(s, in_fs) for s in sections]
    return [design_peaking_filter(gain, centre, out_fs, bandwidth)
            for gain, centre, bandwidth in estimates
            if centre < out_fs - DBL_EPSILON]


def vdc_to_vdcprj(sections: Sequence[DirectForm2], fs: float) -> str:
    """Project file text describing peaking sections as calibration points."""
    parts = ["# ViPER-DDC Project File, v1.0.0.0\n\n"]
    for number, section in enumerate(sections, start=1):
        gain, centre, bandwidth = _estimate_peaking(section, fs)
        parts.append(f"# Calibration Point {number}\n"
                     f"{int(centre)},{bandwidth:1.2f},{gain:1.2f}\n")
    parts.append("\n# File End\n")
    return "".join(parts)


def main(argv: Sequence[str] | None = None) -> int:
    """Print the 48 kHz sections of a VDC file and their project equivalent."""
    parser = argparse.ArgumentParser(
        prog="ddctoolkit-vdc",
        description="Convert a classic VDC file into project calibration points.")
    parser.add_argument("path", help="VDC file to read")
    args = parser.parse_args(argv)

    try:
        text = Path(args.path).read_bytes().decode("latin-1")
    except OSError:
        print("Read fail")
        return 1
    try:
        _, sections48 = parse_vdc(text)
    except ValueError as exc:
        print(f"Parse fail: {exc}", file=sys.stderr)
        return 1

    print("48k DDC SOS Matrix:")
    for s in sections48:
        print(f"{s.b0:.17g} {s.b1:.17g} {s.b2:.17g} 1.0 {s.a1:.17g} {s.a2:.17g}")
    print("---SOS print end---")
    print("---Print vdcprj---\n")
    sys.stdout.write(vdc_to_vdcprj(sections48, 48000.0))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())