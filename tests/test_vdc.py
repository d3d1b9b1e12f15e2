import math

import numpy as np
import pytest

from ddctoolkit.vdc import (
    DirectForm2,
    complex_response,
    design_peaking_filter,
    magnitude_response_db,
    main,
    parse_vdc,
    resample_peaking,
    unwrap,
    vdc_to_vdcprj,
)


def _vdc_text(sections44, sections48):
    def block(sections):
        return ",".join(
            ",".join(repr(v) for v in (s.b0, s.b1, s.b2, -s.a1, -s.a2)) for s in sections
        )
    return f"SR_44100:{block(sections44)}\nSR_48000:{block(sections48)}\n"


def _close(a, b, tol=1e-12):
    return all(math.isclose(x, y, abs_tol=tol) for x, y in
               zip((a.b0, a.b1, a.b2, a.a1, a.a2), (b.b0, b.b1, b.b2, b.a1, b.a2)))


def test_process_identity_section():
    section = DirectForm2(b0=1.0)
    inputs = [0.25, -1.5, 3.0]
    assert [section.process(x) for x in inputs] == inputs


def test_process_recursive_ratio():
    section = DirectForm2(b0=1.0, a1=-0.5)
    outputs = [section.process(x) for x in (1.0, 0.0, 0.0, 0.0)]
    for current, following in zip(outputs, outputs[1:]):
        assert following == pytest.approx(current * 0.5)


def test_process_stereo_channels_independent():
    coeffs = dict(b0=0.3, b1=0.2, b2=0.1, a1=-0.4, a2=0.1)
    stereo = DirectForm2(**coeffs)
    mono_left = DirectForm2(**coeffs)
    mono_right = DirectForm2(**coeffs)
    for left, right in [(1.0, 0.0), (0.0, 2.0), (-1.0, 0.5)]:
        y_left, y_right = stereo.process_stereo(left, right)
        assert y_left == pytest.approx(mono_left.process(left))
        assert y_right == pytest.approx(mono_right.process(right))


def test_parse_vdc_round_trip():
    s44 = [design_peaking_filter(6.0, 1000.0, 44100.0, 1.0),
           design_peaking_filter(-3.0, 4000.0, 44100.0, 2.0)]
    s48 = [design_peaking_filter(6.0, 1000.0, 48000.0, 1.0),
           design_peaking_filter(-3.0, 4000.0, 48000.0, 2.0)]
    parsed44, parsed48 = parse_vdc(_vdc_text(s44, s48))
    assert len(parsed44) == 2 and len(parsed48) == 2
    assert all(_close(a, b, 0.0) for a, b in zip(parsed44, s44))
    assert all(_close(a, b, 0.0) for a, b in zip(parsed48, s48))


def test_parse_vdc_requires_markers():
    with pytest.raises(ValueError):
        parse_vdc("SR_44100:1,0,0,0,0\n")


def test_parse_vdc_too_few_numbers():
    with pytest.raises(ValueError):
        parse_vdc("SR_48000:1,0,0,0,0,1,0,0,0,0 SR_44100:1,2")


def test_complex_response_empty_cascade_is_unity():
    h = complex_response([], 16)
    assert np.allclose(h, 1.0)


def test_complex_response_matches_product_of_magnitudes():
    a = design_peaking_filter(6.0, 1000.0, 48000.0, 1.0)
    b = design_peaking_filter(-4.0, 3000.0, 48000.0, 0.5)
    cascade_db = 20.0 * np.log10(np.abs(complex_response([a, b], 256)))
    summed = magnitude_response_db(a, 256) + magnitude_response_db(b, 256)
    assert np.allclose(cascade_db, summed)


def test_magnitude_of_identity_is_zero_db():
    assert np.allclose(magnitude_response_db(DirectForm2(b0=1.0), 64), 0.0)


def test_peaking_filter_gain_at_centre():
    fs = 48000.0
    section = design_peaking_filter(6.0, 6000.0, fs, 1.0)
    # 6000 Hz is exactly index 8 of 32 points spanning 0..24000 Hz.
    assert magnitude_response_db(section, 32)[8] == pytest.approx(6.0)


@pytest.mark.parametrize("angle", [3 * math.pi, -3 * math.pi, 7.0, -7.0, 0.5])
def test_unwrap_range_and_equivalence(angle):
    wrapped = unwrap(angle)
    assert -math.pi <= wrapped <= math.pi
    turns = (angle - wrapped) / (2 * math.pi)
    assert turns == pytest.approx(round(turns))


def test_design_invalid_frequency_gives_zero_section():
    section = design_peaking_filter(6.0, 0.0, 48000.0, 1.0)
    assert (section.b0, section.b1, section.b2, section.a1, section.a2) == (0.0,) * 5


def test_vdcprj_recovers_parameters():
    section = design_peaking_filter(6.0, 1000.0, 48000.0, 1.0)
    text = vdc_to_vdcprj([section], 48000.0)
    lines = text.splitlines()
    assert lines[0] == "# ViPER-DDC Project File, v1.0.0.0"
    assert lines[2] == "# Calibration Point 1"
    freq, bandwidth, gain = lines[3].split(",")
    assert abs(int(freq) - 1000) <= 1
    assert float(bandwidth) == pytest.approx(1.0, abs=0.02)
    assert float(gain) == pytest.approx(6.0, abs=0.02)
    assert text.endswith("\n# File End\n")


def test_resample_keeps_and_drops_by_centre():
    low = design_peaking_filter(6.0, 1000.0, 96000.0, 1.0)
    high = design_peaking_filter(3.0, 30000.0, 96000.0, 1.0)
    resampled = resample_peaking([low, high], 96000.0, 20000.0)
    assert len(resampled) == 1
    expected = design_peaking_filter(6.0, 1000.0, 20000.0, 1.0)
    assert _close(resampled[0], expected, 1e-3)


def test_main_prints_matrix_and_project(tmp_path, capsys):
    s48 = [design_peaking_filter(6.0, 1000.0, 48000.0, 1.0)]
    s44 = [design_peaking_filter(6.0, 1000.0, 44100.0, 1.0)]
    path = tmp_path / "sample.vdc"
    path.write_text(_vdc_text(s44, s48))
    assert main([str(path)]) == 0
    out = capsys.readouterr().out
    assert out.startswith("48k DDC SOS Matrix:\n")
    assert "---SOS print end---" in out
    assert "# Calibration Point 1" in out
    assert out.endswith("# File End\n")


def test_main_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "absent.vdc")]) == 1
    assert capsys.readouterr().out == "Read fail\n"