import numpy as np
import pytest

from ddctoolkit.biquad import Biquad, CustomFilter
from ddctoolkit.deflated import DeflatedBiquad
from ddctoolkit.filter_model import (
    EVENT_DATA_CHANGED,
    EVENT_FILTER_EDITED,
    EVENT_RESET,
    Column,
    FilterModel,
)
from ddctoolkit.filter_type import FilterType


def make(kind, freq, bw, gain):
    biquad = Biquad()
    biquad.refresh(kind, gain, freq, bw)
    return biquad


@pytest.fixture
def events():
    return []


@pytest.fixture
def model(events):
    m = FilterModel()
    m.append(make(FilterType.PEAKING, 1000, 1.0, 3.0))
    m.append(make(FilterType.PEAKING, 100, 2.0, -2.0))
    m.append(make(FilterType.PEAKING, 500, 0.5, 6.0))
    m.subscribe(lambda *event: events.append(event))
    return m


def test_append_sorts_by_frequency(model):
    assert [f.frequency for f in model] == [100, 500, 1000]
    assert len(model) == 3


def test_filters_without_frequency_sort_last(model):
    model.append(make(FilterType.UNITY_GAIN, 50, 1.0, 2.0))
    assert model.filter_at(len(model) - 1).filter_type is FilterType.UNITY_GAIN


def test_sort_descending_and_by_gain(model, events):
    model.sort(Column.GAIN, descending=True)
    gains = [f.gain for f in model]
    assert gains == sorted(gains, reverse=True)
    assert events[-1] == (EVENT_RESET,)


def test_value_and_header(model):
    assert model.value(0, Column.TYPE) == "Peaking"
    assert model.value(0, Column.FREQ) == 100
    assert model.header(Column.FREQ) == "Frequency"
    assert model.header(Column.BW) == "Q Value"
    assert model.header(9) is None


def test_set_value_emits_edit(model, events):
    old_id = model.filter_at(1).id
    assert model.set_value(1, Column.GAIN, 4.5) is True
    assert model.filter_at(1).gain == 4.5
    kind, previous, current, row = events[0]
    assert kind == EVENT_FILTER_EDITED
    assert previous.gain == 6.0 and current.gain == 4.5
    assert previous.id == current.id == old_id
    assert row == 1
    assert events[1] == (EVENT_DATA_CHANGED, 1, 1)


def test_set_value_without_change_returns_false(model, events):
    assert model.set_value(0, Column.FREQ, 100) is False
    assert events == []


def test_set_value_type_by_name(model):
    assert model.set_value(0, Column.TYPE, "Notch") is True
    assert model.filter_at(0).filter_type is FilterType.NOTCH


@pytest.mark.parametrize("column, value", [
    (Column.FREQ, 24001),
    (Column.FREQ, -1),
    (Column.BW, 100.5),
    (Column.GAIN, -41),
])
def test_set_value_out_of_range(model, column, value):
    before = DeflatedBiquad.from_biquad(model.filter_at(0))
    with pytest.raises(ValueError, match="out of range"):
        model.set_value(0, column, value)
    assert DeflatedBiquad.from_biquad(model.filter_at(0)) == before


def test_invalid_index_raises(model):
    with pytest.raises(IndexError):
        model.value(5, Column.GAIN)
    with pytest.raises(IndexError):
        model.set_value(0, 4, 1.0)


def test_remove_by_id_and_all_by_id(model):
    ids = [f.id for f in model]
    assert model.remove_by_id(ids[0]) is True
    assert model.filter_by_id(ids[0]) is None
    assert model.remove_all_by_id(ids[1:]) is True
    assert len(model) == 0
    assert model.remove_all_by_id([ids[0]]) is False


def test_remove_identity(model):
    target = model.filter_at(2)
    assert model.remove(target) is True
    assert model.remove(target) is False
    assert target not in list(model)


def test_replace_by_id(model, events):
    biquad = model.filter_at(1)
    current = DeflatedBiquad(FilterType.NOTCH, 800, 1.5, 0.0, id=biquad.id)
    assert model.replace_by_id(biquad.id, current, stealth=True) == 1
    assert DeflatedBiquad.from_biquad(model.filter_at(1)) == current
    assert events == []
    assert model.replace_by_id(999999, current) is None


def test_replace_emits_unless_stealth(model, events):
    current = DeflatedBiquad.from_biquad(model.filter_at(0))
    current.gain = 1.0
    model.replace(0, current)
    assert events == [(EVENT_DATA_CHANGED, 0, 0)]
    assert model.filter_at(0).gain == 1.0


def test_append_all_deflated_keeps_ids():
    m = FilterModel()
    snapshots = [DeflatedBiquad(FilterType.PEAKING, 2000, 1.0, 1.0, id=501),
                 DeflatedBiquad(FilterType.LOW_PASS, 300, 0.7, 0.0, id=502)]
    m.append_all_deflated(snapshots)
    assert [f.id for f in m] == [502, 501]


def test_clear_emits_reset(model, events):
    model.clear()
    assert len(model) == 0
    assert events == [(EVENT_RESET,)]


def test_notify_external_change(model, events):
    prev = DeflatedBiquad.from_biquad(model.filter_at(0))
    model.notify_external_change(prev, prev, 0)
    assert events == [(EVENT_FILTER_EDITED, prev, prev, 0), (EVENT_DATA_CHANGED, 0, 0)]


def test_unsubscribe(model, events):
    m = FilterModel()
    seen = []
    unsubscribe = m.subscribe(lambda *event: seen.append(event))
    m.notify_changed(0, 2)
    unsubscribe()
    m.notify_changed(1, 1)
    assert seen == [(EVENT_DATA_CHANGED, 0, 2)]


def test_tooltip_for_custom_filter():
    m = FilterModel()
    custom = Biquad()
    custom.refresh_custom(FilterType.CUSTOM, CustomFilter(), CustomFilter())
    m.append(custom)
    m.append(make(FilterType.PEAKING, 100, 1.0, 1.0))
    row = m.row_of_id(custom.id)
    text = m.tooltip(row)
    assert text.startswith("<b>Coefficients (44100Hz)</b><br/>b0 = 1.0000000000000000<br/>")
    assert "<b>Coefficients (48000Hz)</b>" in text
    assert m.tooltip(1 - row) is None


def test_export_coeffs_concatenates(model):
    coeffs = model.export_coeffs(44100)
    assert len(coeffs) == 15
    assert coeffs[:5] == model.filter_at(0).export_coeffs(44100)


def test_export_skips_custom_at_unsupported_rate():
    m = FilterModel()
    custom = Biquad()
    custom.refresh_custom(FilterType.CUSTOM, CustomFilter(), CustomFilter())
    peak = make(FilterType.PEAKING, 100, 1.0, 1.0)
    m.append_all([custom, peak])
    assert m.export_coeffs(22050) == peak.export_coeffs(22050)
    assert len(m.export_coeffs(48000, True)) == 12


def test_response_tables_sum_filters():
    a = make(FilterType.PEAKING, 1000, 1.0, 6.0)
    b = make(FilterType.HIGH_SHELF, 5000, 0.7, -3.0)
    single_a, single_b, both = FilterModel(), FilterModel(), FilterModel()
    single_a.append(DeflatedBiquad.from_biquad(a).inflate())
    single_b.append(DeflatedBiquad.from_biquad(b).inflate())
    both.append_all([a, b])
    for name in ("magnitude_response_table", "phase_response_table", "group_delay_table"):
        ta = getattr(single_a, name)(64, 48000.0)
        tb = getattr(single_b, name)(64, 48000.0)
        tab = getattr(both, name)(64, 48000.0)
        assert tab.dtype == np.float32
        assert len(tab) == 64
        np.testing.assert_array_equal(tab, ta + tb)


def test_response_table_edge_cases(model):
    assert len(model.magnitude_response_table(0, 48000.0)) == 0
    empty = FilterModel()
    np.testing.assert_array_equal(empty.phase_response_table(8, 48000.0), np.zeros(8, np.float32))


def test_single_filter_table_matches_gain_at():
    m = FilterModel()
    peak = make(FilterType.PEAKING, 6000, 1.0, 6.0)
    m.append(peak)
    table = m.magnitude_response_table(4, 48000.0)
    assert table[0] == np.float32(peak.gain_at(6000.0, 48000.0))
    assert table[0] > table[3]