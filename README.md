# ddctoolkit

Tools for designing and inspecting banks of second-order IIR (biquad)
filters, of the kind used for DDC headphone equalisation.

## What is in the package

- `ddctoolkit.filter_type`: `FilterType` is an enum of the section
  kinds: peaking, low/high pass, two band-pass variants, notch, all pass,
  low/high shelf, unity gain, one-pole low/high pass, and custom.
  `FilterType.from_name()` and `display_name()` convert to and from the
  names shown in tables. `specs()` and `requires()` report which
  parameters a type uses, as `SpecFlag` values. `selectable_types()`
  lists every type except `INVALID`.
- `ddctoolkit.biquad` provides `Biquad`, a single filter section.
  - `refresh()` designs it from its type, gain, frequency and
    bandwidth/slope. `refresh_custom()` uses raw `CustomFilter`
    coefficients for 44.1 kHz and 48 kHz instead.
  - `export_coeffs()` returns `[b0, b1, b2, -a1, -a2]` normalised by
    `a0`. With `no_a0_divide=True` it returns the raw
    `[b0, b1, b2, a0, a1, a2]`.
  - `gain_at()`, `phase_response_at()` and `group_delay_at()` give the
    response in dB, degrees and milliseconds.
  - The `stability` property reports a `Stability` value.
  - Ids come from a shared allocator, which `reset_ids()` restarts.
  - Sort keys for each column are `frequency_sort_key`,
    `bandwidth_sort_key`, `gain_sort_key` and `type_sort_key`.
- `ddctoolkit.deflated` provides `DeflatedBiquad`, a plain snapshot of a
  filter's parameters. `from_biquad()` takes a snapshot, and `inflate()`
  builds a live filter from one.
- `ddctoolkit.filter_model` provides `FilterModel`, an ordered bank of
  filters.
  - Cells are read with `value()` and edited with `set_value()`, using
    the columns in `Column`. `set_value()` raises `ValueError` for a
    frequency outside 0–24000, a bandwidth outside 0–100 or a gain
    outside −40–40.
  - Filters are added and removed with `append()`, `append_all()`,
    `append_all_deflated()`, `remove()`, `remove_by_id()`,
    `remove_all_by_id()` and `clear()`. Appending re-sorts the bank by
    frequency.
  - `replace()` and `replace_by_id()` redesign a filter from a snapshot.
  - `magnitude_response_table()`, `phase_response_table()` and
    `group_delay_table()` return summed responses as numpy `float32`
    arrays.
  - `export_coeffs()` concatenates the coefficients of all filters.
  - `subscribe()` registers a callback for change notifications.
- `ddctoolkit.commands` holds the undoable edits `AddCommand`,
  `EditCommand`, `InvertCommand`, `RemoveCommand` and `ShiftCommand`.
  `UndoStack` is a bounded history for them; its default limit is 100,
  and 0 means unbounded.
- `ddctoolkit.vdc` handles classic `.vdc` coefficient files.
  - `parse_vdc()` reads the 44.1 kHz and 48 kHz section lists as
    `DirectForm2` sections. These can also filter samples with
    `process()` and `process_stereo()`.
  - `complex_response()` and `magnitude_response_db()` compute
    responses.
  - `design_peaking_filter()` designs a peaking section.
  - `resample_peaking()` re-estimates peaking sections and redesigns
    them for another sample rate.
  - `vdc_to_vdcprj()` writes the sections as project calibration points.
  - `unwrap()` wraps an angle into [−π, π].

## Installation

```
pip install .
```

With the test dependencies:

```
pip install .[test]
```

## Usage

```python
from ddctoolkit.biquad import Biquad
from ddctoolkit.filter_type import FilterType
from ddctoolkit.filter_model import FilterModel
from ddctoolkit.commands import AddCommand, UndoStack

peak = Biquad()
peak.refresh(FilterType.PEAKING, -4.56, 1240, 1.45)   # gain, frequency, bandwidth
print(peak.export_coeffs(44100))
print(peak.gain_at(1240, 48000))

model = FilterModel()
stack = UndoStack(100)
stack.push(AddCommand(model, peak))
print(len(model), model.export_coeffs(48000))
stack.undo()
print(len(model))   # 0
```

### Converting a VDC file

```python
from pathlib import Path
from ddctoolkit.vdc import parse_vdc, vdc_to_vdcprj

sections_441, sections_48 = parse_vdc(Path("headphone.vdc").read_text())
print(vdc_to_vdcprj(sections_48, 48000.0))
```

The same conversion is available from the command line:

```
vdc2vdcprj headphone.vdc
```

The command prints the file's 48 kHz second-order-section matrix,
followed by the project text. It exits with status 1 if the file cannot
be read or parsed.

## What the package does not do

- It has no graphical editor and no plotting.
- It does not load or save project (`.vdcprj`) files. `vdc_to_vdcprj()`
  only produces the text.
- It has no writers for VDC, Equalizer APO or CSV files. Coefficients
  are returned as lists from `export_coeffs()`.
- It does not fit curves or download measurements.

## Running the tests

```
pytest
```