import pytest
from ft_text import *

def test_split_row_fields():
	line = "ROW 00 : C-4 01 F 4A3 : ... .. . ... : ... .. . ... : 3-# 02 . ... : ... .. . ..."
	split = split_row(line, [1, 1, 1, 1, 1])
	assert split.row == "00"
	assert split.missing_channel is None
	assert len(split.cells) == 5
	assert split.cells[0] == RowCell("C-4", "01", "F", [("4", "A3")])
	assert split.cells[1] == RowCell("...", "..", ".", [(".", "..")])
	assert split.cells[3].note == "3-#"
	assert split.cells[3].instrument == "02"

def test_split_row_several_effect_columns():
	line = "ROW 1F : C-4 01 F 4A3 G02 : ... .. . ... : ... .. . ... : ... .. . ... : ... .. . ..."
	split = split_row(line, [2, 1, 1, 1, 1])
	assert split.row == "1F"
	assert split.cells[0].effects == [("4", "A3"), ("G", "02")]
	assert split.cells[1].effects == [(".", "..")]

def test_split_row_missing_channel():
	split = split_row("ROW 05 : C-4 01 F 4A3 : ... .. . ...", [1, 1, 1, 1, 1])
	assert split.missing_channel == Channel.TRIANGLE
	assert len(split.cells) == 2
	assert split.cells[0].note == "C-4"

def test_split_row_short_region_is_padded():
	split = split_row("ROW 00 : C-4 : ... .. . ... : ... .. . ... : ... .. . ... : ... .. . ...", [1, 1, 1, 1, 1])
	assert split.cells[0].note == "C-4"
	assert split.cells[0].instrument == "  "

def test_make_alphanumeric():
	assert make_alphanumeric("My Song-2") == "My_Song_2"
	assert make_alphanumeric("1up") == "_1up"
	assert make_alphanumeric("a!") == "a21"

@pytest.mark.parametrize("letter, octave, expected", [
	("d", 2, "d"),
	("C", 4, "c#''"),
	("a", 0, "a,,"),
	("f", 3, "f'"),
])
def test_pently_pitch(letter, octave, expected):
	assert pently_pitch(letter, octave) == expected

def test_note_shift_crosses_octaves():
	note = Note("b", 3, 1)
	up = note.shifted(1)
	assert (up.note, up.octave, up.instrument) == ("c", 4, 1)
	down = up.shifted(-1)
	assert (down.note, down.octave) == ("b", 3)
	assert Note(NOTE_CUT).shifted(1) is None

def test_pattern_find_previous():
	pattern = Pattern(0, Channel.PULSE1, 8)
	pattern.rows[1] = Note("c", 3, 0)
	pattern.rows[4] = Note("d", 3)
	assert pattern.find_previous(6, lambda _:_.is_pitch) is pattern.rows[4]
	assert pattern.find_previous(6, lambda _:_.instrument is not None) is pattern.rows[1]
	assert pattern.find_previous(1, lambda _:_.is_pitch) is None

def test_warn_records_and_strict_raises(context):
	ctx = context()
	ctx.line_number = 12
	ctx.warn("something odd")
	assert ctx.warnings == ["line 12: something odd"]

	strict = context("--strict")
	with pytest.raises(ConversionError):
		strict.warn("something odd")

def test_unique_name_adds_suffix(context):
	ctx = context()
	used = set()
	assert ctx.unique_name("Lead", used, "instrument") == "Lead"
	assert ctx.unique_name("Lead", used, "instrument") == "Lead_2"
	assert ctx.unique_name("Lead", used, "instrument") == "Lead_3"
	assert len(ctx.warnings) == 2

def test_row_label(context):
	assert context().row_label(26) == "26"
	assert context("--hex-rows").row_label(26) == "1A"

def test_auto_drum_mode(context):
	assert context().auto_drum_mode is None
	assert context("--auto-noise").auto_drum_mode == "noise"
	assert context("--auto-noise", "--dual-drums").auto_drum_mode == "dual"
