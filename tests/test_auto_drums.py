import pytest
from ft_text import *
from envelopes import parse_macro
from auto_drums import *

EMPTY = "... .. . ..."

def noise_row(row, number, cell):
	return row(number, EMPTY, EMPTY, EMPTY, cell)

@pytest.fixture
def drum_context(context):
	def make(*flags):
		ctx = context(*flags)
		ctx.instruments[0] = Instrument(0, "snare", [None, 0, None, None, 0])
		ctx.instruments[1] = Instrument(1, "kick", [None] * MACRO_TYPE_COUNT)
		parse_macro(ctx, "1 0 -1 -1 2 : 0 1")
		parse_macro(ctx, "4 0 -1 -1 0 : 0 1 2 3")
		return ctx
	return make

def test_dual_drum_pairs_are_deduplicated(drum_context, song, feed, row):
	ctx, s = drum_context("--dual-drums"), song()
	feed(ctx, s,
		noise_row(row, 0, "3-# 00 . H01"),
		noise_row(row, 4, "5-# 00 . H01"),
		noise_row(row, 8, "3-# 00 . ..."),
		noise_row(row, 12, "3-# 00 . H01"),
	)
	assert ctx.drum_pairs == {(0, 1): 0, (0, None): 1}
	assert ctx.warnings == []

	rows = s.pattern(0, Channel.NOISE).rows
	assert noise_note_drum(ctx, rows[0]) == noise_note_drum(ctx, rows[12]) == "ddrum0_"
	assert noise_note_drum(ctx, rows[8]) == "ddrum1_"

	sound_effects, drums = synthesize_drums(ctx)
	assert [_.name for _ in sound_effects] == ["snare_n", "kick_t"]
	assert [(_.name, _.sfx_names) for _ in drums] == [("ddrum0_", ["snare_n", "kick_t"]), ("ddrum1_", ["snare_n"])]

def test_dual_drum_unknown_triangle_instrument(drum_context, song, feed, row):
	ctx, s = drum_context("--dual-drums"), song()
	feed(ctx, s, noise_row(row, 0, "3-# 00 . H09"))
	assert ctx.drum_pairs == {(0, None): 0}
	assert len(ctx.warnings) == 1

def test_single_noise_drums(drum_context, song, feed, row):
	ctx, s = drum_context("--auto-noise"), song()
	feed(ctx, s, noise_row(row, 0, "3-# 00 . ..."), noise_row(row, 4, "F-# 00 . ..."))
	assert noise_note_drum(ctx, s.pattern(0, Channel.NOISE).rows[4]) == "snare_p"

	sound_effects, drums = synthesize_drums(ctx)
	assert [_.name for _ in sound_effects] == ["snare_sfx_d", "snare_sfx_p"]
	assert [(_.name, _.sfx_names) for _ in drums] == [("snare_d", ["snare_sfx_d"]), ("snare_p", ["snare_sfx_p"])]

	# The relative arpeggio is added to each frequency, wrapping around
	assert sound_effects[0].pitch == ["3", "4"]
	assert sound_effects[1].pitch == ["15", "0"]
	assert sound_effects[0].timbre == [0, 1, 0, 1]

def test_synthesis_leaves_envelopes_alone(drum_context, song, feed, row):
	ctx, s = drum_context("--auto-noise"), song()
	feed(ctx, s, noise_row(row, 0, "3-# 00 . ..."), noise_row(row, 4, "9-# 00 . ..."))
	synthesize_drums(ctx)
	synthesize_drums(ctx)
	assert ctx.macros[MacroType.ARPEGGIO][0].sequence == [0, 1]
	assert ctx.macros[MacroType.DUTY][0].sequence == [0, 1, 2, 3]

def test_no_auto_drums_without_option(drum_context, song, feed, row):
	ctx, s = drum_context(), song()
	feed(ctx, s, noise_row(row, 0, "3-# 00 . ..."))
	assert synthesize_drums(ctx) == ([], [])
	assert noise_note_drum(ctx, s.pattern(0, Channel.NOISE).rows[0]) is None

def test_auto_name_clash_warns(drum_context, song, feed, row):
	ctx, s = drum_context("--auto-noise"), song()
	ctx.drums.append(Drum("snare_d", ["boom"]))
	feed(ctx, s, noise_row(row, 0, "3-# 00 . ..."))
	synthesize_drums(ctx)
	assert len(ctx.warnings) == 1

def test_triangle_sound_effect_with_fixed_arpeggio(context):
	ctx = context()
	parse_macro(ctx, "1 3 -1 -1 1 : 36 40")
	parse_macro(ctx, "0 3 -1 -1 0 : 15 15 0")
	instrument = Instrument(4, "bass", [3, 3, None, None, None])
	sfx = sound_effect(ctx, instrument, Channel.TRIANGLE, "bass_t")
	assert sfx.pitch == ["c'", "e'"]
	assert sfx.volume == [15, 15, 0]
	assert sfx.timbre is None

def test_pulse_sound_effect_from_base(context):
	ctx = context()
	instrument = Instrument(4, "blip", [None] * MACRO_TYPE_COUNT)
	sfx = sound_effect(ctx, instrument, Channel.PULSE1, "blip", parse_sfx_base("g4", Channel.PULSE1))
	assert sfx.pitch == ["g''"]
	assert sfx.volume is None

@pytest.mark.parametrize("text, channel, base", [
	("c3", Channel.TRIANGLE, 36),
	("C3", Channel.PULSE1, 37),
	("a", Channel.NOISE, 10),
	("x", Channel.NOISE, None),
	("h3", Channel.PULSE2, None),
])
def test_parse_sfx_base(text, channel, base):
	assert parse_sfx_base(text, channel) == base
