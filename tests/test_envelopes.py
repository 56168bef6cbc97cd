import pytest
from ft_text import *
from envelopes import *

FULL_RAMP = list(range(15, 0, -1)) + [0] # 15 14 ... 1 0

def test_decay_curve_fastest_from_top():
	assert decay_curve(15, 16) == FULL_RAMP

def test_decay_curve_appends_zero():
	# 48-13-13-13 leaves 9, which rounds to 1, then the next step goes negative
	assert decay_curve(2, 13) == [2, 1, 1, 0]

def test_find_decay_prefers_higher_level():
	# The end of this also matches level 2 at rate 16
	assert decay_curve(2, 16)[:-1] == FULL_RAMP[-3:-1]
	assert find_decay(FULL_RAMP) == (15, 16, 1)

def test_find_decay_prefers_lower_rate():
	assert decay_curve(2, 14) == decay_curve(2, 15) == [2, 1, 0]
	assert find_decay([2, 1, 0]) == (2, 14, 1)

def test_find_decay_keeps_sustain():
	assert find_decay([15, 15, 15] + FULL_RAMP) == (15, 16, 4)

def test_find_decay_needs_trailing_zero():
	assert find_decay([15, 14, 13]) is None
	assert find_decay([0]) is None

def test_detect_decay_skips_looping_envelope():
	macro = Macro(MacroType.VOLUME, 0, list(FULL_RAMP), loop=3)
	assert not detect_decay(macro)
	assert macro.decay_rate is None

def make_instrument(ctx, volume=None, arpeggio=None, duty=None):
	macro_ids = [None] * MACRO_TYPE_COUNT
	for macro_type, macro in ((MacroType.VOLUME, volume), (MacroType.ARPEGGIO, arpeggio), (MacroType.DUTY, duty)):
		if macro is not None:
			ctx.macros[macro_type][macro.id] = macro
			macro_ids[macro_type] = macro.id
	instrument = Instrument(1, "test", macro_ids)
	ctx.instruments[1] = instrument
	return instrument

def test_volume_envelope_truncates_copy(context):
	ctx = context("--decay")
	volume = parse_macro(ctx, "0 0 -1 -1 0 : %s" % " ".join(str(_) for _ in [15, 15] + FULL_RAMP))
	instrument = make_instrument(ctx, volume=volume)
	macro, rate = volume_envelope(ctx, instrument)
	assert rate == 16
	assert macro.sequence == [15, 15, 15]
	assert volume.sequence == [15, 15] + FULL_RAMP

def test_volume_envelope_without_decay_option(context):
	ctx = context()
	volume = parse_macro(ctx, "0 0 -1 -1 0 : %s" % " ".join(str(_) for _ in FULL_RAMP))
	instrument = make_instrument(ctx, volume=volume)
	assert volume.decay_rate is None
	assert volume_envelope(ctx, instrument) == (volume, None)

def test_long_arpeggio_blocks_decay(context):
	ctx = context("--decay")
	volume = parse_macro(ctx, "0 0 -1 -1 0 : %s" % " ".join(str(_) for _ in FULL_RAMP))
	arpeggio = Macro(MacroType.ARPEGGIO, 0, [0, 4, 7])
	instrument = make_instrument(ctx, volume=volume, arpeggio=arpeggio)
	assert volume_envelope(ctx, instrument) == (volume, None)

	# A looping arpeggio doesn't get in the way
	arpeggio.loop = 0
	macro, rate = volume_envelope(ctx, instrument)
	assert rate == 16
	assert macro.sequence == [15]

def test_parse_macro_loop_and_release(context):
	ctx = context()
	macro = parse_macro(ctx, "4 2 1 -1 0 : 0 1 2")
	assert ctx.macros[MacroType.DUTY][2] is macro
	assert macro.loop == 1
	assert macro.release is None
	assert macro.sequence == [0, 1, 2]

def test_parse_macro_loop_past_end(context):
	macro = parse_macro(context(), "0 0 7 -1 0 : 15 10")
	assert macro.loop is None

def test_parse_macro_arpeggio_modes(context):
	ctx = context()
	assert parse_macro(ctx, "1 0 -1 -1 2 : 0 3 -3").mode == ArpeggioMode.RELATIVE
	assert parse_macro(ctx, "1 1 -1 -1 1 : 36 40").mode == ArpeggioMode.FIXED
	assert parse_macro(ctx, "0 1 -1 -1 2 : 15").mode == ArpeggioMode.ABSOLUTE

def test_parse_macro_malformed(context):
	ctx = context()
	assert parse_macro(ctx, "0 0 -1 -1 0 15 14") is None
	assert parse_macro(ctx, "9 0 -1 -1 0 : 15") is None
	assert len(ctx.warnings) == 2

def test_parse_macro_too_long(context):
	with pytest.raises(ConversionError):
		parse_macro(context(), "0 0 -1 -1 0 : %s" % " ".join(["1"] * (MAX_MACRO_LEN + 1)))

def test_relative_arpeggio_is_summed():
	macro = Macro(MacroType.ARPEGGIO, 0, [0, 2, 2, -4], mode=ArpeggioMode.RELATIVE)
	assert arpeggio_values(macro) == [0, 2, 4, 0]
	assert macro.sequence == [0, 2, 2, -4]

def test_macro_words_loop_marker():
	assert macro_words([15, 10, 5], 1) == "15 | 10 5"
	assert macro_words([15, 10, 5]) == "15 10 5"
