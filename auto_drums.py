# ft2pently
#
# Copyright (c) 2025 NovaSquirrel
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

# Sound effects and drums made from instruments, either declared in comments
# or generated from what the noise channel plays
from ft_text import *
from envelopes import arpeggio_values

# Pently drum names can't end in a digit, so noise frequencies become letters
NOISE_FREQUENCY_LETTERS = "abcdefghijklmnop"
NOISE_FREQUENCIES = 16

SFX_CHANNEL_NAMES = {
	Channel.PULSE1:   "pulse",
	Channel.PULSE2:   "pulse",
	Channel.TRIANGLE: "triangle",
	Channel.NOISE:    "noise",
}

def noise_sfx_name(instrument, frequency):
	return "%s_sfx_%s" % (instrument.name, NOISE_FREQUENCY_LETTERS[frequency])

def noise_drum_name(instrument, frequency):
	return "%s_%s" % (instrument.name, NOISE_FREQUENCY_LETTERS[frequency])

def dual_noise_sfx_name(instrument):
	return "%s_n" % instrument.name

def dual_triangle_sfx_name(instrument):
	return "%s_t" % instrument.name

def dual_drum_name(pair_id):
	return "ddrum%d_" % pair_id

def drum_pair(ctx, note):
	""" (noise instrument, triangle instrument or None) for a noise note in
	dual drum mode. The triangle half comes from the note's last Hxx. """
	params = note.effect_params(FX_ATTACK_ON)
	triangle = params[-1] if params and params[-1] in ctx.instruments else None
	return (note.instrument, triangle)

def noise_note_drum(ctx, note):
	""" Name of the automatic drum a noise channel note plays, or None """
	if note.instrument is None:
		return None
	mode = ctx.auto_drum_mode
	if mode == "noise":
		return noise_drum_name(ctx.instruments[note.instrument], note.semitone % NOISE_FREQUENCIES)
	elif mode == "dual":
		pair = drum_pair(ctx, note)
		if pair in ctx.drum_pairs:
			return dual_drum_name(ctx.drum_pairs[pair])
	return None

def parse_sfx_base(text, channel):
	""" Base pitch for a declared sound effect: a hex frequency on noise, or a
	note like c3 or C3 (sharp) elsewhere. Returns None if it doesn't parse. """
	if channel == Channel.NOISE:
		try:
			value = int(text, 16)
		except ValueError:
			return None
		return value if value < NOISE_FREQUENCIES else None
	if len(text) != 2 or text[0] not in SCALE or not text[1].isdigit():
		return None
	return SCALE.index(text[0]) + int(text[1]) * NUM_SEMITONES

def sound_effect(ctx, instrument, channel, name, base=None):
	""" Build a sound effect from an instrument's envelopes.

	'base' is the noise frequency or semitone that a non-fixed arpeggio
	envelope is added to. The instrument's envelopes are only read; every
	list on the result is new.
	"""
	sfx = SoundEffect(instrument.id, channel, name)

	volume = ctx.instrument_macro(instrument, MacroType.VOLUME)
	if volume is not None:
		sfx.volume = list(volume.sequence)

	duty = ctx.instrument_macro(instrument, MacroType.DUTY)
	if duty is not None and channel != Channel.TRIANGLE:
		if channel == Channel.NOISE: # Only the lowest bit picks the noise mode
			sfx.timbre = [value & 1 for value in duty.sequence]
		else:
			sfx.timbre = [value & 3 for value in duty.sequence]

	arpeggio = ctx.instrument_macro(instrument, MacroType.ARPEGGIO)
	if channel == Channel.NOISE:
		if base is None:
			base = 0
		if arpeggio is None:
			pitches = [base]
		elif arpeggio.mode == ArpeggioMode.FIXED:
			pitches = [value % NOISE_FREQUENCIES for value in arpeggio.sequence]
		else:
			pitches = [(value + base) % NOISE_FREQUENCIES for value in arpeggio_values(arpeggio)]
		sfx.pitch = [str(_) for _ in pitches]
	else:
		if base is None:
			base = REFERENCE_OCTAVE * NUM_SEMITONES
		if arpeggio is None:
			semitones = [base]
		elif arpeggio.mode == ArpeggioMode.FIXED:
			semitones = list(arpeggio.sequence)
		else:
			semitones = [value + base for value in arpeggio_values(arpeggio)]
		sfx.pitch = [pently_pitch(*semitone_to_note(_)) for _ in semitones]
	return sfx

# -------------------------------------------------------------------

def check_auto_names(ctx, sound_effects, drums):
	taken_sfx = set(_.name for _ in ctx.sound_effects)
	taken_drums = set(_.name for _ in ctx.drums)
	for sfx in sound_effects:
		if sfx.name in taken_sfx:
			ctx.warn("Automatic sound effect %s has the same name as a declared one" % sfx.name)
	for drum in drums:
		if drum.name in taken_drums:
			ctx.warn("Automatic drum %s has the same name as a declared one" % drum.name)

def single_noise_drums(ctx):
	sound_effects = []
	drums = []
	for instrument_id, frequencies in ctx.noise_frequencies.items():
		instrument = ctx.instruments[instrument_id]
		for frequency in frequencies:
			sfx = sound_effect(ctx, instrument, Channel.NOISE, noise_sfx_name(instrument, frequency), frequency)
			sound_effects.append(sfx)
			drums.append(Drum(noise_drum_name(instrument, frequency), [sfx.name]))
	return sound_effects, drums

def dual_drums(ctx):
	noise_sfx = {}
	triangle_sfx = {}
	drums = []
	for (noise_id, triangle_id), pair_id in sorted(ctx.drum_pairs.items(), key=lambda _:_[1]):
		noise = ctx.instruments[noise_id]
		if noise_id not in noise_sfx:
			frequencies = ctx.noise_frequencies.get(noise_id) or [0]
			noise_sfx[noise_id] = sound_effect(ctx, noise, Channel.NOISE, dual_noise_sfx_name(noise), frequencies[0])
		names = [noise_sfx[noise_id].name]

		if triangle_id is not None:
			if triangle_id not in triangle_sfx:
				triangle = ctx.instruments[triangle_id]
				triangle_sfx[triangle_id] = sound_effect(ctx, triangle, Channel.TRIANGLE, dual_triangle_sfx_name(triangle))
			names.append(triangle_sfx[triangle_id].name)
		drums.append(Drum(dual_drum_name(pair_id), names))
	return list(noise_sfx.values()) + list(triangle_sfx.values()), drums

def synthesize_drums(ctx):
	""" Make the automatic sound effects and drums once all songs are read.
	Returns (sound effects, drums). """
	mode = ctx.auto_drum_mode
	if mode == "noise":
		sound_effects, drums = single_noise_drums(ctx)
	elif mode == "dual":
		sound_effects, drums = dual_drums(ctx)
	else:
		return [], []
	check_auto_names(ctx, sound_effects, drums)
	return sound_effects, drums
