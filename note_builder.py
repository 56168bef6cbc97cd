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

# Turns split row cells into Notes on a song's patterns
from enum import Enum
from ft_text import *
from auto_drums import drum_pair

class PatternEnd(Enum):
	NONE = 0
	LOOP = 1 # Bxx
	FINE = 2 # Cxx
	CUT  = 3 # Dxx

PATTERN_END_EFFECTS = {FX_LOOP: PatternEnd.LOOP, FX_FINE: PatternEnd.FINE, FX_PAT_CUT: PatternEnd.CUT}

def volume_level(value):
	if value <= 6:
		return VOLUME_QUARTER
	elif value <= 9:
		return VOLUME_HALF
	elif value <= 12:
		return VOLUME_THREE_QUARTERS
	return VOLUME_FULL

def parse_hex(text):
	try:
		return int(text, 16)
	except ValueError:
		return None

def end_pattern(song, pattern, row, kind, target=None):
	if kind == PatternEnd.NONE:
		return
	pattern.length = min(pattern.length, row + 1)
	if kind == PatternEnd.LOOP:
		song.loop_to = target
	elif kind == PatternEnd.FINE:
		song.loop_to = None

def record_noise_usage(ctx, note):
	""" Remember which instruments and frequencies the noise channel uses,
	for the automatic drums """
	if not note.is_pitch or note.instrument is None:
		return
	frequencies = ctx.noise_frequencies.setdefault(note.instrument, [])
	if note.semitone not in frequencies:
		frequencies.append(note.semitone)
	if ctx.auto_drum_mode == "dual":
		params = note.effect_params(FX_ATTACK_ON)
		if params and params[-1] not in ctx.instruments:
			ctx.warn("Dual drum triangle instrument %.2X out of range" % params[-1])
		pair = drum_pair(ctx, note)
		if pair not in ctx.drum_pairs:
			ctx.drum_pairs[pair] = len(ctx.drum_pairs)

def read_pitch(ctx, cell, channel):
	""" Returns (note, octave) from a cell's note field, or None if the
	note should be skipped """
	text = cell.note
	if text[0] == '.':
		return (None, 0)
	if text[0] == '-':
		return (NOTE_CUT, 0)
	if text[0] == '=':
		return (NOTE_CUT, 0) if channel in PITCHED_CHANNELS else (None, 0)
	if channel == Channel.NOISE:
		frequency = parse_hex(text[0])
		if frequency is None:
			ctx.warn("Invalid noise note %s" % text)
			return None
		return semitone_to_note(frequency)

	sharp = text[1] == '#'
	letter = text[0].upper() if sharp else text[0].lower()
	if letter not in SCALE:
		ctx.warn("Invalid note %s" % text)
		return None
	octave = parse_hex(text[2])
	if octave is None or octave >= NUM_OCTAVES:
		ctx.warn("Octave out of range in note %s" % text)
		return None
	return (letter, octave)

def read_cell(ctx, song, pattern, row, cell):
	channel = pattern.channel
	where = "pattern %.2X %s row %s" % (pattern.id, CHANNEL_NAMES[channel], ctx.row_label(row))

	# Skip if the note is already filled in
	if pattern.rows[row].note is not None:
		return

	pitch = read_pitch(ctx, cell, channel)
	if pitch is None:
		return
	note = Note(pitch[0], pitch[1])

	# Instrument
	if note.is_pitch:
		if cell.instrument[0] != '.':
			instrument_id = parse_hex(cell.instrument)
			if instrument_id is None or instrument_id not in ctx.instruments:
				ctx.warn("Instrument %s out of range at %s" % (cell.instrument, where))
				return
			instrument = ctx.instruments[instrument_id]
			if instrument.ignored_on(channel):
				return
			note.instrument = instrument_id
			instrument.used_channels |= 1 << channel
		else: # If it's not there, go back and find it
			previous = pattern.find_previous(row, lambda _:_.instrument is not None)
			if previous is not None:
				note.instrument = previous.instrument

	# Volume
	if cell.volume != '.' and channel in PITCHED_CHANNELS:
		value = parse_hex(cell.volume)
		if value is None:
			ctx.warn("Invalid volume %s at %s" % (cell.volume, where))
		else:
			level = volume_level(value)
			previous = pattern.find_previous(row, lambda _:_.volume is not None)
			if previous is None or previous.volume != level:
				note.volume = level

	# Effects
	for effect, param_text in cell.effects:
		if effect == '.':
			continue
		param = parse_hex(param_text)
		if param is None:
			ctx.warn("Invalid effect parameter %s%s at %s" % (effect, param_text, where))
			continue
		if effect not in SUPPORTED_EFFECTS:
			ctx.warn("Unsupported effect %s%s at %s" % (effect, param_text, where))
		note.effects.append((effect, param))

		if effect == FX_DELAYCUT:
			if param == 0 or CHANNEL_NAMES[channel] in (ctx.options.force_cut or []):
				note.note = NOTE_CUT
				note.delay_cut = 0
			else:
				note.delay_cut = param
				if note.note is None: # Delaying a cut on an empty row
					note.note = NOTE_HOLD
		elif effect == FX_SLUR:
			if param: # Set slur on previous note
				previous = pattern.find_previous(row, lambda _:_.note is not None)
				if previous is not None:
					previous.slur = True
		elif effect in (FX_SLUR_UP, FX_SLUR_DN):
			if note.is_pitch:
				note.slur = True
				offset = param & 15
				slur_into(ctx, pattern, row + 1, note.shifted(offset if effect == FX_SLUR_UP else -offset), where)
		elif effect in PATTERN_END_EFFECTS:
			end_pattern(song, pattern, row, PATTERN_END_EFFECTS[effect], param)
		elif effect == FX_ATTACK_ON:
			# Pitched channels take the attack, noise picks a dual drum
			if channel == Channel.DPCM or (channel == Channel.NOISE and ctx.auto_drum_mode != "dual"):
				ctx.warn("Effect H%.2X does nothing on %s at %s" % (param, CHANNEL_NAMES[channel], where))

	pattern.rows[row] = note
	if channel == Channel.NOISE:
		record_noise_usage(ctx, note)

def slur_into(ctx, pattern, row, target, where):
	if row >= len(pattern.rows) or pattern.rows[row].note is not None:
		return
	if pattern.channel == Channel.NOISE:
		in_range = 0 <= target.semitone <= 15
	else:
		in_range = 0 <= target.octave < NUM_OCTAVES
	if not in_range:
		ctx.warn("Slur target out of range at %s" % where)
		return
	pattern.rows[row] = target
	if pattern.channel == Channel.NOISE:
		record_noise_usage(ctx, target)

def read_row(ctx, song, split):
	if song.current_pattern is None:
		return
	row = parse_hex(split.row)
	if row is None or row >= song.rows or row >= MAX_ROWS:
		ctx.warn("Row %s out of range" % split.row)
		return
	if split.missing_channel is not None:
		ctx.warn("Row %s is missing channel %s" % (ctx.row_label(row), CHANNEL_NAMES[split.missing_channel]))

	for channel, cell in enumerate(split.cells):
		read_cell(ctx, song, song.pattern(song.current_pattern, channel), row, cell)
