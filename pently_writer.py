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

# Pently score output: patterns, songs, instruments, sound effects and drums
from ft_text import *
from envelopes import volume_envelope, arpeggio_values, macro_words
from auto_drums import noise_note_drum, sound_effect, SFX_CHANNEL_NAMES

ROWS_PER_MEASURE = 16
ROWS_PER_BEAT    = 4

SCORE_HEADER = ["durations stick", "notenames english"]

# Note lengths by number of rows, using "w" to extend
DURATIONS = {
	1:  "16",
	2:  "8",
	3:  "8 w16",
	4:  "4",
	5:  "4 w16",
	6:  "4 w8",
	7:  "4 w8 w16",
	8:  "2",
	9:  "2 w16",
	10: "2 w8",
	11: "2 w8 w16",
	12: "2 w4",
	13: "2 w4 w16",
	14: "2 w4 w8",
	15: "2 w4 w8 w16",
	16: "1",
}
DOTTED_DURATIONS = dict(DURATIONS)
DOTTED_DURATIONS.update({
	3:  "8.",
	6:  "4.",
	7:  "4..",
	11: "2 w8.",
	12: "2.",
	13: "2. w16",
	14: "2..",
	15: "2.. w16",
})

VOLUME_TOKENS = {VOLUME_QUARTER: "pp", VOLUME_HALF: "mp", VOLUME_THREE_QUARTERS: "mf", VOLUME_FULL: "ff"}

TRACKS = ["pulse1", "pulse2", "triangle", "drum"]
DRUM_TRACK = 3

def duration_tokens(rows, dotted=False):
	whole, part = divmod(rows, ROWS_PER_MEASURE)
	if part == 0:
		part = ROWS_PER_MEASURE
		whole -= 1
	table = DOTTED_DURATIONS if dotted else DURATIONS
	return table[part].split() + ["w1"] * whole

def note_text(pitch, rows, dotted=False, slur=False):
	""" A pitch, drum, rest or wait with its length attached """
	tokens = duration_tokens(rows, dotted)
	tokens[0] = pitch + tokens[0]
	if slur:
		tokens[-1] += "~"
	return " ".join(tokens)

def format_time(rows):
	measure, rows = divmod(rows, ROWS_PER_MEASURE)
	beat, row = divmod(rows, ROWS_PER_BEAT)
	if beat or row:
		return "%d:%d:%d" % (measure+1, beat+1, row+1)
	return "%d" % (measure+1)

def format_tempo(speed, tempo):
	return "%.2f" % (6.0 * tempo / speed)

def vibrato_token(param):
	depth = param & 15
	if depth == 0:
		return "MP0"
	return "MP%d" % (depth // 4 + 1)

def write_lines(out, lines):
	out.write("\n".join(lines) + "\n")

# -------------------------------------------------------------------
# Patterns

def pattern_label(song, pattern):
	return "pat_%d_%d_%d" % (song.number, pattern.channel, pattern.id)

def pattern_instrument(pattern):
	for note in pattern.rows[:pattern.length]:
		if note.is_pitch and note.instrument is not None:
			return note.instrument
	return None

def starts_run(note):
	""" True if a row needs its own token instead of extending the note before it """
	if note.note is not None or note.volume is not None or note.delay_cut:
		return True
	return any(effect in (FX_ARP, FX_VIBRATO, FX_DELAY) for effect, _ in note.effects)

def drum_token(ctx, note, channel, where):
	if channel == Channel.NOISE:
		name = noise_note_drum(ctx, note)
		if name is None:
			ctx.warn("No drum for noise note %X at %s" % (note.semitone, where))
	else:
		name = ctx.dpcm_drums.get((note.note, note.octave))
		if name is None:
			ctx.warn("No drum for DPCM note %s%s%d at %s" % (note.note.upper(), "#" if note.note.isupper() else "-", note.octave, where))
	return name or "r"

def pattern_lines(ctx, song, pattern):
	channel = pattern.channel
	pitched = channel in PITCHED_CHANNELS
	dotted = ctx.options.dotted
	rows = pattern.rows
	label = pattern_label(song, pattern)

	def where(row):
		return "pattern %.2X %s row %s" % (pattern.id, CHANNEL_NAMES[channel], ctx.row_label(row))

	# Every sounding note needs an instrument, except on DPCM where the drum is picked by the note
	if channel != Channel.DPCM:
		for row, note in enumerate(rows[:pattern.length]):
			if note.is_pitch and note.instrument is None:
				ctx.error("Note at %s has no instrument" % where(row))

	instrument = None
	if pitched:
		instrument = pattern_instrument(pattern)
		lines = ["  pattern %s with %s on %s" % (label, ctx.instruments[instrument].name, TRACK_NAMES[channel]), "    absolute"]
	else:
		lines = ["  pattern %s" % label]

	tokens = []
	row = 0
	while row < pattern.length:
		note = rows[row]
		next_row = row + 1
		while next_row < pattern.length and not starts_run(rows[next_row]):
			next_row += 1
		duration = next_row - row

		if pitched and note.is_pitch and note.instrument != instrument:
			instrument = note.instrument
			tokens.append("@%s" % ctx.instruments[instrument].name)
		if pitched and note.volume is not None:
			tokens.append(VOLUME_TOKENS[note.volume])
		for effect, param in note.effects:
			if pitched and effect == FX_ARP:
				tokens.append("EN%.2x" % param)
			elif pitched and effect == FX_VIBRATO:
				tokens.append(vibrato_token(param))
			elif effect == FX_DELAY and param:
				tokens.append("r%dg" % param)

		if note.is_pitch:
			pitch = pently_pitch(note.note, note.octave) if pitched else drum_token(ctx, note, channel, where(row))
		elif note.note == NOTE_CUT or row == 0:
			pitch = "r"
		else: # Empty rows and held notes keep the previous note going
			pitch = "w"

		if note.delay_cut and (note.is_pitch or note.note == NOTE_HOLD):
			tokens.append("%s%dg" % (pitch, note.delay_cut))
			tokens.append(note_text("r", duration, dotted))
		else:
			tokens.append(note_text(pitch, duration, dotted, note.slur and note.is_pitch))
		row = next_row

	lines.append("    " + " ".join(tokens))
	return lines

# -------------------------------------------------------------------
# Songs

def frame_patterns(song, frame):
	return [song.patterns.get((pattern_id, channel)) for channel, pattern_id in enumerate(frame)]

def frame_length(song, patterns):
	return min(pattern.length if pattern is not None else song.rows for pattern in patterns)

def track_patterns(ctx, song, patterns, written):
	""" The pattern each track plays during a frame, or None """
	active = [pattern if pattern is not None and (pattern.id, pattern.channel) in written else None for pattern in patterns]
	tracks = active[:DRUM_TRACK]
	noise, dpcm = active[Channel.NOISE], active[Channel.DPCM]
	if noise is not None and dpcm is not None:
		ctx.warn("Song %s plays noise pattern %.2X and DPCM pattern %.2X at once, using the noise one" % (song.name, noise.id, dpcm.id))
	tracks.append(noise if noise is not None else dpcm)
	return tracks

def conductor_lines(ctx, song, written):
	loop_to = song.loop_to
	if loop_to is not None and song.frame_count and loop_to >= song.frame_count:
		ctx.warn("Song %s loops to frame %.2X, past its last frame" % (song.name, loop_to))
		loop_to = 0

	events = [] # (time in rows, conductor command)
	playing = [None] * len(TRACKS)  # Pattern playing on each track
	finished = [True] * len(TRACKS) # Whether that pattern got to its end last frame
	speed, tempo = song.speed, song.tempo
	time = 0
	for frame_index, frame in enumerate(song.frames):
		patterns = frame_patterns(song, frame)
		length = frame_length(song, patterns)
		at_segno = bool(loop_to) and frame_index == loop_to
		if at_segno:
			events.append((time, "segno"))

		for track, pattern in enumerate(track_patterns(ctx, song, patterns, written)):
			if pattern is None:
				if playing[track] is not None:
					events.append((time, "stop %s" % TRACKS[track]))
					playing[track] = None
				continue
			if playing[track] is not pattern or not finished[track] or at_segno:
				events.append((time, "play %s" % pattern_label(song, pattern)))
				playing[track] = pattern
			finished[track] = length >= pattern.length

		# Tempo changes and attack switches at the row they happen on
		for row in range(length):
			tempo_changed = False
			attacks = []
			for channel, pattern in enumerate(patterns):
				if pattern is None:
					continue
				for effect, param in pattern.rows[row].effects:
					if effect == FX_TEMPO and param:
						if param < 0x20:
							speed = param
						else:
							tempo = param
						tempo_changed = True
					elif effect == FX_ATTACK_ON and channel in PITCHED_CHANNELS:
						attacks.append("attack on %s" % TRACK_NAMES[channel])
			if tempo_changed:
				events.append((time + row, "tempo %s" % format_tempo(speed, tempo)))
			for attack in attacks:
				events.append((time + row, attack))
		time += length

	events.append((time, "dal segno" if loop_to is not None else "fine"))

	lines = []
	last_time = None
	for event_time, command in events:
		if event_time != last_time:
			lines.append("  at %s" % format_time(event_time))
			last_time = event_time
		lines.append("  " + command)
	return lines

def song_lines(ctx, song):
	lines = [
		"song %s" % song.identifier,
		"  time 4/4",
		"  scale 16",
		"  tempo %s" % format_tempo(song.speed, song.tempo),
	]

	written = set()
	noise_skipped = False
	for key in sorted(song.patterns, key=lambda _:(_[1], _[0])):
		pattern = song.patterns[key]
		if not pattern.update_used():
			continue
		if pattern.channel == Channel.NOISE and ctx.auto_drum_mode is None:
			if not noise_skipped:
				ctx.warn("Song %s uses the noise channel, which needs --auto-noise or --dual-drums" % song.name)
				noise_skipped = True
			continue
		lines.append("")
		lines.extend(pattern_lines(ctx, song, pattern))
		written.add(key)

	lines.append("")
	lines.extend(conductor_lines(ctx, song, written))
	return lines

def write_song(ctx, song):
	write_lines(ctx.out, [""] + song_lines(ctx, song))

# -------------------------------------------------------------------
# Instruments, sound effects and drums

def instrument_lines(ctx, instrument):
	lines = ["instrument %s" % instrument.name]
	volume, decay = volume_envelope(ctx, instrument)
	if volume is not None and volume.sequence:
		lines.append("  volume %s" % macro_words(volume.sequence, volume.loop))
	if decay is not None:
		lines.append("  decay %d" % decay)

	duty = ctx.instrument_macro(instrument, MacroType.DUTY)
	if duty is not None and duty.sequence:
		lines.append("  timbre %s" % macro_words([value & 3 for value in duty.sequence], duty.loop))

	arpeggio = ctx.instrument_macro(instrument, MacroType.ARPEGGIO)
	if arpeggio is not None and arpeggio.sequence:
		if arpeggio.mode == ArpeggioMode.FIXED:
			ctx.warn("Instrument %s uses a fixed arpeggio, which is written as a relative one" % instrument.name)
		lines.append("  pitch %s" % macro_words(arpeggio_values(arpeggio), arpeggio.loop))
	return lines

def sound_effect_lines(sfx):
	lines = ["sfx %s on %s" % (sfx.name, SFX_CHANNEL_NAMES[sfx.channel])]
	if sfx.volume:
		lines.append("  volume %s" % " ".join(str(_) for _ in sfx.volume))
	if sfx.timbre:
		lines.append("  timbre %s" % " ".join(str(_) for _ in sfx.timbre))
	if sfx.pitch:
		lines.append("  pitch %s" % " ".join(sfx.pitch))
	return lines

def drum_lines(drum):
	return ["drum %s %s" % (drum.name, " ".join(drum.sfx_names))]

def declared_sound_effects(ctx):
	out = []
	for declared in ctx.sound_effects:
		instrument = ctx.instruments.get(declared.instrument)
		if instrument is None:
			ctx.warn("Sound effect %s uses instrument %.2X, which isn't defined" % (declared.name, declared.instrument))
			continue
		out.append(sound_effect(ctx, instrument, declared.channel, declared.name, declared.base))
	return out

def write_footer(ctx, auto_sound_effects, auto_drums):
	""" Everything that goes after the songs """
	blocks = []
	for instrument_id in sorted(ctx.instruments):
		instrument = ctx.instruments[instrument_id]
		if instrument.used_on(PITCHED_CHANNELS):
			blocks.append(instrument_lines(ctx, instrument))
	for sfx in declared_sound_effects(ctx) + auto_sound_effects:
		blocks.append(sound_effect_lines(sfx))
	for drum in ctx.drums + auto_drums:
		blocks.append(drum_lines(drum))

	lines = []
	for block in blocks:
		lines.append("")
		lines.extend(block)
	if lines:
		write_lines(ctx.out, lines)
