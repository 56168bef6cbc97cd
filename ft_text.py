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

# Data model for FamiTracker text exports, plus the shared conversion state
import sys
from collections import namedtuple
from enum import IntEnum

MAX_EFFECTS     = 4
MAX_ROWS        = 256
MAX_FRAMES      = 128
MAX_PATTERNS    = 128
MAX_MACRO_LEN   = 254
NUM_OCTAVES     = 7
NUM_SEMITONES   = 12
REFERENCE_OCTAVE = 2 # Pently "absolute" octave that needs no ' or , marks

# Lowercase is natural, uppercase is sharp
SCALE = "cCdDefFgGaAb"

class Channel(IntEnum):
	PULSE1   = 0
	PULSE2   = 1
	TRIANGLE = 2
	NOISE    = 3
	DPCM     = 4
CHANNEL_COUNT = len(Channel)

CHANNEL_NAMES = ["pulse1", "pulse2", "triangle", "noise", "dpcm"]
TRACK_NAMES   = ["pulse1", "pulse2", "triangle", "drum", "drum"]
PITCHED_CHANNELS = (Channel.PULSE1, Channel.PULSE2, Channel.TRIANGLE)

class MacroType(IntEnum):
	VOLUME   = 0
	ARPEGGIO = 1
	PITCH    = 2
	HIPITCH  = 3
	DUTY     = 4
MACRO_TYPE_COUNT = len(MacroType)

class ArpeggioMode(IntEnum):
	ABSOLUTE = 0
	FIXED    = 1
	RELATIVE = 2

# Supported effects
FX_ARP       = '0' # arpeggio
FX_SLUR      = '3' # slur the previous note into this one if nonzero
FX_VIBRATO   = '4' # vibrato
FX_LOOP      = 'B' # jump to frame X
FX_FINE      = 'C' # stop song
FX_PAT_CUT   = 'D' # skip to next frame
FX_TEMPO     = 'F' # change tempo or speed
FX_DELAY     = 'G' # delay the note for X frames
FX_ATTACK_ON = 'H' # attack channel switch, or triangle half of a dual drum
FX_SLUR_UP   = 'Q' # note for one row, slur into pitch X semitones up
FX_SLUR_DN   = 'R' # note for one row, slur into pitch X semitones down
FX_DELAYCUT  = 'S' # grace note for X frames then rest
SUPPORTED_EFFECTS = "034BCDFGHQRS"

# Special values for Note.note besides letters from SCALE
NOTE_CUT  = '-' # note cut, or a release on a pitched channel
NOTE_HOLD = '~' # empty row that cuts the previous note after a delay

# Volume column levels: 25%, 50%, 75%, 100%
VOLUME_QUARTER, VOLUME_HALF, VOLUME_THREE_QUARTERS, VOLUME_FULL = 1, 2, 3, 4

class ConversionError(Exception):
	pass

def make_alphanumeric(text):
	out = ""
	if not text or not (text[0].isalpha() or text[0] == "_"): # Labels have to start with a letter
		out += "_"
	for c in text:
		if c == " " or c == "-":
			out += "_"
		elif (ord(c) < 127 and c.isalnum()) or c == "_":
			out += c
		else:
			out += "%.2x" % ord(c)
	return out

def semitone_to_note(semitone):
	return SCALE[semitone % NUM_SEMITONES], semitone // NUM_SEMITONES

# Pitch in Pently's "absolute" octave mode
def pently_pitch(letter, octave):
	out = letter.lower() + ("#" if letter.isupper() else "")
	if octave > REFERENCE_OCTAVE:
		out += "'" * (octave - REFERENCE_OCTAVE)
	elif octave < REFERENCE_OCTAVE:
		out += "," * (REFERENCE_OCTAVE - octave)
	return out

# -------------------------------------------------------------------

class Note(object):
	def __init__(self, note=None, octave=0, instrument=None):
		self.note       = note       # Letter from SCALE, NOTE_CUT, NOTE_HOLD or None
		self.octave     = octave     # Meaningless unless note is a letter
		self.instrument = instrument # Resolved instrument id, or None
		self.volume     = None       # VOLUME_* level, only set when it changes
		self.effects    = []         # List of (letter, parameter)
		self.slur       = False
		self.delay_cut  = 0          # Frames before the note is cut, 0 for none
	def __repr__(self):
		return "%s%s %s %s %s" % (self.note, self.octave, self.instrument, self.volume, self.effects)
	def __eq__(self, other):
		return self.note == other.note and self.octave == other.octave and self.instrument == other.instrument and self.volume == other.volume and self.effects == other.effects and self.slur == other.slur and self.delay_cut == other.delay_cut

	@property
	def is_pitch(self):
		return self.note is not None and self.note in SCALE

	@property
	def semitone(self):
		return SCALE.index(self.note) + self.octave * NUM_SEMITONES

	# Offsets a note by a given number of semitones
	def shifted(self, offset):
		if not self.is_pitch:
			return None
		letter, octave = semitone_to_note(self.semitone + offset)
		return Note(letter, octave, self.instrument)

	def effect_params(self, letter):
		return [param for effect, param in self.effects if effect == letter]

class Pattern(object):
	def __init__(self, pattern_id, channel, rows):
		self.id      = pattern_id
		self.channel = channel
		self.rows    = [Note() for _ in range(rows)]
		self.length  = rows  # Effective length, shortened by Bxx, Cxx and Dxx
		self.used    = False # Contains at least one sounding note

	def find_previous(self, row, condition):
		for index in range(min(row, len(self.rows)) - 1, -1, -1):
			if condition(self.rows[index]):
				return self.rows[index]
		return None

	def update_used(self):
		self.used = any(note.is_pitch for note in self.rows[:self.length])
		return self.used

class Song(object):
	def __init__(self, name, rows, speed, tempo, number=1):
		self.number         = number # Position in the input, starting at 1
		self.name           = name
		self.identifier     = make_alphanumeric(name)
		self.rows           = rows
		self.speed          = speed
		self.tempo          = tempo
		self.patterns       = {} # Indexed by (pattern id, channel)
		self.effect_columns = [1] * CHANNEL_COUNT
		self.frames         = [] # Each frame is a list of pattern ids, one per channel
		self.loop_to        = 0  # Frame to loop to, or None if the song ends
		self.current_pattern = None

	def pattern(self, pattern_id, channel):
		key = (pattern_id, channel)
		if key not in self.patterns:
			self.patterns[key] = Pattern(pattern_id, channel, self.rows)
		return self.patterns[key]

	def set_frame(self, frame, pattern_ids):
		while len(self.frames) <= frame:
			self.frames.append([0] * CHANNEL_COUNT)
		self.frames[frame] = pattern_ids

	@property
	def frame_count(self):
		return len(self.frames)

class Macro(object):
	def __init__(self, macro_type, macro_id, sequence, loop=None, release=None, mode=ArpeggioMode.ABSOLUTE):
		self.type     = macro_type
		self.id       = macro_id
		self.sequence = sequence
		self.loop     = loop    # Index, or None
		self.release  = release # Index, or None
		self.mode     = mode

		# Filled in by envelopes.detect_decay()
		self.decay_rate  = None
		self.decay_level = None
		self.decay_index = None

	def copy(self):
		other = Macro(self.type, self.id, list(self.sequence), self.loop, self.release, self.mode)
		other.decay_rate  = self.decay_rate
		other.decay_level = self.decay_level
		other.decay_index = self.decay_index
		return other

class Instrument(object):
	def __init__(self, instrument_id, name, macro_ids):
		self.id            = instrument_id
		self.name          = name
		self.macro_ids     = macro_ids # One macro id or None per MacroType
		self.used_channels = 0         # Bitmask of channels that play this instrument
		self.ignore_mask   = 0         # Bitmask of channels this instrument is suppressed on

	def used_on(self, channels):
		return any(self.used_channels & (1 << channel) for channel in channels)

	def ignored_on(self, channel):
		return bool(self.ignore_mask & (1 << channel))

class SoundEffect(object):
	def __init__(self, instrument, channel, name, base=None):
		self.instrument = instrument # Instrument id
		self.channel    = channel
		self.name       = name
		self.base       = base # Noise frequency or semitone, for declared sound effects
		self.volume     = None # Lists of values, or None
		self.timbre     = None
		self.pitch      = None

class Drum(object):
	def __init__(self, name, sfx_names):
		self.name      = name
		self.sfx_names = sfx_names

# -------------------------------------------------------------------
# Row cell splitting

# Offsets and widths from the ':' that starts each channel's region
NOTE_FIELD       = (2, 3)
INSTRUMENT_FIELD = (6, 2)
VOLUME_FIELD     = (9, 1)
EFFECT_OFFSET    = 11
EFFECT_WIDTH     = 4

RowCell = namedtuple("RowCell", ["note", "instrument", "volume", "effects"])
RowSplit = namedtuple("RowSplit", ["row", "cells", "missing_channel"])

def field(region, offset_width):
	offset, width = offset_width
	return region[offset:offset+width]

def split_row(line, effect_columns):
	""" Split a ROW line into one RowCell per channel.

	Purely lexical: fields keep their text ('...' and '..' are left alone).
	If a channel delimiter is missing, missing_channel is the first channel
	that couldn't be found and the cells list stops there.
	"""
	words = line.split(None, 2)
	row = words[1] if len(words) > 1 else ""
	cells = []
	position = line.find(":")
	for channel in range(len(effect_columns)):
		if position < 0:
			return RowSplit(row, cells, channel)
		end = line.find(":", position+1)
		region = line[position:end if end >= 0 else len(line)]
		region = region.ljust(EFFECT_OFFSET + EFFECT_WIDTH * effect_columns[channel])

		effects = []
		for j in range(effect_columns[channel]):
			effect = region[EFFECT_OFFSET + EFFECT_WIDTH*j : EFFECT_OFFSET + EFFECT_WIDTH*j + 3]
			effects.append((effect[0], effect[1:]))
		cells.append(RowCell(field(region, NOTE_FIELD), field(region, INSTRUMENT_FIELD), field(region, VOLUME_FIELD), effects))
		position = end
	return RowSplit(row, cells, None)

# -------------------------------------------------------------------

class ConversionContext(object):
	""" Everything that lives for the whole input: options, instruments,
	envelopes, drums, diagnostics and the output sink. Song state is kept
	on Song objects instead. """

	def __init__(self, options, out, base_dir=None):
		self.options  = options
		self.out      = out
		self.base_dir = base_dir

		self.macros        = [{} for _ in range(MACRO_TYPE_COUNT)] # self.macros[type][id]
		self.instruments   = {}
		self.sound_effects = [] # User-declared SoundEffect objects
		self.drums         = [] # User-declared Drum objects
		self.dpcm_drums    = {} # Indexed by (note letter, octave)
		self.pending_ignores = {} # Ignore masks for instruments not defined yet

		# Noise channel usage for automatic drums
		self.noise_frequencies = {} # Indexed by instrument id, value is a list of frequencies in first-seen order
		self.drum_pairs        = {} # Indexed by (noise instrument, triangle instrument or None), value is a pair id

		self.line_number = 0
		self.warnings = []
		self.song_names = set()
		self.instrument_names = set()

	def warn(self, message):
		if self.options.strict:
			self.error(message)
		message = "line %d: %s" % (self.line_number, message)
		self.warnings.append(message)
		print("Warning: " + message, file=sys.stderr)

	def error(self, message):
		raise ConversionError("line %d: %s" % (self.line_number, message))

	def row_label(self, row):
		return ("%.2X" % row) if self.options.hex_rows else str(row)

	# Returns a name that hasn't been used yet in the given set
	def unique_name(self, name, used_names, kind):
		if name not in used_names:
			used_names.add(name)
			return name
		counter = 2
		while "%s_%d" % (name, counter) in used_names:
			counter += 1
		new_name = "%s_%d" % (name, counter)
		self.warn("Duplicate %s name %s renamed to %s" % (kind, name, new_name))
		used_names.add(new_name)
		return new_name

	def instrument_macro(self, instrument, macro_type):
		macro_id = instrument.macro_ids[macro_type]
		if macro_id is None:
			return None
		return self.macros[macro_type].get(macro_id)

	@property
	def auto_drum_mode(self):
		if self.options.dual_drums:
			return "dual"
		if self.options.auto_noise:
			return "noise"
		return None
