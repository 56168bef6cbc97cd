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

# Converts FamiTracker text exports into Pently scores
# http://famitracker.com/wiki/index.php?title=Text_export
import argparse, sys, os, re
from ft_text import *
from envelopes import parse_macro
from note_builder import read_row, parse_hex
from auto_drums import synthesize_drums, parse_sfx_base
from pently_writer import SCORE_HEADER, write_lines, write_song, write_footer

END_OF_EXPORT = "# End of export"
DRUM_NAME_RE = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*[a-zA-Z_]$")

# Channel names accepted in comment directives
DIRECTIVE_CHANNELS = {name: Channel(index) for index, name in enumerate(CHANNEL_NAMES)}
DIRECTIVE_CHANNELS["pulse"] = Channel.PULSE1

def quoted(text):
	""" The part of a line between the first and last double quote """
	first = text.find('"')
	last = text.rfind('"')
	if first < 0 or last <= first:
		return None
	return text[first+1:last]

class SongSequencer(object):
	""" Holds the song being read. A song is only written out once the next
	TRACK or the end of the input shows that nothing else will change it. """

	def __init__(self, ctx):
		self.ctx = ctx
		self.song = None
		self.song_count = 0

	def start_song(self, name, rows, speed, tempo):
		self.finish_song()
		self.song_count += 1
		self.song = Song(name, rows, speed, tempo, self.song_count)
		self.song.identifier = self.ctx.unique_name(self.song.identifier, self.ctx.song_names, "song")
		return self.song

	def finish_song(self):
		if self.song is not None:
			write_song(self.ctx, self.song)
			self.song = None

	def finish(self):
		self.finish_song()
		auto_sound_effects, auto_drums = synthesize_drums(self.ctx)
		write_footer(self.ctx, auto_sound_effects, auto_drums)

# -------------------------------------------------------------------

line_handlers = {}
def line_handler(name):
	def decorator(f):
		line_handlers[name] = f
		return f
	return decorator

def current_song(sequencer, directive):
	if sequencer.song is None:
		sequencer.ctx.warn("%s before the first TRACK" % directive)
	return sequencer.song

@line_handler("MACRO")
def macro_line(sequencer, args, line):
	parse_macro(sequencer.ctx, args)

@line_handler("INST2A03")
def instrument_line(sequencer, args, line):
	ctx = sequencer.ctx
	name = quoted(args)
	words = args.split('"', 1)[0].split()
	try:
		numbers = [int(_) for _ in words]
	except ValueError:
		numbers = []
	if name is None or len(numbers) != 1 + MACRO_TYPE_COUNT:
		ctx.warn("Malformed INST2A03 line")
		return
	instrument_id = numbers[0]
	if instrument_id < 0:
		ctx.warn("Instrument %d out of range" % instrument_id)
		return
	macro_ids = [_ if _ >= 0 else None for _ in numbers[1:]]

	name = ctx.unique_name(make_alphanumeric(name), ctx.instrument_names, "instrument")
	instrument = Instrument(instrument_id, name, macro_ids)
	instrument.ignore_mask = ctx.pending_ignores.pop(instrument_id, 0)
	ctx.instruments[instrument_id] = instrument

@line_handler("TRACK")
def track_line(sequencer, args, line):
	ctx = sequencer.ctx
	name = quoted(args)
	words = args.split('"', 1)[0].split()
	try:
		rows, speed, tempo = [int(_) for _ in words]
	except ValueError:
		ctx.error("Malformed TRACK line")
	if rows < 1 or rows > MAX_ROWS:
		ctx.warn("Song has %d rows, limit is %d" % (rows, MAX_ROWS))
		rows = max(1, min(rows, MAX_ROWS))
	if speed < 1:
		ctx.warn("Speed %d out of range" % speed)
		speed = 6
	sequencer.start_song(name or "song%d" % (sequencer.song_count + 1), rows, speed, tempo)

@line_handler("COLUMNS")
def columns_line(sequencer, args, line):
	ctx = sequencer.ctx
	song = current_song(sequencer, "COLUMNS")
	if song is None:
		return
	try:
		columns = [int(_) for _ in args.split(":", 1)[-1].split()]
	except ValueError:
		ctx.warn("Malformed COLUMNS line")
		return
	for channel, count in enumerate(columns[:CHANNEL_COUNT]):
		if count < 1 or count > MAX_EFFECTS:
			ctx.warn("%s has %d effect columns, limit is %d" % (CHANNEL_NAMES[channel], count, MAX_EFFECTS))
			count = max(1, min(count, MAX_EFFECTS))
		song.effect_columns[channel] = count

@line_handler("ORDER")
def order_line(sequencer, args, line):
	ctx = sequencer.ctx
	song = current_song(sequencer, "ORDER")
	if song is None or ":" not in args:
		return
	frame_text, ids_text = args.split(":", 1)
	frame = parse_hex(frame_text.strip())
	if frame is None or frame >= MAX_FRAMES:
		ctx.warn("Frame %s out of range" % frame_text.strip())
		return
	pattern_ids = [parse_hex(_) for _ in ids_text.split()]
	if len(pattern_ids) < CHANNEL_COUNT or any(_ is None or _ >= MAX_PATTERNS for _ in pattern_ids[:CHANNEL_COUNT]):
		ctx.warn("Pattern number out of range in frame %.2X" % frame)
		return
	song.set_frame(frame, pattern_ids[:CHANNEL_COUNT])

@line_handler("PATTERN")
def pattern_line(sequencer, args, line):
	ctx = sequencer.ctx
	song = current_song(sequencer, "PATTERN")
	if song is None:
		return
	pattern_id = parse_hex(args.strip())
	if pattern_id is None or pattern_id >= MAX_PATTERNS:
		ctx.warn("Pattern %s out of range" % args.strip())
		song.current_pattern = None
		return
	song.current_pattern = pattern_id

@line_handler("ROW")
def row_line(sequencer, args, line):
	song = current_song(sequencer, "ROW")
	if song is None:
		return
	read_row(sequencer.ctx, song, split_row(line, song.effect_columns))

@line_handler("COMMENT")
def comment_line(sequencer, args, line):
	text = quoted(args)
	if text is None:
		return
	words = text.split()
	if words and words[0] in comment_directives:
		comment_directives[words[0]](sequencer.ctx, words[1:], text)

# -------------------------------------------------------------------
# Directives inside COMMENT lines

comment_directives = {}
def comment_directive(name):
	def decorator(f):
		comment_directives[name] = f
		return f
	return decorator

def directive_channel(ctx, name):
	if name not in DIRECTIVE_CHANNELS:
		ctx.warn("Unknown channel %s" % name)
		return None
	return DIRECTIVE_CHANNELS[name]

@comment_directive("include")
def include_directive(ctx, words, text):
	path = text.split(None, 1)[1].strip() if len(words) else ""
	if not path:
		ctx.warn("include needs a filename")
		return
	if ctx.base_dir is not None and not os.path.isabs(path):
		path = os.path.join(ctx.base_dir, path)
	try:
		with open(path) as f:
			contents = f.read()
	except OSError as e:
		ctx.error("Can't include %s: %s" % (path, e.strerror))
	ctx.out.write(contents)
	if contents and not contents.endswith("\n"):
		ctx.out.write("\n")

@comment_directive("drum")
def drum_directive(ctx, words, text):
	if len(words) < 2:
		ctx.warn("drum needs a note or a name, and a drum or sound effect")
		return
	first = words[0]
	# DPCM note mapping, like "drum C3 kick" or "drum c3 kick"
	if len(first) == 2 and first[0] in SCALE and first[1].isdigit():
		octave = int(first[1])
		if octave >= NUM_OCTAVES:
			ctx.warn("Drum octave %d out of range" % octave)
			return
		ctx.dpcm_drums[(first[0], octave)] = words[1]
		return

	if len(words) > 3:
		ctx.warn("Drum %s can only have two sound effects" % first)
		return
	if not DRUM_NAME_RE.match(first):
		ctx.warn("Drum name %s must start and end with a letter or underscore" % first)
		return
	ctx.drums.append(Drum(first, words[1:]))

@comment_directive("sfx")
def sfx_directive(ctx, words, text):
	if len(words) not in (3, 4):
		ctx.warn("sfx needs a name, a channel, an instrument and optionally a base note")
		return
	name, channel_name, instrument_text = words[0:3]
	channel = directive_channel(ctx, channel_name)
	if channel is None:
		return
	if channel == Channel.DPCM:
		ctx.warn("Sound effect %s can't be on dpcm" % name)
		return
	instrument_id = parse_hex(instrument_text)
	if instrument_id is None:
		ctx.warn("Invalid instrument %s for sound effect %s" % (instrument_text, name))
		return
	base = None
	if len(words) == 4:
		base = parse_sfx_base(words[3], channel)
		if base is None:
			ctx.warn("Invalid base %s for sound effect %s" % (words[3], name))
			return
	ctx.sound_effects.append(SoundEffect(instrument_id, channel, make_alphanumeric(name), base))

@comment_directive("ignore")
def ignore_directive(ctx, words, text):
	if len(words) < 2:
		ctx.warn("ignore needs an instrument and at least one channel")
		return
	instrument_id = parse_hex(words[0])
	if instrument_id is None:
		ctx.warn("Invalid instrument %s to ignore" % words[0])
		return
	mask = 0
	for name in words[1:]:
		channel = directive_channel(ctx, name)
		if channel is not None:
			mask |= 1 << channel
	if instrument_id in ctx.instruments:
		ctx.instruments[instrument_id].ignore_mask |= mask
	else: # Instruments usually come after the comments
		ctx.pending_ignores[instrument_id] = ctx.pending_ignores.get(instrument_id, 0) | mask

# -------------------------------------------------------------------

def convert_lines(lines, out, options, base_dir=None):
	""" Convert the lines of a text export, writing the score to 'out'.
	Returns the ConversionContext, which has the warnings. """
	ctx = ConversionContext(options, out, base_dir)
	sequencer = SongSequencer(ctx)
	write_lines(out, SCORE_HEADER)

	for line_number, line in enumerate(lines, 1):
		ctx.line_number = line_number
		line = line.strip()
		if line == END_OF_EXPORT:
			break
		words = line.split(None, 1)
		if not words or words[0] not in line_handlers:
			continue
		line_handlers[words[0]](sequencer, words[1] if len(words) > 1 else "", line)

	sequencer.finish()
	return ctx

def make_parser():
	parser = argparse.ArgumentParser(prog='ft2pently', description='Converts FamiTracker text exports to Pently scores')
	parser.add_argument('filename')
	parser.add_argument('-o', '--output', type=str)
	parser.add_argument('--strict', action='store_true')     # Warnings are errors
	parser.add_argument('--hex-rows', action='store_true')   # Row numbers in warnings are hex
	parser.add_argument('--dotted', action='store_true')     # Use dotted note lengths
	parser.add_argument('--auto-noise', action='store_true') # One drum per noise instrument and frequency
	parser.add_argument('--dual-drums', action='store_true') # Noise and triangle drums picked with Hxx
	parser.add_argument('--decay', action='store_true')      # Turn volume envelope tails into decay
	parser.add_argument('--force-cut', action='append', choices=CHANNEL_NAMES, default=[]) # Sxx cuts immediately on this channel
	return parser

def parse_options(argv=None):
	return make_parser().parse_args(argv)

def main(argv=None):
	args = parse_options(argv)
	try:
		with open(args.filename, encoding="latin-1") as f:
			lines = f.readlines()
	except OSError as e:
		sys.exit("Error: can't read %s: %s" % (args.filename, e.strerror))

	if args.output:
		try:
			out = open(args.output, 'w', newline='\n')
		except OSError as e:
			sys.exit("Error: can't write %s: %s" % (args.output, e.strerror))
	else:
		out = sys.stdout

	try:
		convert_lines(lines, out, args, os.path.dirname(os.path.abspath(args.filename)))
	except ConversionError as e:
		sys.exit("Error: %s" % e)
	finally:
		if out is not sys.stdout:
			out.close()

if __name__ == "__main__":
	main()
