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

# Instrument envelopes (FamiTracker "macros") and automatic decay detection
from ft_text import *

# Decay curves are tried from the highest starting level down, then from the slowest rate up
DECAY_LEVELS = range(15, 1, -1)
DECAY_RATES  = range(1, 16+1)
DECAY_FLOOR  = 0

def parse_int_list(text):
	return [int(_) for _ in text.split()]

def parse_macro(ctx, text):
	""" Parse the part of a MACRO line after the keyword:
	type id loop release setting : values """
	if ":" not in text:
		ctx.warn("Malformed MACRO line")
		return None
	header, values = text.split(":", 1)
	try:
		header = parse_int_list(header)
		values = parse_int_list(values)
	except ValueError:
		ctx.warn("Malformed MACRO line")
		return None
	if len(header) < 5:
		ctx.warn("Malformed MACRO line")
		return None
	macro_type, macro_id, loop, release, setting = header[0:5]

	if macro_type < 0 or macro_type >= MACRO_TYPE_COUNT:
		ctx.warn("Macro type %d out of range" % macro_type)
		return None
	if macro_id < 0:
		ctx.warn("Macro id %d out of range" % macro_id)
		return None
	if len(values) > MAX_MACRO_LEN:
		ctx.error("Macro %d is too long (%d values, limit is %d)" % (macro_id, len(values), MAX_MACRO_LEN))
	if loop >= len(values):
		loop = -1
	if release >= len(values):
		release = -1

	mode = ArpeggioMode.ABSOLUTE
	if macro_type == MacroType.ARPEGGIO:
		if setting in (ArpeggioMode.FIXED, ArpeggioMode.RELATIVE):
			mode = ArpeggioMode(setting)
		elif setting != ArpeggioMode.ABSOLUTE:
			ctx.warn("Arpeggio macro %d uses an unsupported mode" % macro_id)

	macro = Macro(MacroType(macro_type), macro_id, values, loop if loop >= 0 else None, release if release >= 0 else None, mode)
	ctx.macros[macro_type][macro_id] = macro
	if macro_type == MacroType.VOLUME and ctx.options.decay:
		detect_decay(macro)
	return macro

# -------------------------------------------------------------------
# Decay

cached_decay_curves = {}
def decay_curve(level, rate):
	""" Volumes Pently would play after a sustain level of 'level' with a
	decay of 'rate' units per 16 frames, ending in a zero. """
	if (level, rate) in cached_decay_curves:
		return cached_decay_curves[(level, rate)]
	curve = []
	value = (level + 1) * 16
	while True:
		value -= rate
		if value < DECAY_FLOOR:
			break
		curve.append((value + 8) // 16)
	if not curve or curve[-1] != 0:
		curve.append(0)
	cached_decay_curves[(level, rate)] = curve
	return curve

def find_decay(sequence):
	""" Returns (level, rate, truncation index) for the first decay curve the
	end of the sequence matches, or None. The truncated envelope keeps the
	first value of the curve as its sustain level. """
	if len(sequence) < 2 or sequence[-1] != 0:
		return None
	body = sequence[:-1]
	for level in DECAY_LEVELS:
		for rate in DECAY_RATES:
			ramp = decay_curve(level, rate)[:-1]
			if not ramp or len(ramp) > len(body):
				continue
			start = len(body) - len(ramp)
			if body[start:] == ramp:
				return (level, rate, start + 1)
	return None

def detect_decay(macro):
	macro.decay_rate = macro.decay_level = macro.decay_index = None
	if macro.type != MacroType.VOLUME or macro.loop is not None:
		return False
	found = find_decay(macro.sequence)
	if found is None:
		return False
	macro.decay_level, macro.decay_rate, macro.decay_index = found
	return True

def decay_interference(macro, other):
	return other is not None and other.loop is None and len(other.sequence) > macro.decay_index

def volume_envelope(ctx, instrument):
	""" Returns (macro, decay rate or None) for an instrument's volume envelope.
	The macro is a truncated copy when decay is used. """
	macro = ctx.instrument_macro(instrument, MacroType.VOLUME)
	if macro is None:
		return None, None
	if not ctx.options.decay or macro.decay_rate is None:
		return macro, None
	if decay_interference(macro, ctx.instrument_macro(instrument, MacroType.ARPEGGIO)):
		return macro, None
	if decay_interference(macro, ctx.instrument_macro(instrument, MacroType.DUTY)):
		return macro, None

	truncated = macro.copy()
	truncated.sequence = truncated.sequence[:macro.decay_index]
	return truncated, macro.decay_rate

def arpeggio_values(macro):
	""" Arpeggio envelope as Pently wants it, absolute offsets from the note """
	if macro.mode == ArpeggioMode.RELATIVE:
		values = []
		total = 0
		for value in macro.sequence:
			total += value
			values.append(total)
		return values
	return list(macro.sequence)

def macro_words(values, loop=None):
	out = []
	for i, value in enumerate(values):
		if i == loop:
			out.append("|")
		out.append(str(value))
	return " ".join(out)
