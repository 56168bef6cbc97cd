import io
import pytest
from ft_text import ConversionContext, Instrument, Song, split_row
from note_builder import read_row
from ft2pently import convert_lines, parse_options

EMPTY_CELL = "... .. . ..."

@pytest.fixture
def options():
	def make(*flags):
		return parse_options(["test.txt"] + list(flags))
	return make

@pytest.fixture
def context(options):
	def make(*flags):
		ctx = ConversionContext(options(*flags), io.StringIO())
		ctx.instruments[0] = Instrument(0, "lead", [None] * 5)
		ctx.instrument_names.add("lead")
		return ctx
	return make

@pytest.fixture
def row():
	""" A ROW line with one effect column per channel; missing channels are empty """
	def make(number, *cells):
		cells = list(cells) + [EMPTY_CELL] * (5 - len(cells))
		return "ROW %.2X : %s" % (number, " : ".join(cells))
	return make

@pytest.fixture
def song():
	def make(rows=16):
		s = Song("test", rows, 6, 150)
		s.current_pattern = 0
		return s
	return make

@pytest.fixture
def feed():
	def feed(ctx, song, *lines):
		for line in lines:
			read_row(ctx, song, split_row(line, song.effect_columns))
	return feed

@pytest.fixture
def convert(options):
	""" Runs a whole export and returns (score text, context) """
	def run(lines, *flags, base_dir=None):
		out = io.StringIO()
		ctx = convert_lines(lines, out, options(*flags), base_dir)
		return out.getvalue(), ctx
	return run
