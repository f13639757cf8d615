"""
Tests for SRT cue parsing and rendering.
"""

from datetime import timedelta

import pytest

from pipeline.errors import FormatError
from subtitles.srt import SubtitleCue, parse_srt, render_srt

SAMPLE = (
    "1\n"
    "00:00:01,200 --> 00:00:04,800\n"
    "Hello everyone,\n"
    "welcome to the show.\n"
    "\n"
    "2\n"
    "00:00:05,100 --> 00:00:06,300\n"
    "(Audience clapping)\n"
)


class TestParse:

    def test_parses_cues(self):
        cues = parse_srt(SAMPLE)
        assert [c.index for c in cues] == [1, 2]
        assert cues[0].start == timedelta(seconds=1.2)
        assert cues[0].lines == ["Hello everyone,", "welcome to the show."]
        assert cues[1].text == "(Audience clapping)"

    def test_windows_line_endings_and_extra_blank_lines(self):
        text = SAMPLE.replace("\n\n", "\n\n\n  \n").replace("\n", "\r\n")
        assert len(parse_srt(text)) == 2

    def test_byte_order_mark(self):
        assert len(parse_srt("\ufeff" + SAMPLE)) == 2

    @pytest.mark.parametrize("text", ["", "   \n\n  "])
    def test_empty_input_has_no_cues(self, text):
        assert parse_srt(text) == []

    @pytest.mark.parametrize("text", [
        "x\n00:00:01,000 --> 00:00:02,000\nHi\n",
        "1\n00:00:01 --> 00:00:02\nHi\n",
        "1\n00:00:01,000 --> 00:00:02,000\n",
        "1\n00:00:03,000 --> 00:00:02,000\nBackwards\n",
        "1\n",
    ])
    def test_malformed_blocks(self, text):
        with pytest.raises(FormatError):
            parse_srt(text)


class TestRender:

    def test_render_matches_standard_layout(self):
        cues = [SubtitleCue(1, timedelta(seconds=1.2), timedelta(seconds=4.8), ["Hello everyone,", "welcome to the show."]),
                SubtitleCue(2, timedelta(seconds=5.1), timedelta(seconds=6.3), ["(Audience clapping)"])]
        assert render_srt(cues) == SAMPLE

    def test_render_empty(self):
        assert render_srt([]) == ""
