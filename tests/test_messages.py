import io

import pytest

from smreporter.messages import (ENTERED_THE_MATRIX, TEST_STARTED, MessageEmitter, escape, format_message,
                                 method_location, suite_location)


@pytest.mark.parametrize("raw, escaped", [
    ("plain", "plain"),
    ("it's", "it|'s"),
    ("a|b", "a||b"),
    ("line1\nline2\r", "line1|nline2|r"),
    ("[0]", "|[0|]"),
    ("C:\\tmp", "C:|\\tmp"),
    ("\u0085\u2028\u2029", "|x|l|p"),
])
def test_escape(raw, escaped):
    assert escape(raw) == escaped


def test_format_without_attributes():
    assert format_message("teamcity", ENTERED_THE_MATRIX) == "##teamcity[enteredTheMatrix]"


def test_format_keeps_order_and_drops_none():
    line = format_message("teamcity", TEST_STARTED, {"name": "t", "comment": None, "locationHint": "x"})
    assert line == "##teamcity[testStarted name='t' locationHint='x']"


def test_values_are_escaped_once():
    stream = io.StringIO()
    MessageEmitter(stream).emit("testFailed", {"message": "a|b 'c'"})
    assert stream.getvalue() == "##teamcity[testFailed message='a||b |'c|'']\n"


def test_custom_marker():
    stream = io.StringIO()
    line = MessageEmitter(stream, marker="smr").emit("testFinished", {"name": "t"})
    assert line == "##smr[testFinished name='t']"
    assert stream.getvalue().count("\n") == 1


def test_locations():
    assert method_location("pkg.FooTest", "test_bar") == "python:test://pkg.FooTest.test_bar"
    assert suite_location("pkg.FooTest") == "python:suite://pkg.FooTest"


def test_sink_errors_propagate():
    stream = io.StringIO()
    stream.close()
    with pytest.raises(ValueError):
        MessageEmitter(stream).emit("testFinished", {"name": "t"})
