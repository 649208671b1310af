import sys
from typing import Mapping, Optional, TextIO

ENTERED_THE_MATRIX = "enteredTheMatrix"
ROOT_NAME = "rootName"
SUITE_TREE_NODE = "suiteTreeNode"
SUITE_TREE_STARTED = "suiteTreeStarted"
SUITE_TREE_ENDED = "suiteTreeEnded"
TEST_STARTED = "testStarted"
TEST_FINISHED = "testFinished"
TEST_FAILED = "testFailed"
TEST_IGNORED = "testIgnored"
TEST_SUITE_STARTED = "testSuiteStarted"
TEST_SUITE_FINISHED = "testSuiteFinished"

TEST_LOCATION = "python:test://"
SUITE_LOCATION = "python:suite://"

_ESCAPES = {
    "|": "||",
    "'": "|'",
    "\n": "|n",
    "\r": "|r",
    "[": "|[",
    "]": "|]",
    "\\": "|\\",
    "\u0085": "|x",
    "\u2028": "|l",
    "\u2029": "|p",
}
_TABLE = str.maketrans(_ESCAPES)

def escape(value: str) -> str:
    """Escape one attribute value; single pass, so ``|`` is never re-escaped."""
    return str(value).translate(_TABLE)

def method_location(class_name: Optional[str], method_name: Optional[str]) -> str:
    return f"{TEST_LOCATION}{class_name}.{method_name}"

def suite_location(name: str) -> str:
    return f"{SUITE_LOCATION}{name}"

def format_message(marker: str, message_type: str, attrs: Optional[Mapping[str, object]] = None) -> str:
    """Render ``##marker[type key='value' ...]`` with every value escaped once."""
    parts = [message_type]
    for key, value in (attrs or {}).items():
        if value is None:
            continue
        parts.append(f"{key}='{escape(value)}'")
    return f"##{marker}[{' '.join(parts)}]"

class MessageEmitter:
    """Writes one service message per line to a text sink; sink errors propagate."""
    def __init__(self, stream: Optional[TextIO] = None, marker: str = "teamcity"):
        self.stream = stream if stream is not None else sys.stdout
        self.marker = marker

    def emit(self, message_type: str, attrs: Optional[Mapping[str, object]] = None) -> str:
        line = format_message(self.marker, message_type, attrs)
        self.stream.write(line + "\n")
        self.stream.flush()
        return line

    # convenience wrappers for the messages the stack and tree code send often
    def suite_started(self, name: str) -> None:
        self.emit(TEST_SUITE_STARTED, {"name": name})

    def suite_finished(self, name: str) -> None:
        self.emit(TEST_SUITE_FINISHED, {"name": name})
