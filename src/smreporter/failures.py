"""Failure classification.

A failure is reported as a *comparison* failure (with expected/actual values the
consumer can show as a diff) when the exception, or its cause, is one of the
known comparison types below. Otherwise, short messages are matched against a
small set of textual patterns:

- ``expected:<X> but was:<Y>``
- ``expected: <X> but was: <Y>``
- ``expected [X] but found [Y]``
- ``Expected: X`` followed by a line ``Actual: Y`` (or ``but: was Y``)

Anything else is a plain failure carrying only its message and trace.
"""
from dataclasses import dataclass
from typing import Dict, Optional
import logging, re, traceback

from .config import DEFAULT_MESSAGE_LENGTH_THRESHOLD, message_length_threshold

log = logging.getLogger(__name__)

class ComparisonFailure(AssertionError):
    def __init__(self, message: Optional[str], expected, actual):
        self.message = message
        self.expected = expected
        self.actual = actual
        super().__init__(message, expected, actual)

    def __str__(self):
        diff = f"expected:<{self.expected}> but was:<{self.actual}>"
        return f"{self.message} {diff}" if self.message else diff

class FileComparisonFailure(AssertionError):
    """Comparison of payloads too large to inline; the consumer reads the files."""
    def __init__(self, message: Optional[str], expected, actual,
                 expected_file_path: Optional[str] = None, actual_file_path: Optional[str] = None):
        self.message = message
        self.expected = expected
        self.actual = actual
        self.expected_file_path = expected_file_path
        self.actual_file_path = actual_file_path
        super().__init__(message, expected, actual)

    def __str__(self):
        return self.message or f"contents of {self.expected_file_path} differ"

COMPARISON_FAILURE_NAMES = (
    f"{ComparisonFailure.__module__}.{ComparisonFailure.__qualname__}",
    f"{FileComparisonFailure.__module__}.{FileComparisonFailure.__qualname__}",
)

PATTERNS = (
    re.compile(r"expected:<(?P<expected>.*?)> but was:<(?P<actual>.*)>", re.DOTALL),
    re.compile(r"expected: <(?P<expected>.*?)> but was: <(?P<actual>.*)>", re.DOTALL),
    re.compile(r"expected \[(?P<expected>.*?)\] but found \[(?P<actual>.*)\]", re.DOTALL),
    re.compile(r"Expected: (?P<expected>.*?)\n\s*(?:Actual: |but: was )(?P<actual>.*?)\s*\Z", re.DOTALL),
)

@dataclass(frozen=True)
class ComparisonFailureData:
    expected: str
    actual: str
    trace: str = ""
    message: Optional[str] = None
    expected_file_path: Optional[str] = None
    actual_file_path: Optional[str] = None

    @classmethod
    def create(cls, exc: BaseException, trace: Optional[str] = None) -> "ComparisonFailureData":
        return cls(
            expected=str(exc.expected),
            actual=str(exc.actual),
            trace=trace if trace is not None else format_trace(exc),
            message=getattr(exc, "message", None),
            expected_file_path=getattr(exc, "expected_file_path", None),
            actual_file_path=getattr(exc, "actual_file_path", None),
        )

def format_trace(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

def _qualified_name(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"

def is_comparison_failure(exc: Optional[BaseException]) -> bool:
    if exc is None:
        return False
    # the mro always ends at object, so the walk is bounded
    for cls in type(exc).__mro__:
        if _qualified_name(cls) in COMPARISON_FAILURE_NAMES:
            return True
    return False

def cause_of(exc: BaseException) -> Optional[BaseException]:
    if exc.__cause__ is not None:
        return exc.__cause__
    if not exc.__suppress_context__:
        return exc.__context__
    return None

def match_patterns(message: str, trace: str = "") -> Optional[ComparisonFailureData]:
    for pattern in PATTERNS:
        m = pattern.search(message)
        if m:
            return ComparisonFailureData(m.group("expected"), m.group("actual"), trace, message)
    return None

def classify(exc: Optional[BaseException], default_threshold: int = DEFAULT_MESSAGE_LENGTH_THRESHOLD) -> Optional[ComparisonFailureData]:
    """Comparison data for ``exc``, or None when it is a plain failure."""
    if exc is None:
        return None
    if is_comparison_failure(exc):
        return ComparisonFailureData.create(exc)
    cause = cause_of(exc)
    if is_comparison_failure(cause):
        return ComparisonFailureData.create(cause, format_trace(exc))

    try:
        message = str(exc)
    except Exception:
        log.debug("str() failed on %s", type(exc).__name__, exc_info=True)
        return None
    if message and len(message) < message_length_threshold(default_threshold):
        try:
            return match_patterns(message, format_trace(exc))
        except Exception:
            log.debug("pattern extraction failed for %s", type(exc).__name__, exc_info=True)
    return None

def register_attributes(data: Optional[ComparisonFailureData], exc: BaseException,
                        trace: str, message: Optional[str], attrs: Dict[str, Optional[str]]) -> Dict[str, Optional[str]]:
    """Fill the ``testFailed`` attributes after ``name``."""
    attrs["message"] = message if message is not None else ""
    attrs["details"] = trace
    if not isinstance(exc, AssertionError):
        attrs["error"] = "true"
    if data is not None:
        attrs["expected"] = data.expected
        attrs["actual"] = data.actual
        attrs["type"] = "comparisonFailure"
        attrs["expectedFile"] = data.expected_file_path
        attrs["actualFile"] = data.actual_file_path
    return attrs
