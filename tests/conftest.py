import io

import pytest

from smreporter.model import TestNode
from smreporter.reporters.sender import StatusMessageSender


@pytest.fixture
def out():
    return io.StringIO()


@pytest.fixture
def sender(out):
    return StatusMessageSender(out)


@pytest.fixture
def lines(out):
    """Emitted lines so far, called lazily so tests can assert after each step."""
    def _lines():
        return out.getvalue().splitlines()
    return _lines


@pytest.fixture
def two_suites():
    """pkg.AllTests -> SuiteA -> {test1, test2}, pkg.AllTests -> SuiteB -> {test3}."""
    test1 = TestNode.test("pkg.SuiteA", "test1")
    test2 = TestNode.test("pkg.SuiteA", "test2")
    test3 = TestNode.test("pkg.SuiteB", "test3")
    root = TestNode.suite(
        "pkg.AllTests",
        TestNode.suite("pkg.SuiteA", test1, test2),
        TestNode.suite("pkg.SuiteB", test3),
    )
    return root, test1, test2, test3
