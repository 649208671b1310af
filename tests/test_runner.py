import unittest

import pytest

from smreporter.config import MESSAGE_LENGTH_THRESHOLD_ENV, ReporterConfig
from smreporter.failures import ComparisonFailure
from smreporter.model import IGNORE
from smreporter.runners.runner import SuiteDescriber, TestRunner, iter_leaves, skip_reason


def make_cases():
    # defined here so pytest does not collect them itself
    class Sample(unittest.TestCase):
        def test_ok(self):
            pass

        def test_fail(self):
            self.assertEqual(1, 2)

        def test_compare(self):
            raise ComparisonFailure(None, "A", "B")

        def test_error(self):
            raise RuntimeError("boom")

        @unittest.skip("later")
        def test_skip(self):
            pass

        def test_dynamic_skip(self):
            self.skipTest("nope")

    class Other(unittest.TestCase):
        def test_other(self):
            pass

    @unittest.skip("whole class")
    class Skipped(unittest.TestCase):
        def test_one(self):
            pass

    return Sample, Other, Skipped


@pytest.fixture
def cases():
    return make_cases()


def _load(*classes):
    loader = unittest.TestLoader()
    return unittest.TestSuite([unittest.TestSuite([loader.loadTestsFromTestCase(c) for c in classes])])


def test_skip_reason(cases):
    sample, other, skipped = cases
    assert skip_reason(sample("test_skip")) == "later"
    assert skip_reason(sample("test_ok")) is None
    assert skip_reason(skipped("test_one")) == "whole class"


def test_single_class_collapses_wrappers(cases):
    sample = cases[0]
    root = SuiteDescriber().describe(_load(sample), "pkg.Root")
    assert len(root.children) == 1
    suite = root.children[0]
    assert suite.class_name.endswith(".Sample")
    assert suite.method_name is None
    assert len(suite.children) == 6


def test_classes_of_one_module_share_a_suite(cases):
    sample, other, _ = cases
    root = SuiteDescriber().describe(_load(sample, other), "pkg.Root")
    assert len(root.children) == 1
    module = root.children[0]
    assert [c.class_name.rsplit(".", 1)[-1] for c in module.children] == ["Sample", "Other"]


def test_leaves_carry_ids_and_ignore_metadata(cases):
    sample = cases[0]
    describer = SuiteDescriber()
    root = describer.describe(_load(sample), "pkg.Root")
    leaves = {leaf.method_name: leaf for leaf in iter_leaves(root)}
    assert leaves["test_skip"].get_metadata(IGNORE) == "later"
    assert leaves["test_ok"].get_metadata(IGNORE) is None
    assert leaves["test_ok"].node_id.endswith("Sample.test_ok")
    assert describer.node_for(sample("test_ok")) is leaves["test_ok"]


def test_empty_class_suites_are_dropped():
    class Empty(unittest.TestCase):
        pass

    root = SuiteDescriber().describe(_load(Empty), "pkg.Root")
    assert root.children == []


def test_run_streams_nested_messages(out, cases):
    sample = cases[0]
    runner = TestRunner(ReporterConfig(), stream=out)
    result = runner.run(_load(sample), "pkg.Root")
    lines = out.getvalue().splitlines()

    assert (result.run, result.failed, result.ignored) == (6, 3, 2)
    assert not result.successful
    assert "##teamcity[enteredTheMatrix]" in lines
    assert "##teamcity[rootName name='Root' comment='pkg' location='python:suite://pkg.Root']" in lines
    assert lines.count("##teamcity[testSuiteStarted name='Sample']") == 1
    assert lines[-1] == "##teamcity[testSuiteFinished name='Sample']"

    def block(name):
        return [line for line in lines if f"name='{name}'" in line and not line.startswith("##teamcity[suiteTree")]

    assert [line.split("[")[1].split(" ")[0] for line in block("test_skip")] == \
        ["testStarted", "testIgnored", "testFinished"]
    assert "message='later'" in block("test_skip")[1]
    assert block("test_dynamic_skip")[1] == "##teamcity[testIgnored name='test_dynamic_skip']"

    failed = {line.split("name='")[1].split("'")[0]: line for line in lines if line.startswith("##teamcity[testFailed")}
    assert set(failed) == {"test_fail", "test_compare", "test_error"}
    assert "expected='A' actual='B'" in failed["test_compare"]
    assert "error='true'" in failed["test_error"]
    assert "error=" not in failed["test_fail"]


def test_class_skip_reports_reason(out, cases):
    skipped = cases[2]
    runner = TestRunner(ReporterConfig(), stream=out)
    runner.run(_load(skipped), "pkg.Root")
    assert "##teamcity[testIgnored message='whole class' name='test_one']" in out.getvalue().splitlines()


def test_fixture_error_reported_as_test(out):
    class BrokenSetup(unittest.TestCase):
        @classmethod
        def setUpClass(cls):
            raise RuntimeError("no db")

        def test_x(self):
            pass

    runner = TestRunner(ReporterConfig(), stream=out)
    result = runner.run(_load(BrokenSetup), "pkg.Root")
    lines = out.getvalue().splitlines()
    assert result.failed == 1
    failed = [line for line in lines if line.startswith("##teamcity[testFailed")]
    assert len(failed) == 1
    assert "setUpClass" in failed[0]
    assert "error='true'" in failed[0]


def test_custom_marker(out, cases):
    runner = TestRunner(ReporterConfig(marker="smr"), stream=out)
    runner.run(_load(cases[1]), "pkg.Root")
    assert all(line.startswith("##smr[") for line in out.getvalue().splitlines())


def test_module_suite_named_after_module(cases):
    sample, other, _ = cases
    root = SuiteDescriber().describe(_load(sample, other), "pkg.Root")
    module = root.children[0]
    # qualified class names carry "<locals>" segments, the module name does not
    assert module.class_name == sample.__module__


def _kinds(lines):
    return [line.split("[")[1].split(" ")[0].rstrip("]") for line in lines]


def test_subtest_failures_and_skips(out):
    class WithSubtests(unittest.TestCase):
        def test_failing(self):
            for i in range(3):
                with self.subTest(i=i):
                    self.assertNotEqual(i, 1)

        def test_skipping(self):
            with self.subTest(kind="x"):
                self.skipTest("not here")

    runner = TestRunner(ReporterConfig(), stream=out)
    result = runner.run(_load(WithSubtests), "pkg.Root")
    lines = [line for line in out.getvalue().splitlines() if not line.startswith("##teamcity[suiteTree")]

    assert result.failed == 1
    assert result.ignored == 1
    failing = [line for line in lines if "name='test_failing'" in line]
    assert _kinds(failing) == ["testStarted", "testFailed", "testFinished"]
    skipping = [line for line in lines if "name='test_skipping'" in line]
    assert _kinds(skipping) == ["testStarted", "testIgnored", "testFinished"]
    assert skipping[1] == "##teamcity[testIgnored name='test_skipping']"
    # the skip belongs to the running test, nothing else is started for it
    assert sum(1 for line in lines if line.startswith("##teamcity[testStarted")) == 2


def test_unexpected_success_is_one_failure(out):
    class Flaky(unittest.TestCase):
        @unittest.expectedFailure
        def test_passes_anyway(self):
            pass

    runner = TestRunner(ReporterConfig(), stream=out)
    result = runner.run(_load(Flaky), "pkg.Root")
    failed = [line for line in out.getvalue().splitlines() if line.startswith("##teamcity[testFailed")]
    assert result.failed == 1
    assert len(failed) == 1
    assert failed[0].startswith("##teamcity[testFailed name='test_passes_anyway' message='unexpected success'")


@pytest.mark.parametrize("threshold, compared", [(5, False), (10000, True)])
def test_message_length_threshold_from_config(out, monkeypatch, threshold, compared):
    monkeypatch.delenv(MESSAGE_LENGTH_THRESHOLD_ENV, raising=False)

    class Compare(unittest.TestCase):
        def test_values(self):
            raise AssertionError("expected:<1> but was:<2>")

    runner = TestRunner(ReporterConfig(message_length_threshold=threshold), stream=out)
    runner.run(_load(Compare), "pkg.Root")
    failed = [line for line in out.getvalue().splitlines() if line.startswith("##teamcity[testFailed")]
    assert len(failed) == 1
    assert ("expected='1' actual='2'" in failed[0]) is compared
    assert ("type='comparisonFailure'" in failed[0]) is compared


def test_fixture_error_nested_in_its_class_suite(out):
    class Healthy(unittest.TestCase):
        def test_a(self):
            pass

    class Broken(unittest.TestCase):
        @classmethod
        def setUpClass(cls):
            raise RuntimeError("no db")

        def test_b(self):
            pass

    runner = TestRunner(ReporterConfig(), stream=out)
    result = runner.run(_load(Healthy, Broken), "pkg.Root")
    lines = [line for line in out.getvalue().splitlines() if not line.startswith("##teamcity[suiteTree")]
    start = lines.index("##teamcity[testSuiteFinished name='Healthy']")
    broken = f"{Broken.__module__}.{Broken.__qualname__}"

    assert result.failed == 1
    assert lines[start + 1] == "##teamcity[testSuiteStarted name='Broken']"
    assert lines[start + 2] == (f"##teamcity[testStarted name='setUpClass' "
                                f"locationHint='python:test://{broken}.setUpClass']")
    assert lines[start + 3].startswith("##teamcity[testFailed name='setUpClass'")
    assert lines[start + 4] == "##teamcity[testFinished name='setUpClass']"
    assert lines[start + 5] == "##teamcity[testSuiteFinished name='Broken']"
    assert "name='test_b'" not in "".join(lines)


def test_fixture_skip_reported_in_its_class_suite(out):
    class Offline(unittest.TestCase):
        @classmethod
        def setUpClass(cls):
            raise unittest.SkipTest("no network")

        def test_fetch(self):
            pass

    runner = TestRunner(ReporterConfig(), stream=out)
    result = runner.run(_load(Offline), "pkg.Root")
    lines = [line for line in out.getvalue().splitlines() if not line.startswith("##teamcity[suiteTree")]
    start = lines.index("##teamcity[testSuiteStarted name='Offline']")

    assert (result.failed, result.ignored) == (0, 1)
    assert _kinds(lines[start + 1:start + 4]) == ["testStarted", "testIgnored", "testFinished"]
    assert lines[start + 2] == "##teamcity[testIgnored message='no network' name='setUpClass']"
