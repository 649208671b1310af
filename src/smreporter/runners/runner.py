from dataclasses import dataclass, field
from typing import Dict, List, Optional, TextIO
import re, unittest

from ..config import ReporterConfig
from ..logging import setup_logging
from ..model import IGNORE, AncestorChain, Failure, RunResult, TestNode
from ..reporters.sender import StatusMessageSender

def qualified_class_name(test: unittest.TestCase) -> str:
    cls = type(test)
    return f"{cls.__module__}.{cls.__qualname__}"

# unittest reports class and module fixture errors on placeholders named
# "setUpClass (pkg.mod.Class)" or "setUpModule (pkg.mod)"
FIXTURE_PLACEHOLDER = re.compile(r"^(?P<fixture>\w+) \((?P<parent>[^()]+)\)$")

def owning_case(test):
    """The test case a ``subTest`` result belongs to, or ``test`` itself."""
    case = getattr(test, "test_case", None)
    return case if isinstance(case, unittest.TestCase) and case is not test else test

def skip_reason(test: unittest.TestCase):
    """Reason of a skip decorator on the test method or its class; None when not skipped."""
    method = getattr(test, getattr(test, "_testMethodName", ""), None)
    for target in (method, type(test)):
        if getattr(target, "__unittest_skip__", False):
            return getattr(target, "__unittest_skip_why__", "") or True
    return None

@dataclass
class SuiteDescriber:
    """Turns a loaded ``unittest.TestSuite`` into a ``TestNode`` tree.

    Suites whose tests share one class become class suites, suites sharing a
    module become module suites, anything else is flattened into its parent.
    """
    leaves: Dict[unittest.TestCase, TestNode] = field(default_factory=dict)
    modules: Dict[str, str] = field(default_factory=dict)
    suite_chains: Dict[str, AncestorChain] = field(default_factory=dict)

    def describe(self, suite: unittest.TestSuite, root_name: str) -> TestNode:
        root = TestNode.suite(root_name, *self._children(suite))
        for child in root.children:
            self._index(child, ())
        return root

    def suite_chain(self, name: str) -> Optional[AncestorChain]:
        """Chain of the suite named ``name``, itself first; a module falls back to its first class suite."""
        chain = self.suite_chains.get(name)
        if chain is None:
            chain = next((c for n, c in self.suite_chains.items() if n.startswith(name + ".")), None)
        return chain

    def _index(self, node: TestNode, parents: AncestorChain) -> None:
        if node.is_leaf:
            return
        chain = (node,) + parents
        self.suite_chains.setdefault(node.class_name, chain)
        for child in node.children:
            self._index(child, chain)

    def node_for(self, test) -> Optional[TestNode]:
        return self.leaves.get(test)

    def _children(self, suite: unittest.TestSuite) -> List[TestNode]:
        nodes: List[TestNode] = []
        for test in suite:
            if isinstance(test, unittest.TestSuite):
                nodes.extend(self._suite(test))
            else:
                nodes.append(self._leaf(test))
        return nodes

    def _suite(self, suite: unittest.TestSuite) -> List[TestNode]:
        children = self._children(suite)
        if len(children) == 1 and not children[0].is_leaf:
            return children
        classes = {leaf.class_name for child in children for leaf in iter_leaves(child)}
        if len(classes) == 1:
            name = classes.pop()
        else:
            modules = {self.modules[c] for c in classes}
            if len(modules) != 1:
                return children
            name = modules.pop()
        return [TestNode.suite(name, *children)]

    def _leaf(self, test: unittest.TestCase) -> TestNode:
        class_name = qualified_class_name(test)
        method_name = getattr(test, "_testMethodName", None) or str(test)
        node = TestNode(f"{method_name}({class_name})", class_name, method_name, node_id=test.id())
        self.modules[class_name] = type(test).__module__
        reason = skip_reason(test)
        if reason is not None:
            node.metadata[IGNORE] = reason
        self.leaves[test] = node
        return node

def iter_leaves(node: TestNode):
    if node.is_leaf:
        yield node
        return
    for child in node.children:
        yield from iter_leaves(child)

class SenderTestResult(unittest.TestResult):
    """``unittest`` result that forwards every callback to a ``StatusMessageSender``."""
    def __init__(self, sender: StatusMessageSender, describer: SuiteDescriber):
        super().__init__()
        self.sender = sender
        self.describer = describer
        self.run_result = RunResult()

    def _node(self, test) -> TestNode:
        node = self.describer.node_for(test)
        if node is None:
            node = self._placeholder(test)
        return node

    def _placeholder(self, test) -> TestNode:
        """Synthetic test for a fixture placeholder, nested in the suite it belongs to."""
        description = str(test)
        m = FIXTURE_PLACEHOLDER.match(description)
        if m is None:
            return TestNode(description, description, description)
        fixture, parent = m.group("fixture"), m.group("parent")
        node = TestNode(f"{fixture}({parent})", parent, fixture, node_id=description)
        chain = self.describer.suite_chain(parent)
        if chain is not None:
            self.sender.session.registry.record(node, chain)
        return node

    def _ignored(self, test) -> bool:
        node = self.describer.node_for(test)
        return node is not None and node.get_metadata(IGNORE) is not None

    def startTestRun(self):
        super().startTestRun()
        self.sender.run_started()

    def stopTestRun(self):
        super().stopTestRun()
        self.sender.run_finished(self.run_result)

    def startTest(self, test):
        super().startTest(test)
        self.run_result.run += 1
        if not self._ignored(test):
            self.sender.test_started(self._node(test))

    def stopTest(self, test):
        super().stopTest(test)
        if not self._ignored(test):
            self.sender.test_finished(self._node(test))

    def _fail(self, test, err):
        self.run_result.failed += 1
        node = self.describer.node_for(test)
        if node is None:
            node = self._node(test)
            self.sender.test_started(node)
            self.sender.test_failure(Failure.from_exc_info(node, err))
            self.sender.test_finished(node)
        else:
            self.sender.test_failure(Failure.from_exc_info(node, err))

    def addFailure(self, test, err):
        super().addFailure(test, err)
        self._fail(test, err)

    def addError(self, test, err):
        super().addError(test, err)
        self._fail(test, err)

    def addSubTest(self, test, subtest, err):
        super().addSubTest(test, subtest, err)
        if err is not None:
            self._fail(test, err)

    def addUnexpectedSuccess(self, test):
        super().addUnexpectedSuccess(test)
        self.run_result.failed += 1
        self.sender.test_failure(Failure(self._node(test), AssertionError("unexpected success")))

    def addSkip(self, test, reason):
        super().addSkip(test, reason)
        self.run_result.ignored += 1
        test = owning_case(test)
        node = self._node(test)
        if self.describer.node_for(test) is None:
            node.metadata[IGNORE] = reason or True
            self.sender.test_ignored(node)
        elif self._ignored(test):
            self.sender.test_ignored(node)
        else:
            self.sender.test_assumption_failure(Failure(node, unittest.SkipTest(reason)))

class TestRunner:
    __test__ = False

    def __init__(self, cfg: ReporterConfig, stream: Optional[TextIO] = None):
        self.cfg = cfg
        self.log = setup_logging(cfg.log_level)
        self.sender = StatusMessageSender(stream, cfg.marker, cfg.message_length_threshold)

    def discover(self, start_dir: str, pattern: str = "test*.py", top_level_dir: Optional[str] = None) -> unittest.TestSuite:
        return unittest.defaultTestLoader.discover(start_dir, pattern, top_level_dir)

    def tree(self, suite: unittest.TestSuite, root_name: Optional[str] = None):
        describer = SuiteDescriber()
        root = describer.describe(suite, root_name or self.cfg.root_name or "tests")
        return describer, root

    def run(self, suite: unittest.TestSuite, root_name: Optional[str] = None) -> RunResult:
        describer, root = self.tree(suite, root_name)
        self.sender.send_tree(root)
        result = SenderTestResult(self.sender, describer)
        result.startTestRun()
        try:
            suite.run(result)
        finally:
            result.stopTestRun()
        self.log.debug("%d tests run", result.testsRun)
        return result.run_result
