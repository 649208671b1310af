from typing import Dict, Optional, TextIO
import logging, threading

from ..config import DEFAULT_MESSAGE_LENGTH_THRESHOLD
from ..failures import classify, register_attributes
from ..messages import (ENTERED_THE_MATRIX, ROOT_NAME, TEST_FAILED, TEST_FINISHED, TEST_IGNORED, TEST_STARTED,
                        MessageEmitter, method_location, suite_location)
from ..model import IGNORE, Failure, RunResult, TestNode
from ..session import RunSession
from ..suites import SuiteStackManager
from ..tree import TreeScanner

log = logging.getLogger(__name__)

def ignore_reason(node: TestNode) -> Optional[str]:
    """Reason attached to an explicit ignore, None when absent or unreadable."""
    try:
        marker = node.get_metadata(IGNORE)
    except AttributeError:
        # engine node without a metadata accessor
        log.debug("no metadata accessor on %r", node)
        return None
    if marker is None or isinstance(marker, bool):
        return None
    reason = getattr(marker, "reason", marker)
    return str(reason) if reason else None

class StatusMessageSender:
    """Receives test lifecycle callbacks and writes service messages.

    Call :meth:`send_tree` with the full test tree before the run starts,
    then forward the engine's callbacks in order.
    """
    def __init__(self, stream: Optional[TextIO] = None, marker: str = "teamcity",
                 message_length_threshold: int = DEFAULT_MESSAGE_LENGTH_THRESHOLD):
        self.emitter = MessageEmitter(stream, marker)
        self.session = RunSession(self.emitter)
        self.suites = SuiteStackManager(self.session)
        self.message_length_threshold = message_length_threshold
        self._ignore_lock = threading.Lock()

    def send_tree(self, root: TestNode) -> None:
        TreeScanner(self.session).scan(root)

    def run_started(self, root: Optional[TestNode] = None) -> None:
        self.emitter.emit(ENTERED_THE_MATRIX)
        root_name = self.session.root_name
        if root_name is None or root_name.startswith("["):
            return
        comment = None
        name = root_name
        if "." in root_name:
            comment, name = root_name.rsplit(".", 1)
        self.emitter.emit(ROOT_NAME, {
            "name": name,
            "comment": comment,
            "location": suite_location(root_name),
        })

    def run_finished(self, result: Optional[RunResult] = None) -> None:
        self.suites.close_all()
        if result is not None:
            log.info("run finished: %d run, %d failed, %d ignored", result.run, result.failed, result.ignored)

    def test_started(self, node: TestNode) -> None:
        self.suites.on_test_start(node)
        self.emitter.emit(TEST_STARTED, {
            "name": node.method_name,
            "locationHint": method_location(node.class_name, node.method_name),
        })

    def test_finished(self, node: TestNode) -> None:
        self.emitter.emit(TEST_FINISHED, {"name": node.method_name})

    def test_failure(self, failure: Failure) -> None:
        data = classify(failure.exception, self.message_length_threshold)
        attrs: Dict[str, Optional[str]] = {"name": failure.node.method_name}
        register_attributes(data, failure.exception, failure.trace, failure.message, attrs)
        self.emitter.emit(TEST_FAILED, attrs)

    def test_assumption_failure(self, failure: Failure) -> None:
        self._ignored(failure.node, with_reason=False)

    def test_ignored(self, node: TestNode) -> None:
        with self._ignore_lock:
            self.test_started(node)
            self._ignored(node, with_reason=True)
            self.test_finished(node)

    def _ignored(self, node: TestNode, with_reason: bool) -> None:
        attrs: Dict[str, Optional[str]] = {}
        if with_reason:
            attrs["message"] = ignore_reason(node)
        attrs["name"] = node.method_name
        self.emitter.emit(TEST_IGNORED, attrs)

    @property
    def open_suites(self):
        return list(self.session.stack)

