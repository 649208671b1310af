from typing import List
import logging

from .model import TestNode
from .session import RunSession, short_name

log = logging.getLogger(__name__)

class SuiteStackManager:
    """Keeps the open suites equal to the ancestors of the last started test."""
    def __init__(self, session: RunSession):
        self.session = session

    def on_test_start(self, node: TestNode) -> None:
        session = self.session
        chain = session.registry.take(node)
        if chain is None:
            log.debug("no ancestor chain recorded for %r", node.node_id)
            return

        # chain is nearest parent first, the stack is outermost first
        names: List[str] = [short_name(parent.class_name) for parent in reversed(chain)]
        stack = session.stack
        common = 0
        while common < len(stack) and common < len(names):
            if stack[common] != names[common]:
                break
            common += 1

        while len(stack) > common:
            session.emitter.suite_finished(stack.pop())

        root = session.root_short_name
        for name in names[common:]:
            if name != root:
                session.emitter.suite_started(name)
                stack.append(name)

    def close_all(self) -> None:
        stack = self.session.stack
        while stack:
            self.session.emitter.suite_finished(stack.pop())
