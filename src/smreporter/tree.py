from typing import Optional
import logging

from .messages import SUITE_TREE_ENDED, SUITE_TREE_NODE, SUITE_TREE_STARTED, method_location, suite_location
from .model import EMPTY_SUITE_CLASS, EMPTY_SUITE_WARNING, AncestorChain, TestNode
from .session import RunSession, short_name

log = logging.getLogger(__name__)

def is_parameter(node: TestNode) -> bool:
    name = node.display_name
    return name.startswith("[") and name.endswith("]")

def is_warning(method_name: Optional[str], class_name: Optional[str]) -> bool:
    return method_name == EMPTY_SUITE_WARNING and class_name == EMPTY_SUITE_CLASS

def suite_location_hint(node: TestNode) -> str:
    """Location of a suite; parameter containers borrow a qualifier from their first child.

    ``[0]`` whose first child is ``test[0](pkg.FooTest)`` gives ``pkg.FooTest.[0]``.
    """
    hint = node.class_name
    if is_parameter(node) and node.children:
        first = node.children[0].display_name
        idx = first.find(hint)
        if idx > -1:
            hint = first[idx + len(hint):]
            if len(hint) >= 2 and hint.startswith("(") and hint.endswith(")"):
                hint = f"{hint[1:-1]}.{node.class_name}"
    return suite_location(hint)

class TreeScanner:
    """Sends the preview tree and records every leaf's ancestor chain."""
    def __init__(self, session: RunSession):
        self.session = session

    def scan(self, root: TestNode) -> None:
        self.session.root_name = root.class_name
        self._send(root, None, ())

    def _send(self, node: TestNode, parent: Optional[TestNode], current: AncestorChain) -> None:
        session = self.session
        chain = current
        if parent is not None and not session.is_root_class(parent.class_name):
            chain = (parent,) + current

        class_name = node.class_name
        if node.is_leaf:
            method_name = node.method_name
            if method_name is None:
                log.debug("skipping leaf without method name: %r", node.display_name)
                return
            if parent is not None:
                session.registry.record(node, chain)
                if is_warning(method_name, class_name):
                    class_name = parent.class_name
            session.emitter.emit(SUITE_TREE_NODE, {
                "name": method_name,
                "locationHint": method_location(class_name, method_name),
            })
            return

        started = not session.is_root_class(class_name)
        if started:
            session.emitter.emit(SUITE_TREE_STARTED, {
                "name": short_name(class_name),
                "locationHint": suite_location_hint(node),
            })
        for child in node.children:
            self._send(child, node, chain)
        if started:
            session.emitter.emit(SUITE_TREE_ENDED, {"name": short_name(class_name)})
