from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional
import logging

from .messages import MessageEmitter
from .model import AncestorChain, TestNode

log = logging.getLogger(__name__)

def short_name(fq_name: Optional[str]) -> Optional[str]:
    """``pkg.mod.Class`` -> ``Class``; parameter names like ``[0]`` are kept whole."""
    if fq_name is None:
        return None
    if fq_name.startswith("["):
        return fq_name
    return fq_name.rsplit(".", 1)[-1]

class ParentChainRegistry:
    """Ancestor chains recorded by the tree scan, queued per node id.

    A node may be scheduled more than once (the same test class in two
    suites, reruns); each scheduling records its own chain and each test
    start consumes the oldest one.
    """
    def __init__(self):
        self._chains: Dict[str, Deque[AncestorChain]] = {}

    def record(self, node: TestNode, chain: AncestorChain) -> None:
        self._chains.setdefault(node.node_id, deque()).append(tuple(chain))

    def take(self, node: TestNode) -> Optional[AncestorChain]:
        queue = self._chains.get(node.node_id)
        if not queue:
            return None
        return queue.popleft()

    def pending(self, node: TestNode) -> int:
        return len(self._chains.get(node.node_id, ()))

    def __len__(self) -> int:
        return sum(len(q) for q in self._chains.values())

@dataclass
class RunSession:
    """State of one run: root name, open suites and recorded chains."""
    emitter: MessageEmitter
    root_name: Optional[str] = None
    stack: List[str] = field(default_factory=list)
    registry: ParentChainRegistry = field(default_factory=ParentChainRegistry)

    @property
    def root_short_name(self) -> Optional[str]:
        return short_name(self.root_name)

    def is_root_class(self, class_name: Optional[str]) -> bool:
        return self.root_name is not None and self.root_name == class_name
