from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import traceback

# junit-style placeholder a framework inserts into a suite that has no tests
EMPTY_SUITE_CLASS = "smreporter.model.EmptySuite"
EMPTY_SUITE_WARNING = "warning"
IGNORE = "ignore"

@dataclass(eq=False)
class TestNode:
    """One node of the static test tree as the execution engine describes it.

    Suites carry children and no method name; leaves carry a method name.
    ``node_id`` keys the parent chain registry and defaults to the display
    name, so the same test scheduled under two suites shares one key.
    """
    __test__ = False

    display_name: str
    class_name: Optional[str] = None
    method_name: Optional[str] = None
    children: List["TestNode"] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    node_id: Optional[str] = None

    def __post_init__(self):
        if self.class_name is None:
            self.class_name = self.display_name
        if self.node_id is None:
            self.node_id = self.display_name

    @classmethod
    def suite(cls, class_name: str, *children: "TestNode", display_name: Optional[str] = None) -> "TestNode":
        return cls(display_name or class_name, class_name, None, list(children))

    @classmethod
    def test(cls, class_name: str, method_name: str, **metadata: Any) -> "TestNode":
        return cls(f"{method_name}({class_name})", class_name, method_name, metadata=dict(metadata))

    @classmethod
    def empty_suite_warning(cls) -> "TestNode":
        return cls.test(EMPTY_SUITE_CLASS, EMPTY_SUITE_WARNING)

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def get_metadata(self, key: str) -> Any:
        return self.metadata.get(key)

# (node, ...) nearest parent first, run root excluded
AncestorChain = Tuple[TestNode, ...]

@dataclass
class Failure:
    node: TestNode
    exception: BaseException
    trace: str = ""

    def __post_init__(self):
        if not self.trace:
            self.trace = "".join(traceback.format_exception(type(self.exception), self.exception, self.exception.__traceback__))

    @classmethod
    def from_exc_info(cls, node: TestNode, err) -> "Failure":
        etype, value, tb = err
        if value is None:
            value = etype()
        return cls(node, value, "".join(traceback.format_exception(etype, value, tb)))

    @property
    def message(self) -> Optional[str]:
        text = str(self.exception)
        return text if text else None

@dataclass
class RunResult:
    run: int = 0
    failed: int = 0
    ignored: int = 0
    @property
    def successful(self) -> bool: return self.failed == 0
