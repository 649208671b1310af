# Lightweight package init: avoid eager imports that can fail at console start.
__all__ = ["StatusMessageSender", "TestNode", "classify"]

def __getattr__(name):
    if name == "StatusMessageSender":
        from .reporters.sender import StatusMessageSender as _StatusMessageSender
        return _StatusMessageSender
    if name == "TestNode":
        from .model import TestNode as _TestNode
        return _TestNode
    if name == "classify":
        from .failures import classify as _classify
        return _classify
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
