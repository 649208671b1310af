import logging
from rich.console import Console
from rich.logging import RichHandler
def setup_logging(level: str = "WARNING"):
    # stdout carries the service messages, keep log records on stderr
    handler = RichHandler(console=Console(stderr=True), rich_tracebacks=True)
    logging.basicConfig(level=level, format="%(message)s", datefmt="[%X]", handlers=[handler])
    return logging.getLogger("smreporter")
