import logging
from rich.logging import RichHandler

def configure_logging(level: int = logging.INFO, rich_tracebacks: bool = True) -> None:
    """
    Configure the root logger with a Rich console handler.
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=rich_tracebacks, markup=False)]
    )

def get_logger(name: str) -> logging.Logger:
    """
    Return a named logger (after logging is configured).
    """
    return logging.getLogger(name)
