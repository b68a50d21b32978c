# fishinghit/logging_config.py
import logging

_configured = False


def configure_logging(debug: bool = False) -> None:
    """Configure logging once for the entire application."""
    global _configured
    if _configured:
        return
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """
    Returns a logger with the given name.
    """
    return logging.getLogger(name)
