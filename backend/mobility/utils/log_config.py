import logging

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger once. The audit logger keeps its own handler."""
    global _configured
    if _configured:
        return
    _configured = True

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root = logging.getLogger()
    root.setLevel(level.upper())
    root.addHandler(handler)
