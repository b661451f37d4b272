"""Console logging for the inventory app.

Call setup_logging() once at app startup; repeated calls are no-ops.
"""

import logging

_HANDLER_NAME = "inventory-console"


def setup_logging(level: int | str = logging.INFO) -> None:
    """Attach a console handler to the root logger.

    Args:
        level: Logging level as int or name ('DEBUG', 'INFO', ...).
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)

    # Avoid double-setup when create_app() runs more than once (tests)
    if any(h.get_name() == _HANDLER_NAME for h in root.handlers):
        return

    fmt = logging.Formatter(
        "%(asctime)s  %(levelname)-8s  %(name)s.%(funcName)s  %(message)s",
        datefmt="%H:%M:%S",
    )
    console = logging.StreamHandler()
    console.set_name(_HANDLER_NAME)
    console.setFormatter(fmt)
    root.addHandler(console)

    # Request lines from the dev server are noise next to store events
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
