import logging
import sys


def setup_logging(level: str | int = logging.INFO) -> None:
    """Install a single stderr handler on the root logger.

    Call once, before the server starts. Existing handlers are removed so a
    reload does not print every line twice.
    """
    root = logging.getLogger()
    root.setLevel(level)

    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(handler)

    # Access lines come from uvicorn's own logger; keep SQL echo out of INFO.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
