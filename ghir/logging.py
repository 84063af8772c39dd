"""Logging setup for the ghir CLI."""

import logging


def configure_logging(*, verbose: bool = False, force: bool = False) -> None:
    """Initialise the root logger once; DEBUG with verbose, WARNING otherwise.

    Pass ``force=True`` to reconfigure in tests.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    # httpx logs every request at INFO; only show it when asked to
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)
