"""
Log sink setup for diskguard.

Every lifecycle event is one single-line record addressed by the service
tag. Under cron the records go to syslog; run by hand on a terminal they are
rendered through rich.
"""

import logging
import logging.handlers
import os
import sys

from rich.console import Console
from rich.logging import RichHandler

SERVICE_TAG = "disk-cleanup"
SYSLOG_SOCKET = "/dev/log"
STREAM_FORMAT = f"%(asctime)s {SERVICE_TAG}: %(message)s"
ISO_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"

_HANDLER_NAME = "diskguard-sink"


def resolve_sink(sink: str) -> str:
    """Map "auto" onto a concrete sink for this host."""
    if sink != "auto":
        return sink
    return "syslog" if os.path.exists(SYSLOG_SOCKET) else "stderr"


def _syslog_handler() -> logging.Handler:
    handler = logging.handlers.SysLogHandler(
        address=SYSLOG_SOCKET, facility=logging.handlers.SysLogHandler.LOG_DAEMON
    )
    handler.ident = f"{SERVICE_TAG}: "
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def _stream_handler(stream) -> logging.Handler:
    if stream.isatty():
        handler: logging.Handler = RichHandler(
            console=Console(file=stream),
            show_path=False,
            markup=False,
            rich_tracebacks=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        return handler
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(STREAM_FORMAT, datefmt=ISO_DATEFMT))
    return handler


def setup_logging(sink: str = "auto", verbose: bool = False, stream=None) -> logging.Logger:
    """
    Attach the configured sink to the ``diskguard`` logger.

    Calling it again replaces the previous sink instead of stacking handlers.

    Args:
        sink: "auto", "syslog" or "stderr"
        verbose: Emit DEBUG records (skipped steps, tracebacks)
        stream: Stream for the stderr sink (defaults to sys.stderr)

    Returns:
        The configured package logger
    """
    root = logging.getLogger("diskguard")
    for handler in list(root.handlers):
        if handler.get_name() == _HANDLER_NAME:
            root.removeHandler(handler)
            handler.close()

    concrete = resolve_sink(sink)
    handler = None
    if concrete == "syslog":
        try:
            handler = _syslog_handler()
        except OSError:
            # No syslog daemon listening; fall back to the stream sink
            handler = None
    if handler is None:
        handler = _stream_handler(stream or sys.stderr)

    handler.set_name(_HANDLER_NAME)
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.propagate = False
    return root
