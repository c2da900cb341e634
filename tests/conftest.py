import logging

import pytest


@pytest.fixture(autouse=True)
def isolate_diskguard_logger():
    """Undo any sink a test attached so caplog keeps seeing records."""
    log = logging.getLogger("diskguard")
    handlers, level, propagate = list(log.handlers), log.level, log.propagate
    yield
    for handler in list(log.handlers):
        if handler not in handlers:
            log.removeHandler(handler)
            handler.close()
    log.setLevel(level)
    log.propagate = propagate
