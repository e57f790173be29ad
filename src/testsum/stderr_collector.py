"""Collect the test runner's stderr while the event stream is being read."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import asyncio
    from typing import TextIO

    from testsum.models.execution import ExecutionState

logger = logging.getLogger(__name__)


async def collect_stderr(
    reader: asyncio.StreamReader,
    sink: TextIO,
    state: ExecutionState,
) -> int:
    """Read *reader* to the end, echoing each line to *sink* and recording errors.

    Compiler headers (``# pkg``) are echoed but not recorded. A read failure
    is logged and ends collection; it is never raised, because stderr is
    advisory and must not abort the event stream.

    Returns:
        Number of lines recorded as errors.
    """
    recorded = 0
    try:
        while True:
            raw = await reader.readline()
            if not raw:
                break
            text = raw.decode("utf-8", errors="replace")
            line = text.removesuffix("\n").removesuffix("\r")
            if state.add_error(line):
                recorded += 1
            sink.write(text if text.endswith("\n") else text + "\n")
            sink.flush()
    except Exception as exc:
        logger.warning("Failed to read test stderr: %s", exc)
        logger.debug("stderr read failure", exc_info=True)

    logger.debug("stderr closed after %d error line(s)", recorded)
    return recorded
