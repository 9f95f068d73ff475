import contextlib
from collections.abc import AsyncIterator
from pathlib import Path

import anyio
import pytest

from botmanager.supervisor import Supervisor
from tests.conftest import wait_until

CRASHING_BOT = """
import sys
print("crashing")
sys.exit(1)
"""

CLEAN_BOT = """
print("hello from bot")
"""

LONG_RUNNING_BOT = """
import time
print("ready")
while True:
    time.sleep(0.05)
"""

TERM_IGNORING_BOT = """
import signal
import time
signal.signal(signal.SIGTERM, signal.SIG_IGN)
print("ready")
while True:
    time.sleep(0.05)
"""

SLOW_CRASHING_BOT = """
import sys
import time
time.sleep(0.6)
sys.exit(1)
"""

OUTPUT_BOT = """
import sys
print("out-line")
print("err-line", file=sys.stderr)
sys.exit({code})
"""


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if Path(item.path).is_relative_to(Path(__file__).parent):
            item.add_marker(pytest.mark.integration)


@contextlib.asynccontextmanager
async def supervising(supervisor: Supervisor) -> AsyncIterator[list[int]]:
    """Run a supervisor in the background for the duration of the block.

    Yields a list that receives the exit status once run() returns. The
    supervisor is finished when the block exits.
    """
    results: list[int] = []

    async def _run() -> None:
        results.append(await supervisor.run())

    async with anyio.create_task_group() as tg:
        tg.start_soon(_run)
        await wait_until(lambda: supervisor.running or bool(results))
        try:
            yield results
        finally:
            supervisor.finish()
