import asyncio
import sys

import pytest

from chunkflow.exceptions import ProcessLaunchError, ProcessTimeoutError
from chunkflow.utils.process import ProcessRunner


@pytest.mark.asyncio
async def test_run_captures_output_and_exit_code():
    runner = ProcessRunner(max_concurrency=1, timeout=30)
    result = await runner.run(
        [sys.executable, "-c", "import sys; print('out'); print('err', file=sys.stderr); sys.exit(3)"]
    )

    assert result.returncode == 3
    assert not result.ok
    assert result.stdout.strip() == "out"
    assert result.stderr.strip() == "err"


@pytest.mark.asyncio
async def test_arguments_are_not_interpreted_by_a_shell():
    runner = ProcessRunner(max_concurrency=1)
    argument = "$(echo injected); `id` && echo done"
    result = await runner.run([sys.executable, "-c", "import sys; print(sys.argv[1])", argument])

    assert result.ok
    assert result.stdout.strip() == argument


@pytest.mark.asyncio
async def test_missing_binary_raises_launch_error():
    runner = ProcessRunner(max_concurrency=1)
    with pytest.raises(ProcessLaunchError):
        await runner.run(["definitely-not-a-real-binary-for-chunkflow"])


@pytest.mark.asyncio
async def test_timeout_kills_the_process():
    runner = ProcessRunner(max_concurrency=1, timeout=0.5)
    with pytest.raises(ProcessTimeoutError) as exc_info:
        await runner.run([sys.executable, "-c", "import time; time.sleep(30)"])
    assert exc_info.value.status_code == 504


@pytest.mark.asyncio
async def test_concurrency_is_bounded():
    runner = ProcessRunner(max_concurrency=1)
    script = "import time; print(time.monotonic()); time.sleep(0.3); print(time.monotonic())"

    first, second = await asyncio.gather(
        runner.run([sys.executable, "-c", script]),
        runner.run([sys.executable, "-c", script]),
    )

    first_start, first_end = map(float, first.stdout.split())
    second_start, second_end = map(float, second.stdout.split())
    assert first_end <= second_start or second_end <= first_start
