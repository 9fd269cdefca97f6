import pytest

from notifiers.retry import retry


class Flaky:
    def __init__(self, failures, attempts=3):
        self.failures = failures
        self.attempts = attempts
        self.calls = 0

    @retry(attempts=lambda self: self.attempts, delay=0.01, backoff=1, exceptions=(ValueError,))
    async def send(self, x):
        self.calls += 1
        if self.calls <= self.failures:
            raise ValueError("temporary")
        return x * 2


@pytest.mark.asyncio
async def test_retry_async_success_after_failure():
    flaky = Flaky(failures=1)
    assert await flaky.send(5) == 10
    assert flaky.calls == 2


@pytest.mark.asyncio
async def test_retry_exhausted():
    flaky = Flaky(failures=10, attempts=2)
    with pytest.raises(ValueError):
        await flaky.send(1)
    assert flaky.calls == 2


@pytest.mark.asyncio
async def test_retry_ignores_unlisted_exceptions():
    class Other:
        calls = 0

        @retry(attempts=5, delay=0.01, exceptions=(ValueError,))
        async def send(self):
            self.calls += 1
            raise KeyError("no")

    other = Other()
    with pytest.raises(KeyError):
        await other.send()
    assert other.calls == 1
