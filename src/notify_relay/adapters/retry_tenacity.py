import asyncio
from typing import Any, Awaitable, Callable, Sequence, Type
from tenacity import AsyncRetrying, stop_after_attempt, wait_fixed, retry_if_exception_type

class TenacityRetryAdapter:
    """Tenacity-based retry adapter implementing RetryPort.

    Waits a fixed number of seconds between attempts (no backoff). Call-time kwargs
    can override default policy parameters (attempts, wait, exception_types).
    `sleep` is handed to tenacity so tests can replace the wall clock.
    """

    def __init__(
        self,
        attempts: int = 3,
        wait: float = 2.0,
        exception_types: Sequence[Type[Exception]] = (Exception,),
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.attempts = attempts
        self.wait = wait
        self.exception_types = tuple(exception_types)
        self.sleep = sleep

    async def execute(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        attempts = kwargs.pop("attempts", self.attempts)
        wait = kwargs.pop("wait", self.wait)
        exception_types = tuple(kwargs.pop("exception_types", self.exception_types))

        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_fixed(wait),
            retry=retry_if_exception_type(exception_types),
            sleep=self.sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await func(*args, **kwargs)
