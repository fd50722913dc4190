import asyncio

import pytest

from config import ConfigurationError
from services.base_llm import GenerationResult, TerminalModelError, TransientModelError
from services.lead_search.retry import (
    BROAD_SEARCH_TEMPERATURE,
    FOCUSED_SEARCH_TEMPERATURE,
    RetryingModelCaller,
    backoff_delay_ms,
    is_terminal_error,
)


class StatusError(Exception):
    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


def test_backoff_doubles_from_base():
    assert [backoff_delay_ms(n, 1000) for n in (1, 2, 3, 4)] == [1000, 2000, 4000, 8000]


def test_terminal_classification():
    assert is_terminal_error(TerminalModelError("bad key", 403))
    assert is_terminal_error(ConfigurationError("missing key"))
    assert is_terminal_error(StatusError("bad request", 400))
    assert is_terminal_error(RuntimeError("API_KEY_INVALID"))
    assert not is_terminal_error(TransientModelError("rate limited", 429))
    assert not is_terminal_error(StatusError("server error", 503))
    assert not is_terminal_error(asyncio.TimeoutError())


def test_transient_errors_are_retried_with_backoff(make_service, sleep_recorder):
    service = make_service([TransientModelError("429"), TransientModelError("503"), '[{"name": "A"}]'])
    caller = RetryingModelCaller(service, max_attempts=3, base_delay_ms=1000, sleep=sleep_recorder)

    result = asyncio.run(caller.call("fake-model", "prompt", broad_search=False))

    assert result == GenerationResult(text='[{"name": "A"}]')
    assert service.call_count == 3
    assert sleep_recorder.delays == [1.0, 2.0]
    assert sum(sleep_recorder.delays) == pytest.approx(3.0)


def test_success_on_first_attempt_does_not_sleep(make_service, sleep_recorder):
    service = make_service(["[]"])
    caller = RetryingModelCaller(service, max_attempts=3, base_delay_ms=1000, sleep=sleep_recorder)

    asyncio.run(caller.call("fake-model", "prompt", broad_search=True))

    assert service.call_count == 1
    assert sleep_recorder.delays == []


def test_terminal_error_is_not_retried(make_service, sleep_recorder):
    service = make_service([TerminalModelError("forbidden", 403), "[]"])
    caller = RetryingModelCaller(service, max_attempts=3, base_delay_ms=1000, sleep=sleep_recorder)

    with pytest.raises(TerminalModelError):
        asyncio.run(caller.call("fake-model", "prompt", broad_search=False))

    assert service.call_count == 1
    assert sleep_recorder.delays == []


def test_unknown_bad_request_is_wrapped_as_terminal(make_service, sleep_recorder):
    service = make_service([StatusError("invalid argument", 400)])
    caller = RetryingModelCaller(service, max_attempts=3, base_delay_ms=10, sleep=sleep_recorder)

    with pytest.raises(TerminalModelError) as exc_info:
        asyncio.run(caller.call("fake-model", "prompt", broad_search=False))

    assert isinstance(exc_info.value.__cause__, StatusError)
    assert service.call_count == 1


def test_exhausted_budget_raises_transient_error(make_service, sleep_recorder):
    service = make_service([RuntimeError("timeout")] * 3)
    caller = RetryingModelCaller(service, max_attempts=3, base_delay_ms=1000, sleep=sleep_recorder)

    with pytest.raises(TransientModelError) as exc_info:
        asyncio.run(caller.call("fake-model", "prompt", broad_search=False))

    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert service.call_count == 3
    assert sleep_recorder.delays == [1.0, 2.0]


def test_temperature_follows_search_mode(make_service, sleep_recorder):
    service = make_service(["[]", "[]"])
    caller = RetryingModelCaller(service, sleep=sleep_recorder)

    asyncio.run(caller.call("fake-model", "prompt", broad_search=True))
    asyncio.run(caller.call("fake-model", "prompt", broad_search=False))

    assert service.temperatures == [BROAD_SEARCH_TEMPERATURE, FOCUSED_SEARCH_TEMPERATURE]
    assert FOCUSED_SEARCH_TEMPERATURE < BROAD_SEARCH_TEMPERATURE
