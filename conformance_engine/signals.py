"""Control signals a test body raises to end itself early.

Each signal maps to exactly one result status. Anything else a body raises
is reported as ``error``.
"""

from typing import NoReturn

from conformance_engine.models.result import Status


class TestSignal(Exception):
    """Base class for designated control signals."""

    __test__ = False

    status: Status

    def __init__(self, message: str = "", details: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class SkipTest(TestSignal):
    """Precondition not met; the outcome is inconclusive."""

    status = "skip"


class FailTest(TestSignal):
    """The server violated an assertion."""

    status = "fail"


class PassTest(TestSignal):
    """The test succeeded before reaching the end of its body."""

    status = "pass"


class TodoTest(TestSignal):
    """The check is declared but intentionally not implemented."""

    status = "todo"


class WaitTest(TestSignal):
    """The check waits for an external event, such as manual authorization."""

    status = "wait"


def skip(message: str) -> NoReturn:
    raise SkipTest(message)


def skip_if(condition: object, message: str) -> None:
    if condition:
        raise SkipTest(message)


def skip_unless(condition: object, message: str) -> None:
    if not condition:
        raise SkipTest(message)


def fail(message: str, details: tuple[str, ...] = ()) -> NoReturn:
    raise FailTest(message, details)


def assert_that(
    condition: object, message: str, details: tuple[str, ...] = ()
) -> None:
    if not condition:
        raise FailTest(message, details)


def succeed(message: str) -> NoReturn:
    raise PassTest(message)


def pass_if(condition: object, message: str) -> None:
    if condition:
        raise PassTest(message)


def todo(message: str = "Not implemented") -> NoReturn:
    raise TodoTest(message)


def wait_for(message: str) -> NoReturn:
    raise WaitTest(message)
