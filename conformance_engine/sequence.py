"""Declaration of sequences and the test units they are made of."""

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from conformance_engine.client.base import EvidenceClient
from conformance_engine.context import RunContext
from conformance_engine.models.definition import SequenceDefinition
from conformance_engine.validation.ledger import ProfileLedger
from conformance_engine.validation.validator import ProfileValidator

type TestBody = Callable[["TestContext"], Awaitable[None]]


@dataclass(frozen=True, kw_only=True)
class TestUnit:
    """One declared conformance check.

    A unit without a body is declared but not implemented yet.
    """

    __test__ = False

    sequence_id: str
    test_id: str
    title: str
    link: str | None = None
    description: str = ""
    optional: bool = False
    body: TestBody | None = field(default=None, repr=False, compare=False)


@dataclass(frozen=True, kw_only=True)
class TestSequence:
    """Ordered, statically declared list of test units."""

    __test__ = False

    definition: SequenceDefinition
    units: Sequence[TestUnit] = ()

    @property
    def sequence_id(self) -> str:
        return self.definition.sequence_id

    @property
    def title(self) -> str:
        return self.definition.title

    def display_id(self, unit: TestUnit) -> str:
        return f"{self.definition.test_id_prefix}-{unit.test_id}"


@dataclass(frozen=True, kw_only=True)
class TestContext:
    """Everything a test body may read or touch.

    ``run`` and ``ledger`` are shared with the rest of the run. ``state`` is
    private to one execution of the sequence and lets its units hand records
    to each other.
    """

    __test__ = False

    run: RunContext
    client: EvidenceClient
    ledger: ProfileLedger
    validator: ProfileValidator
    sequence: SequenceDefinition
    test_id: str
    state: dict[str, Any] = field(default_factory=dict)


class SequenceBuilder:
    """Collects units declared with the :meth:`test` decorator.

    Example::

        builder = SequenceBuilder(definition)

        @builder.test("01", "Server returns results", link="https://...")
        async def returns_results(ctx: TestContext) -> None:
            ...

        sequence = builder.build()
    """

    def __init__(self, definition: SequenceDefinition) -> None:
        self.definition = definition
        self._units: list[TestUnit] = []

    def test(
        self,
        test_id: str,
        title: str,
        *,
        link: str | None = None,
        description: str = "",
        optional: bool = False,
    ) -> Callable[[TestBody], TestBody]:
        """Declare the decorated coroutine function as the next unit."""

        def decorator(body: TestBody) -> TestBody:
            self._add(test_id, title, link, description, optional, body)
            return body

        return decorator

    def todo(
        self,
        test_id: str,
        title: str,
        *,
        link: str | None = None,
        optional: bool = False,
    ) -> None:
        """Declare a unit that is not implemented yet."""
        self._add(test_id, title, link, "", optional, None)

    def build(self) -> TestSequence:
        return TestSequence(definition=self.definition, units=tuple(self._units))

    def _add(
        self,
        test_id: str,
        title: str,
        link: str | None,
        description: str,
        optional: bool,
        body: TestBody | None,
    ) -> None:
        self._units.append(
            TestUnit(
                sequence_id=self.definition.sequence_id,
                test_id=test_id,
                title=title,
                link=link,
                description=" ".join(description.split()),
                optional=optional,
                body=body,
            )
        )
