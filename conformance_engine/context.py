"""Run context shared by every test unit of a run."""

import copy
import logging
from collections.abc import Iterable, Iterator, Mapping, MutableMapping, Sequence
from dataclasses import dataclass
from typing import Any

log = logging.getLogger(__name__)

RECORD_IDS_KEY = "record_ids"


def is_present(value: object) -> bool:
    """Whether a run context value counts as provided."""
    if value is None:
        return False
    if isinstance(value, str | bytes | Mapping | Sequence | set | frozenset):
        return len(value) > 0
    return True


def _copy_values(values: Mapping[str, Any]) -> dict[str, Any]:
    """Deep copy of each value; values that cannot be copied are shared."""
    copied: dict[str, Any] = {}
    for key, value in values.items():
        try:
            copied[key] = copy.deepcopy(value)
        except (TypeError, copy.Error) as e:
            log.debug("Run context value %r is not copyable, sharing it: %s", key, e)
            copied[key] = value
    return copied


@dataclass(frozen=True, kw_only=True)
class ContextSnapshot:
    """Copy of run context state taken before a unit runs."""

    values: Mapping[str, Any]
    short_circuit_reason: str | None


class RunContext(MutableMapping[str, Any]):
    """Mutable key/value session state owned by a single run.

    Keys written by a unit stay visible to every unit executed after it,
    including units of later sequences. The short-circuit flag is the
    exception: it only lives until the next sequence starts.
    """

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(initial or {})
        self._short_circuit_reason: str | None = None

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._values[key] = value

    def __delitem__(self, key: str) -> None:
        del self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"RunContext(keys={sorted(self._values)!r})"

    def has_value(self, key: str) -> bool:
        """Whether ``key`` is set to a non-empty value."""
        return is_present(self._values.get(key))

    def missing(self, keys: Iterable[str]) -> list[str]:
        """Keys from ``keys`` that are absent or empty."""
        return [key for key in keys if not self.has_value(key)]

    def save_record_ids(self, record_type: str, ids: Iterable[str]) -> None:
        """Remember ids of records seen on the server, keyed by record type."""
        saved: dict[str, list[str]] = self._values.setdefault(RECORD_IDS_KEY, {})
        known = saved.setdefault(record_type, [])
        for record_id in ids:
            if record_id not in known:
                known.append(record_id)

    def record_ids(self, record_type: str) -> Sequence[str]:
        saved = self._values.get(RECORD_IDS_KEY, {})
        return tuple(saved.get(record_type, ()))

    @property
    def short_circuit_reason(self) -> str | None:
        return self._short_circuit_reason

    def short_circuit(self, reason: str) -> None:
        """Skip every remaining unit of the current sequence."""
        self._short_circuit_reason = reason

    def reset_short_circuit(self) -> None:
        self._short_circuit_reason = None

    def snapshot(self) -> ContextSnapshot:
        return ContextSnapshot(
            values=_copy_values(self._values),
            short_circuit_reason=self._short_circuit_reason,
        )

    def restore(self, snapshot: ContextSnapshot) -> None:
        self._values = _copy_values(snapshot.values)
        self._short_circuit_reason = snapshot.short_circuit_reason
