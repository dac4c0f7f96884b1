"""Run-scoped accumulator of profile validation evidence."""

import threading
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field


@dataclass(frozen=True, kw_only=True)
class ProfileTally:
    """What the ledger knows about one profile."""

    encountered: int
    failed: bool
    messages: Sequence[str]


@dataclass(kw_only=True)
class ProfileLedger:
    """Profiles exercised during a run and the failures observed for them.

    One ledger belongs to one run. Validations append to it from many
    different units, possibly in different sequences, and later units read it
    to decide whether a profile conforms as a whole.
    """

    _encountered: dict[str, set[str]] = field(default_factory=dict)
    _failures: dict[str, list[str]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record(
        self, profile_id: str, instance: str, failures: Iterable[str] = ()
    ) -> None:
        """Record that ``instance`` was validated against ``profile_id``.

        Repeated failure messages are kept once, so validating the same record
        again from another unit does not inflate the failure list.
        """
        messages = list(failures)
        with self._lock:
            self._encountered.setdefault(profile_id, set()).add(instance)
            if messages:
                known = self._failures.setdefault(profile_id, [])
                known.extend(m for m in dict.fromkeys(messages) if m not in known)

    def encountered(self, profile_id: str) -> bool:
        return bool(self._encountered.get(profile_id))

    def encountered_count(self, profile_id: str) -> int:
        return len(self._encountered.get(profile_id, ()))

    def failures(self, profile_id: str) -> Sequence[str]:
        return tuple(self._failures.get(profile_id, ()))

    def has_failures(self, profile_id: str) -> bool:
        return bool(self._failures.get(profile_id))

    @property
    def profiles(self) -> Sequence[str]:
        """Every profile that was encountered or failed, sorted."""
        return sorted(set(self._encountered) | set(self._failures))

    def summary(self) -> Mapping[str, ProfileTally]:
        """Per-profile tallies, independent of the order validations ran in."""
        with self._lock:
            return {
                profile_id: ProfileTally(
                    encountered=self.encountered_count(profile_id),
                    failed=self.has_failures(profile_id),
                    messages=tuple(sorted(self._failures.get(profile_id, ()))),
                )
                for profile_id in self.profiles
            }
