"""Loading of sequences from entry points and load-time consistency checks."""

import logging
from collections.abc import Iterable, Sequence
from importlib.metadata import entry_points

from conformance_engine.errors import ConfigurationError
from conformance_engine.sequence import TestSequence
from conformance_engine.validation.source import ProfileSource

log = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "conformance_engine.sequences"
PROFILE_ENTRY_POINT_GROUP = "conformance_engine.profiles"


class SequenceNotFoundError(Exception):
    """Raised when a sequence is not found."""


class ProfilePackNotFoundError(Exception):
    """Raised when a profile pack is not found."""


def load_sequence(key: str) -> TestSequence:
    """Load a sequence by key.

    Args:
        key: The sequence key as registered in pyproject.toml
             (e.g., "argonaut-medication-statement")

    Returns:
        The declared sequence

    Raises:
        SequenceNotFoundError: If no sequence with the given key is found

    """
    entries = entry_points(group=ENTRY_POINT_GROUP)

    for entry in entries:
        if entry.name == key:
            sequence: TestSequence = entry.load()
            return sequence

    available = sorted(e.name for e in entries)
    raise SequenceNotFoundError(
        f"Sequence '{key}' not found. Available sequences: {available}"
    )


def load_profile_pack(key: str) -> ProfileSource:
    """Load a profile source registered as a profile pack.

    Raises:
        ProfilePackNotFoundError: If no profile pack with the given key is found

    """
    entries = entry_points(group=PROFILE_ENTRY_POINT_GROUP)

    for entry in entries:
        if entry.name == key:
            source: ProfileSource = entry.load()
            return source

    available = sorted(e.name for e in entries)
    raise ProfilePackNotFoundError(
        f"Profile pack '{key}' not found. Available profile packs: {available}"
    )


def load_sequences(keys: Sequence[str]) -> Sequence[TestSequence]:
    return [load_sequence(key) for key in keys]


def validate_sequences(
    sequences: Sequence[TestSequence], inputs: Iterable[str] = ()
) -> None:
    """Check that sequences can run in the given order.

    Every key a sequence requires must be a run input or be defined by a
    sequence declared before it.

    Raises:
        ConfigurationError: For the first inconsistency found

    """
    available = set(inputs)
    sequence_ids: set[str] = set()
    prefixes: dict[str, str] = {}

    for sequence in sequences:
        definition = sequence.definition
        sequence_id = definition.sequence_id

        if sequence_id in sequence_ids:
            raise ConfigurationError("Duplicate sequence id", sequence_id=sequence_id)
        sequence_ids.add(sequence_id)

        if (owner := prefixes.get(definition.test_id_prefix)) is not None:
            raise ConfigurationError(
                f"Test id prefix '{definition.test_id_prefix}' "
                f"is already used by {owner}",
                sequence_id=sequence_id,
            )
        prefixes[definition.test_id_prefix] = sequence_id

        test_ids: set[str] = set()
        for unit in sequence.units:
            if unit.sequence_id != sequence_id:
                raise ConfigurationError(
                    f"Test declared for sequence {unit.sequence_id}",
                    sequence_id=sequence_id,
                    test_id=unit.test_id,
                )
            if unit.test_id in test_ids:
                raise ConfigurationError(
                    "Duplicate test id", sequence_id=sequence_id, test_id=unit.test_id
                )
            test_ids.add(unit.test_id)

        for key in definition.requires:
            if key not in available:
                raise ConfigurationError(
                    f"Requires '{key}', which is neither a run input "
                    "nor defined by an earlier sequence",
                    sequence_id=sequence_id,
                )
        available.update(definition.defines)

    log.debug("Validated %d sequence(s)", len(sequences))
