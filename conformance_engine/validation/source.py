"""Sources profile definitions are loaded from."""

import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import yaml
from pydantic import ValidationError

from conformance_engine.errors import ProfileError
from conformance_engine.models.profile import ProfileDefinition

log = logging.getLogger(__name__)

PROFILE_SUFFIXES = (".yaml", ".yml", ".json")


class ProfileSource(Protocol):
    """Anything that can look up a profile definition by id."""

    @property
    def profile_ids(self) -> list[str]:
        """Ids of every profile the source provides."""

    def load_profile(self, profile_id: str) -> ProfileDefinition:
        """Return the definition of ``profile_id``.

        Raises:
            ProfileError: If the profile is unknown or malformed

        """


@dataclass(frozen=True, kw_only=True)
class MappingProfileSource:
    """Profiles held in memory."""

    profiles: Mapping[str, ProfileDefinition] = field(default_factory=dict)

    @classmethod
    def of(cls, definitions: Iterable[ProfileDefinition]) -> "MappingProfileSource":
        return cls(profiles={d.profile_id: d for d in definitions})

    @property
    def profile_ids(self) -> list[str]:
        return list(self.profiles)

    def load_profile(self, profile_id: str) -> ProfileDefinition:
        try:
            return self.profiles[profile_id]
        except KeyError:
            raise ProfileError(f"Unknown profile: {profile_id}") from None


def parse_profile_file(path: Path) -> ProfileDefinition:
    """Parse one YAML or JSON profile file.

    Raises:
        ProfileError: If the file cannot be parsed or violates the schema

    """
    try:
        text = path.read_text()
        data: Any = json.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ProfileError(f"Cannot read profile file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ProfileError(f"Profile file {path} does not contain a mapping")

    try:
        return ProfileDefinition.model_validate(data)
    except ValidationError as e:
        raise ProfileError(f"Invalid profile definition in {path}: {e}") from e


@dataclass(frozen=True, kw_only=True)
class DirectoryProfileSource:
    """Profiles stored as one YAML or JSON file each in a directory."""

    path: Path

    def definitions(self) -> list[ProfileDefinition]:
        if not self.path.is_dir():
            raise ProfileError(f"Profile directory not found: {self.path}")
        files = sorted(
            p for p in self.path.iterdir() if p.suffix in PROFILE_SUFFIXES
        )
        log.debug("Reading %d profile file(s) from %s", len(files), self.path)
        return [parse_profile_file(p) for p in files]

    @property
    def profile_ids(self) -> list[str]:
        return [definition.profile_id for definition in self.definitions()]

    def load_profile(self, profile_id: str) -> ProfileDefinition:
        for definition in self.definitions():
            if definition.profile_id == profile_id:
                return definition
        raise ProfileError(f"Unknown profile: {profile_id} (searched {self.path})")
