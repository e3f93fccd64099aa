"""
Network condition catalogue.

Loads the experiment's network conditions from a plain-text profile file
(one ``ID RTT JITTER LOSS`` line per condition) or from a YAML document,
and exposes them as a read-only mapping of condition id to NetworkProfile.

Text format::

    # ID   RTT     JITTER   LOSS
    C01    0ms     0ms      0%
    C02    100ms   10ms     2%
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Iterator, Optional, Union

import yaml

from .exceptions import CatalogError
from .profile import NetworkProfile

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")


def _strip_unit(token: str, unit: str) -> str:
    return token.removesuffix(unit)


def parse_line(line: str) -> Optional[NetworkProfile]:
    """
    Parse one catalogue line.

    Args:
        line: Raw line from the catalogue source.

    Returns:
        The parsed profile, or None if the line is blank, a comment, or
        has fewer than four fields.

    Raises:
        ValueError: If the numeric fields are not numbers or out of range.
    """
    line = line.rstrip("\r\n")
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None

    tokens = stripped.split()
    if len(tokens) < 4:
        return None

    profile_id, rtt, jitter, loss = tokens[:4]
    return NetworkProfile(
        id=profile_id,
        rtt_ms=float(_strip_unit(rtt, "ms")),
        jitter_ms=float(_strip_unit(jitter, "ms")),
        loss_pct=float(_strip_unit(loss, "%")),
    )


class ProfileCatalog(Mapping):
    """
    Immutable, ordered collection of network profiles keyed by id.

    Iteration follows declaration order in the source. A catalogue is
    never empty: construction fails with CatalogError instead.

    Example:
        >>> catalog = ProfileCatalog.load("configs/profiles.txt")
        >>> catalog.ids
        ['C01', 'C02', 'C03']
        >>> catalog["C02"].one_way_delay_ms
        50.0
    """

    def __init__(self, profiles: Iterable[NetworkProfile], source: str = "<memory>"):
        ordered: dict[str, NetworkProfile] = {}
        for profile in profiles:
            if profile.id in ordered:
                raise CatalogError(source, f"duplicate condition id: {profile.id}")
            ordered[profile.id] = profile

        if not ordered:
            raise CatalogError(source, "no network conditions defined")

        self._profiles = MappingProxyType(ordered)
        self.source = source

    def __getitem__(self, profile_id: str) -> NetworkProfile:
        return self._profiles[profile_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._profiles)

    def __len__(self) -> int:
        return len(self._profiles)

    def __repr__(self) -> str:
        return f"ProfileCatalog(source={self.source!r}, ids={self.ids!r})"

    @property
    def ids(self) -> list[str]:
        """Condition ids in declaration order."""
        return list(self._profiles)

    @classmethod
    def load(cls, source: Union[str, Path, Iterable[str]]) -> "ProfileCatalog":
        """
        Load a catalogue from a file path or an iterable of lines.

        Paths ending in .yaml or .yml are parsed as YAML, anything else
        as the plain-text profile format.

        Raises:
            CatalogError: If the source cannot be read or yields no profiles.
        """
        if not isinstance(source, (str, Path)):
            return cls.from_lines(source)

        path = Path(source)
        if path.suffix.lower() in YAML_SUFFIXES:
            return cls.from_yaml(path)

        try:
            with open(path, encoding="utf-8") as f:
                catalog = cls.from_lines(f, source=str(path))
        except FileNotFoundError:
            raise CatalogError(str(path), "file not found")
        except (OSError, UnicodeDecodeError) as e:
            raise CatalogError(str(path), str(e))

        logger.info(f"Loaded {len(catalog)} network conditions from {path}")
        return catalog

    @classmethod
    def from_lines(cls, lines: Iterable[str], source: str = "<lines>") -> "ProfileCatalog":
        """
        Build a catalogue from plain-text profile lines.

        Lines with fewer than four fields are skipped silently. Lines whose
        values are not valid numbers, or are out of range, are skipped with
        a warning.
        """
        profiles = []
        for lineno, line in enumerate(lines, start=1):
            try:
                profile = parse_line(line)
            except ValueError as e:
                logger.warning(f"{source}:{lineno}: skipping malformed condition ({e})")
                continue

            if profile is None:
                if line.strip() and not line.strip().startswith("#"):
                    logger.debug(f"{source}:{lineno}: skipping incomplete line")
                continue
            profiles.append(profile)

        return cls(profiles, source=source)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "ProfileCatalog":
        """
        Load a catalogue from a YAML file.

        Expected structure::

            profiles:
              C01: {rtt_ms: 0, jitter_ms: 0, loss_pct: 0}
              C02: {rtt_ms: 100, jitter_ms: 10, loss_pct: 2}

        Raises:
            CatalogError: If the file is missing, invalid, or defines no profiles.
        """
        path = str(path)
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            raise CatalogError(path, "file not found")
        except (OSError, UnicodeDecodeError) as e:
            raise CatalogError(path, str(e))
        except yaml.YAMLError as e:
            raise CatalogError(path, f"invalid YAML: {e}")

        if not data:
            raise CatalogError(path, "empty file")
        if not isinstance(data, dict):
            raise CatalogError(path, "top level must be a mapping")

        profiles_data = data.get("profiles") or {}
        if not isinstance(profiles_data, dict) or not profiles_data:
            raise CatalogError(path, "no profiles defined")

        profiles = []
        for profile_id, config in profiles_data.items():
            try:
                profiles.append(NetworkProfile.from_dict(profile_id, config or {}))
            except (TypeError, ValueError, AttributeError) as e:
                raise CatalogError(path, f"invalid profile {profile_id}: {e}")

        catalog = cls(profiles, source=path)
        logger.info(f"Loaded {len(catalog)} network conditions from {path}")
        return catalog
