"""Name-keyed collection of every package record in one metadata directory."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from types import MappingProxyType

from conda_leaves.core.errors import MetadataIOError
from conda_leaves.core.parser import PackageRecord, descriptor_source, parse_descriptor

logger = logging.getLogger(__name__)


class Catalog(Mapping[str, PackageRecord]):
    """
    Read-only mapping of package name -> PackageRecord.

    Built once (usually with :meth:`build`) and then passed to the query
    functions in :mod:`conda_leaves.core.graph`. There is no update path.
    """

    def __init__(self, packages: Mapping[str, PackageRecord] | None = None) -> None:
        self._packages: Mapping[str, PackageRecord] = MappingProxyType(dict(packages or {}))

    @classmethod
    def from_records(cls, records: Iterable[PackageRecord]) -> Catalog:
        """Build from records in order; a repeated name keeps the last record."""
        packages: dict[str, PackageRecord] = {}
        for record in records:
            if record.name in packages:
                logger.debug("Duplicate package %s, keeping %s", record.name, record.path)
            packages[record.name] = record
        return cls(packages)

    @classmethod
    def build(cls, directory: Path, *, workers: int | None = None) -> Catalog:
        """
        Parse every descriptor directly inside ``directory``.

        Entries that are not descriptors are skipped. Parsing runs on a thread
        pool (``workers=1`` parses in the calling thread); records are folded
        in sorted entry order, so duplicates resolve the same way every run.

        Raises:
            MetadataIOError: directory cannot be listed, or a descriptor cannot be read.
            MetadataParseError: a descriptor is malformed.
        """
        directory = Path(directory)
        try:
            entries = sorted(directory.iterdir())
        except OSError as e:
            raise MetadataIOError(directory, e.strerror or str(e)) from e

        sources: list[tuple[str, Path]] = []
        for entry in entries:
            source = descriptor_source(entry)
            if source is None:
                logger.debug("Skipping %s: not a package descriptor", entry)
                continue
            sources.append(source)

        def _parse(source: tuple[str, Path]) -> PackageRecord:
            kind, path = source
            return parse_descriptor(path, kind)

        if workers == 1 or len(sources) <= 1:
            records = [_parse(s) for s in sources]
        else:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                records = list(pool.map(_parse, sources))

        catalog = cls.from_records(records)
        logger.info("Loaded %d package(s) from %s", len(catalog), directory)
        return catalog

    def get(self, name: str, default: PackageRecord | None = None) -> PackageRecord | None:  # type: ignore[override]
        """Exact, case-sensitive lookup."""
        return self._packages.get(name, default)

    def names(self) -> list[str]:
        """All package names, sorted."""
        return sorted(self._packages)

    @property
    def packages(self) -> Mapping[str, PackageRecord]:
        return self._packages

    def __getitem__(self, name: str) -> PackageRecord:
        return self._packages[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._packages)

    def __len__(self) -> int:
        return len(self._packages)

    def __repr__(self) -> str:
        return f"Catalog({len(self)} packages)"
