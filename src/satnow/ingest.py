"""Manifest-driven catalog updates.

A manifest is a text file listing TLE sources, one per line::

    # Space stations
    https://celestrak.org/NORAD/elements/gp.php?GROUP=stations&FORMAT=tle
    data/weather.txt   # local copy

Every source is parsed first, then all records are written to the catalog in
manifest order. Upserts are last-write-wins by catalog number, so when two
sources list the same satellite the later one in the manifest is kept.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Sequence

from tqdm import tqdm

from .catalog import CatalogStore
from .elements import ElementRecord
from .errors import CatalogError
from .sources import SourceLoader

logger = logging.getLogger(__name__)

_SEPARATORS = "# \t\r\n"


@dataclass
class IngestReport:
    """Outcome of one manifest ingestion.

    Attributes:
        locations: Number of source locations in the manifest.
        unresolved: Manifest line numbers that no source path could resolve.
        parsed: Records parsed across all resolved sources.
        stored: Records written to the catalog.
        failed: Records that could not be written.
    """

    locations: int = 0
    unresolved: list[int] = field(default_factory=list)
    parsed: int = 0
    stored: int = 0
    failed: int = 0


def read_manifest(lines: Iterable[str]) -> list[tuple[int, str]]:
    """Extract ``(line_number, location)`` pairs from manifest lines.

    Blank lines and lines starting with ``#`` are skipped. A location ends at
    the first whitespace or ``#`` after it starts.
    """
    manifest = []
    for line_no, line in enumerate(lines, start=1):
        text = line.lstrip(_SEPARATORS[1:])
        if not text or text[0] == "#":
            continue
        end = min((i for i in map(text.find, _SEPARATORS) if i >= 0), default=len(text))
        manifest.append((line_no, text[:end]))
    return manifest


def load_manifest(path: str | Path) -> list[tuple[int, str]]:
    """Read a manifest file (UTF-8)."""
    with open(path, encoding="utf-8") as fh:
        return read_manifest(fh)


def collect(
    manifest: Sequence[tuple[int, str]],
    loader: SourceLoader,
    source_name: str = "manifest",
    progress: bool = False,
    report: Optional[IngestReport] = None,
) -> list[ElementRecord]:
    """Parse every manifest location, in order, into one batch of records.

    Each location is tried as a local file first and as a remote URL only if
    that fails. Locations neither path resolves are logged and skipped.
    """
    report = report if report is not None else IngestReport()
    report.locations += len(manifest)
    results: list[ElementRecord] = []

    for line_no, location in tqdm(manifest, desc="Loading sources", disable=not progress):
        logger.info(f"Loading TLEs from '{location}'")
        records, found = loader.load_local(location)
        if not found:
            records, found = loader.load_remote(location)
        if not found:
            logger.error(f"Unknown entry in {source_name} line {line_no}: '{location}'")
            report.unresolved.append(line_no)
            continue
        results.extend(records)

    report.parsed += len(results)
    return results


def store_records(
    records: Sequence[ElementRecord],
    store: CatalogStore,
    verbose: bool = False,
    report: Optional[IngestReport] = None,
) -> IngestReport:
    """Upsert ``records`` in order. A failed write does not stop the rest."""
    report = report if report is not None else IngestReport()
    total = len(records)

    for count, record in enumerate(records, start=1):
        try:
            store.upsert(record)
            good = True
            report.stored += 1
        except (CatalogError, ValueError) as e:
            logger.error(f"Failed to store record {count}/{total}: {e}")
            good = False
            report.failed += 1

        if verbose:
            logger.info(
                "Refreshing [%d/%d]: %s (%s) [%s]",
                count,
                total,
                record.line1[2:7].strip(),
                record.name or "",
                "Good" if good else "Failed",
            )

    return report


def ingest(
    manifest: Sequence[tuple[int, str]],
    store: CatalogStore,
    loader: SourceLoader,
    source_name: str = "manifest",
    verbose: bool = False,
    progress: bool = False,
) -> IngestReport:
    """Load every manifest location and merge the results into ``store``."""
    report = IngestReport()
    records = collect(manifest, loader, source_name, progress=progress, report=report)
    store_records(records, store, verbose=verbose, report=report)
    logger.info(
        f"Ingested {report.stored}/{report.parsed} records from "
        f"{report.locations - len(report.unresolved)}/{report.locations} sources"
    )
    return report


def ingest_file(
    manifest_path: str | Path,
    store: CatalogStore,
    loader: Optional[SourceLoader] = None,
    verbose: bool = False,
    progress: bool = False,
) -> IngestReport:
    """Ingest the manifest at ``manifest_path``."""
    manifest = load_manifest(manifest_path)
    if loader is not None:
        return ingest(manifest, store, loader, str(manifest_path), verbose, progress)
    with SourceLoader() as owned:
        return ingest(manifest, store, owned, str(manifest_path), verbose, progress)
