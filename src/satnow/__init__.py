"""satnow — what is overhead right now.

Keeps a local catalog of Two-Line Element (TLE) sets gathered from files and
remote sources, and shows every cataloged satellite's current look angle
(azimuth, elevation, range) from a fixed ground observer, closest first.

Modules:
    elements:    Parse TLE text streams into element records.
    sources:     Resolve local paths and remote URLs to element records.
    catalog:     Persistent catalog keyed by NORAD number (SQLite).
    ingest:      Read a manifest of sources and merge them into the catalog.
    propagation: Observer position, bearings and the skyfield adapter.
    tracking:    The live, range-sorted tracking view.
    display:     Batch printer and interactive curses navigator.
    config:      Runtime settings and environment defaults.
    cli:         Command-line interface.

Example:
    >>> from satnow.catalog import SQLiteCatalog
    >>> from satnow.propagation import Observer, SkyfieldPropagator
    >>> from satnow.tracking import TrackingView
    >>>
    >>> with SQLiteCatalog(".satnow.sql3") as store:
    ...     view = TrackingView.build(Observer(51.5, -0.1), store, SkyfieldPropagator())
    ...     for entry in view:
    ...         print(entry.record.display_name, entry.bearing.range)
"""

__version__ = "0.1.0"
