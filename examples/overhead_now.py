"""
Example: Print the ten closest satellites from a local TLE file.

Doesn't touch the network or an on-disk catalog; records are parsed
straight into an in-memory catalog and tracked from Greenwich.

    python examples/overhead_now.py data/stations.txt
"""

import sys
sys.path.insert(0, "src")

from satnow.catalog import SQLiteCatalog
from satnow.propagation import Observer, SkyfieldPropagator
from satnow.sources import load_local
from satnow.tracking import TrackingView


def main(path: str):
    records, found = load_local(path)
    if not found:
        print(f"Cannot read {path}")
        sys.exit(1)

    with SQLiteCatalog(":memory:") as store:
        for record in records:
            store.upsert(record)
        view = TrackingView.build(Observer(51.4769, -0.0005, 46.0), store, SkyfieldPropagator())

    print(f"{len(view)} satellites at {view.timestamp:%Y-%m-%d %H:%M:%S} UTC\n")
    print(f"{'NAME':<24}{'AZ':>8}{'EL':>8}{'RANGE (KM)':>12}")
    for entry in view.entries[:10]:
        b = entry.bearing
        print(f"{entry.record.display_name:<24}{b.azimuth:>8.1f}{b.elevation:>8.1f}{b.range:>12.1f}")


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else "stations.txt")
