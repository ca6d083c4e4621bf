"""Observer position, bearings, and the orbital-mechanics adapter.

satnow does no orbital mechanics of its own. A ``PropagationService`` takes
an element record, an observer and an instant, and returns the satellite's
look angle from the observer. ``SkyfieldPropagator`` provides one with
skyfield's SGP4 implementation.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from skyfield.api import EarthSatellite, load, wgs84

from .elements import ElementRecord
from .errors import InvalidObserverError, PropagationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Observer:
    """A fixed ground position.

    Attributes:
        latitude: Geodetic latitude (degrees, -90 to 90).
        longitude: Longitude (degrees, -180 to 180).
        altitude: Height above the WGS84 ellipsoid (meters).
    """

    latitude: float
    longitude: float
    altitude: float = 0.0

    def validate(self) -> Observer:
        """Return self, or raise if the coordinates are out of range.

        Raises:
            InvalidObserverError: If latitude or longitude is out of range.
        """
        if not (-90.0 <= self.latitude <= 90.0 and -180.0 <= self.longitude <= 180.0):
            raise InvalidObserverError(
                f"Invalid coordinates (latitude: {self.latitude}, "
                f"longitude: {self.longitude})"
            )
        return self

    def __str__(self) -> str:
        return (
            f"latitude: {self.latitude}, longitude: {self.longitude}, "
            f"altitude: {self.altitude} m"
        )


@dataclass(frozen=True, slots=True)
class Bearing:
    """Where a satellite appears from an observer.

    Attributes:
        azimuth: Degrees clockwise from north.
        elevation: Degrees above the horizon (negative below it).
        range: Slant distance (km).
    """

    azimuth: float
    elevation: float
    range: float


class PropagationService(Protocol):
    def bearing(
        self, record: ElementRecord, observer: Observer, when: datetime
    ) -> Bearing:
        """Look angle of ``record`` from ``observer`` at ``when``.

        Raises:
            PropagationError: If no position can be computed.
        """


class SkyfieldPropagator:
    """Computes bearings with skyfield.

    ``EarthSatellite`` objects are cached per record, since records are
    immutable and the same set is propagated again on every refresh.
    """

    def __init__(self, timescale=None):
        self.ts = timescale or load.timescale()
        self._satellites: dict[ElementRecord, EarthSatellite] = {}

    def _satellite(self, record: ElementRecord) -> EarthSatellite:
        sat = self._satellites.get(record)
        if sat is None:
            try:
                sat = EarthSatellite(record.line1, record.line2, record.name, self.ts)
            except (ValueError, IndexError) as e:
                raise PropagationError(
                    f"Cannot load elements for {record.display_name}: {e}"
                ) from e
            self._satellites[record] = sat
        return sat

    def bearing(
        self, record: ElementRecord, observer: Observer, when: datetime
    ) -> Bearing:
        sat = self._satellite(record)
        topos = wgs84.latlon(
            observer.latitude, observer.longitude, elevation_m=observer.altitude
        )
        t = self.ts.from_datetime(when)
        alt, az, distance = (sat - topos).at(t).altaz()

        result = Bearing(
            azimuth=float(az.degrees),
            elevation=float(alt.degrees),
            range=float(distance.km),
        )
        if not all(map(math.isfinite, (result.azimuth, result.elevation, result.range))):
            # SGP4 signals decayed or diverged orbits with NaN positions
            raise PropagationError(
                f"Propagation failed for {record.display_name} at {when:%Y-%m-%d %H:%M:%S}"
            )
        return result
