"""TLE text parsing and element records.

Turns a raw line stream into ``ElementRecord`` objects. Sources mix the
2-line form (two 69-character data lines) and the 3-line form (a name line
followed by the two data lines), and nothing in the format delimits records,
so each record's shape is guessed from its first line:

    * A line is a *name line* if it starts with a letter or is no longer
      than 24 characters. The next two lines are the data lines.
    * Anything else is data line 1, and the next line is data line 2.

The guess is wrong for a nameless record whose first data line starts with a
letter, and for a name longer than 24 characters that starts with a digit.
Both cases are kept as-is for compatibility with existing sources.

References:
    - Kelso, T.S. "CelesTrak TLE Format Documentation"
      https://celestrak.org/NORAD/documentation/tle-fmt.php
    - https://en.wikipedia.org/wiki/Two-line_element_set
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Iterator, Optional

logger = logging.getLogger(__name__)

LINE_LENGTH = 69
"""Length of a TLE data line."""

NAME_LINE_MAX = 24
"""Lines no longer than this are always treated as name lines."""

NAME_MAX = 22
"""Names are cut to this length (CelesTrak says 24, libsgp4 keeps 22)."""


@dataclass(frozen=True, slots=True)
class OrbitalElements:
    """Fixed fields decoded from a TLE's two data lines.

    Attributes:
        norad_id: NORAD catalog number.
        classification: Security classification (U/C/S).
        intl_designator: International designator (launch year/number/piece).
        epoch: Element set epoch (UTC).
        mean_motion_dot: First derivative of mean motion / 2 (rev/day²).
        bstar: B* drag term (1/Earth radii).
        inclination: Orbital inclination (degrees).
        raan: Right ascension of ascending node (degrees).
        eccentricity: Orbital eccentricity (dimensionless).
        arg_perigee: Argument of perigee (degrees).
        mean_anomaly: Mean anomaly (degrees).
        mean_motion: Mean motion (revolutions per day).
        rev_number: Revolution number at epoch.
    """

    norad_id: int
    classification: str
    intl_designator: str
    epoch: datetime
    mean_motion_dot: float
    bstar: float
    inclination: float
    raan: float
    eccentricity: float
    arg_perigee: float
    mean_anomaly: float
    mean_motion: float
    rev_number: int

    def fields(self) -> list[tuple[str, str]]:
        """Label/value pairs in display order."""
        return [
            ("NORAD", str(self.norad_id)),
            ("Designator", self.intl_designator),
            ("Epoch", f"{self.epoch:%Y-%m-%d %H:%M:%S} UTC"),
            ("BSTAR (drag term)", f"{self.bstar:.6e}"),
            ("Inclination (degs)", f"{self.inclination:.4f}"),
            ("Right ascension (degs)", f"{self.raan:.4f}"),
            ("Eccentricity", f"{self.eccentricity:.7f}"),
            ("Arg of perigee (degs)", f"{self.arg_perigee:.4f}"),
            ("Mean anomaly (degs)", f"{self.mean_anomaly:.4f}"),
            ("Mean motion (revs/day)", f"{self.mean_motion:.8f}"),
            ("Revolution number", str(self.rev_number)),
        ]


@dataclass(frozen=True, slots=True)
class ElementRecord:
    """One satellite's element set as read from a source.

    Attributes:
        name: Satellite name from the name line, or None for 2-line records.
        line1: TLE data line 1 (at most 69 characters, may be shorter).
        line2: TLE data line 2 (at most 69 characters, may be shorter).
    """

    name: Optional[str]
    line1: str
    line2: str

    @property
    def catalog_id(self) -> int:
        """NORAD catalog number, taken from columns 3-7 of line 1.

        Raises:
            ValueError: If those columns do not hold an integer.
        """
        field = self.line1[2:7].strip()
        if not field:
            raise ValueError(f"No catalog number in line 1: {self.line1!r}")
        return int(field)

    @property
    def display_name(self) -> str:
        return self.name if self.name else str(self.catalog_id)

    def elements(self) -> OrbitalElements:
        """Decode the fixed fields of both data lines.

        Raises:
            ValueError: If either line is too short or a field is garbled.
        """
        l1, l2 = self.line1, self.line2
        if len(l1) < 64 or len(l2) < 63:
            raise ValueError(
                f"Element lines too short to decode ({len(l1)}, {len(l2)} characters)"
            )

        _verify_checksum(l1, 1)
        _verify_checksum(l2, 2)

        # ── Line 1 ──
        epoch_year_2d = int(l1[18:20].strip())
        epoch_year = (
            1900 + epoch_year_2d if epoch_year_2d >= 57 else 2000 + epoch_year_2d
        )
        epoch_day = float(l1[20:32].strip())

        return OrbitalElements(
            norad_id=self.catalog_id,
            classification=l1[7],
            intl_designator=l1[9:17].strip(),
            epoch=_epoch_to_datetime(epoch_year, epoch_day),
            mean_motion_dot=float(l1[33:43].strip()),
            bstar=_parse_implied_decimal(l1[53:61]),
            # ── Line 2 ──
            inclination=float(l2[8:16].strip()),
            raan=float(l2[17:25].strip()),
            eccentricity=float(f"0.{l2[26:33].strip()}"),
            arg_perigee=float(l2[34:42].strip()),
            mean_anomaly=float(l2[43:51].strip()),
            mean_motion=float(l2[52:63].strip()),
            rev_number=int(l2[63:68].strip() or "0"),
        )


def is_name_line(line: str) -> bool:
    """Return True if ``line`` should be read as a record's name line."""
    return (bool(line) and line[0].isalpha()) or len(line) <= NAME_LINE_MAX


def parse_elements(
    lines: Iterable[str],
    source: str = "<input>",
) -> Iterator[ElementRecord]:
    """Lazily parse element records from a line stream.

    Args:
        lines: Lines of text, with or without trailing newlines.
        source: Source name used in diagnostics.

    Yields:
        Element records, in the order they appear.

    A record cut short by the end of input is dropped with a warning; every
    record before it has already been yielded.
    """
    stream = (line.rstrip("\r\n") for line in lines)
    line_no = 0

    for first in stream:
        line_no += 1
        name: Optional[str] = None

        if is_name_line(first):
            name = first.rstrip()[:NAME_MAX] or None
            line_no += 1
            line1 = next(stream, None)
            if line1 is None:
                logger.warning(
                    "Unexpected end of input reading TLE line 1 at line %d in %s",
                    line_no,
                    source,
                )
                return
        else:
            line1 = first

        line_no += 1
        line2 = next(stream, None)
        if line2 is None:
            logger.warning(
                "Unexpected end of input reading TLE line 2 at line %d in %s",
                line_no,
                source,
            )
            return

        yield ElementRecord(
            name=name,
            line1=line1[:LINE_LENGTH],
            line2=line2[:LINE_LENGTH],
        )


def parse_text(text: str, source: str = "<input>") -> list[ElementRecord]:
    """Parse every element record in a string."""
    return list(parse_elements(text.splitlines(), source))


# ── Private helpers ──


def _parse_implied_decimal(s: str) -> float:
    """Parse TLE implied-decimal notation into a float.

    The TLE format encodes some fields as ``NNNNN±N`` where the mantissa
    has an implied leading ``0.`` and the final ``±N`` is a base-10
    exponent. For example, ``16538-4`` becomes ``0.16538e-4``.
    """
    s = s.strip()
    if not s or s in ("00000-0", "00000+0"):
        return 0.0

    for i in range(len(s) - 1, 0, -1):
        if s[i] in "+-":
            mantissa = s[:i]
            exponent = s[i:]
            sign = "-" if mantissa.lstrip().startswith("-") else ""
            digits = mantissa.lstrip("+-").lstrip()
            return float(f"{sign}0.{digits}e{exponent}")

    sign = "-" if s.startswith("-") else ""
    digits = s.lstrip("+-").lstrip()
    return float(f"{sign}0.{digits}")


def checksum(line: str) -> int:
    """Modulo-10 check digit over the first 68 columns; '-' counts as 1."""
    total = 0
    for ch in line[:68]:
        if ch.isdigit():
            total += int(ch)
        elif ch == "-":
            total += 1
    return total % 10


def _verify_checksum(line: str, line_num: int) -> None:
    """Log a warning when a line's modulo-10 checksum does not match."""
    if len(line) < LINE_LENGTH or not line[68].isdigit():
        return

    expected = int(line[68])
    computed = checksum(line)
    if computed != expected:
        logger.warning(
            "Checksum mismatch on line %d: expected %d, computed %d",
            line_num,
            expected,
            computed,
        )


def _epoch_to_datetime(year: int, day_of_year: float) -> datetime:
    """Convert a TLE epoch (year + fractional day-of-year) to a UTC datetime."""
    jan1 = datetime(year, 1, 1, tzinfo=timezone.utc)
    return jan1 + timedelta(days=day_of_year - 1.0)
