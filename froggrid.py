from __future__ import annotations
# froggrid
from geographiclib.constants import Constants
from dataclasses import dataclass, asdict
from enum import Enum
from types import MappingProxyType
import logging
import math
import re
import geojson
import mgrs

logger = logging.getLogger(__name__)


# WGS84 ellipsoid and UTM projection constants
R = Constants.WGS84_a
F = Constants.WGS84_f
K0 = 0.9996
FALSE_EASTING = 500000
FALSE_NORTHING_SOUTH = 10000000

E = F * (2 - F)  # first eccentricity squared
E2 = E * E
E3 = E2 * E
E_P2 = E / (1 - E)  # second eccentricity squared

SQRT_E = math.sqrt(1 - E)
_E = (1 - SQRT_E) / (1 + SQRT_E)
_E2 = _E * _E
_E3 = _E2 * _E
_E4 = _E3 * _E
_E5 = _E4 * _E

M1 = 1 - E / 4 - 3 * E2 / 64 - 5 * E3 / 256

P2 = 3.0 / 2 * _E - 27.0 / 32 * _E3 + 269.0 / 512 * _E5
P3 = 21.0 / 16 * _E2 - 55.0 / 32 * _E4
P4 = 151.0 / 96 * _E3 - 417.0 / 128 * _E5
P5 = 1097.0 / 512 * _E4

# UTM envelope
MIN_EASTING = 100000
MAX_EASTING = 1000000
MIN_NORTHING = 0
MAX_NORTHING = 10000000

# MGRS grid
GRID_SQUARE_SIZE = 100000
NORTHING_CYCLE = 2000000
EVEN_ZONE_FALSE_NORTHING = 1500000

NORTHING_LETTERS = "ABCDEFGHJKLMNPQRSTUV"  # 20 letters (I and O are omitted)
POLAR_LETTERS = "ABYZ"
NONEXISTENT_ZONES = ("32X", "34X", "36X")  # Svalbard


class Hemisphere(Enum):
    NORTH = "N"
    SOUTH = "S"


class ErrorKind(Enum):
    INVALID_ZONE_FORMAT = "invalid zone format"
    INVALID_ZONE_RANGE = "invalid zone range"
    NONEXISTENT_ZONE = "nonexistent zone"
    UNSUPPORTED_ZONE = "unsupported zone"
    COORDINATE_OUT_OF_BOUNDS = "coordinate out of bounds"
    INVALID_GRID_DESIGNATION = "invalid grid designation"
    MALFORMED_MGRS_TEXT = "malformed MGRS text"


class CoordinateError(ValueError):
    """Base error for every conversion failure, tagged with an ErrorKind and the offending value."""
    def __init__(self, kind: ErrorKind, value, message: str = None):
        self.kind = kind
        self.value = value
        if message is None:
            message = f"{kind.value}: {value!r}"
        super().__init__(message)


class ZoneError(CoordinateError):
    pass


class GridError(CoordinateError):
    def __init__(self, value, message: str = None):
        super().__init__(ErrorKind.INVALID_GRID_DESIGNATION, value, message)


class BoundsError(CoordinateError):
    def __init__(self, value, message: str = None):
        super().__init__(ErrorKind.COORDINATE_OUT_OF_BOUNDS, value, message)


class MgrsParseError(CoordinateError):
    def __init__(self, value, message: str = None):
        super().__init__(ErrorKind.MALFORMED_MGRS_TEXT, value, message)


@dataclass(frozen=True)
class LatitudeBand:
    letter: str
    min_northing: int  # meters
    lat_min: float
    lat_max: float


LATITUDE_BANDS = MappingProxyType({band.letter: band for band in (
    LatitudeBand("C", 1100000, -80.0, -72.0),
    LatitudeBand("D", 2000000, -72.0, -64.0),
    LatitudeBand("E", 2800000, -64.0, -56.0),
    LatitudeBand("F", 3700000, -56.0, -48.0),
    LatitudeBand("G", 4600000, -48.0, -40.0),
    LatitudeBand("H", 5500000, -40.0, -32.0),
    LatitudeBand("J", 6400000, -32.0, -24.0),
    LatitudeBand("K", 7300000, -24.0, -16.0),
    LatitudeBand("L", 8200000, -16.0, -8.0),
    LatitudeBand("M", 9100000, -8.0, 0.0),
    LatitudeBand("N", 0, 0.0, 8.0),
    LatitudeBand("P", 800000, 8.0, 16.0),
    LatitudeBand("Q", 1700000, 16.0, 24.0),
    LatitudeBand("R", 2600000, 24.0, 32.0),
    LatitudeBand("S", 3500000, 32.0, 40.0),
    LatitudeBand("T", 4400000, 40.0, 48.0),
    LatitudeBand("U", 5300000, 48.0, 56.0),
    LatitudeBand("V", 6200000, 56.0, 64.0),
    LatitudeBand("W", 7000000, 64.0, 72.0),
    LatitudeBand("X", 7900000, 72.0, 84.0),
)})

_ZONE_RE = re.compile(r"^([0-9]{1,2})([A-Z])$")


def _normalize_zone(zone: str) -> str:
    zone = str(zone).strip().upper()
    m = _ZONE_RE.match(zone)
    if m:
        return f"{int(m.group(1))}{m.group(2)}"
    return zone


def _split_zone(zone: str):
    """Split a zone like "18T" into (18, "T"), raising ZoneError if it is not <digits><letter>."""
    m = _ZONE_RE.match(str(zone).strip().upper())
    if not m:
        raise ZoneError(ErrorKind.INVALID_ZONE_FORMAT, zone, f"Invalid UTM zone format: {zone!r}, expected e.g. '18T'")
    return int(m.group(1)), m.group(2)


def hemisphere_of(letter: str) -> Hemisphere:
    return Hemisphere.NORTH if letter >= "N" else Hemisphere.SOUTH


@dataclass(frozen=True)
class GeodeticCoordinate:
    """A WGS84 position in decimal degrees, produced by the conversions below."""
    lat: float
    lon: float

    @classmethod
    def from_tuple(cls, tup: tuple):
        """Create a GeodeticCoordinate from a (lat, lon) tuple."""
        if len(tup) < 2:
            raise ValueError("Tuple must have at least two elements (lat, lon)")
        lat, lon = map(float, tup[:2])
        return cls(lat, lon)

    def __str__(self):
        return f"Latitude: {self.lat:.8f} Longitude: {self.lon:.8f}"

    def latlon(self):
        """Return latitude and longitude as a tuple."""
        return (self.lat, self.lon)

    def json(self):
        """Return a dictionary representation for JSON serialization."""
        return asdict(self)

    def geojson(self):
        """Return a GeoJSON Point (lon, lat axis order)."""
        return geojson.Point((self.lon, self.lat))


@dataclass(frozen=True)
class UtmCoordinate:
    zone: str  # e.g. "18T"
    easting: int
    northing: int

    def __post_init__(self):
        object.__setattr__(self, "zone", _normalize_zone(self.zone))

    @property
    def zone_number(self) -> int:
        return _split_zone(self.zone)[0]

    @property
    def zone_letter(self) -> str:
        return _split_zone(self.zone)[1]

    @property
    def hemisphere(self) -> Hemisphere:
        return hemisphere_of(self.zone_letter)

    def __str__(self):
        return f"{self.zone} {self.easting} {self.northing}"

    def json(self):
        d = asdict(self)
        d["hemisphere"] = self.hemisphere.value
        return d


@dataclass(frozen=True)
class MgrsCoordinate:
    zone: str  # e.g. "18T"
    grid: str  # 100 km grid square, e.g. "WL"
    easting: int  # meters inside the grid square
    northing: int

    def __post_init__(self):
        object.__setattr__(self, "zone", _normalize_zone(self.zone))
        object.__setattr__(self, "grid", str(self.grid).strip().upper())

    @property
    def zone_number(self) -> int:
        return _split_zone(self.zone)[0]

    @property
    def zone_letter(self) -> str:
        return _split_zone(self.zone)[1]

    def __str__(self):
        return format_mgrs(self)

    def json(self):
        return asdict(self)


# Zone and grid validation

def validate_utm_zone(zone: str) -> None:
    """
    Check a zone identifier like "18T".

    Raises ZoneError with kind:
      - INVALID_ZONE_FORMAT if it is not 1-2 digits followed by a letter
      - INVALID_ZONE_RANGE if the number is outside 1..60 or the letter outside C..X (or I/O)
      - UNSUPPORTED_ZONE for the polar letters A, B, Y, Z (UPS is not handled)
      - NONEXISTENT_ZONE for 32X, 34X and 36X
    """
    number, letter = _split_zone(zone)
    if not 1 <= number <= 60:
        raise ZoneError(ErrorKind.INVALID_ZONE_RANGE, zone, f"UTM zone number {number} outside 1..60")
    if letter in POLAR_LETTERS:
        raise ZoneError(ErrorKind.UNSUPPORTED_ZONE, zone, f"Polar band {letter} (UPS) is not supported")
    if letter not in LATITUDE_BANDS:
        raise ZoneError(ErrorKind.INVALID_ZONE_RANGE, zone, f"Invalid latitude band letter: {letter}")
    if f"{number}{letter}" in NONEXISTENT_ZONES:
        raise ZoneError(ErrorKind.NONEXISTENT_ZONE, zone, f"Zone {number}{letter} does not exist")


def get_easting_letters(zone: int) -> str:
    """
    Return the valid easting letters for a given UTM zone in MGRS.
    The sequence cycles every 3 zones:
      - If zone % 3 == 1: use "ABCDEFGH"
      - If zone % 3 == 2: use "JKLMNPQR"
      - If zone % 3 == 0: use "STUVWXYZ"
    """
    mod = zone % 3
    if mod == 1:
        return "ABCDEFGH"
    elif mod == 2:
        return "JKLMNPQR"
    else:  # mod == 0
        return "STUVWXYZ"


def validate_grid_designation(zone_number: int, grid: str) -> None:
    """Check the 100 km grid square letters against the zone's column group and the row range A..V."""
    if not isinstance(grid, str) or len(grid) != 2:
        raise GridError(grid, f"Grid designation must be 2 letters, got {grid!r}")
    easting_letter, northing_letter = grid[0], grid[1]
    valid_easting_letters = get_easting_letters(zone_number)
    if easting_letter not in valid_easting_letters:
        raise GridError(grid, f"Invalid easting grid letter: {easting_letter} for zone {zone_number}, expected one of {valid_easting_letters}")
    if northing_letter not in NORTHING_LETTERS:
        raise GridError(grid, f"Invalid northing grid letter: {northing_letter}")


# UTM -> WGS84

def validate_utm(utm: UtmCoordinate) -> None:
    validate_utm_zone(utm.zone)
    if not MIN_EASTING <= utm.easting < MAX_EASTING:
        raise BoundsError(utm.easting, f"UTM easting {utm.easting} outside [{MIN_EASTING}, {MAX_EASTING})")
    if not MIN_NORTHING <= utm.northing < MAX_NORTHING:
        raise BoundsError(utm.northing, f"UTM northing {utm.northing} outside [{MIN_NORTHING}, {MAX_NORTHING})")


def is_utm_valid(utm: UtmCoordinate) -> bool:
    try:
        validate_utm(utm)
    except CoordinateError as e:
        logger.debug("Invalid UTM coordinate %s: %s", utm, e)
        return False
    return True


def central_longitude(zone_number: int) -> float:
    """Central meridian of a UTM zone, in degrees."""
    return (zone_number - 1) * 6 - 180 + 3


def mod_angle(value: float) -> float:
    """Wrap an angle in radians into (-pi, pi]."""
    return -((math.pi - value) % (2 * math.pi) - math.pi)


def utm_to_wgs84(utm: UtmCoordinate) -> GeodeticCoordinate:
    """
    Convert a UTM coordinate to WGS84 latitude/longitude.

    Closed-form inverse transverse Mercator: the footpoint latitude comes from
    the rectifying latitude series, then the Snyder (8-17, 8-18) expansions
    in d = x / (N k0) give the latitude and longitude corrections.
    Accurate to about 2e-5 degrees outside the polar regions.

    Raises ZoneError or BoundsError before any computation if the input is invalid,
    and BoundsError if the northing maps past a pole.
    """
    validate_utm(utm)
    zone_number, zone_letter = _split_zone(utm.zone)

    x = utm.easting - FALSE_EASTING
    y = utm.northing
    if hemisphere_of(zone_letter) is Hemisphere.SOUTH:
        y -= FALSE_NORTHING_SOUTH

    m = y / K0
    mu = m / (R * M1)

    p_rad = (mu +
             P2 * math.sin(2 * mu) +
             P3 * math.sin(4 * mu) +
             P4 * math.sin(6 * mu) +
             P5 * math.sin(8 * mu))

    p_sin = math.sin(p_rad)
    p_sin2 = p_sin * p_sin
    p_cos = math.cos(p_rad)
    p_tan = p_sin / p_cos
    p_tan2 = p_tan * p_tan
    p_tan4 = p_tan2 * p_tan2

    ep_sin = 1 - E * p_sin2
    ep_sin_sqrt = math.sqrt(ep_sin)

    n = R / ep_sin_sqrt  # radius of curvature in the prime vertical
    r = (1 - E) / ep_sin  # meridional radius over n
    c = E_P2 * p_cos ** 2
    c2 = c * c

    d = x / (n * K0)
    d2 = d * d
    d3 = d2 * d
    d4 = d3 * d
    d5 = d4 * d
    d6 = d5 * d

    latitude = (p_rad - (p_tan / r) *
                (d2 / 2 -
                 d4 / 24 * (5 + 3 * p_tan2 + 10 * c - 4 * c2 - 9 * E_P2) +
                 d6 / 720 * (61 + 90 * p_tan2 + 298 * c + 45 * p_tan4 - 252 * E_P2 - 3 * c2)))

    longitude = (d -
                 d3 / 6 * (1 + 2 * p_tan2 + c) +
                 d5 / 120 * (5 - 2 * c + 28 * p_tan2 - 3 * c2 + 8 * E_P2 + 24 * p_tan4)) / p_cos

    # northings within the envelope can still run past the pole
    if abs(latitude) > math.pi / 2:
        raise BoundsError(utm.northing, f"UTM northing {utm.northing} lies beyond the pole in zone {utm.zone}")

    longitude = mod_angle(longitude + math.radians(central_longitude(zone_number)))

    return GeodeticCoordinate(math.degrees(latitude), math.degrees(longitude))


# MGRS text

_MGRS_HEAD_RE = re.compile(r"^([0-9]{1,2})([A-Z])\s*([A-Z]{2})\s*(.*)$")
_DIGITS_RE = re.compile(r"^[0-9]+$")
_PRECISION_SCALE = {3: 100, 4: 10, 5: 1}


def read_mgrs(text: str) -> MgrsCoordinate:
    """
    Parse an MGRS string into an MgrsCoordinate at 1 m precision.

    Accepted forms (case-insensitive, extra whitespace ignored):
        "19T GL 09131 57968"
        "19TGL0913157968"
        "19T GL 0913157968"
        "05Q KB 238 830"     (3, 4 or 5 digits per half, scaled to meters)

    Parsing is purely syntactic; use validate_mgrs to check the zone and grid.
    Raises MgrsParseError on malformed text.
    """
    if not isinstance(text, str):
        raise MgrsParseError(text, f"MGRS text must be a string, got {type(text).__name__}")
    s = text.strip().upper()
    head = _MGRS_HEAD_RE.match(s)
    if not head:
        raise MgrsParseError(text, f"Invalid MGRS string: {text!r}, expected '<zone><band> <grid> <easting> <northing>'")
    zone_digits, band, grid, numeric = head.groups()

    parts = numeric.split()
    if len(parts) == 1:
        run = parts[0]
        if not _DIGITS_RE.match(run) or len(run) not in (6, 8, 10):
            raise MgrsParseError(text, f"Invalid MGRS numeric part: {run!r}, expected 6, 8 or 10 digits")
        half = len(run) // 2
        easting_str, northing_str = run[:half], run[half:]
    elif len(parts) == 2:
        easting_str, northing_str = parts
        if not (_DIGITS_RE.match(easting_str) and _DIGITS_RE.match(northing_str)):
            raise MgrsParseError(text, "Easting and northing must be digits")
        if len(easting_str) != len(northing_str):
            raise MgrsParseError(text, f"Easting and northing precision differ: {len(easting_str)} vs {len(northing_str)} digits")
    else:
        raise MgrsParseError(text, "Missing or extra easting/northing groups")

    scale = _PRECISION_SCALE.get(len(easting_str))
    if scale is None:
        raise MgrsParseError(text, f"Easting/northing must have 3 to 5 digits, got {len(easting_str)}")

    return MgrsCoordinate(
        zone=f"{int(zone_digits)}{band}",
        grid=grid,
        easting=int(easting_str) * scale,
        northing=int(northing_str) * scale,
    )


def format_mgrs(mgrs_coord: MgrsCoordinate, precision: int = 5) -> str:
    """
    Format as "<zone> <grid> <easting> <northing>", e.g. "19T GL 09131 57968".

    precision is the number of digits per half, as for the mgrs package:
      - 1 for 10 km, 2 for 1 km, 3 for 100 m, 4 for 10 m, 5 for 1 m (default).
    Lower precisions truncate.
    """
    if not 1 <= precision <= 5:
        raise ValueError(f"MGRS precision must be 1..5, got {precision}")
    divisor = 10 ** (5 - precision)
    easting_str = str(int(mgrs_coord.easting) // divisor).zfill(precision)
    northing_str = str(int(mgrs_coord.northing) // divisor).zfill(precision)
    return f"{mgrs_coord.zone} {mgrs_coord.grid} {easting_str} {northing_str}"


# MGRS -> UTM

def validate_mgrs(mgrs_coord: MgrsCoordinate) -> None:
    validate_utm_zone(mgrs_coord.zone)
    validate_grid_designation(mgrs_coord.zone_number, mgrs_coord.grid)
    for value in (mgrs_coord.easting, mgrs_coord.northing):
        if not 0 <= value < GRID_SQUARE_SIZE:
            raise BoundsError(value, f"MGRS easting/northing {value} outside [0, {GRID_SQUARE_SIZE})")


def is_mgrs_valid(mgrs_coord: MgrsCoordinate) -> bool:
    try:
        validate_mgrs(mgrs_coord)
    except CoordinateError as e:
        logger.debug("Invalid MGRS coordinate %r: %s", mgrs_coord, e)
        return False
    return True


def grid_square_easting(zone_number: int, easting_letter: str) -> int:
    """Easting of the west edge of the grid square column."""
    group = get_easting_letters(zone_number)
    min_letter = group[0]
    easting = (ord(easting_letter) - ord(min_letter) + 1) * GRID_SQUARE_SIZE
    if min_letter == "J" and easting_letter > "O":
        easting -= GRID_SQUARE_SIZE
    return easting


def grid_square_northing(zone_number: int, northing_letter: str) -> int:
    """Northing of the row within the 2000 km cycle, before band alignment."""
    index = ord(northing_letter) - ord("A")
    if northing_letter > "I":
        index -= 1
    if northing_letter > "O":
        index -= 1
    northing = index * GRID_SQUARE_SIZE
    if zone_number % 2 == 0:
        northing += EVEN_ZONE_FALSE_NORTHING
    if northing >= NORTHING_CYCLE:
        northing -= NORTHING_CYCLE
    return northing


def mgrs_to_utm(mgrs_coord: MgrsCoordinate) -> UtmCoordinate:
    """
    Convert an MGRS coordinate to UTM.

    Raises ZoneError, GridError or BoundsError if the coordinate is invalid.
    """
    validate_mgrs(mgrs_coord)
    zone_number, zone_letter = _split_zone(mgrs_coord.zone)
    band = LATITUDE_BANDS[zone_letter]

    easting = grid_square_easting(zone_number, mgrs_coord.grid[0])
    northing = grid_square_northing(zone_number, mgrs_coord.grid[1])

    # anchor the 2000 km row cycle to the latitude band
    northing -= band.min_northing % NORTHING_CYCLE
    if northing < 0:
        northing += NORTHING_CYCLE
    northing += band.min_northing

    return UtmCoordinate(
        zone=mgrs_coord.zone,
        easting=easting + mgrs_coord.easting,
        northing=northing + mgrs_coord.northing,
    )


def mgrs_to_wgs84(mgrs_coord: MgrsCoordinate) -> GeodeticCoordinate:
    return utm_to_wgs84(mgrs_to_utm(mgrs_coord))


# WGS84 -> MGRS / UTM (forward direction, via the mgrs package)

def wgs84_to_mgrs(lat: float, lon: float) -> MgrsCoordinate:
    """
    Convert latitude and longitude in decimal degrees to an MgrsCoordinate at 1 m precision.

    The projection is done by the mgrs package (GEOTRANS). Positions that land in
    the polar UPS regions raise ZoneError(UNSUPPORTED_ZONE).
    """
    mgrs_obj = mgrs.MGRS()
    mgrs_str = mgrs_obj.toMGRS(lat, lon, inDegrees=True, MGRSPrecision=5)
    if isinstance(mgrs_str, bytes):
        mgrs_str = mgrs_str.decode("ascii")
    logger.debug("mgrs package converted (%s, %s) to %s", lat, lon, mgrs_str)
    if not mgrs_str[:1].isdigit():
        raise ZoneError(ErrorKind.UNSUPPORTED_ZONE, mgrs_str, f"Position ({lat}, {lon}) is in a polar UPS region")
    return read_mgrs(mgrs_str)


def wgs84_to_utm(lat: float, lon: float) -> UtmCoordinate:
    """Convert latitude and longitude to UTM, truncated to 1 m."""
    return mgrs_to_utm(wgs84_to_mgrs(lat, lon))


# Usage Example
if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)

    m = read_mgrs("50Q KK 07634 66491")
    print("MGRS:", m)
    u = mgrs_to_utm(m)
    print("UTM:", u)
    g = utm_to_wgs84(u)
    print(g)
    print(g.geojson())
    print("-" * 40)
    print("Back to MGRS:", wgs84_to_mgrs(g.lat, g.lon))
    print("Precision 3:", format_mgrs(m, precision=3))
    print("-" * 40)
    for zone in ("31Z", "32X", "61T", "T18"):
        try:
            validate_utm_zone(zone)
        except ZoneError as e:
            print(zone, e.kind.name, e)
