'''Test MGRS parsing, formatting and MGRS -> UTM / WGS84 conversion
'''

import logging
import mgrs
import pytest
import froggrid
from froggrid import (
    BoundsError,
    ErrorKind,
    GridError,
    MgrsCoordinate,
    MgrsParseError,
    NORTHING_LETTERS,
    UtmCoordinate,
    ZoneError,
    format_mgrs,
    get_easting_letters,
    grid_square_easting,
    grid_square_northing,
    is_mgrs_valid,
    mgrs_to_utm,
    mgrs_to_wgs84,
    read_mgrs,
    validate_mgrs,
    wgs84_to_mgrs,
)


@pytest.mark.parametrize("text", [
    "19T GL 09131 57968",
    "19t gl 09131 57968",
    "19TGL0913157968",
    "19TGL 09131 57968",
    "19T GL0913157968",
    "19T GL 0913157968",
    "  19T   GL  09131    57968  ",
    "19T\tGL 09131\t57968",
])
def test_read_variants(text):
    assert read_mgrs(text) == MgrsCoordinate("19T", "GL", 9131, 57968)


def test_read_single_digit_zone():
    expected = MgrsCoordinate("5Q", "KB", 23840, 83053)
    assert read_mgrs("5Q KB 23840 83053") == expected
    assert read_mgrs("05Q KB 23840 83053") == expected
    assert read_mgrs("05Q KB 23840 83053").zone == "5Q"


@pytest.mark.parametrize("text, easting, northing", [
    ("19T GL 091 579", 9100, 57900),
    ("19T GL 0913 5796", 9130, 57960),
    ("19T GL 091579", 9100, 57900),
    ("19T GL 09135796", 9130, 57960),
])
def test_read_lower_precision(text, easting, northing):
    m = read_mgrs(text)
    assert (m.easting, m.northing) == (easting, northing)


@pytest.mark.parametrize("text", [
    "50Q KK 7634 66491",      # 4 vs 5 digits
    "19T GL 09131",
    "19T GL",
    "19T GL 0913157",         # odd run
    "19T GL 091315796812",    # 12 digits
    "19T GL 09 57",           # too coarse
    "19T GL 09A31 57968",
    "19T GL 0913² 57968",   # superscript two
    "19T GL ٠٩١٣١ 57968",   # Arabic-Indic digits
    "١٩T GL 09131 57968",
    "19T GL 09131 57968 1",
    "19T G 09131 57968",
    "T19 GL 09131 57968",
    "123T GL 09131 57968",
    "19 T GL 09131 57968",
    "",
    "   ",
])
def test_read_malformed(text):
    with pytest.raises(MgrsParseError) as excinfo:
        read_mgrs(text)
    assert excinfo.value.kind is ErrorKind.MALFORMED_MGRS_TEXT


def test_read_rejects_non_strings():
    with pytest.raises(MgrsParseError):
        read_mgrs(None)


def test_read_is_syntactic_only():
    # parses fine, fails validation
    m = read_mgrs("32X AB 55000 12345")
    assert not is_mgrs_valid(m)


def test_format():
    assert format_mgrs(MgrsCoordinate("19T", "GL", 9131, 57968)) == "19T GL 09131 57968"
    assert format_mgrs(MgrsCoordinate("05q", "kb", 0, 5)) == "5Q KB 00000 00005"
    assert str(MgrsCoordinate("50Q", "KK", 7634, 66491)) == "50Q KK 07634 66491"


def test_format_precision():
    m = MgrsCoordinate("19T", "GL", 9131, 57968)
    assert format_mgrs(m, precision=4) == "19T GL 0913 5796"
    assert format_mgrs(m, precision=3) == "19T GL 091 579"
    assert format_mgrs(m, precision=1) == "19T GL 0 5"
    with pytest.raises(ValueError):
        format_mgrs(m, precision=0)
    with pytest.raises(ValueError):
        format_mgrs(m, precision=6)


@pytest.mark.parametrize("m", [
    MgrsCoordinate("19T", "GL", 9131, 57968),
    MgrsCoordinate("5Q", "KB", 23840, 83053),
    MgrsCoordinate("34H", "BH", 0, 99999),
    MgrsCoordinate("60X", "VA", 99999, 0),
])
def test_format_then_read(m):
    assert read_mgrs(format_mgrs(m)) == m


def test_validate_nonexistent_zone():
    with pytest.raises(ZoneError) as excinfo:
        validate_mgrs(MgrsCoordinate("32X", "AB", 55000, 12345))
    assert excinfo.value.kind is ErrorKind.NONEXISTENT_ZONE


def test_validate_grid():
    with pytest.raises(GridError) as excinfo:
        validate_mgrs(MgrsCoordinate("19T", "JL", 9131, 57968))
    assert excinfo.value.value == "JL"


@pytest.mark.parametrize("easting, northing", [
    (100000, 0),
    (0, 100000),
    (-1, 0),
    (0, -1),
])
def test_validate_bounds(easting, northing):
    with pytest.raises(BoundsError):
        validate_mgrs(MgrsCoordinate("19T", "GL", easting, northing))


def test_is_mgrs_valid(caplog):
    caplog.set_level(logging.DEBUG, logger="froggrid")
    assert is_mgrs_valid(MgrsCoordinate("19T", "GL", 9131, 57968))
    assert not is_mgrs_valid(MgrsCoordinate("19T", "GI", 9131, 57968))
    assert "GI" in caplog.text


def test_southern_even_zone():
    u = mgrs_to_utm(MgrsCoordinate("34H", "BH", 57204, 57124))
    assert u == UtmCoordinate("34H", 257204, 6257124)


@pytest.mark.parametrize("m, expected", [
    (MgrsCoordinate("50Q", "KK", 7634, 66491), UtmCoordinate("50Q", 207634, 2466491)),
    (MgrsCoordinate("19T", "GL", 9131, 57968), UtmCoordinate("19T", 709131, 5057968)),
    (MgrsCoordinate("50Q", "PK", 0, 0), UtmCoordinate("50Q", 600000, 2400000)),
    (MgrsCoordinate("31N", "EA", 0, 0), UtmCoordinate("31N", 500000, 0)),
])
def test_mgrs_to_utm(m, expected):
    u = mgrs_to_utm(m)
    assert u == expected
    assert u.hemisphere is expected.hemisphere


@pytest.mark.parametrize("text", [
    "19TGL0913157968",
    "34HBH5720457124",
    "50QKK0763466491",
    "18TWL8562811322",
    "33UXP0500050000",
    "56HLH3461351212",
])
def test_mgrs_to_utm_matches_mgrs_package(text):
    zone, hemisphere, easting, northing = mgrs.MGRS().MGRSToUTM(text)
    if isinstance(hemisphere, bytes):
        hemisphere = hemisphere.decode("ascii")
    u = mgrs_to_utm(read_mgrs(text))
    assert u.zone_number == zone
    assert u.hemisphere.value == hemisphere
    assert u.easting == round(easting)
    assert u.northing == round(northing)


def test_mgrs_to_wgs84():
    g = mgrs_to_wgs84(read_mgrs("50Q KK 07634 66491"))
    assert g.lat == pytest.approx(22.279327, abs=2e-5)
    assert g.lon == pytest.approx(114.162809, abs=2e-5)


@pytest.mark.parametrize("text", [
    "34HBH5720457124",
    "18TWL8562811322",
    "56HLH3461351212",
])
def test_mgrs_to_wgs84_matches_mgrs_package(text):
    lat, lon = mgrs.MGRS().toLatLon(text)
    g = mgrs_to_wgs84(read_mgrs(text))
    assert g.lat == pytest.approx(lat, abs=2e-5)
    assert g.lon == pytest.approx(lon, abs=2e-5)


def test_mgrs_to_wgs84_propagates_errors():
    with pytest.raises(GridError):
        mgrs_to_wgs84(MgrsCoordinate("19T", "ZZ", 0, 0))
    with pytest.raises(ZoneError):
        mgrs_to_wgs84(MgrsCoordinate("31Y", "AA", 0, 0))


def test_grid_square_columns_skip_o():
    for zone_number in (1, 2, 3):
        eastings = [grid_square_easting(zone_number, letter) for letter in get_easting_letters(zone_number)]
        assert eastings == [i * 100000 for i in range(1, 9)]


def test_grid_square_rows_skip_i_and_o():
    rows = [grid_square_northing(1, letter) for letter in NORTHING_LETTERS]
    assert rows == [i * 100000 for i in range(20)]
    # even zones start the row cycle at F
    assert grid_square_northing(2, "F") == 0
    assert grid_square_northing(2, "A") == 1500000
    assert sorted(grid_square_northing(2, letter) for letter in NORTHING_LETTERS) == rows


def test_wgs84_to_mgrs():
    m = wgs84_to_mgrs(22.279327, 114.162809)
    assert m.zone == "50Q"
    assert m.grid == "KK"
    assert m.easting == pytest.approx(7634, abs=3)
    assert m.northing == pytest.approx(66491, abs=3)
    assert is_mgrs_valid(m)


def test_wgs84_to_mgrs_polar():
    with pytest.raises(ZoneError) as excinfo:
        wgs84_to_mgrs(86.0, 10.0)
    assert excinfo.value.kind is ErrorKind.UNSUPPORTED_ZONE


def test_mgrs_json():
    m = MgrsCoordinate("19T", "GL", 9131, 57968)
    assert m.json() == {"zone": "19T", "grid": "GL", "easting": 9131, "northing": 57968}
    assert froggrid.mgrs_to_utm(m).json()["hemisphere"] == "N"
