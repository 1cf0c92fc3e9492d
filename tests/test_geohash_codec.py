import pytest
from hypothesis import given, strategies as st

from geohash_codec import (
    ALPHABET,
    GLOBE,
    Geohash,
    Location,
    Region,
    decode,
    encode,
    neighbors,
    valid,
    validate,
)
from geohash_errors import InvalidGeohash, OutOfRange

GEOHASH_TESTS = [
    (-27.07332578863511, -109.32321101199314, "3e4mbr3q2w39"),  # Easter Island, Anakena Beach
    (41.90216070037718, 12.453725061736066, "sr2y7kh9bbfk"),  # Vatican, Saint Peter's Basilica
    (55.753730934309345, 37.61990186254636, "ucfv0j9vp0xz"),  # Moscow, Red Square
    (-33.85684190426881, 151.21525191838856, "r3gx2ux9dg0p"),  # Sydney Opera House
    (19.43265922422016, -99.13317967733457, "9g3w81t7mqpx"),  # Mexico City, Zocalo
]

latitudes = st.floats(-90, 90)
longitudes = st.floats(-180, 180)
geohashes = st.text(alphabet=ALPHABET, min_size=1, max_size=12)


def test_location():
    loc = Location(20.643896, -103.416687)
    assert loc.lat == 20.643896
    assert loc.lon == -103.416687
    lat, lon = loc
    assert (lat, lon) == (20.643896, -103.416687)


def test_region():
    lo = Location(-90.0, -180.0)
    hi = Location(90.0, 180.0)
    region = Region(lo, hi)
    assert region.center == Location(0.0, 0.0)
    assert region.min == lo
    assert region.max == hi
    assert region.width == 360.0
    assert region.height == 180.0
    assert region == GLOBE


def test_region_rejects_inverted_corners():
    with pytest.raises(ValueError):
        Region(Location(10, 0), Location(0, 10))


def test_region_is_immutable():
    with pytest.raises(AttributeError):
        GLOBE.min = Location(0, 0)


@pytest.mark.parametrize("lat,lon,geohash", GEOHASH_TESTS)
def test_encode(lat, lon, geohash):
    for i in range(len(geohash)):
        assert encode(lat, lon, i + 1) == geohash[: i + 1]


@pytest.mark.parametrize("lat,lon,geohash", GEOHASH_TESTS)
def test_decode(lat, lon, geohash):
    # Just enough precision to care about integer degrees
    for i in range(4, len(geohash)):
        center = decode(geohash[: i + 1]).center
        assert round(center.lat) == round(lat)
        assert round(center.lon) == round(lon)


def test_decode_single_character():
    region = decode("9")
    assert region.min == Location(0.0, -135.0)
    assert region.max == Location(45.0, -90.0)


def test_decode_rejects_invalid():
    with pytest.raises(InvalidGeohash):
        decode("")
    with pytest.raises(InvalidGeohash):
        decode("9a")


def test_ties_go_south_west():
    assert encode(0.0, 0.0, 1) == "7"
    assert encode(90.0, 180.0, 1) == "z"
    assert encode(-90.0, -180.0, 1) == "0"


def test_codec_default_precision():
    assert Geohash(precision=12).encode(*GEOHASH_TESTS[0][:2]) == GEOHASH_TESTS[0][2]
    assert len(Geohash().encode(10.0, 10.0)) == 5


@pytest.mark.parametrize("precision", [0, -1])
def test_invalid_precision(precision):
    with pytest.raises(ValueError):
        Geohash(precision=precision)
    with pytest.raises(ValueError):
        encode(0.0, 0.0, precision)


def test_encode_wraps_longitude():
    assert encode(10.0, 190.0, 8) == encode(10.0, -170.0, 8)
    assert encode(10.0, -190.0, 8) == encode(10.0, 170.0, 8)


def test_encode_wraps_latitude():
    assert encode(100.0, 10.0, 8) == encode(-80.0, 10.0, 8)
    assert encode(-100.0, 10.0, 8) == encode(80.0, 10.0, 8)


def test_strict_codec_raises_out_of_range():
    strict = Geohash(strict=True)
    with pytest.raises(OutOfRange) as excinfo:
        strict.encode(0.0, 181.0)
    assert excinfo.value.axis == "longitude"
    with pytest.raises(OutOfRange):
        strict.encode(-91.0, 0.0)
    assert strict.encode(90.0, 180.0) == encode(90.0, 180.0, 5)


def test_custom_region():
    region = Region(Location(0.0, 0.0), Location(10.0, 10.0))
    geo = Geohash(region, precision=6)
    geohash = geo.encode(3.3, 7.7)
    assert geo.decode(geohash).contains(Location(3.3, 7.7))
    assert not decode(geohash).contains(Location(3.3, 7.7))


def test_cell_size():
    geo = Geohash()
    assert geo.cell_size(1) == (45.0, 45.0)
    lat_height, lon_width = geo.cell_size(6)
    region = decode("u4pruy")
    assert region.height == pytest.approx(lat_height)
    assert region.width == pytest.approx(lon_width)


def test_neighbors_of_single_cell():
    assert neighbors("9") == {
        "n": "c",
        "s": "3",
        "e": "d",
        "w": "8",
        "ne": "f",
        "nw": "b",
        "se": "6",
        "sw": "2",
    }


def test_neighbors_wrap_around():
    adjacent = neighbors("b")
    assert adjacent["w"] == "z"
    # Stepping north over the pole lands at the opposite pole
    assert adjacent["n"] == "0"
    assert adjacent["nw"] == "p"


def test_neighbors_border_ring():
    borders = "bcdf2368"
    geohash = "999999999999"
    for i in range(len(geohash)):
        for v in neighbors(geohash[: i + 1]).values():
            assert valid(v)
            assert v[-1] in borders


def test_valid():
    for _, _, geohash in GEOHASH_TESTS:
        assert valid(geohash)
    invalid = [
        "abcdefgh",  # contains 'a'
        "ijk12345",  # contains 'i'
        "lmn67890",  # contains 'l'
        "opqrstuv",  # contains 'o'
        "wxyz?!_#",  # special characters
        "",
        None,
    ]
    for v in invalid:
        assert not valid(v)


def test_every_alphabet_character_is_valid():
    for c in ALPHABET:
        assert valid(c)
        assert validate(c) == c


def test_validate_raises():
    with pytest.raises(InvalidGeohash) as excinfo:
        validate("9q!")
    assert excinfo.value.geohash == "9q!"
    assert isinstance(excinfo.value, ValueError)


@given(latitudes, longitudes, st.integers(1, 12))
def test_alphabet_closure(lat, lon, precision):
    geohash = encode(lat, lon, precision)
    assert len(geohash) == precision
    assert valid(geohash)


@given(latitudes, longitudes, st.integers(1, 12), st.integers(1, 12))
def test_prefix_monotonicity(lat, lon, a, b):
    a, b = min(a, b), max(a, b)
    assert encode(lat, lon, b).startswith(encode(lat, lon, a))


@given(latitudes, longitudes, st.integers(1, 12))
def test_round_trip_containment(lat, lon, precision):
    region = decode(encode(lat, lon, precision))
    assert region.min.lat <= lat <= region.max.lat
    assert region.min.lon <= lon <= region.max.lon


@given(geohashes)
def test_center_re_encoding(geohash):
    center = decode(geohash).center
    assert encode(center.lat, center.lon, len(geohash)) == geohash


@given(geohashes)
def test_neighbor_validity(geohash):
    adjacent = neighbors(geohash)
    assert set(adjacent) == {"n", "s", "e", "w", "ne", "nw", "se", "sw"}
    for v in adjacent.values():
        assert valid(v)
        assert len(v) == len(geohash)


@given(st.text(min_size=1, max_size=12))
def test_validator_matches_alphabet(text):
    assert valid(text) == all(c in ALPHABET for c in text)


@pytest.mark.parametrize("precision", [0, -1])
def test_cell_size_rejects_invalid_precision(precision):
    with pytest.raises(ValueError):
        Geohash().cell_size(precision)
