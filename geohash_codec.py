"""Geohash encoding, decoding and neighbor lookup.

The default geohash specification covers the entire globe from [-90, -180] up
to [90, 180]. A codec can be bound to any other bounding region, but the
geohashes it produces only decode correctly with a codec bound to the same
region.

Approximate cell sizes on the globe:

    length  lat bits  lon bits  lat error   lon error   km error
    1       2         3         ±23         ±23         ±2500
    2       5         5         ±2.8        ±5.6        ±630
    3       7         8         ±0.70       ±0.70       ±78
    4       10        10        ±0.087      ±0.18       ±20
    5       12        13        ±0.022      ±0.022      ±2.4
    6       15        15        ±0.0027     ±0.0055     ±0.61
    7       17        18        ±0.00068    ±0.00068    ±0.076
    8       20        20        ±0.000085   ±0.00017    ±0.019
"""

from dataclasses import dataclass
from typing import NamedTuple, Optional

from geohash_errors import InvalidGeohash, OutOfRange

ALPHABET = "0123456789bcdefghjkmnpqrstuvwxyz"  # Standard Base32 characters
DECODE_MAP = {c: i for i, c in enumerate(ALPHABET)}
# Bitmask positions for 5 bit base32 encoding, most significant first
BITS = (16, 8, 4, 2, 1)


class Location(NamedTuple):
    """A (latitude, longitude) point, y before x."""

    lat: float
    lon: float


@dataclass(frozen=True)
class Region:
    """Bounding box with ``min`` the south-west and ``max`` the north-east corner."""

    min: Location
    max: Location

    def __post_init__(self):
        if self.min.lat > self.max.lat or self.min.lon > self.max.lon:
            raise ValueError(f"Region corners are inverted: min={self.min} max={self.max}")

    @property
    def center(self) -> Location:
        return Location(
            (self.min.lat + self.max.lat) / 2, (self.min.lon + self.max.lon) / 2
        )

    @property
    def width(self) -> float:
        return abs(self.max.lon - self.min.lon)

    @property
    def height(self) -> float:
        return abs(self.max.lat - self.min.lat)

    def contains(self, location: Location) -> bool:
        lat, lon = location
        return (
            self.min.lat <= lat <= self.max.lat and self.min.lon <= lon <= self.max.lon
        )


GLOBE = Region(Location(-90.0, -180.0), Location(90.0, 180.0))


def valid(geohash) -> bool:
    """Return True if ``geohash`` is a non-empty string of base32 characters."""
    if not isinstance(geohash, str) or not geohash:
        return False
    return all(c in DECODE_MAP for c in geohash)


def validate(geohash) -> str:
    """Return ``geohash`` unchanged, or raise InvalidGeohash."""
    if not valid(geohash):
        raise InvalidGeohash(geohash)
    return geohash


def _wrap(value: float, lo: float, hi: float) -> float:
    # A single reflection only, values further out than one range width stay out
    if value < lo:
        return hi - (lo - value)
    if value > hi:
        return lo + (value - hi)
    return value


class Geohash:
    """Geohash encoder/decoder bound to a bounding region and default precision."""

    def __init__(
        self, region: Region = GLOBE, precision: int = 5, strict: bool = False
    ):
        if precision < 1:
            raise ValueError("Precision must be at least 1")
        self.region = region
        self.precision = precision
        self.strict = strict

    @classmethod
    def from_settings(cls, config=None, strict: bool = False) -> "Geohash":
        """Build a codec from the region and precision in the settings."""
        if config is None:
            from geohash_settings import settings as config
        return cls(config.region, config.default_precision, strict=strict)

    def __repr__(self) -> str:
        return f"Geohash(region={self.region!r}, precision={self.precision})"

    def _normalize(
        self, axis: str, value: float, lo: float, hi: float, strict: bool
    ) -> float:
        if lo <= value <= hi:
            return value
        if strict:
            raise OutOfRange(axis, value, lo, hi)
        return _wrap(value, lo, hi)

    def _encode_bitstream(
        self, value: float, lo: float, hi: float, bit_length: int
    ) -> list[int]:
        """Encodes a value into a bitstream using binary subdivision."""
        res = []
        for _ in range(bit_length):
            mid = (lo + hi) / 2
            if value > mid:
                lo = mid
                res.append(1)
            else:
                hi = mid
                res.append(0)
        return res

    def _encode(
        self, lat: float, lon: float, precision: Optional[int], strict: bool
    ) -> str:
        if precision is None:
            precision = self.precision
        if precision < 1:
            raise ValueError("Precision must be at least 1")

        lo, hi = self.region.min, self.region.max
        lat = self._normalize("latitude", lat, lo.lat, hi.lat, strict)
        lon = self._normalize("longitude", lon, lo.lon, hi.lon, strict)

        bit_length = precision * 5
        lat_bits = bit_length // 2
        lon_bits = bit_length - lat_bits

        lat_stream = self._encode_bitstream(lat, lo.lat, hi.lat, lat_bits)
        lon_stream = self._encode_bitstream(lon, lo.lon, hi.lon, lon_bits)

        # Interleave, longitude first
        geohash_bits = []
        for i in range(lon_bits):
            geohash_bits.append(lon_stream[i])
            if i < lat_bits:
                geohash_bits.append(lat_stream[i])

        result = []
        for i in range(0, bit_length, 5):
            chunk = geohash_bits[i : i + 5]
            value = sum(bit << (4 - j) for j, bit in enumerate(chunk))
            result.append(ALPHABET[value])

        return "".join(result)

    def encode(self, lat: float, lon: float, precision: Optional[int] = None) -> str:
        """Encode a latitude and longitude into a geohash.

        Coordinates outside the region are wrapped back into it once along
        each axis, unless the codec is strict, in which case OutOfRange is
        raised. Points lying exactly on a split go to the south/west half.
        """
        return self._encode(lat, lon, precision, self.strict)

    def decode(self, geohash: str) -> Region:
        """Decode a geohash into the region (cell) it covers."""
        validate(geohash)
        min_lat, max_lat = self.region.min.lat, self.region.max.lat
        min_lon, max_lon = self.region.min.lon, self.region.max.lon

        even = True  # longitude first
        for char in geohash:
            decimal = DECODE_MAP[char]
            for mask in BITS:
                if even:
                    mid = (min_lon + max_lon) / 2
                    if decimal & mask:
                        min_lon = mid  # EAST
                    else:
                        max_lon = mid  # WEST
                else:
                    mid = (min_lat + max_lat) / 2
                    if decimal & mask:
                        min_lat = mid  # NORTH
                    else:
                        max_lat = mid  # SOUTH
                even = not even

        return Region(Location(min_lat, min_lon), Location(max_lat, max_lon))

    def cell_size(self, precision: Optional[int] = None) -> tuple[float, float]:
        """Calculate the size of a geohash cell for a given precision.

        Args:
            precision (int): precision/length of geohash

        Returns:
            (latitude_height, longitude_width)
        """
        if precision is None:
            precision = self.precision
        if precision < 1:
            raise ValueError("Precision must be at least 1")
        lat_bits = precision * 5 // 2
        lon_bits = precision * 5 - lat_bits

        lat_err = self.region.height / (1 << lat_bits)
        lon_err = self.region.width / (1 << lon_bits)

        return lat_err, lon_err

    def neighbors(self, geohash: str) -> dict[str, str]:
        """
        Compute the 8 neighboring geohashes (N, S, E, W, NE, NW, SE, SW).

        Offsets that leave the region are wrapped by the encoder. This also
        applies to latitude: the northern neighbor of a polar cell lands near
        the opposite pole.
        """
        region = self.decode(geohash)
        center_lat, center_lon = region.center
        lat_height, lon_width = region.height, region.width
        precision = len(geohash)
        directions = {
            "n": (lat_height, 0),
            "s": (-lat_height, 0),
            "e": (0, lon_width),
            "w": (0, -lon_width),
            "ne": (lat_height, lon_width),
            "se": (-lat_height, lon_width),
            "nw": (lat_height, -lon_width),
            "sw": (-lat_height, -lon_width),
        }
        neighbors = {}
        for direction, (dlat, dlon) in directions.items():
            neighbors[direction] = self._encode(
                center_lat + dlat, center_lon + dlon, precision, strict=False
            )
        return neighbors


globe = Geohash()


def encode(lat: float, lon: float, precision: int = 5) -> str:
    """Encode a point on the globe."""
    return globe.encode(lat, lon, precision)


def decode(geohash: str) -> Region:
    return globe.decode(geohash)


def neighbors(geohash: str) -> dict[str, str]:
    return globe.neighbors(geohash)


if __name__ == "__main__":
    geo = Geohash(precision=6)
    encoded = geo.encode(41.878738, -87.6359612)  # Willis Tower
    decoded = geo.decode(encoded)
    adjacent = geo.neighbors(encoded)

    print(f"Encoded: {encoded}")
    print(f"Decoded: {decoded} (center {decoded.center})")
    print(f"Neighbors: {adjacent}")
