class GeohashError(Exception):
    """Base class for every error raised by the codec and the store."""


class InvalidGeohash(GeohashError, ValueError):
    def __init__(self, geohash):
        self.geohash = geohash
        super().__init__(f"Invalid character in geohash (base32): {geohash!r}")


class GeohashNotFound(GeohashError, KeyError):
    def __init__(self, geohash: str):
        self.geohash = geohash
        super().__init__(f"Geohash not found: {geohash!r}")

    def __str__(self) -> str:
        # KeyError would repr() the message otherwise
        return self.args[0]


class KeyNotFound(GeohashError, KeyError):
    def __init__(self, geohash: str, key: str):
        self.geohash = geohash
        self.key = key
        super().__init__(f"Key not found at geohash {geohash!r}: {key!r}")

    def __str__(self) -> str:
        return self.args[0]


class OutOfRange(GeohashError, ValueError):
    """Raised by a strict codec when a coordinate lies outside its region."""

    def __init__(self, axis: str, value: float, lo: float, hi: float):
        self.axis = axis
        self.value = value
        super().__init__(f"{axis.capitalize()} {value} must be between {lo} and {hi}")
