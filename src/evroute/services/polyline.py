"""Encoded polyline codec.

Route providers ship geometry in the Google encoded polyline format. Each
coordinate is scaled by ``10**precision``; providers disagree on the precision
(5 for Google and OSRM, 6 for Valhalla-style services), and decoding with the
wrong one silently produces wrong coordinates, so callers always pass it.
"""

from __future__ import annotations

from typing import Iterable, Optional

from ..models.domain import GeoPoint, Route

_MIN_CHAR = 63
_MAX_CHAR = 126
_CHUNK_MASK = 0x1F
_CONTINUATION = 0x20


class MalformedPolylineError(ValueError):
    """Raised when an encoded polyline is truncated or contains invalid characters."""


def _read_value(encoded: str, index: int) -> tuple[int, int]:
    """Read one zig-zag varint starting at ``index``; return (delta, next_index)."""
    result = 0
    shift = 0
    while True:
        if index >= len(encoded):
            raise MalformedPolylineError(f"Polyline truncated inside a value at offset {index}.")
        code = ord(encoded[index])
        if code < _MIN_CHAR or code > _MAX_CHAR:
            raise MalformedPolylineError(f"Invalid polyline character {encoded[index]!r} at offset {index}.")
        chunk = code - _MIN_CHAR
        index += 1
        result |= (chunk & _CHUNK_MASK) << shift
        shift += 5
        if chunk < _CONTINUATION:
            break
    delta = ~(result >> 1) if result & 1 else result >> 1
    return delta, index


def decode_polyline(encoded: Optional[str | bytes], precision: int = 5) -> Route:
    """Decode an encoded polyline into a route of GeoPoints.

    Empty or ``None`` input yields an empty route. A trailing incomplete value
    raises :class:`MalformedPolylineError` rather than being dropped.
    """
    if not encoded:
        return ()
    if isinstance(encoded, bytes):
        encoded = encoded.decode("ascii", errors="replace")

    factor = 10 ** precision
    points: list[GeoPoint] = []
    index = 0
    lat = 0
    lng = 0
    while index < len(encoded):
        d_lat, index = _read_value(encoded, index)
        if index >= len(encoded):
            raise MalformedPolylineError("Polyline ends after a latitude without its longitude.")
        d_lng, index = _read_value(encoded, index)
        lat += d_lat
        lng += d_lng
        points.append(GeoPoint(lat=lat / factor, lng=lng / factor))
    return tuple(points)


def _encode_value(value: int) -> str:
    value = ~(value << 1) if value < 0 else value << 1
    chunks: list[str] = []
    while value >= _CONTINUATION:
        chunks.append(chr((_CONTINUATION | (value & _CHUNK_MASK)) + _MIN_CHAR))
        value >>= 5
    chunks.append(chr(value + _MIN_CHAR))
    return "".join(chunks)


def encode_polyline(points: Iterable[GeoPoint], precision: int = 5) -> str:
    """Encode points with the same scheme :func:`decode_polyline` reads."""
    factor = 10 ** precision
    output: list[str] = []
    prev_lat = 0
    prev_lng = 0
    for point in points:
        lat = int(round(point.lat * factor))
        lng = int(round(point.lng * factor))
        output.append(_encode_value(lat - prev_lat))
        output.append(_encode_value(lng - prev_lng))
        prev_lat, prev_lng = lat, lng
    return "".join(output)
