"""Hand-off of the WKB payload to shapely."""
import shapely.errors
from shapely import wkb

from gpkgprovider.errors import DecodeFailure
from gpkgprovider.header import split_blob


def decode_wkb(payload):
    """
    Decode a WKB payload into a shapely geometry.

    The payload carries its own byte order marker, so only the bytes past
    the GeoPackage header are needed.

    Raises
    ------
    DecodeFailure
        If shapely cannot read the payload or returns nothing.
    """
    try:
        geometry = wkb.loads(bytes(payload))
    except (shapely.errors.ShapelyError, ValueError, TypeError) as exc:
        raise DecodeFailure(f'Error decoding geometry: {exc}') from exc

    if geometry is None:
        raise DecodeFailure('Error decoding geometry: no geometry in payload')
    return geometry


def read_geom(buffer):
    """Return ``(geometry, srid)`` for a full GeoPackage geometry blob."""
    header, payload = split_blob(buffer)
    return decode_wkb(payload), header.srid
