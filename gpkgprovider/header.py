"""
Reader for the GeoPackage binary header that precedes every stored geometry.

    magic    2 bytes   'GP'
    version  1 byte    0 for GeoPackage 1.x
    flags    1 byte    byte order, envelope indicator, empty, extended
    srs_id   4 bytes   signed int in the flags byte order
    envelope 0, 4, 6 or 8 doubles in the flags byte order

The WKB payload starts right after the envelope, at ``GeoPackageHeader.size``.
"""
from dataclasses import dataclass
from typing import Optional

import numpy as np

from gpkgprovider import gpkg_constants as const
from gpkgprovider.errors import MalformedHeader, UnsupportedEnvelope


@dataclass(frozen=True)
class Envelope:
    minx: float
    maxx: float
    miny: float
    maxy: float
    minz: Optional[float] = None
    maxz: Optional[float] = None
    minm: Optional[float] = None
    maxm: Optional[float] = None

    @property
    def has_z(self):
        return self.minz is not None

    @property
    def has_m(self):
        return self.minm is not None


@dataclass(frozen=True)
class GeoPackageHeader:
    magic: bytes
    version: int
    flags: int
    byte_order: str
    envelope_indicator: int
    empty: bool
    extended: bool
    srid: int
    envelope: Optional[Envelope] = None

    @property
    def size(self):
        """Header length in bytes, i.e. the offset of the WKB payload."""
        return envelope_size(self.envelope_indicator) + const.HEADER_PREFIX_SIZE


def envelope_size(indicator):
    """Return the envelope length in bytes for an indicator code."""
    try:
        return 8 * const.ENVELOPE_DOUBLES[indicator]
    except KeyError:
        raise UnsupportedEnvelope(indicator) from None


def read_flags(flags):
    """
    Split the flags byte into its fields.

    Parameters
    ----------
    flags : int
        The fourth byte of the header.

    Returns
    -------
    dict
        ``byteOrder`` (1 little endian, 0 big endian), ``envelopeIndicator``,
        ``empty`` and ``extended``.
    """
    # Verify the reserved bits at 7 and 6 are 0
    if flags & const.FLAG_RESERVED:
        raise MalformedHeader(
            'Unexpected GeoPackage Geometry flags. '
            'Flag bit 7 and 6 should both be 0'
        )

    envelope_indicator = (flags >> const.FLAG_ENVELOPE_SHIFT) & const.FLAG_ENVELOPE_MASK
    if envelope_indicator not in const.ENVELOPE_DOUBLES:
        raise UnsupportedEnvelope(envelope_indicator)

    return {
        'byteOrder': flags & const.FLAG_BYTE_ORDER,
        'envelopeIndicator': envelope_indicator,
        'empty': bool(flags & const.FLAG_EMPTY),
        'extended': bool(flags & const.FLAG_EXTENDED),
    }


def read_envelope(buffer, indicator, byte_order):
    if indicator == 0:
        return None

    dt = np.dtype('d').newbyteorder(byte_order)
    values = np.frombuffer(buffer, dtype=dt, count=const.ENVELOPE_DOUBLES[indicator],
                           offset=const.ENVELOPE_OFFSET).tolist()

    envelope = dict(minx=values[0], maxx=values[1],
                    miny=values[2], maxy=values[3])
    rest = values[4:]
    # z comes before m when both are present
    if indicator in (2, 4):
        envelope.update(minz=rest[0], maxz=rest[1])
        rest = rest[2:]
    if indicator in (3, 4):
        envelope.update(minm=rest[0], maxm=rest[1])

    return Envelope(**envelope)


def read_header(buffer):
    """
    Decode the GeoPackage binary header at the start of ``buffer``.

    Only the header bytes are read; the geometry payload is left untouched.

    Parameters
    ----------
    buffer : bytes-like
        A geometry blob as stored in a feature table.

    Returns
    -------
    GeoPackageHeader

    Raises
    ------
    MalformedHeader
        Wrong magic, unknown version, reserved flag bits set, or a buffer
        too short for the header it declares.
    UnsupportedEnvelope
        Envelope indicator code outside 0..4.
    """
    try:
        buffer = memoryview(buffer).cast('B')
    except TypeError as exc:
        raise MalformedHeader(
            f'Expected a binary geometry blob, got {type(buffer).__name__}'
        ) from exc

    magic = bytes(buffer[0:2])
    if magic != const.GEOPACKAGE_GEOMETRY_MAGIC_NUMBER:
        raise MalformedHeader('Unexpected GeoPackage Geometry magic number')
    if len(buffer) < const.HEADER_PREFIX_SIZE:
        raise MalformedHeader(
            f'GeoPackage Geometry header truncated at {len(buffer)} bytes'
        )

    version = buffer[2]
    if version != const.GEOPACKAGE_GEOMETRY_VERSION_1:
        raise MalformedHeader(f'Unexpected GeoPackage Geometry version {version}')

    flags = buffer[3]
    flags_dict = read_flags(flags)
    byte_order = '<' if flags_dict['byteOrder'] else '>'
    indicator = flags_dict['envelopeIndicator']

    size = const.HEADER_PREFIX_SIZE + envelope_size(indicator)
    if len(buffer) < size:
        raise MalformedHeader(
            f'GeoPackage Geometry envelope truncated: need {size} bytes, '
            f'got {len(buffer)}'
        )

    srid = np.frombuffer(buffer, dtype=np.dtype('i4').newbyteorder(byte_order),
                         count=1, offset=4)[0]

    return GeoPackageHeader(
        magic=magic,
        version=version,
        flags=flags,
        byte_order=byte_order,
        envelope_indicator=indicator,
        empty=flags_dict['empty'],
        extended=flags_dict['extended'],
        srid=int(srid),
        envelope=read_envelope(buffer, indicator, byte_order),
    )


def split_blob(buffer):
    """Return ``(header, payload)`` where payload is a view past the header."""
    header = read_header(buffer)
    return header, memoryview(buffer)[header.size:]
