# @constant {bytes} GEOPACKAGE_GEOMETRY_MAGIC_NUMBER Expected magic number
GEOPACKAGE_GEOMETRY_MAGIC_NUMBER = b'GP'

# @constant {int} GEOPACKAGE_GEOMETRY_VERSION_1 Expected version 1 value
GEOPACKAGE_GEOMETRY_VERSION_1 = 0

# @constant {int} HEADER_PREFIX_SIZE magic + version + flags + srs_id
HEADER_PREFIX_SIZE = 8

# @constant {int} ENVELOPE_OFFSET Byte offset of the first envelope double
ENVELOPE_OFFSET = HEADER_PREFIX_SIZE

# Flag bits, least significant first
FLAG_BYTE_ORDER = 0x01
FLAG_ENVELOPE_SHIFT = 1
FLAG_ENVELOPE_MASK = 0x07
FLAG_EMPTY = 0x10
FLAG_EXTENDED = 0x20
FLAG_RESERVED = 0xC0

# @constant {dict} ENVELOPE_DOUBLES Number of doubles per envelope indicator
# code: none, XY, XYZ, XYM, XYZM
ENVELOPE_DOUBLES = {
    0: 0,
    1: 4,
    2: 6,
    3: 6,
    4: 8,
}

# @constant {int} UNDEFINED_CARTESIAN_SRID / UNDEFINED_GEOGRAPHIC_SRID
# srs_id values the GeoPackage spec reserves for undefined systems
UNDEFINED_CARTESIAN_SRID = -1
UNDEFINED_GEOGRAPHIC_SRID = 0

WEB_MERCATOR = 3857

# Metadata tables
CONTENTS_TABLE = 'gpkg_contents'
GEOMETRY_COLUMNS_TABLE = 'gpkg_geometry_columns'
FEATURES_DATA_TYPE = 'features'

DEFAULT_GEO_COLUMN_NAME = 'geom'

# @constant {string} UNRESOLVED_GEOMETRY_TYPE Sampled type placeholder
UNRESOLVED_GEOMETRY_TYPE = 'unresolved'
