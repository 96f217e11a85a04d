"""
Layer catalog built once from the GeoPackage metadata tables.

Every ``features`` entry of ``gpkg_contents`` becomes a ``LayerDescriptor``.
The geometry type is sampled from the first row of the table and is
advisory only: a layer whose sample cannot be read is still served.
"""
import logging
import sqlite3
from contextlib import closing
from dataclasses import dataclass
from types import MappingProxyType

from gpkgprovider import gpkg_constants as const
from gpkgprovider.errors import (CatalogUnavailable, DecodeFailure,
                                 MalformedHeader, UnsupportedEnvelope)
from gpkgprovider.geometry import read_geom

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayerDescriptor:
    name: str
    table: str
    geometry_column: str
    srid: int
    geometry_type: str = const.UNRESOLVED_GEOMETRY_TYPE


def quote_identifier(name):
    """
    Quote a table or column name for use in SQLite statements.

    Backticks, not double quotes: SQLite reads an unknown double-quoted
    name as a string literal instead of failing with "no such column".
    """
    return '`{}`'.format(str(name).replace('`', '``'))


def read_contents(connection):
    """Return ``[(table_name, srs_id), ...]`` for the feature tables."""
    qtext = (f'SELECT table_name, srs_id FROM {const.CONTENTS_TABLE} '
             f'WHERE data_type = ? ORDER BY table_name')
    with closing(connection.execute(qtext, (const.FEATURES_DATA_TYPE,))) as cursor:
        return [(name, int(srid) if srid is not None else const.UNDEFINED_GEOGRAPHIC_SRID)
                for name, srid in cursor.fetchall()]


def read_geometry_columns(connection):
    """
    Map table name to geometry column name.

    Returns an empty mapping when ``gpkg_geometry_columns`` is missing, in
    which case callers fall back to the default column name.
    """
    qtext = f'SELECT table_name, column_name FROM {const.GEOMETRY_COLUMNS_TABLE}'
    try:
        with closing(connection.execute(qtext)) as cursor:
            return dict(cursor.fetchall())
    except sqlite3.Error as exc:
        logger.warning('Could not read %s, using default geometry column: %s',
                       const.GEOMETRY_COLUMNS_TABLE, exc)
        return {}


def sample_geometry_type(connection, table, geometry_column):
    """
    Return the geometry type of the first row of ``table``.

    An empty table, a NULL geometry or a sample that fails to decode all
    yield ``'unresolved'``.
    """
    qtext = (f'SELECT {quote_identifier(geometry_column)} '
             f'FROM {quote_identifier(table)} LIMIT 1')
    try:
        with closing(connection.execute(qtext)) as cursor:
            row = cursor.fetchone()
    except sqlite3.Error as exc:
        logger.warning('Error during query: %s - %s', qtext, exc)
        return const.UNRESOLVED_GEOMETRY_TYPE

    if row is None or row[0] is None:
        logger.info('No sample geometry for table %s', table)
        return const.UNRESOLVED_GEOMETRY_TYPE

    try:
        geometry, _ = read_geom(row[0])
    except (MalformedHeader, UnsupportedEnvelope, DecodeFailure) as exc:
        logger.warning('Error decoding sample geometry for table %s: %s', table, exc)
        return const.UNRESOLVED_GEOMETRY_TYPE

    return geometry.geom_type


def build_catalog(connection, filepath=None,
                  default_geometry_column=const.DEFAULT_GEO_COLUMN_NAME):
    """
    Build the read-only layer directory of a GeoPackage.

    Parameters
    ----------
    connection : sqlite3.Connection
        Open handle to the GeoPackage.
    filepath : str, optional
        Only used in error messages.
    default_geometry_column : str, default 'geom'
        Column used for tables missing from ``gpkg_geometry_columns``.

    Returns
    -------
    mappingproxy
        Layer name -> ``LayerDescriptor``.

    Raises
    ------
    CatalogUnavailable
        If ``gpkg_contents`` cannot be read.
    """
    try:
        contents = read_contents(connection)
    except sqlite3.Error as exc:
        logger.error('Error reading %s: %s', const.CONTENTS_TABLE, exc)
        raise CatalogUnavailable(filepath or '<connection>', exc) from exc

    geometry_columns = read_geometry_columns(connection)

    layers = {}
    for table, srid in contents:
        geometry_column = geometry_columns.get(table, default_geometry_column)
        geometry_type = sample_geometry_type(connection, table, geometry_column)
        logger.info('Got geometry type %s for table %s (SRID %s)',
                    geometry_type, table, srid)
        layers[table] = LayerDescriptor(
            name=table,
            table=table,
            geometry_column=geometry_column,
            srid=srid,
            geometry_type=geometry_type,
        )

    logger.debug('gpkg_contents: %s',
                 ' '.join(f'({d.name}-{d.srid})' for d in layers.values()))
    return MappingProxyType(layers)
