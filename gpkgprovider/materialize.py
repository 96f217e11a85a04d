"""
Per-request materialization of one layer into a feature collection.

Each row with a non-null geometry goes through header decoding, WKB
decoding and, when its SRID differs from the target, reprojection. Rows that
fail to decode are logged and dropped; a reprojection failure aborts the
whole layer.
"""
import logging
import sqlite3
from contextlib import closing
from dataclasses import dataclass, field

import geopandas as gpd

from gpkgprovider import gpkg_constants as const
from gpkgprovider.catalog import quote_identifier
from gpkgprovider.errors import (DecodeFailure, MalformedHeader,
                                 MaterializationCancelled, QueryFailure,
                                 ReprojectionFailure, UnsupportedEnvelope)
from gpkgprovider.geometry import decode_wkb
from gpkgprovider.header import split_blob
from gpkgprovider.reproject import Reprojector, needs_reprojection

logger = logging.getLogger(__name__)

ROW_ERRORS = (MalformedHeader, UnsupportedEnvelope, DecodeFailure)


@dataclass(frozen=True)
class FeatureRecord:
    id: int
    geometry: object
    tags: dict = field(default_factory=dict)


@dataclass
class MaterializationStats:
    rows_total: int = 0
    rows_scanned: int = 0
    accepted: int = 0
    decode_failures: int = 0
    reprojected: int = 0

    @property
    def consistent(self):
        return self.accepted == self.rows_scanned - self.decode_failures


class FeatureCollection:
    """Ordered features of one layer, all in ``srid``."""

    def __init__(self, layer, srid, features=None, stats=None):
        self.layer = layer
        self.srid = srid
        self.features = list(features or [])
        self.stats = stats if stats is not None else MaterializationStats()

    def __len__(self):
        return len(self.features)

    def __iter__(self):
        return iter(self.features)

    def __getitem__(self, index):
        return self.features[index]

    def __repr__(self):
        return (f'{type(self).__name__}(layer={self.layer!r}, srid={self.srid}, '
                f'features={len(self.features)})')

    def add(self, feature):
        self.features.append(feature)

    def to_geodataframe(self):
        """Return the collection as a GeoDataFrame indexed by feature id."""
        frame = gpd.GeoDataFrame(
            {'tags': [f.tags for f in self.features]},
            geometry=[f.geometry for f in self.features],
            index=[f.id for f in self.features],
            crs=f'EPSG:{self.srid}',
        )
        frame.index.name = 'id'
        return frame


def _check_cancel(cancel, layer_name):
    if cancel is not None and cancel.is_set():
        logger.info('Materialization of layer %s cancelled', layer_name)
        raise MaterializationCancelled(f'Materialization of layer {layer_name} cancelled')


def count_rows(connection, descriptor):
    qtext = f'SELECT COUNT(*) FROM {quote_identifier(descriptor.table)}'
    try:
        with closing(connection.execute(qtext)) as cursor:
            return cursor.fetchone()[0]
    except sqlite3.Error as exc:
        logger.error('Error during query: %s - %s', qtext, exc)
        raise QueryFailure(qtext, exc) from exc


def source_srid(header, descriptor):
    """SRID a geometry is stored in; undefined header SRIDs defer to the layer."""
    if header.srid in (const.UNDEFINED_CARTESIAN_SRID, const.UNDEFINED_GEOGRAPHIC_SRID):
        return descriptor.srid
    return header.srid


def materialize_layer(connection, descriptor, target_srid, reprojector=None,
                      cancel=None):
    """
    Read every non-null geometry of a layer into a FeatureCollection.

    Parameters
    ----------
    connection : sqlite3.Connection
        Open handle to the GeoPackage, owned by the caller.
    descriptor : LayerDescriptor
        Catalog entry of the layer.
    target_srid : int
        SRID of the returned geometries.
    reprojector : callable, optional
        ``reprojector(geometry, source_srid)``; defaults to a
        ``Reprojector(target_srid)``.
    cancel : object with ``is_set()``, optional
        Checked between rows, e.g. a ``threading.Event``.

    Returns
    -------
    FeatureCollection

    Raises
    ------
    QueryFailure
        The row scan could not be started.
    ReprojectionFailure
        A geometry could not be transformed; no partial result is returned.
    MaterializationCancelled
        ``cancel`` was set during the scan.
    """
    if reprojector is None:
        reprojector = Reprojector(target_srid)

    name = descriptor.name
    stats = MaterializationStats(rows_total=count_rows(connection, descriptor))
    collection = FeatureCollection(name, target_srid, stats=stats)

    column = quote_identifier(descriptor.geometry_column)
    qtext = (f'SELECT {column} FROM {quote_identifier(descriptor.table)} '
             f'WHERE {column} IS NOT NULL')
    try:
        cursor = connection.execute(qtext)
    except sqlite3.Error as exc:
        logger.error('Error during query: %s - %s', qtext, exc)
        raise QueryFailure(qtext, exc) from exc

    with closing(cursor):
        for (blob,) in cursor:
            _check_cancel(cancel, name)
            stats.rows_scanned += 1

            try:
                header, payload = split_blob(blob)
                geometry = decode_wkb(payload)
            except ROW_ERRORS as exc:
                stats.decode_failures += 1
                logger.warning('Skipping row %s of layer %s: %s',
                               stats.rows_scanned, name, exc)
                continue

            srid = source_srid(header, descriptor)
            if needs_reprojection(srid, target_srid):
                try:
                    geometry = reprojector(geometry, srid)
                except ReprojectionFailure:
                    logger.error('Was unable to transform geometry to SRID %s '
                                 'from SRID %s for layer %s',
                                 target_srid, srid, name)
                    raise
                except Exception as exc:
                    logger.error('Reprojection of layer %s failed: %s', name, exc)
                    raise ReprojectionFailure(srid, target_srid, exc) from exc
                stats.reprojected += 1

            stats.accepted += 1
            collection.add(FeatureRecord(id=stats.accepted, geometry=geometry))

    if stats.accepted != stats.rows_scanned:
        logger.warning('Layer %s feature count does not match scanned row count '
                       '(%s != %s, %s decode failures)', name, stats.accepted,
                       stats.rows_scanned, stats.decode_failures)
    logger.debug('Materialized %s features for layer %s (%s rows in table)',
                 stats.accepted, name, stats.rows_total)
    return collection
