import logging
import sqlite3

from gpkgprovider import gpkg_constants as const
from gpkgprovider.catalog import build_catalog
from gpkgprovider.errors import CatalogUnavailable, QueryFailure, UnknownLayer
from gpkgprovider.log import setup_logging
from gpkgprovider.materialize import materialize_layer
from gpkgprovider.pool import ConnectionPool
from gpkgprovider.reproject import Reprojector

logger = logging.getLogger(__name__)


class GeoPackageProvider:
    """
    Serves the feature layers of one GeoPackage in a fixed target SRID.

    The layer catalog is read once on construction and never changes
    afterwards, so one provider can be shared by concurrent callers; every
    ``features()`` call uses its own pooled connection and output.

    Parameters
    ----------
    filepath : str or pathlib.Path
        GeoPackage file.
    target_srid : int, default 3857
        SRID of the served geometries.
    pool_size : int, default 4
        Maximum number of open SQLite handles.
    geometry_column : str, default 'geom'
        Column used for tables missing from ``gpkg_geometry_columns``.
    reprojector : callable, optional
        ``reprojector(geometry, source_srid)``; a ``Reprojector`` by default.

    Example
    -------
    >>> with GeoPackageProvider('city.gpkg') as provider:
    ...     parks = provider.features('parks')
    """

    def __init__(self, filepath, target_srid=const.WEB_MERCATOR, pool_size=4,
                 geometry_column=const.DEFAULT_GEO_COLUMN_NAME, reprojector=None):
        self.filepath = filepath
        self.target_srid = int(target_srid)
        self.reprojector = reprojector or Reprojector(self.target_srid)
        self._pool = ConnectionPool(filepath, size=pool_size)

        try:
            with self._pool.connection() as connection:
                self._layers = build_catalog(
                    connection, filepath=str(filepath),
                    default_geometry_column=geometry_column,
                )
        except sqlite3.Error as exc:
            self._pool.close()
            logger.error('Error opening gpkg file %s: %s', filepath, exc)
            raise CatalogUnavailable(str(filepath), exc) from exc
        except CatalogUnavailable:
            self._pool.close()
            raise

        logger.info('GeoPackage %s provides %d layers', filepath, len(self._layers))

    @classmethod
    def from_settings(cls, settings, **kwargs):
        setup_logging(settings.log_level)
        return cls(settings.filepath, target_srid=settings.target_srid,
                   pool_size=settings.pool_size,
                   geometry_column=settings.geometry_column, **kwargs)

    def __repr__(self):
        return f'{type(self).__name__}({str(self.filepath)!r}, target_srid={self.target_srid})'

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def layers(self):
        return sorted(self._layers.values(), key=lambda d: d.name)

    def layer(self, name):
        try:
            return self._layers[name]
        except KeyError:
            raise UnknownLayer(name) from None

    def features(self, name, cancel=None):
        """
        Materialize layer ``name`` into a new FeatureCollection.

        Raises ``UnknownLayer``, ``QueryFailure``, ``ReprojectionFailure`` or
        ``MaterializationCancelled``; rows that fail to decode are skipped.
        """
        descriptor = self.layer(name)
        logger.debug('features() called for %s', name)
        try:
            with self._pool.connection() as connection:
                return materialize_layer(connection, descriptor, self.target_srid,
                                         reprojector=self.reprojector, cancel=cancel)
        except sqlite3.Error as exc:
            # pool exhaustion or a storage error in the middle of the scan
            raise QueryFailure(f'features({name!r})', exc) from exc

    def close(self):
        self._pool.close()
