import sqlite3
from contextlib import closing

import pandas as pd
import geopandas as gpd

from gpkgprovider import gpkg_constants as const
from gpkgprovider.geometry import read_geom


def _decode_column(series):
    geometries = []
    srid = None
    for buffer in series:
        if buffer is None or pd.isnull(buffer):
            geometries.append(None)
            continue
        geometry, geom_srid = read_geom(buffer)
        if srid is None:
            srid = geom_srid
        geometries.append(geometry)
    return geometries, srid


def read_gpkg(sql, filepath, geom_col=const.DEFAULT_GEO_COLUMN_NAME, crs=None,
              index_col=None, coerce_float=True, parse_dates=None, params=None):
    """
    Returns a GeoDataFrame corresponding to the result of the query
    string, which must contain a geometry column in GeoPackage binary
    representation.

    Parameters
    ----------
    sql : string
        SQL query to execute in selecting entries from database.
    filepath : string
        Geopackage file path to be read using the function.
    geom_col : string, default 'geom'
        column name to convert to shapely geometries
    crs : dict or str, optional
        CRS to use for the returned GeoDataFrame; if not set, tries to
        determine CRS from the SRID associated with the first geometry in
        the database, and assigns that to all geometries.

    Returns
    -------
    GeoDataFrame

    Example
    -------
    >>> sql = "SELECT geom, kind FROM polygons"
    >>> df = gpkgprovider.read_gpkg(sql, 'file.gpkg')
    """
    with closing(sqlite3.connect(str(filepath))) as con:
        df = pd.read_sql(sql, con, index_col=index_col, coerce_float=coerce_float,
                         parse_dates=parse_dates, params=params)

    if geom_col not in df:
        raise ValueError("Query missing geometry column '{}'".format(geom_col))

    geometries, srid = _decode_column(df[geom_col])
    if crs is None and srid is not None and srid > 0:
        crs = f'EPSG:{srid}'

    df = df.drop(columns=geom_col)
    return gpd.GeoDataFrame(df, geometry=gpd.GeoSeries(geometries, index=df.index),
                            crs=crs)
