"""
Settings for a GeoPackage provider, loaded from ``GPKG_*`` environment
variables or a ``.env`` file.

    GPKG_FILEPATH=/data/city.gpkg
    GPKG_TARGET_SRID=3857
    GPKG_POOL_SIZE=4
"""
import functools
import pathlib

import pydantic
import pydantic_settings

from gpkgprovider import gpkg_constants as const


class Settings(pydantic_settings.BaseSettings):
    """
    Attributes
    ----------
    filepath : pathlib.Path
        GeoPackage file to serve.
    target_srid : int
        SRID every served geometry is transformed into.
    pool_size : int
        Maximum number of open SQLite handles.
    geometry_column : str
        Column used for tables missing from ``gpkg_geometry_columns``.
    log_level : str
        Level for the ``gpkgprovider`` logger.
    """

    filepath: pathlib.Path = pathlib.Path('data.gpkg')
    target_srid: int = const.WEB_MERCATOR
    pool_size: int = pydantic.Field(default=4, ge=1)
    geometry_column: str = const.DEFAULT_GEO_COLUMN_NAME
    log_level: str = 'INFO'

    model_config = pydantic_settings.SettingsConfigDict(
        env_prefix='GPKG_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    @pydantic.field_validator('log_level')
    @classmethod
    def _upper_level(cls, value):
        value = value.upper()
        if value not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ValueError(f'Invalid log level: {value}')
        return value


@functools.lru_cache
def get_settings():
    """Return the process-wide settings, read once."""
    return Settings()
