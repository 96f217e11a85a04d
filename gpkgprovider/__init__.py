from gpkgprovider.catalog import LayerDescriptor, build_catalog
from gpkgprovider.errors import (CatalogUnavailable, DecodeFailure,
                                 GeoPackageError, MalformedHeader,
                                 MaterializationCancelled, QueryFailure,
                                 ReprojectionFailure, UnknownLayer,
                                 UnsupportedEnvelope)
from gpkgprovider.header import Envelope, GeoPackageHeader, read_header
from gpkgprovider.materialize import (FeatureCollection, FeatureRecord,
                                      MaterializationStats, materialize_layer)
from gpkgprovider.provider import GeoPackageProvider
from gpkgprovider.reproject import Reprojector
from gpkgprovider.sql import read_gpkg

__version__ = "0.1.0"
