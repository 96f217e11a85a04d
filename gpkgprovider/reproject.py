import logging
import math
from functools import lru_cache

import numpy as np
import shapely
from pyproj import Transformer
from pyproj.exceptions import ProjError

from gpkgprovider.errors import ReprojectionFailure

logger = logging.getLogger(__name__)


def needs_reprojection(source_srid, target_srid):
    return int(source_srid) != int(target_srid)


@lru_cache(maxsize=32)
def transformer_for(source_srid, target_srid):
    return Transformer.from_crs(f'EPSG:{source_srid}', f'EPSG:{target_srid}',
                                always_xy=True)


class Reprojector:
    """
    Transforms shapely geometries into one fixed target SRID.

    Measured (M) geometries are refused: shapely only rewrites x, y and z,
    so the measures would be lost.

    Parameters
    ----------
    target_srid : int
        EPSG code every geometry is transformed into.
    """

    def __init__(self, target_srid):
        self.target_srid = int(target_srid)

    def __repr__(self):
        return f'{type(self).__name__}(target_srid={self.target_srid})'

    def __call__(self, geometry, source_srid):
        # has_m only exists from shapely 2.1, which is also the first to read M
        if getattr(geometry, 'has_m', False):
            raise ReprojectionFailure(source_srid, self.target_srid,
                                      'measured (M) geometries cannot be transformed '
                                      'without dropping their M values')

        try:
            transformer = transformer_for(int(source_srid), self.target_srid)
        except ProjError as exc:
            # CRSError is a ProjError
            raise ReprojectionFailure(source_srid, self.target_srid, exc) from exc

        def coord_transform(coords):
            result = transformer.transform(*coords.T, errcheck=True)
            return np.column_stack(result)

        try:
            result = shapely.transform(geometry, coord_transform,
                                       include_z=geometry.has_z)
        except ProjError as exc:
            raise ReprojectionFailure(source_srid, self.target_srid, exc) from exc

        if not result.is_empty and not all(map(math.isfinite, result.bounds)):
            raise ReprojectionFailure(source_srid, self.target_srid,
                                      'transform produced non-finite coordinates')
        logger.debug('Reprojected %s from SRID %s to %s',
                     result.geom_type, source_srid, self.target_srid)
        return result
