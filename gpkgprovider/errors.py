class GeoPackageError(Exception):
    """Base exception for everything raised by gpkgprovider."""


class MalformedHeader(GeoPackageError):
    """The GeoPackage binary header of a geometry blob is invalid."""


class UnsupportedEnvelope(GeoPackageError):
    """The header declares an envelope indicator code outside 0..4."""

    def __init__(self, code):
        self.code = code
        super().__init__(
            f'Unexpected GeoPackage Geometry flags. Envelope contents '
            f'indicator must be between 0 and 4, got {code}'
        )


class DecodeFailure(GeoPackageError):
    """The WKB payload following the header could not be decoded."""


class ReprojectionFailure(GeoPackageError):
    """A geometry could not be transformed to the target SRID."""

    def __init__(self, source_srid, target_srid, reason):
        self.source_srid = source_srid
        self.target_srid = target_srid
        message = (f'Unable to transform geometry from SRID {source_srid} '
                   f'to SRID {target_srid}: {reason}')
        super().__init__(message)


class QueryFailure(GeoPackageError):
    """A row scan against a feature table could not be run."""

    def __init__(self, query, original_exception):
        self.query = query
        message = f'Error during query: {query} - {original_exception}'
        super().__init__(message)


class MaterializationCancelled(GeoPackageError):
    """The caller asked to stop a running layer scan."""


class CatalogUnavailable(GeoPackageError):
    """The GeoPackage metadata could not be read at provider startup."""

    def __init__(self, filepath, original_exception):
        message = f'Error reading GeoPackage {filepath}: {original_exception}'
        super().__init__(message)


class UnknownLayer(GeoPackageError, KeyError):
    """The requested layer is not listed in the catalog."""

    def __init__(self, layer_name):
        self.layer_name = layer_name
        super().__init__(f"Layer '{layer_name}' not found in GeoPackage")

    def __str__(self):
        return self.args[0]
