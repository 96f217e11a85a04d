"""Tests for gpkgprovider.provider and its connection pool."""

from __future__ import annotations

import sqlite3
import threading

import pytest
from shapely.geometry import Point

from gpkgprovider.config import Settings
from gpkgprovider.errors import CatalogUnavailable, QueryFailure, UnknownLayer
from gpkgprovider.pool import ConnectionPool
from gpkgprovider.provider import GeoPackageProvider


@pytest.fixture
def city(make_gpkg, make_blob):
    return make_gpkg({
        "parks": (4326, [make_blob(Point(14.42, 50.08)), None, make_blob(Point(14.40, 50.09))]),
        "stops": (3857, [make_blob(Point(1_600_000, 6_460_000), srid=3857)]),
    }, name="city.gpkg")


def test_layers_are_listed_sorted(city) -> None:
    with GeoPackageProvider(city) as provider:
        names = [layer.name for layer in provider.layers()]
        assert names == ["parks", "stops"]
        assert provider.layer("parks").srid == 4326


def test_features_in_target_srid(city) -> None:
    with GeoPackageProvider(city, target_srid=3857) as provider:
        parks = provider.features("parks")
        stops = provider.features("stops")

    assert len(parks) == 2
    assert parks.stats.rows_total == 3
    assert stops[0].geometry.equals(Point(1_600_000, 6_460_000))


def test_unknown_layer(city) -> None:
    with GeoPackageProvider(city) as provider:
        with pytest.raises(UnknownLayer):
            provider.features("rivers")
        with pytest.raises(KeyError):
            provider.layer("rivers")


def test_missing_file_is_catalog_unavailable(tmp_path) -> None:
    with pytest.raises(CatalogUnavailable):
        GeoPackageProvider(tmp_path / "missing.gpkg")


def test_not_a_geopackage_is_catalog_unavailable(tmp_path) -> None:
    path = tmp_path / "plain.sqlite"
    sqlite3.connect(str(path)).close()
    with pytest.raises(CatalogUnavailable):
        GeoPackageProvider(path)


def test_concurrent_requests_share_catalog(city) -> None:
    results = {}
    errors = []

    with GeoPackageProvider(city, pool_size=2) as provider:
        def run(name):
            try:
                results[name] = len(provider.features(name))
            except Exception as exc:  # pragma: no cover
                errors.append(exc)

        threads = [threading.Thread(target=run, args=(name,))
                   for name in ("parks", "stops")]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

    assert errors == []
    assert results == {"parks": 2, "stops": 1}


def test_connection_released_after_failure(city, recording_reprojector) -> None:
    provider = GeoPackageProvider(city, pool_size=1,
                                  reprojector=recording_reprojector(fail_on=1))
    try:
        for _ in range(3):
            with pytest.raises(Exception):
                provider.features("parks")
        # the single handle is still available
        assert len(provider.features("stops")) == 1
    finally:
        provider.close()


def test_from_settings(city) -> None:
    settings = Settings(filepath=city, target_srid=3857, pool_size=1)
    with GeoPackageProvider.from_settings(settings) as provider:
        assert provider.target_srid == 3857
        assert len(provider.features("parks")) == 2


def test_pool_is_bounded(city) -> None:
    pool = ConnectionPool(city, size=1, timeout=0.01)
    try:
        with pool.connection():
            with pytest.raises(sqlite3.OperationalError):
                with pool.connection():
                    pass
        with pool.connection() as con:
            assert con.execute("SELECT 1").fetchone() == (1,)
    finally:
        pool.close()


def test_pool_connections_are_read_only(city) -> None:
    pool = ConnectionPool(city, size=1)
    try:
        with pool.connection() as con:
            with pytest.raises(sqlite3.OperationalError):
                con.execute("DELETE FROM parks")
    finally:
        pool.close()


def test_closed_provider_rejects_requests(city) -> None:
    provider = GeoPackageProvider(city)
    provider.close()
    with pytest.raises(QueryFailure):
        provider.features("parks")


def test_handle_returned_after_close_is_closed(city) -> None:
    """A handle still in use when the pool closes is closed on release."""
    pool = ConnectionPool(city, size=2)
    with pool.connection() as busy:
        with pool.connection():
            pass
        pool.close()
        assert busy.execute("SELECT 1").fetchone() == (1,)

    with pytest.raises(sqlite3.ProgrammingError):
        busy.execute("SELECT 1")
    assert pool._idle.empty()


def test_concurrent_release_and_close_leave_no_open_handles(city) -> None:
    pool = ConnectionPool(city, size=4)
    handed_out = []
    ready = threading.Barrier(5)

    def borrow():
        with pool.connection() as con:
            handed_out.append(con)
            ready.wait()

    threads = [threading.Thread(target=borrow) for _ in range(4)]
    for thread in threads:
        thread.start()
    ready.wait()
    pool.close()
    for thread in threads:
        thread.join()

    assert pool._idle.empty()
    for con in handed_out:
        with pytest.raises(sqlite3.ProgrammingError):
            con.execute("SELECT 1")
