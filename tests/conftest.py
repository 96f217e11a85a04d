"""Shared fixtures: GeoPackage blobs and small GeoPackage files on disk."""

from __future__ import annotations

import sqlite3
import struct

import pytest
from shapely import wkb

ENVELOPE_VALUES = {
    0: (),
    1: (0.0, 10.0, 0.0, 20.0),
    2: (0.0, 10.0, 0.0, 20.0, -1.0, 1.0),
    3: (0.0, 10.0, 0.0, 20.0, 5.0, 6.0),
    4: (0.0, 10.0, 0.0, 20.0, -1.0, 1.0, 5.0, 6.0),
}


def build_blob(geometry, srid=4326, envelope=0, little_endian=True,
               empty=False, version=0, magic=b"GP"):
    """Serialize a shapely geometry as a GeoPackage geometry blob."""
    order = "<" if little_endian else ">"
    flags = (1 if little_endian else 0) | (envelope << 1) | (0x10 if empty else 0)
    values = ENVELOPE_VALUES.get(envelope, ())
    header = magic + struct.pack(f"{order}BBi", version, flags, srid)
    header += struct.pack(f"{order}{len(values)}d", *values)
    payload = wkb.dumps(geometry, byte_order=1 if little_endian else 0)
    return header + payload


def build_gpkg(path, layers):
    """
    Write a minimal GeoPackage.

    ``layers`` maps table name to ``(srid, [blob_or_None, ...])``.
    """
    con = sqlite3.connect(str(path))
    try:
        con.execute(
            "CREATE TABLE gpkg_contents (table_name TEXT PRIMARY KEY, "
            "data_type TEXT NOT NULL, identifier TEXT, description TEXT, "
            "last_change DATETIME, min_x DOUBLE, min_y DOUBLE, max_x DOUBLE, "
            "max_y DOUBLE, srs_id INTEGER)"
        )
        con.execute(
            "CREATE TABLE gpkg_geometry_columns (table_name TEXT NOT NULL, "
            "column_name TEXT NOT NULL, geometry_type_name TEXT NOT NULL, "
            "srs_id INTEGER NOT NULL, z TINYINT NOT NULL, m TINYINT NOT NULL)"
        )
        for name, (srid, blobs) in layers.items():
            con.execute(
                f'CREATE TABLE "{name}" (fid INTEGER PRIMARY KEY AUTOINCREMENT, '
                f"geom BLOB, kind TEXT)"
            )
            con.execute(
                "INSERT INTO gpkg_contents (table_name, data_type, identifier, srs_id) "
                "VALUES (?, 'features', ?, ?)",
                (name, name, srid),
            )
            con.execute(
                "INSERT INTO gpkg_geometry_columns VALUES (?, 'geom', 'GEOMETRY', ?, 0, 0)",
                (name, srid),
            )
            con.executemany(
                f'INSERT INTO "{name}" (geom, kind) VALUES (?, ?)',
                [(blob, f"row{i}") for i, blob in enumerate(blobs)],
            )
        con.commit()
    finally:
        con.close()
    return path


@pytest.fixture
def make_blob():
    return build_blob


@pytest.fixture
def make_gpkg(tmp_path):
    def _make(layers, name="test.gpkg"):
        return build_gpkg(tmp_path / name, layers)

    return _make


@pytest.fixture
def connection_to():
    opened = []

    def _connect(path):
        con = sqlite3.connect(str(path))
        opened.append(con)
        return con

    yield _connect
    for con in opened:
        con.close()


class RecordingReprojector:
    """Stands in for the transform engine and records its calls."""

    def __init__(self, fail_on=None):
        self.calls = []
        self.fail_on = fail_on

    def __call__(self, geometry, source_srid):
        self.calls.append((geometry, source_srid))
        if self.fail_on is not None and len(self.calls) >= self.fail_on:
            raise RuntimeError("transform engine failure")
        return geometry


@pytest.fixture
def recording_reprojector():
    return RecordingReprojector
