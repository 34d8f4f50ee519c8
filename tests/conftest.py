"""Shared fixtures: shapefiles written in memory with pyshp, zipped with zipfile."""

import io
import struct
import zipfile

import pytest
import shapefile

from shplink.types import UploadedFile

# Stereo 70 grid points around the projection origin (25E, 46N)
ORIGIN = (500000.0, 500000.0)
STEREO_POINTS = [
    (500000.0, 500000.0),
    (510000.0, 505000.0),
    (490000.0, 495000.0),
]
# Clockwise exterior ring, the shapefile convention for outer rings
STEREO_SQUARE = [
    [500000.0, 500000.0],
    [500000.0, 501000.0],
    [501000.0, 501000.0],
    [501000.0, 500000.0],
    [500000.0, 500000.0],
]


def write_shapefile(shape_type, shapes, fields=(("NAME", "C", 50),), records=None, encoding="utf-8"):
    """
    Write a shapefile into memory.

    ``shapes`` is a list of (writer method, args) pairs, e.g.
    ("point", (x, y)) or ("null", ()). ``records`` defaults to one
    "feature N" row per shape.

    Returns a dict with "shp", "shx" and "dbf" bytes.
    """
    shp, shx, dbf = io.BytesIO(), io.BytesIO(), io.BytesIO()
    writer = shapefile.Writer(shp=shp, shx=shx, dbf=dbf, shapeType=shape_type, encoding=encoding)
    for field in fields:
        writer.field(*field)

    for method, args in shapes:
        getattr(writer, method)(*args)

    if records is None:
        records = [[f"feature {i}"] for i in range(len(shapes))]
    for record in records:
        writer.record(*record)

    writer.close()
    return {"shp": shp.getvalue(), "shx": shx.getvalue(), "dbf": dbf.getvalue()}


def point_shapefile(points=STEREO_POINTS, **kwargs):
    return write_shapefile(shapefile.POINT, [("point", p) for p in points], **kwargs)


def mark_deleted(dbf, row):
    """Set the deletion flag of ``row`` in .dbf bytes."""
    header_length, record_length = struct.unpack("<HH", dbf[8:12])
    offset = header_length + row * record_length
    return dbf[:offset] + b"*" + dbf[offset + 1:]


def make_zip(entries, compression=zipfile.ZIP_DEFLATED):
    """Zip ``entries`` (name -> bytes) in insertion order."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=compression) as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    return buffer.getvalue()


def dataset_entries(name, parts, extensions=("shp", "shx", "dbf")):
    """Archive entries for one dataset, e.g. {"roads.shp": ..., "roads.dbf": ...}."""
    return {f"{name}.{ext}": parts[ext] for ext in extensions}


def make_upload(filename, content):
    return UploadedFile(filename=filename, content=content)


@pytest.fixture
def points_parts():
    return point_shapefile()


@pytest.fixture
def polygon_parts():
    return write_shapefile(shapefile.POLYGON, [("poly", ([STEREO_SQUARE],))], records=[["square"]])


@pytest.fixture
def line_parts():
    line = [[495000.0, 495000.0], [505000.0, 505000.0]]
    return write_shapefile(shapefile.POLYLINE, [("line", ([line],))], records=[["road"]])


@pytest.fixture
def null_only_parts():
    return write_shapefile(shapefile.POINT, [("null", ()), ("null", ())])


@pytest.fixture
def multi_dataset_zip(points_parts, polygon_parts, line_parts):
    entries = {}
    entries.update(dataset_entries("puncte", points_parts))
    entries.update(dataset_entries("parcele", polygon_parts))
    entries.update(dataset_entries("drumuri", line_parts))
    return make_zip(entries)
