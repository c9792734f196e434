"""Shared fixtures: settings, on-disk layer sources and service fakes.

GeoPackage fixtures are real SQLite files holding only the tables the
structure validator reads. Service fakes implement the client protocols in
memory and record every call so tests can assert on side effects.
"""

from __future__ import annotations

import pathlib
import sqlite3
from typing import Any

import pytest
from shapely import geometry

from ingestion_gate.clients import models as client_models
from ingestion_gate.core import config, errors, models

SHAPEFILE_EXTENSIONS = (".cpg", ".dbf", ".prj", ".shp", ".shx")


def build_gpkg(
    path: pathlib.Path,
    *,
    matrices: list[tuple[int, int, int, int, int]] | None = None,
    index: str = "unique",
    tables: tuple[str, ...] = ("tiles",),
) -> pathlib.Path:
    """Write a minimal tiled GeoPackage.

    Args:
        path: Target file.
        matrices: (zoom_level, matrix_width, matrix_height, tile_width,
            tile_height) rows of gpkg_tile_matrix for the first table.
        index: "unique" for a UNIQUE constraint, "manual" for a CREATE INDEX,
            "none" for no tile index.
        tables: Table names declared in gpkg_contents.
    """
    if matrices is None:
        matrices = [(0, 2, 1, 256, 256), (1, 4, 2, 256, 256)]
    path.parent.mkdir(parents=True, exist_ok=True)
    connection = sqlite3.connect(path)
    try:
        connection.execute(
            "CREATE TABLE gpkg_contents (table_name TEXT PRIMARY KEY, data_type TEXT)"
        )
        connection.executemany(
            "INSERT INTO gpkg_contents VALUES (?, 'tiles')",
            [(table,) for table in tables],
        )
        connection.execute(
            "CREATE TABLE gpkg_tile_matrix (table_name TEXT, zoom_level INTEGER, "
            "matrix_width INTEGER, matrix_height INTEGER, tile_width INTEGER, "
            "tile_height INTEGER)"
        )
        connection.executemany(
            "INSERT INTO gpkg_tile_matrix VALUES (?, ?, ?, ?, ?, ?)",
            [(tables[0], *matrix) for matrix in matrices],
        )
        unique = ", UNIQUE (zoom_level, tile_column, tile_row)" if index == "unique" else ""
        connection.execute(
            f"CREATE TABLE {tables[0]} (id INTEGER PRIMARY KEY, "
            "zoom_level INTEGER, tile_column INTEGER, tile_row INTEGER, "
            f"tile_data BLOB{unique})"
        )
        if index == "manual":
            connection.execute(
                f"CREATE INDEX tiles_idx ON {tables[0]} "
                "(zoom_level, tile_column, tile_row)"
            )
        connection.commit()
    finally:
        connection.close()
    return path


def write_shapefile_bundle(
    source_dir: pathlib.Path, relative_shp: str, content: bytes = b"shape"
) -> None:
    stem = (source_dir / relative_shp).with_suffix("")
    stem.parent.mkdir(parents=True, exist_ok=True)
    for extension in SHAPEFILE_EXTENSIONS:
        stem.with_name(stem.name + extension).write_bytes(content + extension.encode())


@pytest.fixture
def settings(tmp_path: pathlib.Path) -> config.Settings:
    return config.Settings(layer_source_dir=tmp_path)


@pytest.fixture
def layer_sources(tmp_path: pathlib.Path) -> dict[str, Any]:
    """Create one container and both shapefile bundles under tmp_path."""
    build_gpkg(tmp_path / "layer" / "a.gpkg")
    write_shapefile_bundle(tmp_path, "layer/Shapes/ShapeMetadata.shp", b"metadata")
    write_shapefile_bundle(tmp_path, "layer/Shapes/Product.shp", b"product")
    return {
        "gpkgFilesPath": ["layer/a.gpkg"],
        "metadataShapefilePath": "layer/Shapes/ShapeMetadata.shp",
        "productShapefilePath": "layer/Shapes/Product.shp",
    }


class FakeJobManagerClient:
    def __init__(self) -> None:
        self.jobs: dict[str, client_models.Job] = {}
        self.tasks: dict[str, list[client_models.Task]] = {}
        self.created: list[dict[str, Any]] = []
        self.found: list[client_models.Job] = []
        self.find_criteria: list[client_models.FindJobsCriteria] = []
        self.job_updates: list[tuple[str, dict[str, Any]]] = []
        self.task_updates: list[tuple[str, str, dict[str, Any]]] = []

    async def create_job(
        self, payload: dict[str, Any]
    ) -> client_models.CreateJobResponse:
        self.created.append(payload)
        return client_models.CreateJobResponse(
            id=f"job-{len(self.created)}", task_ids=[f"task-{len(self.created)}"]
        )

    async def get_job(self, job_id: str) -> client_models.Job:
        if job_id not in self.jobs:
            raise errors.NotFoundError(f"Job with id: {job_id} was not found")
        return self.jobs[job_id]

    async def get_tasks_for_job(self, job_id: str) -> list[client_models.Task]:
        return self.tasks.get(job_id, [])

    async def update_job(self, job_id: str, patch: dict[str, Any]) -> None:
        self.job_updates.append((job_id, patch))

    async def update_task(
        self, job_id: str, task_id: str, patch: dict[str, Any]
    ) -> None:
        self.task_updates.append((job_id, task_id, patch))

    async def find_jobs(
        self, criteria: client_models.FindJobsCriteria
    ) -> list[client_models.Job]:
        self.find_criteria.append(criteria)
        return self.found


class FakeCatalogClient:
    def __init__(self) -> None:
        self.entries: list[client_models.CatalogEntry] = []

    async def find_by_id(self, catalog_id: str) -> list[client_models.CatalogEntry]:
        return [entry for entry in self.entries if entry.id == catalog_id]

    async def find_by_criteria(
        self, product_id: str, product_type: str
    ) -> list[client_models.CatalogEntry]:
        return [
            entry
            for entry in self.entries
            if entry.metadata.product_id == product_id
            and entry.metadata.product_type == product_type
        ]

    async def exists(self, product_id: str, product_type: str) -> bool:
        return bool(await self.find_by_criteria(product_id, product_type))


class FakeMapServerClient:
    def __init__(self) -> None:
        self.layers: set[str] = set()

    async def exists(self, layer_name: str) -> bool:
        return layer_name in self.layers


class FakeValidationEntityClient:
    def __init__(self) -> None:
        self.deleted: list[tuple[str, str]] = []

    async def delete_validation_entity(
        self, product_id: str, product_type: str
    ) -> None:
        self.deleted.append((product_id, product_type))


@pytest.fixture
def job_manager_client() -> FakeJobManagerClient:
    return FakeJobManagerClient()


@pytest.fixture
def catalog_client() -> FakeCatalogClient:
    return FakeCatalogClient()


@pytest.fixture
def map_server_client() -> FakeMapServerClient:
    return FakeMapServerClient()


@pytest.fixture
def validation_entity_client() -> FakeValidationEntityClient:
    return FakeValidationEntityClient()


def raster_info(
    path: pathlib.Path,
    bounds: tuple[float, float, float, float] = (34.0, 31.0, 35.0, 32.0),
    **overrides: Any,
) -> models.RasterInfo:
    values: dict[str, Any] = {
        "crs": 4326,
        "pixel_size": 0.0001,
        "file_format": "GPKG",
        "extent_polygon": geometry.box(*bounds),
        "file_path": path,
    }
    values.update(overrides)
    return models.RasterInfo(**values)


@pytest.fixture
def make_gpkg() -> Any:
    return build_gpkg


@pytest.fixture
def make_raster_info() -> Any:
    return raster_info


@pytest.fixture
def make_shapefile_bundle() -> Any:
    return write_shapefile_bundle
