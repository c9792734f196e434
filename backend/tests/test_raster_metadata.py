"""Tests for raster metadata extraction and validation.

rio-tiler's Reader is replaced with a fake through monkeypatch, so no raster
file has to exist on disk.
"""

from __future__ import annotations

import pathlib
import types
from typing import Any

import pytest
import rasterio.errors

from ingestion_gate.core import config, errors
from ingestion_gate.services import raster_metadata


def make_fake_reader(
    epsg: int | None = 4326,
    driver: str = "GPKG",
    pixel_size: float = 0.0001,
    bounds: tuple[float, float, float, float] = (34.0, 31.0, 35.0, 32.0),
) -> type:
    class FakeReader:
        """A fake reader exposing the attributes the extractor reads."""

        def __init__(self, input: str, **kwargs: Any) -> None:
            self.input = input
            self.crs = types.SimpleNamespace(to_epsg=lambda: epsg)
            self.dataset = types.SimpleNamespace(driver=driver)
            self.transform = types.SimpleNamespace(a=pixel_size)
            self.geographic_bounds = bounds

        def __enter__(self) -> FakeReader:
            return self

        def __exit__(
            self,
            exc_type: type[BaseException] | None,
            exc: BaseException | None,
            tb: types.TracebackType | None,
        ) -> None:
            return None

    return FakeReader


@pytest.fixture
def extractor() -> raster_metadata.RasterMetadataExtractor:
    return raster_metadata.RasterMetadataExtractor(config.ValidationSettings())


@pytest.mark.asyncio
async def test_extract_maps_reader_attributes(
    monkeypatch: pytest.MonkeyPatch,
    extractor: raster_metadata.RasterMetadataExtractor,
) -> None:
    monkeypatch.setattr("rio_tiler.io.Reader", make_fake_reader())
    info = await extractor.extract(pathlib.Path("/src/a.gpkg"))
    assert info.crs == 4326
    assert info.file_format == "GPKG"
    assert info.pixel_size == 0.0001
    assert info.extent_polygon.bounds == (34.0, 31.0, 35.0, 32.0)
    assert info.file_path == pathlib.Path("/src/a.gpkg")


@pytest.mark.asyncio
async def test_extract_wraps_open_failure(
    monkeypatch: pytest.MonkeyPatch,
    extractor: raster_metadata.RasterMetadataExtractor,
) -> None:
    def failing_reader(input: str, **kwargs: Any) -> None:
        raise rasterio.errors.RasterioIOError("not recognized as a supported file")

    monkeypatch.setattr("rio_tiler.io.Reader", failing_reader)
    with pytest.raises(errors.RasterInfoError, match="a.gpkg"):
        await extractor.extract(pathlib.Path("/src/a.gpkg"))


@pytest.mark.asyncio
async def test_extract_without_epsg(
    monkeypatch: pytest.MonkeyPatch,
    extractor: raster_metadata.RasterMetadataExtractor,
) -> None:
    monkeypatch.setattr("rio_tiler.io.Reader", make_fake_reader(epsg=None))
    with pytest.raises(errors.RasterInfoError, match="EPSG"):
        await extractor.extract(pathlib.Path("/src/a.gpkg"))


@pytest.mark.asyncio
async def test_extract_many_keeps_order(
    monkeypatch: pytest.MonkeyPatch,
    extractor: raster_metadata.RasterMetadataExtractor,
) -> None:
    monkeypatch.setattr("rio_tiler.io.Reader", make_fake_reader())
    paths = [pathlib.Path(f"/src/{name}.gpkg") for name in ("a", "b", "c")]
    infos = await extractor.extract_many(paths)
    assert [info.file_path for info in infos] == paths


def test_validate_accepts_valid_info(
    extractor: raster_metadata.RasterMetadataExtractor, make_raster_info: Any
) -> None:
    extractor.validate([make_raster_info(pathlib.Path("/src/a.gpkg"))])


def test_validate_rejects_crs(
    extractor: raster_metadata.RasterMetadataExtractor, make_raster_info: Any
) -> None:
    info = make_raster_info(pathlib.Path("/src/a.gpkg"), crs=3857)
    with pytest.raises(errors.RasterInfoError, match="Unsupported crs: 3857") as exc_info:
        extractor.validate([info])
    assert "a.gpkg" in exc_info.value.message


def test_validate_file_format_is_case_insensitive(
    extractor: raster_metadata.RasterMetadataExtractor, make_raster_info: Any
) -> None:
    extractor.validate([make_raster_info(pathlib.Path("/src/a.gpkg"), file_format="gpkg")])
    with pytest.raises(errors.RasterInfoError, match="Unsupported file format: GTiff"):
        extractor.validate(
            [make_raster_info(pathlib.Path("/src/a.tif"), file_format="GTiff")]
        )


@pytest.mark.parametrize(
    "pixel_size",
    [
        config.zoom_level_to_resolution_deg(0),
        config.zoom_level_to_resolution_deg(22),
        config.zoom_level_to_resolution_deg(22) * (1 - 1e-12),
    ],
)
def test_validate_pixel_size_bounds_are_inclusive(
    extractor: raster_metadata.RasterMetadataExtractor,
    make_raster_info: Any,
    pixel_size: float,
) -> None:
    extractor.validate(
        [make_raster_info(pathlib.Path("/src/a.gpkg"), pixel_size=pixel_size)]
    )


@pytest.mark.parametrize("pixel_size", [0.8, 1e-8])
def test_validate_rejects_pixel_size_out_of_range(
    extractor: raster_metadata.RasterMetadataExtractor,
    make_raster_info: Any,
    pixel_size: float,
) -> None:
    with pytest.raises(errors.RasterInfoError, match="Unsupported pixel size"):
        extractor.validate(
            [make_raster_info(pathlib.Path("/src/a.gpkg"), pixel_size=pixel_size)]
        )


def test_validate_fails_on_first_invalid_file(
    extractor: raster_metadata.RasterMetadataExtractor, make_raster_info: Any
) -> None:
    infos = [
        make_raster_info(pathlib.Path("/src/a.gpkg"), crs=2039),
        make_raster_info(pathlib.Path("/src/b.gpkg"), crs=3857),
    ]
    with pytest.raises(errors.RasterInfoError, match="2039"):
        extractor.validate(infos)
