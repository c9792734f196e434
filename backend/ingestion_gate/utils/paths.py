"""Helpers for resolving input paths against the layer source mount.

Input files arrive relative to the configured source directory. These helpers
pair each relative path with its absolute form and expand a shapefile path
into the sidecar files of its bundle.
"""

from __future__ import annotations

import pathlib
from typing import TYPE_CHECKING

from ingestion_gate.core import models

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


def resolve_path(source_dir: pathlib.Path, relative: str) -> models.ResolvedPath:
    """Pair a relative input path with its absolute form under source_dir."""
    return models.ResolvedPath(
        relative=relative,
        absolute=source_dir / relative.lstrip("/"),
    )


def resolve_input_files(
    source_dir: pathlib.Path,
    gpkg_files: Iterable[str],
    metadata_shapefile: str | None = None,
    product_shapefile: str | None = None,
) -> models.InputFilePaths:
    """Resolve every declared input path against the source mount.

    Args:
        source_dir: Configured layer source directory.
        gpkg_files: Relative container paths.
        metadata_shapefile: Relative path of the metadata shapefile, if any.
        product_shapefile: Relative path of the product shapefile, if any.

    Returns:
        InputFilePaths carrying both forms of every path.
    """
    return models.InputFilePaths(
        gpkg_files=tuple(resolve_path(source_dir, path) for path in gpkg_files),
        metadata_shapefile=(
            resolve_path(source_dir, metadata_shapefile)
            if metadata_shapefile is not None
            else None
        ),
        product_shapefile=(
            resolve_path(source_dir, product_shapefile)
            if product_shapefile is not None
            else None
        ),
    )


def shapefile_bundle(
    shapefile: models.ResolvedPath,
    extensions: Sequence[str],
) -> list[models.ResolvedPath]:
    """Expand a .shp path into every sidecar file of its bundle.

    Example:
        >>> bundle = shapefile_bundle(
        ...     resolve_path(Path("/src"), "layer/Shapes/ShapeMetadata.shp"),
        ...     [".dbf", ".shp"],
        ... )
        >>> [p.relative for p in bundle]
        ['layer/Shapes/ShapeMetadata.dbf', 'layer/Shapes/ShapeMetadata.shp']
    """
    relative = pathlib.PurePosixPath(shapefile.relative)
    relative_stem = relative.with_suffix("")
    absolute_stem = shapefile.absolute.with_suffix("")
    return [
        models.ResolvedPath(
            relative=f"{relative_stem}{extension}",
            absolute=absolute_stem.with_name(absolute_stem.name + extension),
        )
        for extension in extensions
    ]


def declared_files(
    input_files: models.InputFilePaths,
    extensions: Sequence[str],
) -> list[models.ResolvedPath]:
    """List every file an input set declares, sidecars included."""
    files = list(input_files.gpkg_files)
    for shapefile in (input_files.metadata_shapefile, input_files.product_shapefile):
        if shapefile is not None:
            files.extend(shapefile_bundle(shapefile, extensions))
    return files


def map_serving_layer_name(product_id: str, product_type: str) -> str:
    """Return the map server layer name of a product."""
    return f"{product_id}-{product_type}"
