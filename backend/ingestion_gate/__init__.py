"""Raster ingestion gate: admission control in front of raster ingestion.

This package validates new and updated raster layers before they reach the
asynchronous ingestion pipeline. A layer is a set of GeoPackage tile
containers plus a metadata shapefile and a product footprint shapefile.

- Checks container structure (tile index, 2x1 grid, uniform tile size)
- Validates raster metadata (CRS, format, pixel size) read with rio-tiler
- Correlates the product footprint with the union of container extents
- Fingerprints metadata shapefile sidecars to gate job retries
- Creates and resets ingestion jobs on the downstream job queue

See module sub-docstrings for details on each component.
"""
