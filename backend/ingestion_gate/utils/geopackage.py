"""Read-only introspection of GeoPackage tile containers via sqlite3.

GeoPackageReader opens a container in read-only mode and answers the
questions the structure validator asks: the name of the single tile table,
whether it carries a tile index, its maximal matrix dimensions and its tile
sizes. sqlite3 errors are wrapped into ContainerError with a message naming
the file and the step; the raw engine message only goes to the log.

Example:
    Inspect a container:
        >>> from ingestion_gate.utils.geopackage import GeoPackageReader
        >>> with GeoPackageReader(Path("/layerSources/a.gpkg")) as gpkg:
        ...     table = gpkg.tile_table_name()
        ...     gpkg.has_tile_index(table)
        True
"""

from __future__ import annotations

import contextlib
import logging
import sqlite3
from typing import TYPE_CHECKING

from ingestion_gate.core import errors, models

if TYPE_CHECKING:
    import pathlib
    import types
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

TILE_INDEX_COLUMNS = frozenset({"tile_column", "tile_row", "zoom_level"})


class GeoPackageReader:
    """Context manager around a read-only sqlite3 connection to a container."""

    def __init__(self, path: pathlib.Path) -> None:
        self.path = path
        self._connection: sqlite3.Connection | None = None

    def __enter__(self) -> GeoPackageReader:
        with self._wrap_errors("Failed to open database file"):
            self._connection = sqlite3.connect(
                f"{self.path.resolve().as_uri()}?mode=ro",
                uri=True,
            )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: types.TracebackType | None,
    ) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None
            logger.debug(
                "connection to container closed",
                extra={"file_path": self.path},
            )

    @property
    def connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise RuntimeError("GeoPackageReader used outside of its context")
        return self._connection

    @contextlib.contextmanager
    def _wrap_errors(self, step: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as err:
            logger.error(
                "%s: %s", step, err, extra={"file_path": self.path}
            )
            raise errors.ContainerError(f"{step} for container: {self.path}") from err

    def tile_table_name(self) -> str:
        """Return the single content table the container declares.

        Raises:
            ContainerError: if gpkg_contents does not hold exactly one table.
        """
        with self._wrap_errors("Error when getting table name"):
            rows = self.connection.execute(
                "SELECT table_name FROM gpkg_contents"
            ).fetchall()
        if len(rows) != 1:
            raise errors.ContainerError(
                f"Invalid GPKG: should have single table name, found {len(rows)} "
                f"in container: {self.path}"
            )
        return str(rows[0][0])

    def has_unique_tile_index(self, table_name: str) -> bool:
        """Whether a UNIQUE constraint covers exactly the tile key columns."""
        with self._wrap_errors("Error when validating unique constraint index"):
            indexes = self.connection.execute(
                'SELECT name FROM pragma_index_list(?) WHERE "unique" = 1 '
                "AND origin = 'u'",
                (table_name,),
            ).fetchall()
            for (index_name,) in indexes:
                columns = {
                    row[0]
                    for row in self.connection.execute(
                        "SELECT name FROM pragma_index_info(?)",
                        (index_name,),
                    )
                }
                if columns == TILE_INDEX_COLUMNS:
                    return True
        return False

    def has_manual_tile_index(self, table_name: str) -> bool:
        """Whether any CREATE INDEX statement on the table names the key columns."""
        with self._wrap_errors("Error when validating manual index"):
            (count,) = self.connection.execute(
                "SELECT COUNT(*) FROM sqlite_master "
                "WHERE type = 'index' AND tbl_name = ? "
                "AND sql LIKE '%zoom_level%' "
                "AND sql LIKE '%tile_column%' "
                "AND sql LIKE '%tile_row%'",
                (table_name,),
            ).fetchone()
        return count > 0

    def has_tile_index(self, table_name: str) -> bool:
        return self.has_unique_tile_index(table_name) or self.has_manual_tile_index(
            table_name
        )

    def max_matrix_size(self, table_name: str) -> tuple[int | None, int | None]:
        """Return the maximal (matrix_width, matrix_height) over all zooms."""
        with self._wrap_errors("Error when getting matrix values"):
            width, height = self.connection.execute(
                "SELECT MAX(matrix_width), MAX(matrix_height) "
                "FROM gpkg_tile_matrix WHERE table_name = ?",
                (table_name,),
            ).fetchone()
        return width, height

    def tile_sizes(self, table_name: str) -> list[models.TileSize]:
        """Return every distinct (tile_width, tile_height) of the tile matrix."""
        with self._wrap_errors("Error when getting tile width and height"):
            rows = self.connection.execute(
                "SELECT tile_width, tile_height FROM gpkg_tile_matrix "
                "WHERE table_name = ? GROUP BY tile_width, tile_height",
                (table_name,),
            ).fetchall()
        return [models.TileSize(width=int(w), height=int(h)) for w, h in rows]
