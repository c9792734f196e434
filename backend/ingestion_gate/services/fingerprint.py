"""Streaming content fingerprints of input files.

Fingerprints of the metadata shapefile sidecars are stored in the validation
task of an ingestion job and compared on retry to detect whether the operator
actually changed anything. The digest algorithm is pluggable: XXH64 (fast,
64-bit, non-cryptographic) by default, or any hashlib algorithm name.

Example:
    Fingerprint one sidecar file:
        >>> from ingestion_gate.services.fingerprint import ContentFingerprinter
        >>> fingerprinter = ContentFingerprinter()
        >>> fingerprint = await fingerprinter.fingerprint(
        ...     Path("/layerSources/layer/Shapes/ShapeMetadata.shp"),
        ...     file_name="layer/Shapes/ShapeMetadata.shp",
        ... )
        >>> # FileFingerprint(algorithm="XXH64", checksum="9f0c...", ...)
"""

from __future__ import annotations

import hashlib
import logging
from typing import TYPE_CHECKING, Protocol

import xxhash
from fastapi import concurrency

from ingestion_gate.core import errors, models
from ingestion_gate.utils import concurrency as gate_concurrency

if TYPE_CHECKING:
    import pathlib
    from collections.abc import Callable, Iterable

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
DEFAULT_ALGORITHM = "XXH64"


class HashProcessor(Protocol):
    """Incremental digest, compatible with xxhash and hashlib objects."""

    def update(self, data: bytes, /) -> object: ...

    def hexdigest(self) -> str: ...


def create_hash_processor(algorithm: str) -> HashProcessor:
    """Build a fresh digest state for an algorithm name.

    Args:
        algorithm: "XXH64" or a name accepted by hashlib.new().

    Returns:
        A new, empty hash processor.

    Raises:
        ValueError: if the algorithm is unknown.
    """
    if algorithm.upper() == DEFAULT_ALGORITHM:
        return xxhash.xxh64()
    return hashlib.new(algorithm.lower())


class ContentFingerprinter:
    """Compute FileFingerprint values by streaming file content.

    A new hash processor is built for every file, so concurrent fingerprints
    never share digest state.
    """

    def __init__(
        self,
        algorithm: str = DEFAULT_ALGORITHM,
        processor_factory: Callable[[str], HashProcessor] = create_hash_processor,
    ) -> None:
        self.algorithm = algorithm
        self._processor_factory = processor_factory
        # Raises ValueError for an unknown algorithm.
        self._processor_factory(self.algorithm)

    def _digest_file(self, file_path: pathlib.Path) -> str:
        processor = self._processor_factory(self.algorithm)
        with file_path.open("rb") as stream:
            for chunk in iter(lambda: stream.read(CHUNK_SIZE), b""):
                processor.update(chunk)
        return processor.hexdigest()

    async def fingerprint(
        self,
        file_path: pathlib.Path,
        file_name: str | None = None,
    ) -> models.FileFingerprint:
        """Fingerprint a single file.

        Args:
            file_path: Absolute path of the file to read.
            file_name: Name recorded in the fingerprint; defaults to file_path.

        Returns:
            FileFingerprint with the hexadecimal digest.

        Raises:
            ChecksumError: if the file cannot be read or digested.
        """
        logger.debug("calculating checksum", extra={"file_path": file_path})
        try:
            checksum = await concurrency.run_in_threadpool(
                self._digest_file, file_path
            )
        except (OSError, ValueError) as err:
            logger.error(
                "error calculating checksum: %s",
                err,
                extra={"file_path": file_path},
            )
            raise errors.ChecksumError(
                f"Failed to calculate checksum for file: {file_name or file_path}"
            ) from err

        logger.info(
            "calculated %s checksum %s",
            self.algorithm,
            checksum,
            extra={"file_path": file_path},
        )
        return models.FileFingerprint(
            algorithm=self.algorithm,
            checksum=checksum,
            file_name=file_name if file_name is not None else str(file_path),
        )

    async def fingerprint_many(
        self,
        files: Iterable[models.ResolvedPath],
    ) -> list[models.FileFingerprint]:
        """Fingerprint several files concurrently, recording relative names."""
        return await gate_concurrency.gather_fail_fast(
            self.fingerprint(path.absolute, file_name=path.relative)
            for path in files
        )
