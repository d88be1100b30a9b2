"""GeoTIFF adapter for TerrainRepository.

Loads single-band DEM rasters with rasterio, normalizes them to EPSG:4326
and exposes them to the coverage engine as a TerrainElevationProvider.

Lifecycle (to avoid resource leaks):
1) Pre-flight checks on the path (existence, extension, size budget)
2) Open dataset inside rasterio.Env with a context manager
3) Validate band count, CRS and geotransform
4) Read directly (EPSG:4326) or reproject (any other CRS)
5) Convert nodata -> np.nan as float32; reject all-NoData rasters
6) Exit contexts to release GDAL handles and return a TerrainGrid
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any

import numpy as np
import rasterio
from affine import Affine
from numpy.typing import NDArray
from rasterio.crs import CRS
from rasterio.enums import Resampling
from rasterio.transform import array_bounds
from rasterio.warp import calculate_default_transform, reproject

from domain.terrain.errors import (
    AllNoDataError,
    InsufficientMemoryError,
    InvalidBoundsError,
    InvalidGeotransformError,
    InvalidRasterError,
    MissingCRSError,
)
from domain.terrain.services import GridElevationProvider
from domain.terrain.value_objects import BoundingBox, TerrainGrid

logger = logging.getLogger(__name__)

_TARGET_CRS = CRS.from_epsg(4326)

# Share of NaN pixels above which a loaded DEM is reported as degraded
NODATA_WARNING_PCT = 80.0


def _is_wgs84(crs: Any) -> bool:
    if crs is None:
        return False
    try:
        if crs == _TARGET_CRS:
            return True
    except (TypeError, AttributeError):
        pass
    return str(crs).upper() in ("EPSG:4326", "OGC:CRS84")


def _check_transform(transform: Any) -> Affine:
    if not isinstance(transform, Affine):
        raise InvalidGeotransformError("Missing affine transform")
    coefficients = (transform.a, transform.b, transform.c, transform.d, transform.e, transform.f)
    if not all(math.isfinite(v) for v in coefficients):
        raise InvalidGeotransformError("Invalid (NaN/Inf) transform values")
    if transform.a == 0 or transform.e == 0:
        raise InvalidGeotransformError("Invalid transform scale (zero)")
    return transform


def _nodata_to_nan(data: Any, nodata: float | None) -> NDArray[np.float32]:
    """Masked pixels and the explicit nodata value both become NaN."""
    mask = np.ma.getmaskarray(data)
    values = np.ma.getdata(data).astype(np.float32, copy=False)
    if mask.any():
        values = np.where(mask, np.float32(np.nan), values)
    elif nodata is not None:
        # GeoTIFF stores nodata exactly, so exact equality is correct here
        values = np.where(values == nodata, np.float32(np.nan), values)
    return values


class GeoTiffTerrainAdapter:
    """Infrastructure adapter for loading DEMs from GeoTIFF files.

    Parameters
    ----------
    max_bytes: int | None
        Optional memory budget for the resulting float32 grid (height*width*4).
        Exceeding it raises InsufficientMemoryError before allocation.
    """

    def __init__(self, max_bytes: int | None = None) -> None:
        self.max_bytes = max_bytes

    def _check_budget(self, width: int, height: int) -> None:
        if self.max_bytes is None:
            return
        est_bytes = int(width) * int(height) * 4
        if est_bytes > self.max_bytes:
            raise InsufficientMemoryError(
                f"Estimated grid size {est_bytes}B exceeds budget {self.max_bytes}B"
            )

    def _preflight(self, path: Path) -> None:
        if not path.exists():
            raise FileNotFoundError(str(path))
        if path.suffix.lower() not in (".tif", ".tiff"):
            raise InvalidRasterError(f"Unsupported file extension: {path.suffix}", path.name)
        if path.is_symlink():
            raise InvalidRasterError("Symlinks are not permitted", path.name)
        try:
            size = path.stat().st_size
        except OSError as e:
            # Log only the filename, never the absolute path
            logger.error(
                "Failed to stat %s (errno=%s, strerror=%s)",
                path.name,
                getattr(e, "errno", "unknown"),
                getattr(e, "strerror", "unknown"),
            )
            raise
        if size == 0:
            raise InvalidRasterError("Empty file", path.name)
        # Encoded size beyond twice the grid budget can never fit
        if self.max_bytes is not None and size > self.max_bytes * 2:
            raise InsufficientMemoryError(
                f"File size {size}B exceeds 2x memory budget {self.max_bytes}B"
            )

    def load_dem(self, file_path: Path | str) -> TerrainGrid:
        """Load DEM from GeoTIFF and return a TerrainGrid in EPSG:4326.

        Raises:
            FileNotFoundError: Path does not exist
            InvalidRasterError: Wrong extension, empty, corrupted or multi-band
            MissingCRSError: Raster has no CRS
            InvalidGeotransformError: Transform missing, NaN or degenerate
            AllNoDataError: Every pixel is NoData
            InsufficientMemoryError: Memory budget exceeded
        """
        path = Path(file_path)
        self._preflight(path)

        try:
            with rasterio.Env():
                with rasterio.open(path) as src:
                    if src.count != 1:
                        raise InvalidRasterError(f"Expected 1 band, got {src.count}", path.name)
                    if src.crs is None:
                        raise MissingCRSError("Raster has no CRS defined")
                    src_crs = src.crs.to_string()
                    transform = _check_transform(src.transform)

                    if _is_wgs84(src.crs):
                        self._check_budget(src.width, src.height)
                        data = _nodata_to_nan(
                            src.read(1, masked=True, out_dtype="float32"), src.nodata
                        )
                        dst_transform = transform
                    else:
                        data, dst_transform = self._reproject(src, transform)
                        logger.info(
                            "DEM %s: Reprojected from %s to EPSG:4326", path.name, src_crs
                        )
        except PermissionError as e:
            raise PermissionError(path.name) from e
        except rasterio.errors.RasterioError as e:
            # GDAL messages embed the absolute path; keep only the error type
            raise InvalidRasterError(
                f"Corrupted or invalid raster ({type(e).__name__})", path.name
            ) from e
        except MemoryError as e:
            raise InsufficientMemoryError("Insufficient memory to load raster") from e

        return self._build_grid(path, data, dst_transform, src_crs)

    def _reproject(self, src: Any, transform: Affine) -> tuple[NDArray[np.float32], Affine]:
        sb = src.bounds
        dst_transform, dst_width, dst_height = calculate_default_transform(
            src.crs, _TARGET_CRS, src.width, src.height, sb.left, sb.bottom, sb.right, sb.top
        )
        self._check_budget(dst_width, dst_height)
        dst = np.full((dst_height, dst_width), np.nan, dtype=np.float32)
        reproject(
            source=rasterio.band(src, 1),
            destination=dst,
            src_transform=transform,
            src_crs=src.crs,
            dst_transform=dst_transform,
            dst_crs=_TARGET_CRS,
            resampling=Resampling.bilinear,
            src_nodata=src.nodata,
            dst_nodata=np.nan,
        )
        return dst, dst_transform

    def _build_grid(
        self, path: Path, data: NDArray[np.float32], transform: Affine, src_crs: str
    ) -> TerrainGrid:
        if not np.any(~np.isnan(data)):
            raise AllNoDataError("Raster contains 100% NoData pixels - unusable")

        height, width = data.shape
        minx, miny, maxx, maxy = array_bounds(height, width, transform)
        try:
            bounds = BoundingBox(min_x=minx, min_y=miny, max_x=maxx, max_y=maxy)
        except ValueError as e:
            raise InvalidBoundsError(str(e)) from e

        nodata_pct = float(np.isnan(data).mean() * 100.0)
        if nodata_pct > NODATA_WARNING_PCT:
            logger.warning("DEM %s: %.1f%% NoData pixels detected", path.name, nodata_pct)
        logger.debug("DEM %s: Loaded %dx%d grid", path.name, width, height)

        return TerrainGrid(
            data=data,
            bounds=bounds,
            crs="EPSG:4326",
            resolution=(abs(transform.a), abs(transform.e)),
            source_crs=src_crs,
        )

    def elevation_provider(self, file_path: Path | str) -> GridElevationProvider:
        """Load a DEM and wrap it as a TerrainElevationProvider."""
        return GridElevationProvider(self.load_dem(file_path))
