# src/geostack/sources/geotiff.py

"""
This module reads GeoTIFF (and other GDAL raster) files through rasterio.

Every file holds a single layer with dimensions (band, y, x), the same
band-first layout rasterio reads. x and y coordinates are the top-left
corners of the cells, so both carry Intervals(START) sampling; y usually
runs in reverse because the transform's row step is negative.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import rasterio
from rasterio.windows import Window

from geostack.dimensions import BAND, X, Y, Dimension, Intervals, Locus, Points, Regular
from geostack.exceptions import UnsupportedOperationError
from geostack.raster.utils import orthogonal_index
from geostack.stack.window import storage_selection
from .base import SourceFormat

log = logging.getLogger(__name__)

__all__ = [
    "GeoTIFFFormat"
]

class GeoTIFFFormat(SourceFormat):
    """
    Single-layer raster files read with rasterio.

    The layer key of a file is its filename stem. Filename timestamps are
    parsed with `time_pattern`/`time_format` when given (e.g.
    r"_(\\d{8})" and "%Y%m%d"); by default none is defined.
    """
    name = "geotiff"
    extensions = (".tif", ".tiff")

    def open(self, path: Path):
        return rasterio.open(path)

    def layer_keys(self, src: Any) -> List[str]:
        return [Path(src.name).stem]

    def dataset(self, src: Any, key: str) -> Any:
        return src

    def dims(self, src: Any, crs: Any = None, mappedcrs: Any = None) -> Tuple[Dimension, ...]:
        transform = src.transform
        if transform.b != 0 or transform.d != 0:
            raise UnsupportedOperationError(
                f"Rotated or sheared transforms are not supported: {src.name}"
            )

        crs = crs if crs is not None else src.crs
        x = Dimension(
            X, transform.c + transform.a * np.arange(src.width),
            Intervals(Locus.START), Regular(transform.a),
            crs=crs, mappedcrs=mappedcrs
        )
        y = Dimension(
            Y, transform.f + transform.e * np.arange(src.height),
            Intervals(Locus.START), Regular(transform.e),
            crs=crs, mappedcrs=mappedcrs
        )
        band = Dimension(
            BAND, np.arange(1, src.count + 1), Points(),
            metadata={"descriptions": list(src.descriptions)}
        )
        return (band, y, x)

    def metadata(self, src: Any) -> Dict[str, Any]:
        meta = dict(src.tags())
        meta["driver"] = src.driver
        return meta

    def layer_metadata(self, src: Any, key: str) -> Dict[str, Any]:
        meta = self.metadata(src)
        names = {}
        for i in src.indexes:
            desc = src.descriptions[i - 1]
            names[desc or f"Band_{i}"] = i
        meta["band_names"] = names
        return meta

    def missingval(self, src: Any, key: Optional[str]) -> Any:
        return src.nodata

    def layer_shape(self, src: Any, key: str) -> Tuple[int, ...]:
        return (src.count, src.height, src.width)

    def layer_dtype(self, src: Any, key: str) -> np.dtype:
        return np.dtype(src.dtypes[0])

    def read_windowed(self, src: Any, indices: Sequence[Any]) -> np.ndarray:
        """
        Read one (band, y, x) region with a single rasterio read.

        The bounding block of the request is read through a Window plus the
        covered band indexes; steps and index arrays are applied afterwards.
        rasterio has no point selection, so an index array costs the block
        between its smallest and largest position.
        """
        shape = self.layer_shape(src, None)
        read_key, post_key = storage_selection(indices, shape, native_ints=False)
        bands, rows, cols = read_key

        if any(s.stop - s.start <= 0 for s in read_key):
            out_shape = tuple(max(s.stop - s.start, 0) for s in read_key)
            data = np.empty(out_shape, dtype=self.layer_dtype(src, None))
        else:
            window = Window(
                col_off=cols.start, row_off=rows.start,
                width=cols.stop - cols.start, height=rows.stop - rows.start
            )
            indexes = list(range(bands.start + 1, bands.stop + 1))
            log.debug(f"Reading bands {indexes} window {window} from {Path(src.name).name}")
            data = src.read(indexes, window=window)

        return orthogonal_index(data, post_key)
