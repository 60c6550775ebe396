# src/geostack/sources/smap.py

"""
This module reads SMAP L4 soil moisture products (HDF5).

All layers of a SMAP file live in the 'Geophysical_Data' group and share
the same (lat, lon) grid on the EASE-Grid 2.0 global projection. The
timestamp of each file is encoded in its name, e.g.
SMAP_L4_SM_gph_20160101T223000_Vv4011_001.h5, and files are 3 hours apart.
"""

import logging
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

import h5py
from rasterio.crs import CRS

from geostack.config import SeriesConfig
from geostack.dimensions import LAT, LON, Dimension, Intervals, Irregular, Locus
from geostack.exceptions import UnsupportedOperationError
from geostack.series.series import Series
from geostack.stack.file_stack import FileStack
from .hdf5 import HDF5Format, decode_attrs

log = logging.getLogger(__name__)

__all__ = [
    "SMAP_MISSING",
    "SMAP_GEODATA",
    "SMAP_CRS",
    "SMAP_MAPPED_CRS",
    "SMAPFormat",
    "SMAPStack",
    "smap_series"
]

SMAP_MISSING = -9999.0
SMAP_GEODATA = "Geophysical_Data"
SMAP_PROJECTION = "lambert_cylindrical_equal_area"
SMAP_CRS = CRS.from_proj4(
    "+proj=cea +lon_0=0 +lat_ts=30 +x_0=0 +y_0=0 +datum=WGS84 +units=m +no_defs +ellps=WGS84 +towgs84=0,0,0"
)
SMAP_MAPPED_CRS = CRS.from_epsg(4326)

class SMAPFormat(HDF5Format):
    """
    SMAP L4 HDF5 files.

    Every layer has the dimensions (lat, lon). The cell_lat/cell_lon lookup
    matrices repeat the same vector along each row/column, so one row and
    one column are read instead of the full matrices.
    """
    name = "smap"
    extensions = (".h5",)
    group = SMAP_GEODATA
    time_pattern = r"SMAP_L4_SM_gph_(\d+T\d+)_"
    time_format = "%Y%m%dT%H%M%S"
    time_step = timedelta(hours=3)

    def layer_keys(self, f: h5py.File):
        return list(self._group(f).keys())

    def dims(self, f: h5py.File, crs: Any = None, mappedcrs: Any = None):
        proj = decode_attrs(f["EASE2_global_projection"].attrs).get("grid_mapping_name")
        if proj != SMAP_PROJECTION:
            raise UnsupportedOperationError(f"projection {proj} not supported")

        crs = crs if crs is not None else SMAP_CRS
        mappedcrs = mappedcrs if mappedcrs is not None else SMAP_MAPPED_CRS

        extent = decode_attrs(f["Metadata/Extent"].attrs)
        lonbounds = (extent["westBoundLongitude"], extent["eastBoundLongitude"])
        latbounds = (extent["southBoundLatitude"], extent["northBoundLatitude"])

        lat = f["cell_lat"][:, 0]
        lon = f["cell_lon"][0, :]

        # Rows run north to south, so lat is in reverse order
        return (
            Dimension(LAT, lat, Intervals(Locus.CENTER), Irregular(latbounds), crs=crs, mappedcrs=mappedcrs),
            Dimension(LON, lon, Intervals(Locus.CENTER), Irregular(lonbounds), crs=crs, mappedcrs=mappedcrs)
        )

    def layer_dims(self, f: h5py.File) -> Dict[str, tuple]:
        return {key: (LAT, LON) for key in self.layer_keys(f)}

    def metadata(self, f: h5py.File) -> Dict[str, Any]:
        return {}

    def layer_metadata(self, f: h5py.File, key: str) -> Dict[str, Any]:
        return {}

    def missingval(self, f: Optional[h5py.File], key: Optional[str]) -> float:
        return SMAP_MISSING


class SMAPStack(FileStack):
    """
    FileStack over one SMAP file.

    Dimensions and the missing value are fixed for all layers; the reference
    dimension is the 3-hour time interval parsed from the filename.

    Args:
        path: SMAP .h5 file.
        source: Format instance. Default: SMAPFormat().
        refdims: Default: the time dimension of the file's timestamp.
        **kwargs: Passed to FileStack (dims, window, metadata, keep_open, config, ...).
    """

    def __init__(
        self,
        path: Union[str, Path],
        source: Optional[SMAPFormat] = None,
        refdims: Optional[Sequence[Dimension]] = None,
        **kwargs: Any
    ):
        source = source or SMAPFormat()
        if refdims is None:
            refdims = (source.time_dim([source.time_from_path(path)]),)
        kwargs.setdefault("missingval", SMAP_MISSING)
        super().__init__(path, source, refdims=refdims, **kwargs)


def smap_series(
    path: Union[str, Path, Sequence[Union[str, Path]]],
    config: Optional[SeriesConfig] = None,
    **kwargs: Any
) -> Series:
    """
    Series of SMAP stacks along time.

    Args:
        path: A directory of SMAP files (all '.h5' files are considered),
            or a list of specific files.
        config: SeriesConfig (sorting, eager construction).
        **kwargs: Passed to Series.from_paths and on to each SMAPStack.
    """
    source = SMAPFormat()
    if isinstance(path, (str, Path)) and Path(path).is_dir():
        return Series.from_directory(path, source=source, config=config, child=SMAPStack, **kwargs)
    if isinstance(path, (str, Path)):
        path = [path]
    return Series.from_paths(path, source, child=SMAPStack, config=config, **kwargs)
