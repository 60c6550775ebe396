# tests/conftest.py

import pytest
import numpy as np
import h5py
import rasterio
from rasterio.transform import from_origin
from rasterio.crs import CRS

from geostack.dimensions import Dimension, Intervals, Locus, Points, Regular

SMAP_PROJ = "lambert_cylindrical_equal_area"

@pytest.fixture
def utm_crs():
    return CRS.from_epsg(32619)

@pytest.fixture
def geotiff_factory(tmp_path, utm_crs):
    """
    Fixture: Returns a function that writes a GeoTIFF into tmp_path.
    Default grid: origin (100, 200), 10 m cells, 3 bands of 4 rows x 5 columns.
    """
    def _create(
        name="layer.tif",
        data=None,
        origin=(100.0, 200.0),
        res=10.0,
        crs=None,
        nodata=None,
        tags=None
    ):
        if data is None:
            data = np.arange(3 * 4 * 5, dtype="float32").reshape(3, 4, 5)
        count, height, width = data.shape
        path = tmp_path / name

        profile = {
            'driver': 'GTiff',
            'height': height,
            'width': width,
            'count': count,
            'dtype': str(data.dtype),
            'crs': crs if crs is not None else utm_crs,
            'transform': from_origin(origin[0], origin[1], res, res),
            'nodata': nodata
        }
        with rasterio.open(path, 'w', **profile) as dst:
            dst.write(data)
            if tags:
                dst.update_tags(**tags)
            for i in range(1, count + 1):
                dst.set_band_description(i, f"B{i}")
        return path

    return _create

@pytest.fixture
def hdf5_path(tmp_path):
    """
    Fixture: A multi-layer HDF5 file with dimension scales.
    'temp' has dims (y, x); 'rain' has dims (time, y, x).
    """
    path = tmp_path / "climate.h5"
    xs = np.arange(5) * 10.0 + 5.0
    ys = 35.0 - np.arange(4) * 10.0

    with h5py.File(path, "w") as f:
        f.attrs["title"] = "synthetic climate"

        x = f.create_dataset("x", data=xs)
        x.make_scale("x")
        y = f.create_dataset("y", data=ys)
        y.make_scale("y")
        t = f.create_dataset("time", data=np.arange(3))
        t.make_scale("time")
        t.attrs["sampling"] = "points"

        temp = f.create_dataset("temp", data=np.arange(20, dtype="float32").reshape(4, 5))
        temp.dims[0].attach_scale(y)
        temp.dims[1].attach_scale(x)
        temp.attrs["_FillValue"] = np.float32(-1.0)
        temp.attrs["units"] = "degC"

        rain = f.create_dataset("rain", data=np.arange(60, dtype="int16").reshape(3, 4, 5))
        rain.dims[0].attach_scale(t)
        rain.dims[1].attach_scale(y)
        rain.dims[2].attach_scale(x)
        rain.attrs["missing_value"] = np.int16(-99)

    return path

def _write_smap(path, projection=SMAP_PROJ, layers=("sm_surface", "sm_rootzone"), offset=0.0):
    lat = np.array([60.0, 30.0, 0.0, -30.0])
    lon = np.array([-135.0, -45.0, 45.0, 135.0, 170.0])
    with h5py.File(path, "w") as f:
        proj = f.create_dataset("EASE2_global_projection", data=np.int8(0))
        proj.attrs["grid_mapping_name"] = np.bytes_(projection)

        extent = f.create_group("Metadata/Extent")
        extent.attrs["westBoundLongitude"] = -180.0
        extent.attrs["eastBoundLongitude"] = 180.0
        extent.attrs["northBoundLatitude"] = 85.04
        extent.attrs["southBoundLatitude"] = -85.04

        f.create_dataset("cell_lat", data=np.repeat(lat[:, None], len(lon), axis=1))
        f.create_dataset("cell_lon", data=np.repeat(lon[None, :], len(lat), axis=0))

        group = f.create_group("Geophysical_Data")
        for i, name in enumerate(layers):
            values = np.arange(20, dtype="float32").reshape(4, 5) + 100 * i + offset
            values[0, 0] = -9999.0
            group.create_dataset(name, data=values)
    return path

@pytest.fixture
def smap_factory(tmp_path):
    """Fixture: Returns a function writing a minimal SMAP L4 file into tmp_path."""
    def _create(name="SMAP_L4_SM_gph_20160101T013000_Vv4011_001.h5", **kwargs):
        return _write_smap(tmp_path / name, **kwargs)
    return _create

@pytest.fixture
def smap_dir(tmp_path):
    """
    Fixture: A directory with two valid SMAP files (listed out of time order),
    one file with a malformed name, and an unrelated text file.
    """
    d = tmp_path / "smap"
    d.mkdir()
    _write_smap(d / "SMAP_L4_SM_gph_20160101T043000_Vv4011_001.h5", offset=1.0)
    _write_smap(d / "SMAP_L4_SM_gph_20160101T013000_Vv4011_001.h5", offset=0.0)
    _write_smap(d / "SMAP_L4_SM_gph_notadate_Vv4011_001.h5")
    (d / "readme.txt").write_text("not a product")
    return d

@pytest.fixture
def xy_dims():
    """Regular x (start locus) and y (reverse order) dimensions of a 4 x 5 grid."""
    x = Dimension("x", np.arange(5) * 10.0 + 100.0, Intervals(Locus.START), Regular(10.0))
    y = Dimension("y", 200.0 - np.arange(4) * 10.0, Intervals(Locus.START), Regular(-10.0))
    return y, x

@pytest.fixture
def time_dim():
    values = np.array(["2020-01-01", "2020-01-02", "2020-01-03"], dtype="datetime64[D]")
    return Dimension("time", values, Points())
