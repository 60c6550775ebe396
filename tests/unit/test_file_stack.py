# tests/unit/test_file_stack.py

from datetime import timedelta
from types import SimpleNamespace

import pytest
import numpy as np

from geostack.config import StackConfig
from geostack.raster import estimate_memory
from geostack.dimensions import Between, Intervals, Irregular, Locus, Order, Regular
from geostack.exceptions import DimensionMismatchError, KeyNotFoundError, UnsupportedOperationError
from geostack.sources import FileArray, HDF5Format
from geostack.sources.smap import SMAP_CRS, SMAP_MAPPED_CRS, SMAPFormat, SMAPStack
from geostack.stack import FileStack, Stack

GRID = np.arange(20, dtype="float32").reshape(4, 5)

def _smap_values(offset=0.0):
    values = GRID + offset
    values[0, 0] = -9999.0
    return values

@pytest.fixture
def no_memory(monkeypatch):
    monkeypatch.setattr(
        "geostack.raster.resources.psutil.virtual_memory",
        lambda: SimpleNamespace(available=0)
    )

# Multi-layer file (generic HDF5)

def test_from_file_records_layout(hdf5_path):
    stack = Stack.from_file(hdf5_path)
    assert stack.keys() == ("rain", "temp")
    assert [d.name for d in stack.dims] == ["time", "y", "x"]
    assert [d.name for d in stack.layer_dims("temp")] == ["y", "x"]
    assert stack.metadata == {"title": "synthetic climate"}
    assert stack.missingval("rain") == -99
    assert isinstance(stack.data["temp"], FileArray)

def test_from_file_reads_lazily(hdf5_path):
    stack = Stack.from_file(hdf5_path)
    assert stack["temp", 1, 2] == 7.0
    rain = stack["rain", {"time": 2, "x": slice(0, 2)}]
    np.testing.assert_array_equal(rain.data, np.arange(60).reshape(3, 4, 5)[2, :, 0:2])
    assert rain.nodata == -99

def test_from_file_index_array_reads_listed_columns(hdf5_path):
    stack = Stack.from_file(hdf5_path)
    rain = stack["rain", {"x": np.array([4, 0, 4]), "time": 1}]
    np.testing.assert_array_equal(rain.data, np.arange(60).reshape(3, 4, 5)[1][:, [4, 0, 4]])
    np.testing.assert_array_equal(rain.dim("x").values, stack.dims[2].values[[4, 0, 4]])

def test_from_file_window(hdf5_path):
    stack = Stack.from_file(hdf5_path, window={"y": slice(1, 3)})
    assert stack["temp"].shape == (2, 5)
    assert stack["rain"].shape == (3, 2, 5)
    np.testing.assert_array_equal(stack["temp", 0].data, GRID[1])

def test_from_file_copy_is_in_memory(hdf5_path):
    clone = Stack.from_file(hdf5_path).copy()
    assert isinstance(clone.data["temp"], np.ndarray)
    np.testing.assert_array_equal(clone["temp"].data, GRID)

# One file per layer (GeoTIFF)

def test_from_files_keys_and_dims(geotiff_factory):
    a = geotiff_factory("ndvi.tif")
    b = geotiff_factory("evi.tif", data=np.ones((3, 4, 5), dtype="uint8"), nodata=0)
    stack = Stack.from_files([a, b])

    assert stack.keys() == ("ndvi", "evi")
    assert [d.name for d in stack.dims] == ["band", "y", "x"]
    assert stack.missingval("evi") == 0
    assert stack["evi"].dtype == np.uint8

def test_from_files_windowed_read_matches_full(geotiff_factory):
    data = np.random.default_rng(0).random((3, 4, 5)).astype("float32")
    stack = Stack.from_files({"refl": geotiff_factory("r.tif", data=data)})
    full = stack["refl"].data
    np.testing.assert_array_equal(full, data)

    window = stack.with_window({"x": slice(1, 5), "y": slice(None, None, -1)})
    sub = window["refl", 2, slice(0, 2), [3, 0]]
    np.testing.assert_array_equal(sub.data, data[2][::-1][0:2][:, 1:5][:, [3, 0]])

def test_from_files_mismatched_grids(geotiff_factory):
    a = geotiff_factory("a.tif")
    b = geotiff_factory("b.tif", origin=(105.0, 200.0))
    with pytest.raises(DimensionMismatchError):
        Stack.from_files([a, b])

def test_from_files_missing_file(tmp_path, geotiff_factory):
    with pytest.raises(FileNotFoundError):
        Stack.from_files([geotiff_factory("a.tif"), tmp_path / "missing.tif"])

def test_memory_guard_on_full_read(geotiff_factory, no_memory):
    stack = Stack.from_files([geotiff_factory("a.tif")])
    with pytest.raises(MemoryError):
        stack["a"]
    # Windowed reads are not guarded
    assert stack["a", 0, 0, 0] == 0.0

def test_memory_guard_can_be_disabled(geotiff_factory, no_memory):
    stack = Stack.from_files([geotiff_factory("a.tif")], config=StackConfig(check_memory=False))
    assert stack["a"].shape == (3, 4, 5)

# SMAP

def test_smap_stack_layout(smap_factory):
    stack = SMAPStack(smap_factory())

    assert set(stack.keys()) == {"sm_surface", "sm_rootzone"}
    lat, lon = stack.dims
    assert (lat.name, lon.name) == ("lat", "lon")
    np.testing.assert_array_equal(lat.values, [60.0, 30.0, 0.0, -30.0])
    assert lat.order is Order.REVERSE
    assert lat.sampling == Intervals(Locus.CENTER)
    assert lat.span == Irregular((-85.04, 85.04))
    assert lon.span == Irregular((-180.0, 180.0))
    assert lat.crs == SMAP_CRS
    assert lon.mappedcrs == SMAP_MAPPED_CRS
    assert stack.missingval("sm_surface") == -9999.0
    assert stack.metadata == {}

def test_smap_refdim_from_filename(smap_factory):
    stack = SMAPStack(smap_factory())
    (time,) = stack.refdims
    assert time.values[0] == np.datetime64("2016-01-01T01:30:00")
    assert time.sampling == Intervals(Locus.START)
    assert time.span == Regular(np.timedelta64(timedelta(hours=3)).astype("timedelta64[s]"))

def test_smap_layer_read(smap_factory):
    stack = SMAPStack(smap_factory())
    layer = stack["sm_rootzone"]
    np.testing.assert_array_equal(layer.data, _smap_values(100.0))
    assert layer.nodata == -9999.0
    assert np.isnan(layer.replace_missing().data[0, 0])
    assert layer.refdims == stack.refdims

def test_smap_windowed_selector(smap_factory):
    stack = SMAPStack(smap_factory()).with_window({"lat": Between(-10.0, 40.0)})
    assert isinstance(stack, SMAPStack)
    layer = stack["sm_surface"]
    np.testing.assert_array_equal(layer.data, _smap_values()[1:3])
    np.testing.assert_array_equal(layer.dim("lat").values, [30.0, 0.0])
    assert stack["sm_surface", 1, 4] == GRID[2, 4]

def test_smap_unknown_layer(smap_factory):
    with pytest.raises(KeyNotFoundError):
        SMAPStack(smap_factory())["soil_temp"]

def test_smap_unsupported_projection(smap_factory):
    path = smap_factory(projection="polar_stereographic")
    with pytest.raises(UnsupportedOperationError, match="polar_stereographic"):
        SMAPStack(path)

def test_smap_crs_override(smap_factory):
    stack = SMAPStack(smap_factory(), crs="EPSG:6933")
    assert stack.dims[0].crs == "EPSG:6933"

def test_open_per_read_by_default(smap_factory):
    stack = SMAPStack(smap_factory())
    stack["sm_surface"]
    assert stack._handles is None
    assert not stack.closed

def test_keep_open_reuses_and_closes_handle(smap_factory):
    with SMAPStack(smap_factory(), keep_open=True) as stack:
        stack["sm_surface"]
        stack["sm_rootzone", 0]
        assert len(stack._handles) == 1
        assert not stack.closed
    assert stack.closed
    with pytest.raises(ValueError):
        stack["sm_surface"]

def test_keep_open_from_config(smap_factory):
    stack = SMAPStack(smap_factory(), config=StackConfig(keep_open=True))
    assert stack.keep_open
    stack.close()
    stack.close()
    assert stack.closed

def test_rebuild_does_not_share_handles(smap_factory):
    stack = SMAPStack(smap_factory(), keep_open=True)
    windowed = stack.with_window({"lon": 0})
    stack.close()
    assert windowed["sm_surface"].shape == (4,)
    windowed.close()

def test_generic_file_stack(smap_factory):
    fmt = SMAPFormat()
    stack = FileStack(smap_factory(), fmt)
    assert stack.refdims == ()
    assert stack["sm_surface", 3, 0] == GRID[3, 0]

def test_file_stack_with_given_dims_skips_reading(smap_factory):
    path = smap_factory()
    dims = SMAPStack(path).dims
    stack = FileStack(path, SMAPFormat(), dims=dims, metadata={"k": 1}, missingval=-1.0)
    assert stack.metadata == {"k": 1}
    assert stack.missingval() == -1.0

def test_copy_materializes_file_stack(smap_factory):
    stack = SMAPStack(smap_factory())
    clone = stack.copy()
    assert isinstance(clone, Stack)
    assert clone.refdims == stack.refdims
    np.testing.assert_array_equal(clone["sm_surface"].data, _smap_values())

def test_hdf5_format_on_smap_group(smap_factory):
    fmt = HDF5Format(group="Geophysical_Data")
    keys = fmt.open_and_read(smap_factory(), fmt.layer_keys)
    assert keys == ["sm_rootzone", "sm_surface"]

def test_estimate_memory_reports_requirement(monkeypatch):
    monkeypatch.setattr(
        "geostack.raster.resources.psutil.virtual_memory",
        lambda: SimpleNamespace(available=10 * 1024**3)
    )
    small = estimate_memory((100, 100), "float32", safety_factor=2.0)
    assert small.total_required_bytes == 80000
    assert small.is_safe
    assert not estimate_memory((1024, 1024, 1024), "float64").is_safe

def test_file_layer_metadata_is_not_shared(smap_factory):
    path = smap_factory()
    stack = FileStack(path, SMAPFormat(), metadata={"k": 1})
    layer = stack["sm_surface"]
    layer.metadata["k"] = 2
    assert stack.metadata == {"k": 1}
    assert stack["sm_rootzone"].metadata == {"k": 1}
