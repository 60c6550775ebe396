# tests/integration/test_pipeline.py

from types import SimpleNamespace

import pytest
import numpy as np

import geostack
from geostack import Between, Contains, Locus, Near, Stack, StackConfig, cat, shift_locus, smap_series

def test_geotiff_stack_workflow(geotiff_factory):
    """
    Simulates a standard user workflow:
    1. Prepare Data: Two GeoTIFF products on the same grid.
    2. Stack: Combine them as one lazily read stack.
    3. Window: Restrict every layer to a sub-region by coordinates.
    4. Read: Pull one region and materialize an in-memory copy.
    """

    # --- 1. SETUP DATA ---
    red = geotiff_factory("red.tif", nodata=-1.0)
    nir = geotiff_factory("nir.tif", data=np.arange(60, dtype="float32").reshape(3, 4, 5) * 2)

    # --- 2. STACK ---
    stack = Stack.from_files({"red": red, "nir": nir}, metadata={"site": "plot-7"})
    assert stack.keys() == ("red", "nir")

    # --- 3. WINDOW ---
    # x is start-locus with 10 m cells from 100; Between(110, 130) keeps 3 columns
    windowed = stack.with_window({"x": Between(110.0, 130.0), "band": 0})
    nir_band = windowed["nir"]
    assert nir_band.shape == (4, 3)
    np.testing.assert_array_equal(nir_band.data, np.arange(20).reshape(4, 5)[:, 1:4] * 2)

    # Cell containing a coordinate, after moving x to cell centres
    centred = shift_locus(Locus.CENTER, nir_band.dim("x"))
    np.testing.assert_allclose(centred.values, [115.0, 125.0, 135.0])
    assert windowed["red", {"x": Contains(125.0), "y": Near(180.0)}] == 12.0

    # --- 4. MATERIALIZE ---
    clone = windowed.copy()
    assert isinstance(clone, Stack)
    assert clone.metadata == {"site": "plot-7"}
    np.testing.assert_array_equal(clone["red"].data, windowed["red"].data)
    assert clone["red"].nodata == -1.0

def test_multilayer_file_workflow(hdf5_path):
    """Mixed-dimension layers of one HDF5 file, read through a shared window."""
    stack = Stack.from_file(hdf5_path, window={"time": slice(1, 3), "x": slice(0, 2)})

    rain = stack["rain"]
    assert [d.name for d in rain.dims] == ["time", "y", "x"]
    assert rain.shape == (2, 4, 2)
    temp = stack["temp"].replace_missing()
    assert temp.shape == (4, 2)

    # Same selection on every layer
    row = stack[{"y": 0}]
    assert row["temp"].shape == (2,)
    assert row["rain"].shape == (2, 2)

    joined = cat(stack, stack, keys=["temp"], dim="x")
    assert joined["temp"].shape == (4, 4)

def test_smap_time_series_workflow(smap_dir):
    """
    A directory of SMAP files becomes a time series; one region of one layer
    is read from every file and concatenated along time.
    """
    series = smap_series(smap_dir, window={"lat": Between(-40.0, 40.0)})
    assert len(series) == 2
    assert len(series.errors) == 1

    joined = series.cat(keys=["sm_surface"])
    layer = joined["sm_surface"]
    assert layer.shape == (3, 5, 2)
    np.testing.assert_array_equal(layer.dim("lat").values, [30.0, 0.0, -30.0])
    np.testing.assert_array_equal(layer.data[0, 0], [5.0, 6.0])
    assert layer.nodata == -9999.0

def test_keep_open_series_releases_handles(smap_dir):
    series = smap_series(smap_dir, config=geostack.SeriesConfig(eager=True), keep_open=True)
    stacks = list(series)
    for stack in stacks:
        assert stack["sm_surface", 1, 1] == stack["sm_surface"].data[1, 1]
        assert not stack.closed
    series.close()
    assert all(stack.closed for stack in stacks)

def test_memory_guard_is_configurable(smap_dir, monkeypatch):
    monkeypatch.setattr(
        "geostack.raster.resources.psutil.virtual_memory",
        lambda: SimpleNamespace(available=0)
    )
    first = smap_series(smap_dir)[0]
    with pytest.raises(MemoryError):
        first["sm_surface"]

    # Windowed reads and unguarded stacks still work
    assert first["sm_surface", 0:2, :].shape == (2, 5)
    unguarded = first.rebuild(config=StackConfig(check_memory=False))
    assert unguarded["sm_surface"].shape == (4, 5)
