# tests/unit/test_stack.py

from enum import Enum

import pytest
import numpy as np

from geostack.dimensions import Between, Dimension, Points
from geostack.exceptions import (
    DimensionMismatchError, DuplicateKeyError, KeyNotFoundError, MissingLayerError
)
from geostack.raster import Raster
from geostack.stack import Stack, cat
from helpers import assert_raster_matches

class Var(Enum):
    TEMP = "temp"

@pytest.fixture
def mixed_stack(xy_dims, time_dim):
    """'temp' uses (y, x); 'rain' uses (y, x, time)."""
    y, x = xy_dims
    temp = Raster(np.arange(20, dtype="float32").reshape(4, 5), (y, x), name="temp", nodata=-1.0)
    rain = Raster(np.arange(60).reshape(4, 5, 3), (y, x, time_dim), name="rain", metadata={"units": "mm"})
    return Stack.from_layers([temp, rain], metadata={"source": "test"})

def test_dims_are_combined_in_order(mixed_stack):
    assert [d.name for d in mixed_stack.dims] == ["y", "x", "time"]
    assert [d.name for d in mixed_stack.layer_dims("temp")] == ["y", "x"]
    assert [d.name for d in mixed_stack.layer_dims("rain")] == ["y", "x", "time"]

def test_keys_iteration_and_membership(mixed_stack):
    assert mixed_stack.keys() == ("temp", "rain")
    assert list(mixed_stack) == ["temp", "rain"]
    assert len(mixed_stack) == 2
    assert "rain" in mixed_stack
    assert Var.TEMP in mixed_stack
    assert "snow" not in mixed_stack

def test_key_access(mixed_stack):
    temp = mixed_stack["temp"]
    assert_raster_matches(temp, np.arange(20).reshape(4, 5), ["y", "x"])
    assert temp.name == "temp"
    assert temp.nodata == -1.0
    assert mixed_stack["rain"].metadata == {"units": "mm"}
    assert mixed_stack.missingval("rain") is None

def test_enum_and_bytes_keys(mixed_stack):
    assert mixed_stack[Var.TEMP] == mixed_stack["temp"]
    assert mixed_stack[b"rain"] == mixed_stack["rain"]

def test_missing_key(mixed_stack):
    with pytest.raises(KeyNotFoundError):
        mixed_stack["snow"]
    with pytest.raises(KeyError):
        mixed_stack["snow", 0]

def test_key_with_indices(mixed_stack):
    rain = mixed_stack["rain", 1, slice(0, 2), 2]
    np.testing.assert_array_equal(rain.data, np.arange(60).reshape(4, 5, 3)[1, 0:2, 2])
    assert [d.name for d in rain.refdims] == ["y", "time"]
    assert mixed_stack["temp", 3, 4] == 19.0

def test_key_with_mapping(mixed_stack):
    rain = mixed_stack["rain", {"time": 0, "x": Between(110.0, 120.0)}]
    np.testing.assert_array_equal(rain.data, np.arange(60).reshape(4, 5, 3)[:, 1:3, 0])

def test_index_all_layers(mixed_stack):
    result = mixed_stack[0, 1]
    assert set(result) == {"temp", "rain"}
    assert result["temp"] == 1.0
    np.testing.assert_array_equal(result["rain"].data, [3, 4, 5])

def test_mapping_all_layers_skips_absent_dims(mixed_stack):
    result = mixed_stack[{"time": 2}]
    assert result["temp"].shape == (4, 5)
    assert result["rain"].shape == (4, 5)
    assert result["rain"].refdims[0].name == "time"

def test_window_applies_to_every_layer(mixed_stack):
    windowed = mixed_stack.with_window({"x": slice(1, 3), "time": 1})
    assert windowed["temp"].shape == (4, 2)
    rain = windowed["rain"]
    np.testing.assert_array_equal(rain.data, np.arange(60).reshape(4, 5, 3)[:, 1:3, 1])
    # Indices are relative to the window
    assert windowed["temp", 0, 0] == 1.0
    assert mixed_stack.window is None

def test_layers_and_items(mixed_stack):
    layers = mixed_stack.layers()
    assert list(layers) == ["temp", "rain"]
    assert dict(mixed_stack.items()).keys() == layers.keys()

def test_copy_is_independent(mixed_stack):
    clone = mixed_stack.copy()
    clone.data["temp"][0, 0] = 500.0
    clone.metadata["source"] = "changed"
    assert mixed_stack["temp", 0, 0] == 0.0
    assert mixed_stack.metadata["source"] == "test"
    assert clone.keys() == mixed_stack.keys()

def test_copy_materializes_window(mixed_stack):
    clone = mixed_stack.with_window({"y": slice(0, 2)}).copy()
    assert clone.window is None
    assert clone["temp"].shape == (2, 5)

def test_duplicate_keys_rejected(xy_dims):
    r = Raster(np.zeros((4, 5)), xy_dims)
    with pytest.raises(DuplicateKeyError):
        Stack.from_layers([r, r], keys=["temp", Var.TEMP])

def test_unnamed_rasters_need_keys(xy_dims):
    r = Raster(np.zeros((4, 5)), xy_dims)
    with pytest.raises(ValueError):
        Stack.from_layers([r])

def test_incompatible_layers_rejected(xy_dims):
    y, x = xy_dims
    a = Raster(np.zeros((4, 5)), (y, x), name="a")
    b = Raster(np.zeros((4, 5)), (y, x.rebuild(values=x.values * 2)), name="b")
    with pytest.raises(DimensionMismatchError):
        Stack.from_layers([a, b])

def test_layer_dims_must_be_stack_dims(xy_dims):
    y, x = xy_dims
    with pytest.raises(DimensionMismatchError):
        Stack({"a": np.zeros((4, 5))}, dims=(y, x), layerdims={"a": ("y", "band")})

def test_layer_shape_must_match_dims(xy_dims):
    with pytest.raises(DimensionMismatchError):
        Stack({"a": np.zeros((5, 4))}, dims=xy_dims)

def test_cat_along_existing_axis(mixed_stack):
    top = mixed_stack.with_window({"y": slice(0, 2)})
    bottom = mixed_stack.with_window({"y": slice(2, 4)})
    joined = cat(top, bottom, dim="y")
    assert joined["temp"] == mixed_stack["temp"]
    np.testing.assert_array_equal(joined["rain"].data, mixed_stack["rain"].data)
    assert joined.metadata == {"source": "test"}

def test_cat_promotes_stack_refdims(xy_dims):
    stamps = Dimension("time", np.array(["2020-01-01", "2020-01-02"], dtype="datetime64[D]"), Points())
    stacks = [
        Stack.from_layers(
            [Raster(np.full((4, 5), i), xy_dims, name="temp")],
            refdims=(stamps[i],)
        )
        for i in range(2)
    ]
    joined = cat(stacks, dim="time")
    assert joined["temp"].shape == (4, 5, 2)
    assert joined.refdims == ()

def test_cat_selected_keys(mixed_stack):
    joined = cat(mixed_stack, mixed_stack, keys=["temp"], dim="x")
    assert joined.keys() == ("temp",)
    assert joined["temp"].shape == (4, 10)

def test_cat_missing_layer(mixed_stack, xy_dims):
    other = Stack.from_layers([Raster(np.zeros((4, 5)), xy_dims, name="temp")])
    with pytest.raises(MissingLayerError):
        cat(mixed_stack, other, dim="y")

# Positional windows and whole-stack indices on layers of different rank

def test_positional_window_counts_stack_dims(mixed_stack):
    windowed = mixed_stack.with_window((slice(0, 2), slice(None), 0))
    assert windowed["temp"].shape == (2, 5)
    rain = windowed["rain"]
    assert rain.shape == (2, 5)
    np.testing.assert_array_equal(rain.data, np.arange(60).reshape(4, 5, 3)[0:2, :, 0])
    assert [d.name for d in rain.refdims] == ["time"]

def test_positional_window_too_long(mixed_stack):
    with pytest.raises(IndexError):
        mixed_stack.with_window((0, 0, 0, 0))["temp"]

def test_positional_index_all_layers_counts_stack_dims(mixed_stack):
    result = mixed_stack[slice(0, 2), 1, 2]
    np.testing.assert_array_equal(result["temp"].data, [1.0, 6.0])
    np.testing.assert_array_equal(result["rain"].data, np.arange(60).reshape(4, 5, 3)[0:2, 1, 2])

def test_positional_index_all_layers_under_window(mixed_stack):
    result = mixed_stack.with_window({"y": 1})[slice(1, 3), 0]
    assert result["temp"].shape == (2,)
    np.testing.assert_array_equal(result["rain"].data, [18, 21])

# Layer refdims

def test_copy_keeps_window_refdims(mixed_stack):
    windowed = mixed_stack.with_window({"time": 1})
    clone = windowed.copy()
    assert clone["rain"] == windowed["rain"]
    assert clone["temp"] == windowed["temp"]
    assert [d.name for d in clone["rain"].refdims] == ["time"]
    assert clone["temp"].refdims == ()

def test_from_layers_keeps_raster_refdims(xy_dims, time_dim):
    rain = Raster(np.arange(60).reshape(4, 5, 3), xy_dims + (time_dim,), name="rain")
    first = rain[{"time": 0}]
    stack = Stack.from_layers([first])
    assert stack.layer_refdims("rain")[0].name == "time"
    assert stack["rain"].refdims == first.refdims

def test_layer_metadata_is_copied_per_read(mixed_stack):
    layer = mixed_stack["rain"]
    layer.metadata["units"] = "in"
    assert mixed_stack["rain"].metadata == {"units": "mm"}
    assert mixed_stack.layer_metadata("rain") == {"units": "mm"}
