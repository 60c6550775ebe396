# tests/unit/test_utils.py

from enum import Enum

import pytest
import numpy as np

from geostack.raster.utils import clean_key, clean_keys, filekey, filter_ext, orthogonal_index
from geostack.exceptions import DuplicateKeyError

class Var(Enum):
    TEMP = "temp"
    RAIN = 2

def test_clean_key_variants():
    assert clean_key("temp") == "temp"
    assert clean_key(b"temp") == "temp"
    assert clean_key(Var.TEMP) == "temp"
    assert clean_key(Var.RAIN) == "RAIN"

def test_clean_key_rejects_other_types():
    with pytest.raises(TypeError):
        clean_key(3)

def test_clean_keys_detects_collisions():
    with pytest.raises(DuplicateKeyError):
        clean_keys(["temp", Var.TEMP])
    with pytest.raises(ValueError):
        clean_keys([b"rain", "rain"])

def test_filekey():
    assert filekey("/data/ndvi_2020.tif") == "ndvi_2020"

def test_filter_ext_sorted_and_case_insensitive(tmp_path):
    for name in ["b.tif", "a.TIF", "c.h5", "notes.txt"]:
        (tmp_path / name).write_text("")
    (tmp_path / "sub.tif").mkdir()

    found = filter_ext(tmp_path, ".tif")
    assert [p.name for p in found] == ["a.TIF", "b.tif"]
    assert [p.name for p in filter_ext(tmp_path, ["h5", "txt"])] == ["c.h5", "notes.txt"]

def test_filter_ext_missing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        filter_ext(tmp_path / "missing", ".tif")

def test_orthogonal_index_mixes_arrays():
    data = np.arange(24).reshape(2, 3, 4)
    result = orthogonal_index(data, (np.array([1, 0]), slice(None), np.array([0, 3])))
    assert result.shape == (2, 3, 2)
    np.testing.assert_array_equal(result, data[[1, 0]][:, :, [0, 3]])

def test_orthogonal_index_int_drops_axis():
    data = np.arange(24).reshape(2, 3, 4)
    result = orthogonal_index(data, (1, np.array([0, 2]), slice(1, 3)))
    np.testing.assert_array_equal(result, data[1][[0, 2]][:, 1:3])
