import numpy as np
import pytest

from colors import brightness_factor, central_slice, color_table, project, to_rgba
from sandpile import Grid


def test_color_table_scales_slider_units() -> None:
    table = color_table()
    assert table.shape == (6, 3)
    assert np.array_equal(table[0], [0.0, 0.0, 0.0])
    assert table[1] == pytest.approx([0.0, 0.0, 1.0])
    assert table[2] == pytest.approx([0.0, 0.8, 0.8])
    assert table[5] == pytest.approx([1.0, 0.0, 0.0])


def test_color_table_rejects_wrong_palette() -> None:
    with pytest.raises(ValueError):
        color_table([(1, 1, 1)] * 4)


def test_brightness_factor() -> None:
    assert brightness_factor(22) == pytest.approx(1.0)
    assert brightness_factor(20) == pytest.approx(np.exp(-0.4))
    assert brightness_factor(0) < brightness_factor(10) < brightness_factor(20)


def test_to_rgba_makes_empty_cells_transparent() -> None:
    rgba = to_rgba(np.array([0, 1, 5], dtype=np.uint8), color_table())
    assert rgba.dtype == np.uint8
    assert rgba[:, 3].tolist() == [0, 255, 255]
    assert rgba[0].tolist() == [0, 0, 0, 0]
    assert rgba[1, :3].tolist() == [0, 0, 255]
    assert rgba[2, :3].tolist() == [255, 0, 0]


def test_to_rgba_rejects_unstable_heights() -> None:
    with pytest.raises(ValueError):
        to_rgba(np.array([6], dtype=np.uint8), color_table())


def test_project_single_cell_and_empty_rays() -> None:
    table = color_table()
    vol = np.zeros((8, 8, 8), dtype=np.uint8)
    assert not project(vol, table).any()

    vol[2, 3, 5] = 3
    img = project(vol, table)
    assert img.shape == (8, 8, 3)
    assert img[2, 3] == pytest.approx(table[3])
    img[2, 3] = 0.0
    assert not img.any()


def test_project_opacity_weights_front_layers() -> None:
    table = color_table()
    vol = np.zeros((4, 4, 4), dtype=np.uint8)
    vol[1, 1, 0] = 1
    vol[1, 1, 1] = 5
    img = project(vol, table, opacity=0.5)
    assert img[1, 1] == pytest.approx([0.5, 0.0, 1.0])
    assert project(vol, table)[1, 1] == pytest.approx([1.0, 0.0, 1.0])
    assert project(vol, table, brightness=0.5)[1, 1] == pytest.approx([0.5, 0.0, 0.5])
    with pytest.raises(ValueError):
        project(vol, table, opacity=1.0)


def test_project_brightness_clips() -> None:
    table = color_table()
    vol = np.zeros((4, 4, 4), dtype=np.uint8)
    vol[2, 2, 2] = 2
    img = project(vol, table, brightness=2.0)
    assert img[2, 2] == pytest.approx([0.0, 1.0, 1.0])


def test_central_slice_of_grid(tiny_grid: Grid) -> None:
    tiny_grid.add_sand(1)
    table = color_table()
    img = central_slice(tiny_grid.volume(), table)
    assert img.shape == (8, 8, 3)
    assert img[4, 4] == pytest.approx(table[1])
    assert img.sum() == pytest.approx(table[1].sum())


def test_project_adds_cells_along_the_ray() -> None:
    table = color_table()
    vol = np.zeros((4, 4, 4), dtype=np.uint8)
    vol[3, 0, 1] = 1
    vol[3, 0, 3] = 1
    assert project(vol, table, brightness=0.25)[3, 0] == pytest.approx([0.0, 0.0, 0.5])
    assert project(vol, table)[3, 0] == pytest.approx([0.0, 0.0, 1.0])
    # a dimmer slider keeps a deeper pile out of saturation
    vol[3, 0, :] = 1
    assert project(vol, table, brightness=0.2)[3, 0] == pytest.approx([0.0, 0.0, 0.8])


def test_project_along_other_axes() -> None:
    table = color_table()
    vol = np.zeros((4, 5, 6), dtype=np.uint8)
    vol[1, 2, 3] = 4
    assert project(vol, table, axis=0).shape == (5, 6, 3)
    assert project(vol, table, axis=0)[2, 3] == pytest.approx(table[4])
    assert project(vol, table, axis=1)[1, 3] == pytest.approx(table[4])
    assert central_slice(vol, table, axis=1).shape == (4, 6, 3)
