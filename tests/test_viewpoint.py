import io

from soacnet.viewpoint import Camera, Viewpoint

DEFAULT_TEXT = (
    "ClippingRange\n0.01 1000.01\n"
    "CameraPosition\n0 0 1\n"
    "CameraFocalPoint\n0 0 0\n"
    "CameraViewUp\n0 1 0\n"
)

MY_VIEW_TEXT = (
    "ClippingRange\n440.812 892.834\n"
    "CameraPosition\n94.5 94.5 736.745\n"
    "CameraFocalPoint\n94.5 94.5 96.5\n"
    "CameraViewUp\n0 1 0\n"
)


def test_constructor():
    vp = Viewpoint()
    assert vp.path == ".."
    assert vp.camera.clipping_range == (0.01, 1000.01)
    assert vp.camera.position == (0, 0, 1)
    assert vp.camera.focal_point == (0, 0, 0)
    assert vp.camera.view_up == (0, 1, 0)
    assert vp.default_viewpoint_str == ""


def test_to_string():
    assert Viewpoint().to_string() == DEFAULT_TEXT
    assert str(Viewpoint()) == DEFAULT_TEXT


def test_save_default():
    vp = Viewpoint()
    vp.save_default()
    assert vp.default_viewpoint_str == DEFAULT_TEXT


def test_save_default_keeps_first_value():
    vp = Viewpoint()
    vp.save_default()
    vp.camera.position = (1.0, 2.0, 3.0)
    vp.save_default()
    assert vp.default_viewpoint_str == DEFAULT_TEXT


def test_save_to_file(tmp_path):
    vp = Viewpoint()
    vp.camera.clipping_range = (440.812, 892.834)
    vp.camera.position = (94.5, 94.5, 736.745)
    vp.camera.focal_point = (94.5, 94.5, 96.5)
    vp.camera.view_up = (0, 1, 0)
    target = tmp_path / "output_viewpoint.cam"
    assert vp.save_to_file(target) is True
    assert target.read_text(encoding="utf-8") == vp.to_string()
    assert vp.path == str(tmp_path)


def test_save_to_unwritable_location_returns_false(tmp_path):
    vp = Viewpoint()
    assert vp.save_to_file(tmp_path / "missing" / "view.cam") is False
    assert vp.path == ".."


def test_load_from_file(tmp_path):
    source = tmp_path / "myview.txt"
    source.write_text(MY_VIEW_TEXT, encoding="utf-8")
    vp = Viewpoint()
    assert vp.load_from_file(source) is True
    assert vp.to_string() == MY_VIEW_TEXT
    assert vp.path == str(tmp_path)


def test_load_from_missing_file_leaves_state(tmp_path):
    vp = Viewpoint()
    assert vp.load_from_file(tmp_path / "absent.txt") is False
    assert vp.to_string() == DEFAULT_TEXT
    assert vp.path == ".."


def test_load_default_without_saved_default():
    vp = Viewpoint()
    vp.load_default()
    assert vp.to_string() == DEFAULT_TEXT


def test_load_default_restores_saved_camera():
    vp = Viewpoint()
    vp.save_default()
    vp.load(io.StringIO(MY_VIEW_TEXT))
    assert vp.to_string() == MY_VIEW_TEXT
    vp.load_default()
    assert vp.to_string() == DEFAULT_TEXT


def test_file_round_trip(tmp_path):
    first = Viewpoint()
    first.camera.position = (1.5, -2.0, 30.0)
    first.camera.view_up = (0.0, 0.0, 1.0)
    target = tmp_path / "view.cam"
    first.save_to_file(target)
    second = Viewpoint()
    second.load_from_file(target)
    assert second.camera == first.camera


def test_load_skips_mismatched_section():
    vp = Viewpoint()
    vp.load(io.StringIO("Other\nCameraPosition\n5 6 7\n"))
    assert vp.camera.position == (5, 6, 7)
    assert vp.camera.clipping_range == Camera().clipping_range


def test_load_stops_on_truncated_input():
    vp = Viewpoint()
    vp.load(io.StringIO("ClippingRange\n1 2\nCameraPosition\n9"))
    assert vp.camera.clipping_range == (1, 2)
    assert vp.camera.position == (0, 0, 1)