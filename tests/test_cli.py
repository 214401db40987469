import pytest
from PIL import Image

from pymandel.__main__ import build_config, build_parser, main


def test_arguments_become_config():
    args = build_parser().parse_args([
        "render", "--center-re", "-1.25", "--zoom", "0.5", "--imax", "800",
        "--dims", "320", "200", "--zoom-at-cursor",
    ])
    config = build_config(args)
    assert config.center_re == "-1.25"
    assert config.zoom == 0.5
    assert config.maximum_iterations == 800
    assert (config.width, config.height) == (320, 200)
    assert config.zoom_at_cursor


def test_bad_center_exits():
    with pytest.raises(SystemExit) as err:
        main(["render", "--center-re", "abc"])
    assert err.value.code == 2


def test_render_writes_png(tmp_path):
    out_file = tmp_path / "out.png"
    main([
        "render", "--dims", "80", "60", "--scale", "0.5", "--capacity", "2000",
        "-o", str(out_file),
    ])
    with Image.open(out_file) as image:
        assert image.size == (40, 30)
