import json

import pytest

from mandelnet.cli import build_arg_parser, main


def _render_args(tmp_path, *extra):
    return [
        "--log-level", "WARNING", "render",
        "--width", "6", "--height", "4", "--smoothness", "1", "--maxIter", "20", "--step", "40",
        "--file", str(tmp_path / "mandelbrot.png"), "--no-progress", "--workers", "2",
        *extra,
    ]


def test_parser_uses_original_flag_names():
    args = build_arg_parser().parse_args(["render", "--maxIter", "99", "--lbURL", "http://h", "--lbPort", "1", "--step", "7"])
    assert (args.max_iteration, args.lb_url, args.lb_port, args.color_step) == (99, "http://h", "1", 7.0)
    assert args.mode is None


def test_parser_rejects_unknown_palette():
    with pytest.raises(SystemExit):
        build_arg_parser().parse_args(["render", "--palette", "Sepia"])


def test_render_command_writes_image_and_manifest(tmp_path):
    manifest = tmp_path / "run.json"
    code = main(_render_args(tmp_path, "--mode", "simpleOpti", "--manifest", str(manifest)))
    assert code == 0
    assert (tmp_path / "mandelbrotSimpleOpti.png").exists()
    data = json.loads(manifest.read_text(encoding="utf-8"))
    assert data["strategy"]["name"] == "simpleOpti"
    assert data["output_file"].endswith("mandelbrotSimpleOpti.png")


def test_render_command_with_config_file(tmp_path):
    cfg = tmp_path / "cfg.json"
    cfg.write_text(json.dumps({"palette": "Fiesta", "mode": "vertical"}), encoding="utf-8")
    assert main(_render_args(tmp_path, "--config", str(cfg))) == 0
    assert (tmp_path / "mandelbrotSmooth.png").exists()


def test_unknown_palette_in_config_exits_cleanly(tmp_path):
    cfg = tmp_path / "cfg.json"
    cfg.write_text(json.dumps({"palette": "Sepia"}), encoding="utf-8")
    assert main(_render_args(tmp_path, "--config", str(cfg))) == 0
    assert not list(tmp_path.glob("*.png"))


def test_invalid_configuration_exits_with_error(tmp_path):
    assert main(_render_args(tmp_path, "--xmin", "3")) == 1


def test_unreachable_worker_exits_with_error(tmp_path):
    code = main(_render_args(tmp_path, "--mode", "horizontal", "--lbURL", "http://127.0.0.1", "--lbPort", "9", "--timeout", "2"))
    assert code == 1
    assert not list(tmp_path.glob("*.png"))


def test_distributed_render_against_worker(tmp_path, worker):
    _, base_url, port = worker
    code = main(_render_args(tmp_path, "--mode", "horizontal", "--lbURL", base_url, "--lbPort", port))
    assert code == 0
    assert (tmp_path / "mandelbrotHorizontal.png").exists()


def test_palettes_command(capsys):
    assert main(["palettes"]) == 0
    out = capsys.readouterr().out
    assert "Hippi" in out and "Fiesta" in out
    assert "0.00:#00040fff" in out


@pytest.mark.parametrize("value", ["nan", "inf"])
def test_non_finite_step_exits_with_error(tmp_path, value):
    assert main(_render_args(tmp_path, "--mode", "simpleOpti", "--step", value)) == 1
    assert not list(tmp_path.glob("*.png"))
