#!/usr/bin/env python3
"""
Test the command line front end against sprite folders on disk.
"""

import json
import logging
import sys
import os
sys.path.insert(0, os.path.dirname(__file__))

import pytest
from PIL import Image

from create_test_files import create_test_scenario
from cssprite.cli import build_parser, main


@pytest.fixture(autouse=True)
def reset_root_logger():
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        # only the handlers setup_logging installed
        if type(handler) in (logging.FileHandler, logging.StreamHandler):
            handler.close()
            root.removeHandler(handler)


def test_compose_writes_sheet_and_stylesheet(tmp_path):
    src = create_test_scenario(tmp_path, "mixed", num_images=6, corrupt=1)
    out = tmp_path / "build"
    style = tmp_path / "css" / "sprite.css"

    code = main(["--log-file", str(tmp_path / "debug.log"), "compose", "--out", str(out),
                 "--style", str(style), "--orientation", "binary-tree", str(src)])

    assert code == 0
    sheet = out / "sprite.png"
    assert sheet.exists()
    with Image.open(sheet) as img:
        assert img.mode == "RGBA"
    css = style.read_text(encoding="utf-8")
    assert css.count(".icon-icon_") == 6
    assert "broken" not in css
    assert "Ignoring broken_00.png" in (tmp_path / "debug.log").read_text(encoding="utf-8")


def test_compose_retina_pairs(tmp_path):
    src = create_test_scenario(tmp_path, "retina_pairs", num_images=3, retina=True)
    out = tmp_path / "build"

    code = main(["--log-file", "", "compose", "--out", str(out), "--retina",
                 "--non-retina-provided", "--processor", "scss", "--base64", str(src)])

    assert code == 0
    # base64 mode: only the stylesheet is written, beside where the sheets would go
    assert sorted(p.name for p in out.iterdir()) == ["sprite.scss"]
    scss = (out / "sprite.scss").read_text(encoding="utf-8")
    assert scss.count("data:image/png;base64,") >= 2


def test_compose_empty_folder_succeeds(tmp_path, capsys):
    empty = tmp_path / "empty"
    empty.mkdir()
    code = main(["--log-file", "", "compose", "--out", str(tmp_path / "build"), str(empty)])
    assert code == 0
    assert not (tmp_path / "build").exists()
    assert "nothing written" in capsys.readouterr().out


def test_compose_rejects_bad_options(tmp_path):
    src = create_test_scenario(tmp_path, "mixed", num_images=1)
    code = main(["--log-file", "", "compose", "--out", str(tmp_path / "b"), "--margin", "-2", str(src)])
    assert code == 2


def test_layout_prints_records(tmp_path, capsys):
    src = create_test_scenario(tmp_path, "mixed", num_images=2)
    code = main(["--log-file", "", "layout", "--margin", "0", str(src / "icon_00.png")])
    assert code == 0

    out = capsys.readouterr().out
    # log lines surround the JSON on stdout
    records, _ = json.JSONDecoder().raw_decode(out[out.index("[\n"):])
    assert [r["kind"] for r in records] == ["sprite", "item"]
    assert records[1]["name"] == "icon_00"
    assert records[1]["x"] == 0


def test_parser_defaults():
    args = build_parser().parse_args(["compose", "--out", "build", "icons"])
    assert (args.margin, args.orientation, args.sort, args.format) == (4, "vertical", True, "png")
    assert build_parser().parse_args(["compose", "--out", "b", "--no-sort", "x"]).sort is False


def test_no_command_prints_help(capsys):
    assert main(["--log-file", ""]) == 1
    assert "usage" in capsys.readouterr().out


def test_format_choices_match_codec():
    parser = build_parser()
    assert parser.parse_args(["compose", "--out", "b", "--format", "gif", "x"]).format == "gif"
    assert parser.parse_args(["layout", "--format", "jpeg", "x"]).format == "jpeg"
    with pytest.raises(SystemExit):
        parser.parse_args(["layout", "--format", "bmp", "x"])


def test_odd_margin_with_provided_non_retina_is_bad_option(tmp_path):
    src = create_test_scenario(tmp_path, "retina_pairs", num_images=1, retina=True)
    code = main(["--log-file", "", "compose", "--out", str(tmp_path / "b"), "--retina",
                 "--non-retina-provided", "--margin", "3", str(src)])
    assert code == 2
