"""Tests for the command-line front end."""

import json

import numpy as np
import pytest
from PIL import Image

from depthengrave.__main__ import main
from depthengrave.config.defaults import build_default_registry
from depthengrave.config.settings import AppSettings


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Keep preferences out of the real home directory."""
    path = tmp_path / "prefs" / "settings.json"
    monkeypatch.setattr(AppSettings, "_path", staticmethod(lambda: path))
    return path


@pytest.fixture
def image_path(tmp_path):
    yy, xx = np.mgrid[0:16, 0:16]
    arr = (255 * (1 - np.hypot(xx - 7.5, yy - 7.5) / 11)).clip(0, 255).astype(np.uint8)
    path = tmp_path / "dome.png"
    Image.fromarray(arr).save(path)
    return path


class TestCli:
    def test_writes_passes(self, image_path, tmp_path, capsys):
        out = tmp_path / "out.json"
        rc = main([str(image_path), "-o", str(out), "--passes", "3",
                   "--max-depth", "1.0", "--laser", "Raycus 50W Fiber"])
        assert rc == 0
        doc = json.loads(out.read_text())
        assert len(doc["passes"]) == 3
        assert doc["passes"][-1]["depth"] == pytest.approx(1.0)
        assert doc["passes"][0]["segments"]
        assert doc["estimatedSeconds"] > 0
        assert "Wrote" in capsys.readouterr().out

    def test_default_output_path(self, image_path):
        assert main([str(image_path), "--passes", "2", "--strategy", "spiral"]) == 0
        assert image_path.with_suffix(".passes.json").exists()

    def test_crosshatch_flag(self, image_path, tmp_path):
        plain, hatched = tmp_path / "a.json", tmp_path / "b.json"
        assert main([str(image_path), "-o", str(plain), "--passes", "2"]) == 0
        assert main([str(image_path), "-o", str(hatched), "--passes", "2",
                     "--crosshatch", "--crosshatch-angle", "90"]) == 0

        def count(path):
            doc = json.loads(path.read_text())
            return sum(len(seg) for p in doc["passes"] for seg in p["segments"])

        assert count(hatched) == 2 * count(plain)

    def test_saves_preferences(self, image_path, tmp_path, isolated_settings):
        main([str(image_path), "-o", str(tmp_path / "o.json"), "--passes", "2"])
        prefs = json.loads(isolated_settings.read_text())
        assert prefs["last_image_dir"] == str(image_path.parent.resolve())

    def test_list_lasers(self, capsys):
        assert main(["--list-lasers"]) == 0
        assert "nLight 200W Fiber" in capsys.readouterr().out

    def test_unknown_laser(self, image_path, capsys):
        assert main([str(image_path), "--laser", "Nope"]) == 1
        assert "Nope" in capsys.readouterr().err

    def test_missing_image(self, tmp_path, capsys):
        assert main([str(tmp_path / "missing.png")]) == 1
        assert "Error" in capsys.readouterr().err

    def test_invalid_settings(self, image_path, capsys):
        assert main([str(image_path), "--passes", "0"]) == 1
        assert "pass_layers" in capsys.readouterr().err

    def test_profile_file(self, tmp_path, capsys):
        text = build_default_registry().export_profile("IPG 150W Fiber")
        doc = json.loads(text)
        doc["profile"]["name"] = "Shop IPG"
        prof = tmp_path / "shop.json"
        prof.write_text(json.dumps(doc))
        assert main(["--profile-file", str(prof), "--list-lasers"]) == 0
        assert "Shop IPG" in capsys.readouterr().out

    def test_glass_material(self, image_path, tmp_path):
        out = tmp_path / "glass.json"
        assert main([str(image_path), "-o", str(out), "--passes", "2",
                     "--material", "Soda-lime Glass"]) == 0
        doc = json.loads(out.read_text())
        last = doc["passes"][-1]
        assert last["focusOffset"] > last["depth"] * 0.05
