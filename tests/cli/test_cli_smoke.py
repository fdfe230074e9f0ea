import json
import os
import shutil
import subprocess
import sys
from pathlib import Path

import pytest
import stdmods.cli as cli


ROOT = Path(__file__).resolve().parents[2]


def _base_env() -> dict[str, str]:
    env = os.environ.copy()
    env["PYTHONPATH"] = str(ROOT / "src")
    return env


def test_build_then_importmap(site: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["--root", str(site), "build"]) == 0
    out = capsys.readouterr().out
    assert "std:kv-storage -> /std~kv-storage-" in out
    assert "main -> /main-" in out
    assert "nomodule -> /nomodule-" in out

    assert cli.main(["--root", str(site), "importmap"]) == 0
    import_map = json.loads(capsys.readouterr().out)
    assert list(import_map) == ["imports"]
    assert list(import_map["imports"]) == ["std:kv-storage"]


def test_importmap_to_file(site: Path, tmp_path: Path) -> None:
    assert cli.main(["--root", str(site), "build", "--pass", "module"]) == 0
    target = tmp_path / "importmap.json"
    assert cli.main(["--root", str(site), "importmap", "--output", str(target)]) == 0
    manifest = json.loads((site / "public" / "asset-manifest.json").read_text())
    assert set(manifest) == {"main", "std:kv-storage"}
    assert json.loads(target.read_text()) == {
        "imports": {"std:kv-storage": manifest["std:kv-storage"]}
    }


def test_clean_removes_manifest(site: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["--root", str(site), "build"]) == 0
    assert cli.main(["--root", str(site), "clean"]) == 0
    assert not (site / "public" / "asset-manifest.json").exists()
    assert cli.main(["--root", str(site), "clean"]) == 0
    assert "No manifest" in capsys.readouterr().out


def test_unknown_builtin_fails(site: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (site / "src" / "main.mjs").write_text("import x from 'std:unknown-thing';\n")
    assert cli.main(["--root", str(site), "build"]) == 1
    assert "Unknown built-in module 'std:unknown-thing'" in capsys.readouterr().err


@pytest.mark.parametrize("payload", [b"{", b'{"main": "\xff"}'])
def test_corrupt_manifest_is_reported(
    site: Path, capsys: pytest.CaptureFixture[str], payload: bytes
) -> None:
    manifest = site / "public" / "asset-manifest.json"
    manifest.parent.mkdir()
    manifest.write_bytes(payload)
    assert cli.main(["--root", str(site), "importmap"]) == 2
    assert cli.main(["--root", str(site), "build"]) == 1
    assert "Corrupt manifest" in capsys.readouterr().err
    assert manifest.read_bytes() == payload


def test_bad_root_and_missing_command(tmp_path: Path) -> None:
    assert cli.main(["--root", str(tmp_path / "missing"), "build"]) == 2
    assert cli.main(["--root", str(tmp_path)]) == 2


def test_example_project_builds(tmp_path: Path) -> None:
    project = tmp_path / "preferences"
    shutil.copytree(ROOT / "examples" / "preferences", project)
    assert cli.main(["--root", str(project), "build"]) == 0
    manifest = json.loads((project / "public" / "asset-manifest.json").read_text())
    assert set(manifest) == {"main", "nomodule", "std:kv-storage"}

    public = project / "public"
    kv = (public / manifest["std:kv-storage"].lstrip("/")).read_text()
    assert kv.count("export default") == 1
    assert "import WeakMap" not in kv
    legacy = (public / manifest["nomodule"].lstrip("/")).read_text()
    assert legacy.startswith("(function () {\n")
    assert "export " not in legacy
    assert "import " not in legacy
    assert "const storage = " in legacy


def test_module_entrypoint(site: Path) -> None:
    result = subprocess.run(
        [sys.executable, "-m", "stdmods.cli", "--root", str(site), "build"],
        cwd=ROOT,
        env=_base_env(),
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0, result.stderr
    assert (site / "public" / "asset-manifest.json").exists()
