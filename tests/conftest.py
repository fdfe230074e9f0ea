from __future__ import annotations

from pathlib import Path

import pytest

MAIN_SOURCE = """import storage from 'std:kv-storage';
import { describe } from './describe.mjs';

console.log(describe(storage));
"""

DESCRIBE_SOURCE = """export const describe = (storage) =>
    'backingStore' in storage.constructor.prototype ? 'built-in module' : 'polyfill';
"""

KV_INDEX_SOURCE = """import WeakMap from './weak_map.mjs';

const privates = new WeakMap();
export default privates;
"""

KV_WEAK_MAP_SOURCE = "export default globalThis.WeakMap;\n"


@pytest.fixture
def site(tmp_path: Path) -> Path:
    root = tmp_path / "site"
    (root / "src" / "kv-storage").mkdir(parents=True)
    (root / "src" / "main.mjs").write_text(MAIN_SOURCE)
    (root / "src" / "describe.mjs").write_text(DESCRIBE_SOURCE)
    (root / "src" / "kv-storage" / "index.mjs").write_text(KV_INDEX_SOURCE)
    (root / "src" / "kv-storage" / "weak_map.mjs").write_text(KV_WEAK_MAP_SOURCE)
    return root


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "STDMODS_PUBLIC_DIR",
        "STDMODS_MANIFEST",
        "STDMODS_CAPABILITIES",
        "STDMODS_TRUSTED",
    ):
        monkeypatch.delenv(key, raising=False)
