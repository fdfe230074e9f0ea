from __future__ import annotations

import html
from collections.abc import Mapping
from string import Template

from stdmods.importmap import ImportMap, render_import_map

INDEX_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>$title</title>
  <script type="importmap">
$import_map
  </script>
</head>
<body>
$scripts
</body>
</html>
"""
)


def _script_json(import_map: ImportMap) -> str:
    return render_import_map(import_map).replace("</", "<\\/")


def _script_tags(manifest: Mapping[str, str]) -> str:
    tags: list[str] = []
    main = manifest.get("main")
    if main:
        tags.append(f'  <script type="module" src="{html.escape(main)}"></script>')
    legacy = manifest.get("nomodule")
    if legacy:
        tags.append(f'  <script nomodule defer src="{html.escape(legacy)}"></script>')
    return "\n".join(tags)


def render_index(
    manifest: Mapping[str, str], import_map: ImportMap, title: str = "stdmods"
) -> str:
    return INDEX_TEMPLATE.substitute(
        title=html.escape(title),
        import_map=_script_json(import_map),
        scripts=_script_tags(manifest),
    )
