import argparse
import logging
import sys
from pathlib import Path

from stdmods.build import build as run_build
from stdmods.config import ProjectConfig, load_config
from stdmods.errors import StdModsError
from stdmods.importmap import load_import_map, render_import_map
from stdmods.manifest import clear_manifest


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _load(root: str) -> ProjectConfig | None:
    project_root = Path(root).resolve()
    if not project_root.is_dir():
        print(f"Project root not found: {project_root}", file=sys.stderr)
        return None
    try:
        return load_config(project_root)
    except StdModsError as exc:
        print(exc, file=sys.stderr)
        return None


def build(root: str, pass_names: list[str] | None) -> int:
    config = _load(root)
    if config is None:
        return 2
    try:
        manifest = run_build(config, pass_names)
    except StdModsError as exc:
        print(f"Build failed: {exc}", file=sys.stderr)
        return 1
    for name in sorted(manifest):
        print(f"{name} -> {manifest[name]}")
    print(f"Wrote manifest to {config.manifest_path}")
    return 0


def importmap(root: str, output: str | None) -> int:
    config = _load(root)
    if config is None:
        return 2
    try:
        rendered = render_import_map(load_import_map(config.manifest_path))
    except StdModsError as exc:
        print(exc, file=sys.stderr)
        return 2
    if output:
        Path(output).write_text(rendered + "\n")
        print(f"Wrote import map to {output}")
    else:
        print(rendered)
    return 0


def clean(root: str) -> int:
    config = _load(root)
    if config is None:
        return 2
    if clear_manifest(config.manifest_path):
        print(f"Removed {config.manifest_path}")
    else:
        print(f"No manifest at {config.manifest_path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="stdmods")
    parser.add_argument(
        "--root", default=".", help="Project root containing pyproject.toml"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log build progress"
    )
    subparsers = parser.add_subparsers(dest="command")

    build_parser = subparsers.add_parser(
        "build", help="Run the configured build passes and merge the manifest"
    )
    build_parser.add_argument(
        "--pass",
        dest="passes",
        action="append",
        help="Only run the named pass (repeatable).",
    )

    importmap_parser = subparsers.add_parser(
        "importmap", help="Print the import map derived from the manifest"
    )
    importmap_parser.add_argument("--output", help="Write the import map to a file.")

    subparsers.add_parser(
        "clean", help="Delete the manifest, dropping stale entries before a rebuild"
    )

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.command == "build":
        return build(args.root, args.passes)
    if args.command == "importmap":
        return importmap(args.root, args.output)
    if args.command == "clean":
        return clean(args.root)

    parser.print_help(sys.stderr)
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
