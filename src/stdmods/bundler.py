"""Minimal hook-driven bundler.

Stands in for a real JavaScript bundler so the stdmods plugins can run end to
end. It follows the rollup hook shape (``options``, ``resolve_id``,
``generate_bundle``, ``write_bundle``) and concatenates module sources.
Imports of inlined modules become local bindings and the inlined modules lose
their ``export`` keywords, so only a chunk's entry module exports anything.
Namespace imports, tree-shaking, minification and transpilation belong to a
real bundler.
"""

from __future__ import annotations

import hashlib
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from stdmods.errors import BundleError

OutputFormat = Literal["esm", "iife"]
Clause = tuple[str, str | None, list[tuple[str, str]], bool]

logger = logging.getLogger(__name__)

_FROM_RE = re.compile(
    r"""^[ \t]*(?:import|export)\b[^'";]*?\bfrom[ \t]*(['"])([^'"\n]+)\1[ \t]*;?""",
    re.MULTILINE,
)
_SIDE_EFFECT_RE = re.compile(
    r"""^[ \t]*import[ \t]*(['"])([^'"\n]+)\1[ \t]*;?""",
    re.MULTILINE,
)
_CLAUSE_RE = re.compile(r"""^\s*(import|export)\b([^'"]*?)\bfrom\b""")
_PROVIDES_DEFAULT_RE = re.compile(r"\bexport[ \t]+default\b|\bas[ \t]+default\b")
_EXPORT_DEFAULT_RE = re.compile(r"^([ \t]*)export[ \t]+default[ \t]+", re.MULTILINE)
_EXPORT_DECL_RE = re.compile(
    r"^([ \t]*)export[ \t]+(?=(?:const|let|var|function|class|async)\b)",
    re.MULTILINE,
)
_EXPORT_LIST_RE = re.compile(
    r"^[ \t]*export[ \t]*\{([^}]*)\}(?![ \t]*from\b)[ \t]*;?", re.MULTILINE
)
_HASH_LENGTH = 8


@dataclass
class InputOptions:
    input: dict[str, str]
    root: Path = field(default_factory=Path.cwd)


@dataclass(frozen=True)
class OutputOptions:
    dir: Path
    format: OutputFormat = "esm"
    entry_file_names: str = "[name]-[hash].mjs"


@dataclass(frozen=True)
class ImportRef:
    specifier: str
    start: int
    end: int
    module_id: str | None


@dataclass
class ModuleRecord:
    id: str
    code: str
    imports: list[ImportRef] = field(default_factory=list)


@dataclass
class OutputChunk:
    name: str
    file_name: str
    code: str
    facade_module_id: str
    is_entry: bool = True
    imports: list[str] = field(default_factory=list)
    modules: list[str] = field(default_factory=list)
    aliases: list[str] = field(default_factory=list)


class Plugin:
    """No-op hook set; subclasses override the hooks they need."""

    name = "plugin"

    def options(self, input_options: InputOptions) -> None:
        return None

    def resolve_id(self, importee: str, importer: str | None) -> str | None:
        return None

    def generate_bundle(
        self, output_options: OutputOptions, bundle: dict[str, OutputChunk]
    ) -> None:
        return None

    def write_bundle(
        self, output_options: OutputOptions, bundle: dict[str, OutputChunk]
    ) -> None:
        return None


def _is_relative(specifier: str) -> bool:
    return specifier.startswith(("./", "../"))


def scan_imports(code: str) -> list[tuple[str, int, int]]:
    found: dict[int, tuple[str, int, int]] = {}
    for pattern in (_FROM_RE, _SIDE_EFFECT_RE):
        for match in pattern.finditer(code):
            found.setdefault(
                match.start(), (match.group(2), match.start(), match.end())
            )
    return [found[start] for start in sorted(found)]


def _parse_clause(statement: str) -> Clause:
    """Split ``import a, { b as c } from``-style statements into their bindings.

    Returns the keyword, the default binding, ``(imported, local)`` pairs and
    whether the clause is a bare ``*``. Side-effect imports have no clause.
    """
    match = _CLAUSE_RE.match(statement)
    if match is None:
        return "import", None, [], False
    keyword, clause = match.group(1), match.group(2).strip()
    named: list[tuple[str, str]] = []
    brace = re.search(r"\{([^}]*)\}", clause)
    rest = clause
    if brace is not None:
        rest = clause[: brace.start()] + clause[brace.end() :]
        for item in brace.group(1).split(","):
            parts = item.split()
            if not parts:
                continue
            if len(parts) == 1:
                named.append((parts[0], parts[0]))
            elif len(parts) == 3 and parts[1] == "as":
                named.append((parts[0], parts[2]))
            else:
                raise BundleError(f"Unsupported binding '{item.strip()}'")
    default: str | None = None
    star = False
    for token in (part.strip() for part in rest.split(",")):
        if not token:
            continue
        if token == "*":
            star = True
        elif token.startswith("*"):
            raise BundleError(f"Namespace bindings are not supported: '{token}'")
        else:
            default = token
    return keyword, default, named, star


def _export_list(pairs: Iterable[tuple[str, str]]) -> str:
    items = [local if local == name else f"{local} as {name}" for local, name in pairs]
    return "export { " + ", ".join(items) + " };"


class Bundler:
    def __init__(
        self, input_options: InputOptions, plugins: Iterable[Plugin] = ()
    ) -> None:
        self.input_options = input_options
        self.plugins = list(plugins)
        self._modules: dict[str, ModuleRecord] = {}
        self._defaults: dict[str, str] = {}
        for plugin in self.plugins:
            plugin.options(self.input_options)

    def resolve(self, specifier: str, importer: str | None) -> str | None:
        for plugin in self.plugins:
            resolved = plugin.resolve_id(specifier, importer)
            if resolved is not None:
                return resolved
        if _is_relative(specifier) and importer is not None:
            base = Path(importer).parent
        elif Path(specifier).is_absolute():
            return str(Path(specifier).resolve())
        elif importer is None:
            base = self.input_options.root
        else:
            return None
        return str((base / specifier).resolve())

    def _load(self, module_id: str) -> ModuleRecord:
        record = self._modules.get(module_id)
        if record is not None:
            return record
        try:
            code = Path(module_id).read_text(encoding="utf-8")
        except OSError as exc:
            raise BundleError(f"Could not load {module_id}: {exc}") from exc
        record = ModuleRecord(id=module_id, code=code)
        self._modules[module_id] = record
        for specifier, start, end in scan_imports(code):
            resolved = self.resolve(specifier, module_id)
            if resolved is None and _is_relative(specifier):
                raise BundleError(f"Could not resolve '{specifier}' from {module_id}")
            record.imports.append(ImportRef(specifier, start, end, resolved))
        for ref in record.imports:
            if ref.module_id is not None:
                self._load(ref.module_id)
        return record

    def _default_binding(self, module_id: str) -> str:
        name = self._defaults.get(module_id)
        if name is None:
            if not _PROVIDES_DEFAULT_RE.search(self._modules[module_id].code):
                raise BundleError(f"{module_id} has no default export")
            name = f"__stdmods_default_{len(self._defaults)}"
            self._defaults[module_id] = name
        return name

    def _chunk_modules(self, entry_id: str, chunk_ids: set[str]) -> list[str]:
        order: list[str] = []
        seen: set[str] = set()

        def visit(module_id: str) -> None:
            if module_id in seen:
                return
            seen.add(module_id)
            for ref in self._modules[module_id].imports:
                if ref.module_id is None or ref.module_id in chunk_ids:
                    continue
                visit(ref.module_id)
            order.append(module_id)

        visit(entry_id)
        return order

    def _chunk_order(self, entries: dict[str, str]) -> list[str]:
        chunk_ids = set(entries.values())
        order: list[str] = []
        state: dict[str, str] = {}

        def visit(entry_id: str) -> None:
            mark = state.get(entry_id)
            if mark == "done":
                return
            if mark == "active":
                raise BundleError(f"Circular chunk reference through {entry_id}")
            state[entry_id] = "active"
            for module_id in self._chunk_modules(entry_id, chunk_ids):
                for ref in self._modules[module_id].imports:
                    if ref.module_id in chunk_ids and ref.module_id != entry_id:
                        if _is_relative(ref.specifier):
                            visit(ref.module_id)
            state[entry_id] = "done"
            order.append(entry_id)

        for entry_id in entries.values():
            visit(entry_id)
        return order

    def generate(self, output_options: OutputOptions) -> dict[str, OutputChunk]:
        entries: dict[str, str] = {}
        names: dict[str, str] = {}
        aliases: dict[str, list[str]] = {}
        for name, locator in self.input_options.input.items():
            module_id = self.resolve(locator, None)
            if module_id is None:
                raise BundleError(f"Could not resolve entry '{name}' ({locator})")
            self._load(module_id)
            if module_id in names:
                logger.debug(
                    "Entry '%s' aliases '%s' (%s)", name, names[module_id], module_id
                )
                aliases[module_id].append(name)
                continue
            entries[name] = module_id
            names[module_id] = name
            aliases[module_id] = []
        if output_options.format == "iife" and len(entries) > 1:
            raise BundleError("iife output does not support code splitting")

        chunk_ids = set(entries.values())
        file_names: dict[str, str] = {}
        bundle: dict[str, OutputChunk] = {}
        for entry_id in self._chunk_order(entries):
            modules = self._chunk_modules(entry_id, chunk_ids)
            imports: list[str] = []
            parts = [
                self._render_module(
                    module_id,
                    entry_id,
                    chunk_ids,
                    file_names,
                    imports,
                    output_options.format,
                )
                for module_id in modules
            ]
            code = "\n".join(part.strip("\n") for part in parts if part.strip()) + "\n"
            if output_options.format == "iife":
                code = "(function () {\n" + code + "})();\n"
            digest = hashlib.sha256(code.encode("utf-8")).hexdigest()[:_HASH_LENGTH]
            name = names[entry_id]
            file_name = output_options.entry_file_names.replace("[name]", name).replace(
                "[hash]", digest
            )
            file_names[entry_id] = file_name
            bundle[file_name] = OutputChunk(
                name=name,
                file_name=file_name,
                code=code,
                facade_module_id=entry_id,
                imports=imports,
                modules=modules,
                aliases=aliases[entry_id],
            )
        return bundle

    def _inline_statement(
        self, statement: str, target: str, module_id: str, keep_exports: bool
    ) -> str:
        keyword, default, named, star = _parse_clause(statement)
        if keyword == "import":
            if star:
                raise BundleError(f"Unsupported import in {module_id}: {statement}")
            lines = []
            if default is not None:
                lines.append(f"const {default} = {self._default_binding(target)};")
            for imported, local in named:
                if imported == "default":
                    lines.append(f"const {local} = {self._default_binding(target)};")
                elif imported != local:
                    lines.append(f"const {local} = {imported};")
            return "\n".join(lines)

        pairs = [
            (self._default_binding(target) if imported == "default" else imported, name)
            for imported, name in named
        ]
        if keep_exports:
            if star:
                raise BundleError(
                    f"Cannot re-export * from inlined module {target} in {module_id}"
                )
            return _export_list(pairs)
        lines = []
        for local, name in pairs:
            if name == "default":
                lines.append(f"const {self._default_binding(module_id)} = {local};")
            elif local != name:
                lines.append(f"const {name} = {local};")
        return "\n".join(lines)

    def _strip_exports(self, module_id: str, code: str) -> str:
        def export_list(match: re.Match[str]) -> str:
            lines = []
            for item in match.group(1).split(","):
                parts = item.split()
                if len(parts) == 3 and parts[1] == "as":
                    local, name = parts[0], parts[2]
                    if name == "default":
                        name = self._default_binding(module_id)
                    lines.append(f"const {name} = {local};")
            return "\n".join(lines)

        if _EXPORT_DEFAULT_RE.search(code):
            binding = self._default_binding(module_id)
            code = _EXPORT_DEFAULT_RE.sub(
                lambda match: f"{match.group(1)}const {binding} = ", code
            )
        code = _EXPORT_DECL_RE.sub(r"\1", code)
        return _EXPORT_LIST_RE.sub(export_list, code)

    def _render_module(
        self,
        module_id: str,
        entry_id: str,
        chunk_ids: set[str],
        file_names: dict[str, str],
        imports: list[str],
        fmt: OutputFormat = "esm",
    ) -> str:
        record = self._modules[module_id]
        keep_exports = fmt == "esm" and module_id == entry_id
        code = record.code
        referenced: list[str] = []
        for ref in reversed(record.imports):
            statement = code[ref.start : ref.end]
            if ref.module_id is not None and (
                ref.module_id not in chunk_ids or ref.module_id == entry_id
            ):
                replacement = self._inline_statement(
                    statement, ref.module_id, module_id, keep_exports
                )
                code = code[: ref.start] + replacement + code[ref.end :]
                continue
            if fmt == "iife":
                raise BundleError(
                    f"iife output cannot keep the import of '{ref.specifier}' "
                    f"in {module_id}"
                )
            if ref.module_id is None:
                referenced.append(ref.specifier)
            elif _is_relative(ref.specifier):
                target = f"./{file_names[ref.module_id]}"
                statement = statement.replace(ref.specifier, target)
                referenced.append(file_names[ref.module_id])
            else:
                referenced.append(ref.specifier)
            if not keep_exports and statement.lstrip().startswith("export"):
                if _parse_clause(statement)[3]:
                    raise BundleError(
                        f"Cannot re-export * from '{ref.specifier}' in inlined "
                        f"module {module_id}"
                    )
                statement = statement.replace("export", "import", 1)
            code = code[: ref.start] + statement + code[ref.end :]
        imports.extend(reversed(referenced))
        if keep_exports:
            return code
        return self._strip_exports(module_id, code)

    def write(self, output_options: OutputOptions) -> dict[str, OutputChunk]:
        bundle = self.generate(output_options)
        for plugin in self.plugins:
            plugin.generate_bundle(output_options, bundle)
        output_options.dir.mkdir(parents=True, exist_ok=True)
        for file_name, chunk in bundle.items():
            (output_options.dir / file_name).write_text(chunk.code, encoding="utf-8")
            logger.info("Wrote %s", output_options.dir / file_name)
        for plugin in self.plugins:
            plugin.write_bundle(output_options, bundle)
        return bundle
