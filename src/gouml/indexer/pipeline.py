"""Pipeline step functions for one generation pass.

A pass parses every Go file, registers declarations in two stages across the
whole file set, infers relations, renders PlantUML text, writes it, and hands
it to the image renderer. Every pass starts from an empty registry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from gouml.config import WatchSettings
from gouml.errors import DuplicateTypeError, IOFailure, ParseFailure, RenderFailure
from gouml.indexer.parser import GoParser, ParsedUnit, collect_methods, collect_types
from gouml.indexer.relations import EmbeddingPolicy, SatisfactionMode, infer_relations
from gouml.model.registry import Relation, TypeRegistry
from gouml.render.image import ImageRenderer
from gouml.render.plantuml import render_plantuml

logger = logging.getLogger(__name__)


@dataclass
class BuildOptions:
    embedding_policy: EmbeddingPolicy = EmbeddingPolicy.EXTENDS
    satisfaction: SatisfactionMode = SatisfactionMode.NAME_ONLY


@dataclass
class BuildResult:
    registry: TypeRegistry
    relations: list[Relation]
    files: list[Path] = field(default_factory=list)
    dropped_methods: int = 0


def _is_hidden(path: Path, root: Path) -> bool:
    return any(part.startswith(".") for part in path.relative_to(root).parts[:-1])


def discover_go_files(path: Path, single_file: bool = False) -> list[Path]:
    """Return the Go source units under ``path`` in sorted order.

    A file path yields itself. In single-file mode a missing file yields
    nothing, so a deleted unit empties the diagram instead of failing.
    Directories are walked recursively, skipping hidden directories.
    """
    if single_file or path.is_file():
        return [path] if path.is_file() and path.suffix == ".go" else []
    if not path.is_dir():
        raise IOFailure(f"Watched directory {path} does not exist")
    try:
        return sorted(
            p for p in path.rglob("*.go")
            if p.is_file() and not _is_hidden(p, path)
        )
    except OSError as e:
        raise IOFailure(f"Cannot scan {path}: {e}") from e


def _extract(stage: Callable[[ParsedUnit, TypeRegistry], int], unit: ParsedUnit, registry: TypeRegistry) -> int:
    try:
        return stage(unit, registry)
    except RecursionError as e:
        raise ParseFailure(unit.path, "type expression nested too deeply") from e


def build_model(
    paths: list[Path],
    parser: GoParser | None = None,
    options: BuildOptions | None = None,
) -> BuildResult:
    """Parse all units and build a fresh registry plus its relations.

    Stage 1 registers every type from every unit before stage 2 attaches any
    method, so a method never depends on the order its file was read in.
    The first ParseFailure or IOFailure aborts the build, as does a type name
    declared twice; the DuplicateTypeError names both files.
    """
    parser = parser or GoParser()
    options = options or BuildOptions()

    units: list[ParsedUnit] = [parser.parse_file(p) for p in paths]

    registry = TypeRegistry()
    declared_in: dict[str, Path] = {}
    for unit in units:
        try:
            _extract(collect_types, unit, registry)
        except DuplicateTypeError as e:
            first = declared_in.get(e.name)
            where = f"both {first} and {unit.path}" if first else f"{unit.path} twice"
            raise DuplicateTypeError(e.name, f"type {e.name!r} is declared in {where}") from e
        for name in registry.names():
            declared_in.setdefault(name, unit.path)

    dropped = 0
    for unit in units:
        dropped += _extract(collect_methods, unit, registry)
    if dropped:
        logger.debug("Dropped %d methods on types outside the registry", dropped)

    relations = infer_relations(
        registry,
        embedding_policy=options.embedding_policy,
        satisfaction=options.satisfaction,
    )
    return BuildResult(registry=registry, relations=relations, files=list(paths), dropped_methods=dropped)


def write_notation(text: str, output_dir: Path, base_name: str) -> Path:
    """Write ``<base_name>.puml`` into ``output_dir``, creating it if needed."""
    target = output_dir / f"{base_name}.puml"
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
    except OSError as e:
        raise IOFailure(f"Cannot write {target}: {e}") from e
    return target


def renderer_for(settings: WatchSettings) -> ImageRenderer:
    return ImageRenderer(
        mode=settings.render_mode,
        jar_path=settings.jar_path,
        server_url=settings.server_url,
        image_format=settings.image_format,
        timeout=settings.render_timeout,
    )


def run_generation(
    settings: WatchSettings,
    on_progress: Callable[[dict], None] | None = None,
    parser: GoParser | None = None,
    renderer: ImageRenderer | None = None,
) -> dict:
    """Run one full pass: discover, build, render, write, render image.

    ParseFailure, IOFailure and DuplicateTypeError propagate and abort the
    pass before anything is written. A RenderFailure is logged: the .puml
    file stays written and ``image_path`` is None.

    Returns {"files": N, "structs": N, "interfaces": N, "relations": N,
    "puml_path": Path, "image_path": Path | None}.
    """
    files = discover_go_files(settings.watch_path, single_file=settings.single_file)
    logger.info("Found %d Go files", len(files))
    if on_progress:
        on_progress({"step": "scan", "files": len(files)})

    result = build_model(
        files,
        parser=parser,
        options=BuildOptions(settings.embedding_policy, settings.satisfaction),
    )
    n_structs = sum(1 for _ in result.registry.structs())
    n_interfaces = sum(1 for _ in result.registry.interfaces())
    if on_progress:
        on_progress({
            "step": "build", "structs": n_structs, "interfaces": n_interfaces,
            "relations": len(result.relations),
        })

    text = render_plantuml(result.registry, result.relations, title=settings.title or None)
    puml_path = write_notation(text, settings.output_dir, settings.output_name)
    logger.info("PlantUML file written: %s", puml_path)

    renderer = renderer or renderer_for(settings)
    image_path = None
    try:
        image_path = renderer.render(puml_path)
    except RenderFailure as e:
        logger.warning("Image not produced: %s", e)
    if on_progress:
        on_progress({"step": "render", "puml_path": str(puml_path), "image_path": str(image_path or "")})

    return {
        "files": len(files),
        "structs": n_structs,
        "interfaces": n_interfaces,
        "relations": len(result.relations),
        "puml_path": puml_path,
        "image_path": image_path,
    }
