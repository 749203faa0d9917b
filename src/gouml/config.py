"""Configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TypeVar

from dotenv import load_dotenv

from gouml.errors import ConfigError
from gouml.indexer.relations import EmbeddingPolicy, SatisfactionMode
from gouml.render.image import IMAGE_FORMATS, RENDER_MODES

load_dotenv()


# Output
OUTPUT_DIR: Path = Path(os.getenv("GOUML_OUTPUT_DIR", "output"))
OUTPUT_NAME: str = os.getenv("GOUML_OUTPUT_NAME", "")
DEFAULT_OUTPUT_NAME = "uml_diagram"

# Watch loop
# Numbers stay raw strings here; load_settings converts them
POLL_INTERVAL: str = os.getenv("GOUML_POLL_INTERVAL", "2.0")
SETTLE_DELAY: str = os.getenv("GOUML_SETTLE_DELAY", "0.2")

# Relation inference
EMBEDDING_POLICY: str = os.getenv("GOUML_EMBEDDING_POLICY", EmbeddingPolicy.EXTENDS.value)
SATISFACTION: str = os.getenv("GOUML_SATISFACTION", SatisfactionMode.NAME_ONLY.value)

# Rendering
RENDER_MODE: str = os.getenv("GOUML_RENDER_MODE", "auto").lower()
IMAGE_FORMAT: str = os.getenv("GOUML_IMAGE_FORMAT", "png").lower()
PLANTUML_JAR_PATH: Path = Path(os.getenv("PLANTUML_JAR_PATH", "plantuml.jar"))
PLANTUML_SERVER_URL: str = os.getenv("PLANTUML_SERVER_URL", "")
RENDER_TIMEOUT: str = os.getenv("GOUML_RENDER_TIMEOUT", "60")
TITLE: str = os.getenv("GOUML_TITLE", "")

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


@dataclass(frozen=True)
class WatchSettings:
    """Settings fixed at process start for the whole watch session."""

    watch_path: Path
    output_dir: Path
    output_name: str
    poll_interval: float = 2.0
    settle_delay: float = 0.2
    embedding_policy: EmbeddingPolicy = EmbeddingPolicy.EXTENDS
    satisfaction: SatisfactionMode = SatisfactionMode.NAME_ONLY
    render_mode: str = "auto"
    image_format: str = "png"
    jar_path: Path = Path("plantuml.jar")
    server_url: str = ""
    render_timeout: float = 60.0
    single_file: bool = False
    title: str = ""

    @property
    def puml_path(self) -> Path:
        return self.output_dir / f"{self.output_name}.puml"


E = TypeVar("E", bound=Enum)


def _choice(value: str, enum_cls: type[E], label: str) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ConfigError(f"Invalid {label} {value!r}, expected one of: {allowed}")


def _number(value: str, env_name: str) -> float:
    try:
        return float(value)
    except ValueError:
        raise ConfigError(f"Invalid {env_name} {value!r}, expected a number")


def load_settings(
    watch_path: Path,
    output_dir: Path | None = None,
    output_name: str | None = None,
    poll_interval: float | None = None,
    settle_delay: float | None = None,
    embedding_policy: str | None = None,
    satisfaction: str | None = None,
    render_mode: str | None = None,
    image_format: str | None = None,
    title: str | None = None,
) -> WatchSettings:
    """Build validated settings; explicit arguments override the environment.

    Raises ConfigError if the watched path is not a directory or a .go file,
    if the output directory cannot be created, or if any value is malformed.
    """
    watch_path = watch_path.expanduser().resolve()
    if not watch_path.exists():
        raise ConfigError(f"Watched path {watch_path} does not exist")
    if watch_path.is_file() and watch_path.suffix != ".go":
        raise ConfigError(f"Watched file {watch_path} is not a .go file")
    if not watch_path.is_dir() and not watch_path.is_file():
        raise ConfigError(f"Watched path {watch_path} is neither a file nor a directory")

    out = (output_dir or OUTPUT_DIR).expanduser()
    try:
        out.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigError(f"Cannot create output directory {out}: {e}") from e

    name = output_name or OUTPUT_NAME
    if not name:
        name = watch_path.stem if watch_path.is_file() else DEFAULT_OUTPUT_NAME

    interval = _number(POLL_INTERVAL, "GOUML_POLL_INTERVAL") if poll_interval is None else poll_interval
    settle = _number(SETTLE_DELAY, "GOUML_SETTLE_DELAY") if settle_delay is None else settle_delay
    timeout = _number(RENDER_TIMEOUT, "GOUML_RENDER_TIMEOUT")
    if interval <= 0:
        raise ConfigError(f"Poll interval must be positive, got {interval}")
    if settle < 0:
        raise ConfigError(f"Settle delay must not be negative, got {settle}")
    if timeout <= 0:
        raise ConfigError(f"Render timeout must be positive, got {timeout}")

    mode = (render_mode or RENDER_MODE).lower()
    if mode not in RENDER_MODES:
        raise ConfigError(f"Invalid render mode {mode!r}, expected one of: {', '.join(RENDER_MODES)}")
    fmt = (image_format or IMAGE_FORMAT).lower()
    if fmt not in IMAGE_FORMATS:
        raise ConfigError(f"Invalid image format {fmt!r}, expected one of: {', '.join(IMAGE_FORMATS)}")

    return WatchSettings(
        watch_path=watch_path,
        output_dir=out,
        output_name=name,
        poll_interval=interval,
        settle_delay=settle,
        embedding_policy=_choice(embedding_policy or EMBEDDING_POLICY, EmbeddingPolicy, "embedding policy"),
        satisfaction=_choice(satisfaction or SATISFACTION, SatisfactionMode, "satisfaction mode"),
        render_mode=mode,
        image_format=fmt,
        jar_path=PLANTUML_JAR_PATH,
        server_url=PLANTUML_SERVER_URL,
        render_timeout=timeout,
        single_file=watch_path.is_file(),
        title=TITLE if title is None else title,
    )
