"""PlantUML file -> image rendering through a local JAR or an HTTP server.

Modes:
  jar:  ``java -jar plantuml.jar -tpng file.puml`` writes the image next to
        the .puml file.
  http: GET ``<server>/<format>/<encoded>`` where the encoded text is raw
        deflate plus PlantUML's URL-safe base64 alphabet.
  auto: jar when the JAR exists and java is on PATH, else http when a server
        URL is configured, else log how to render by hand.
  none: never render.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import zlib
from pathlib import Path

import httpx

from gouml.errors import RenderFailure

logger = logging.getLogger(__name__)

RENDER_MODES = ("auto", "jar", "http", "none")
IMAGE_FORMATS = ("png", "svg")

_PLANTUML_ALPHABET = (
    "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz-_"
)


def plantuml_encode(text: str) -> str:
    """Encode PlantUML text for embedding in a server URL path.

    Raw deflate, then each 3-byte group (zero padded at the end) becomes four
    6-bit characters from PlantUML's alphabet.
    """
    data = zlib.compress(text.encode("utf-8"))[2:-4]
    padded = data + b"\0" * (-len(data) % 3)
    chars = []
    for i in range(0, len(padded), 3):
        group = int.from_bytes(padded[i:i + 3], "big")
        chars.extend(_PLANTUML_ALPHABET[(group >> shift) & 0x3F] for shift in (18, 12, 6, 0))
    return "".join(chars)


class ImageRenderer:
    """Turns a written .puml file into an image, if a renderer is available."""

    def __init__(
        self,
        mode: str = "auto",
        jar_path: Path = Path("plantuml.jar"),
        server_url: str = "",
        image_format: str = "png",
        timeout: float = 60.0,
    ) -> None:
        if mode not in RENDER_MODES:
            raise ValueError(f"Unknown render mode {mode!r}, expected one of {RENDER_MODES}")
        if image_format not in IMAGE_FORMATS:
            raise ValueError(f"Unknown image format {image_format!r}, expected one of {IMAGE_FORMATS}")
        self.mode = mode
        self.jar_path = jar_path
        self.server_url = server_url.rstrip("/")
        self.image_format = image_format
        self.timeout = timeout

    def jar_available(self) -> bool:
        return self.jar_path.is_file() and shutil.which("java") is not None

    def resolve_mode(self) -> str:
        """Pick the concrete backend for this render: jar, http or none."""
        if self.mode != "auto":
            return self.mode
        if self.jar_available():
            return "jar"
        if self.server_url:
            return "http"
        return "none"

    def render(self, puml_path: Path) -> Path | None:
        """Render the file; return the image path, or None when no renderer is used.

        Raises RenderFailure when the selected renderer fails.
        """
        mode = self.resolve_mode()
        if mode == "jar":
            return self._render_via_jar(puml_path)
        if mode == "http":
            return self._render_via_http(puml_path)
        if self.mode == "auto":
            logger.info(
                "plantuml.jar not found at %s and no PLANTUML_SERVER_URL set; only %s was written",
                self.jar_path, puml_path,
            )
            logger.info("To render it yourself run: java -jar plantuml.jar %s", puml_path)
        return None

    def _image_path(self, puml_path: Path) -> Path:
        return puml_path.with_suffix(f".{self.image_format}")

    def _render_via_jar(self, puml_path: Path) -> Path:
        if not self.jar_path.is_file():
            raise RenderFailure(f"PlantUML JAR not found at {self.jar_path}")
        cmd = [
            "java",
            "-Djava.awt.headless=true",
            "-jar",
            str(self.jar_path),
            f"-t{self.image_format}",
            str(puml_path),
        ]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            raise RenderFailure(f"PlantUML JAR timed out after {self.timeout:.0f}s") from e
        except OSError as e:
            raise RenderFailure(f"PlantUML JAR execution failed: {e}") from e

        if result.returncode != 0:
            output = (result.stderr or result.stdout or "").strip()
            raise RenderFailure(
                f"PlantUML JAR exited with {result.returncode}: {output[:300] or '(no output)'}"
            )

        image_path = self._image_path(puml_path)
        logger.info("UML diagram written: %s", image_path)
        return image_path

    def _render_via_http(self, puml_path: Path) -> Path:
        if not self.server_url:
            raise RenderFailure("No PlantUML server URL configured")
        try:
            encoded = plantuml_encode(puml_path.read_text(encoding="utf-8"))
        except OSError as e:
            raise RenderFailure(f"cannot read {puml_path}: {e}") from e
        url = f"{self.server_url}/{self.image_format}/{encoded}"
        logger.debug("Rendering via HTTP %s (encoded len=%d)", self.server_url, len(encoded))

        try:
            response = httpx.get(url, timeout=self.timeout, follow_redirects=True)
        except httpx.RequestError as e:
            raise RenderFailure(f"PlantUML server request failed: {e}") from e

        if response.status_code != 200:
            raise RenderFailure(f"PlantUML server returned {response.status_code}")

        image_path = self._image_path(puml_path)
        try:
            image_path.write_bytes(response.content)
        except OSError as e:
            raise RenderFailure(f"cannot write {image_path}: {e}") from e
        logger.info("UML diagram written: %s", image_path)
        return image_path
