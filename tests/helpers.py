"""Shared test helpers: Go source fixtures and file writers."""

import os
from pathlib import Path

VEHICLES_GO = """\
package vehicles

type Engine struct {
	Power int
}

type Wheel struct {
	Size int
}

type Car struct {
	Engine  *Engine
	Wheels  []Wheel
	Spare   Wheel
	name    string
}

type Mover interface {
	Move(distance int) error
}

func (c *Car) Move(distance int) error {
	return nil
}
"""

SHAPES_GO = """\
package shapes

type Shape interface {
	Area() float64
}

type Circle struct {
	Radius float64
}

func (c Circle) Area() float64 {
	return 3.14 * c.Radius * c.Radius
}

type Square struct {
	Side float64
}
"""


def write_go(path: Path, source: str) -> Path:
    """Write a Go file, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(source)
    return path


def bump_mtime(path: Path, seconds: int = 10) -> None:
    """Move a file's mtime forward so coarse filesystem clocks still see a change."""
    st = path.stat()
    os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns + seconds * 1_000_000_000))
