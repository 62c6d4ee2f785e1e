# /// script
# dependencies = ["pillow", "jinja2", "markupsafe", "loguru"]
# ///
"""
Build a static gallery page from a folder tree of album images.

Usage:
    uv run --script build_gallery.py
    uv run --script build_gallery.py --root source/images --out source/gallery/index.md

Every folder below the image root that holds at least one image becomes an
album. Album title/date/description come from an optional album.yml,
album.yaml or album.json sidecar in that folder. Images may carry their own
<name>.yml/.yaml/.json sidecar for a caption.

Outputs a single HTML fragment with a front-matter header, ready for the
static site generator to pick up.
"""

import argparse
import functools
import json
import os
import re
import string
import sys
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Callable

from jinja2 import Environment
from markupsafe import Markup
from loguru import logger
from PIL import Image

_jinja_env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)
Template = _jinja_env.from_string

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

IMAGES_ROOT = Path("source/images")
OUT_FILE = Path("source/gallery/index.md")
SITE_SOURCE = Path("source")
PAGE_TITLE = "Gallery"

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif"}

# Probe order matters: first readable sidecar wins
SIDECAR_SUFFIXES = (".yml", ".yaml", ".json")
ALBUM_SIDECARS = tuple(f"album{s}" for s in SIDECAR_SUFFIXES)


def init_logging(verbose: bool = False) -> None:
    """Send log records to stderr, DEBUG and up when verbose."""
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "INFO",
        format="<level>{level: <8}</level> {message}",
        backtrace=False,
        diagnose=False,
    )


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AlbumMetadata:
    title: str = ""
    date: str = ""
    description: str = ""


@dataclass(frozen=True)
class ImagePath:
    path: Path
    width: int | None = None
    height: int | None = None
    metadata: AlbumMetadata = field(default_factory=AlbumMetadata)

    @property
    def directory(self) -> Path:
        return self.path.parent

    @property
    def name(self) -> str:
        """Display name: the filename without its extension."""
        return self.path.stem


@dataclass(frozen=True)
class Album:
    directory: Path
    metadata: AlbumMetadata
    images: tuple[ImagePath, ...]

    @property
    def title(self) -> str:
        return self.metadata.title or self.directory.name


@dataclass(frozen=True)
class Gallery:
    albums: tuple[Album, ...] = ()

    @property
    def album_count(self) -> int:
        return len(self.albums)

    @property
    def image_count(self) -> int:
        return sum(len(a.images) for a in self.albums)


# ---------------------------------------------------------------------------
# Step 1: Parse sidecar files
# ---------------------------------------------------------------------------

def parse_simple_yaml(text: str) -> dict[str, str]:
    """Parse flat `key: value` lines into a dict.

    Handles full-line and trailing `#` comments and one layer of single or
    double quotes around a value. A `#` inside a quoted value is kept.
    Nested mappings, lists and multi-line values are not supported.
    """
    result = {}
    for line in re.split(r"\r?\n", text):
        s = line.strip()
        if not s or s.startswith("#"):
            continue

        key, sep, val = s.partition(":")
        if not sep:
            continue
        key = key.strip()
        val = val.strip()

        if not val.startswith(('"', "'")):
            hash_pos = val.find("#")
            if hash_pos != -1:
                val = val[:hash_pos].strip()

        if len(val) >= 2 and val[0] == val[-1] and val[0] in "\"'":
            val = val[1:-1]

        result[key] = val
    return result


def parse_json_sidecar(text: str) -> dict:
    """Strict JSON parse; anything but a top-level object is rejected."""
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


# ---------------------------------------------------------------------------
# Step 2: Load album and image metadata
# ---------------------------------------------------------------------------

def parser_for(path: Path) -> Callable[[str], dict]:
    return parse_json_sidecar if path.suffix.lower() == ".json" else parse_simple_yaml


def coerce_metadata(data: dict) -> AlbumMetadata:
    def text(value) -> str:
        return "" if value is None else str(value).strip()

    desc = data.get("desc")
    if desc is None:
        desc = data.get("description")
    return AlbumMetadata(
        title=text(data.get("title")),
        date=text(data.get("date")),
        description=text(desc),
    )


def probe_sidecars(candidates: list[tuple[Path, Callable[[str], dict]]]) -> AlbumMetadata:
    """Return metadata from the first candidate that reads and parses.

    Missing or broken files are expected; they are logged at debug level and
    skipped. If nothing is usable, the all-empty metadata is returned.
    """
    for path, parse in candidates:
        if not path.is_file():
            continue
        try:
            data = parse(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValueError) as e:
            logger.debug("Skipping sidecar {}: {}", path, e)
            continue
        logger.debug("Loaded sidecar {}", path)
        return coerce_metadata(data)
    return AlbumMetadata()


def load_album_metadata(directory: Path) -> AlbumMetadata:
    candidates = [(directory / name, parser_for(directory / name)) for name in ALBUM_SIDECARS]
    return probe_sidecars(candidates)


def load_image_metadata(image_path: Path) -> AlbumMetadata:
    """Look for <image>.yml, <image>.yaml or <image>.json next to the image."""
    base = image_path.with_suffix("")
    if base.name == "album":
        # album.yml and friends belong to the folder, not to album.png
        return AlbumMetadata()
    candidates = []
    for suffix in SIDECAR_SUFFIXES:
        p = base.with_name(base.name + suffix)
        candidates.append((p, parser_for(p)))
    return probe_sidecars(candidates)


# ---------------------------------------------------------------------------
# Step 3: Walk the image root and build albums
# ---------------------------------------------------------------------------

def walk(directory: Path) -> list[Path]:
    """List every file under directory, recursing into subdirectories.

    Listing errors propagate: an unreadable root is fatal.
    """
    files = []
    for entry in directory.iterdir():
        if entry.is_dir() and not entry.is_symlink():
            files.extend(walk(entry))
        else:
            files.append(entry)
    return files


def natural_key(s: str):
    """Sort helper: case-insensitive, with digit runs compared as numbers.

    Example: img2.png < img10.png. Digit runs sort before text at the same
    position; the raw string breaks remaining ties.
    """
    chunks = []
    for chunk in re.findall(r"\d+|\D+", s, flags=re.ASCII):
        if chunk[0] in string.digits:
            chunks.append((0, int(chunk), ""))
        else:
            chunks.append((1, 0, chunk.casefold()))
    return chunks, s


def compare_albums(a: Album, b: Album) -> int:
    """Dated albums first, newest first; then directory order."""
    da, db = a.metadata.date, b.metadata.date
    if da and db and da != db:
        return -1 if da > db else 1
    if da and not db:
        return -1
    if db and not da:
        return 1
    ka, kb = natural_key(str(a.directory)), natural_key(str(b.directory))
    return (ka > kb) - (ka < kb)


def read_dimensions(path: Path) -> tuple[int | None, int | None]:
    """Width and height from the image header, without decoding pixels."""
    try:
        with Image.open(path) as img:
            return img.size
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        logger.debug("Could not read size of {}: {}", path, e)
        return None, None


def build_gallery(root: Path, read_sizes: bool = True) -> Gallery:
    """Group the images under root into ordered albums."""
    root = Path(root)
    files = [f for f in walk(root) if f.suffix.lower() in IMAGE_EXTENSIONS]
    print(f"  Found {len(files)} images under {root}")

    by_dir: dict[Path, list[Path]] = {}
    for f in files:
        by_dir.setdefault(f.parent, []).append(f)

    albums = []
    for directory, paths in by_dir.items():
        paths.sort(key=lambda p: natural_key(str(p)))
        images = []
        for p in paths:
            width, height = read_dimensions(p) if read_sizes else (None, None)
            images.append(ImagePath(
                path=p,
                width=width,
                height=height,
                metadata=load_image_metadata(p),
            ))
        albums.append(Album(
            directory=directory,
            metadata=load_album_metadata(directory),
            images=tuple(images),
        ))

    albums.sort(key=functools.cmp_to_key(compare_albums))
    print(f"  Built {len(albums)} albums")
    return Gallery(albums=tuple(albums))


# ---------------------------------------------------------------------------
# Step 4: Render the page
# ---------------------------------------------------------------------------

def yaml_quote(s: str) -> Markup:
    """Double-quote a string for a front-matter value."""
    return Markup('"' + s.replace("\\", "\\\\").replace('"', '\\"') + '"')


_jinja_env.filters["yaml_quote"] = yaml_quote

PAGE_TEMPLATE = Template("""\
---
title: {{ title|yaml_quote }}
date: {{ generated }}
---

<div class="gallery">
{% for album in albums %}
<details class="album"{% if loop.first %} open{% endif %}>
  <summary class="album-header">
    <span class="album-title">{{ album.title }}</span>
    {% if album.metadata.date %}
    <span class="album-date">{{ album.metadata.date }}</span>
    {% endif %}
  </summary>
  {% if album.metadata.description %}
  <p class="album-desc">{{ album.metadata.description }}</p>
  {% endif %}
  <div class="gallery-grid">
  {% for image in album.images %}
    {% set url = site_url(image.path) %}
    <figure class="gallery-card">
      <a class="gallery-link" href="{{ url }}" target="_blank" rel="noopener"><img class="gallery-img" src="{{ url }}" alt="{{ image.name }}" loading="lazy"{% if image.width and image.height %} width="{{ image.width }}" height="{{ image.height }}"{% endif %}></a>
      {% if image.metadata.title or image.metadata.description %}
      <figcaption class="gallery-caption">{{ image.metadata.title or image.metadata.description }}</figcaption>
      {% endif %}
    </figure>
  {% endfor %}
  </div>
</details>
{% endfor %}
</div>
""")


def to_site_url(path: Path, site_source: Path) -> str:
    """Site-relative URL of a file under the site source directory."""
    abs_path = Path(os.path.abspath(path))
    try:
        rel = abs_path.relative_to(os.path.abspath(site_source))
    except ValueError:
        rel = Path(path)
    return "/" + rel.as_posix().replace("\\", "/").lstrip("/")


def render_page(gallery: Gallery, generated: date, site_source: Path = SITE_SOURCE,
                title: str = PAGE_TITLE) -> str:
    """Render the gallery as front matter plus an HTML fragment.

    Albums and images are emitted in model order.
    """
    return PAGE_TEMPLATE.render(
        title=title,
        generated=generated.isoformat(),
        albums=gallery.albums,
        site_url=functools.partial(to_site_url, site_source=site_source),
    )


def write_page(out_file: Path, text: str):
    out_file.parent.mkdir(parents=True, exist_ok=True)
    out_file.write_text(text, encoding="utf-8")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a gallery page from album folders.")
    parser.add_argument("--root", type=Path, default=IMAGES_ROOT, help=f"image root (default: {IMAGES_ROOT})")
    parser.add_argument("--out", type=Path, default=OUT_FILE, help=f"output file (default: {OUT_FILE})")
    parser.add_argument("--site-source", type=Path, default=SITE_SOURCE,
                        help=f"prefix stripped from image paths to form URLs (default: {SITE_SOURCE})")
    parser.add_argument("--title", default=PAGE_TITLE, help=f"front-matter title (default: {PAGE_TITLE})")
    parser.add_argument("--no-dimensions", action="store_true", help="do not read image sizes")
    parser.add_argument("-v", "--verbose", action="store_true", help="log skipped sidecars and images")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    init_logging(args.verbose)

    try:
        print("Step 1: Scanning albums...")
        gallery = build_gallery(args.root, read_sizes=not args.no_dimensions)

        print("Step 2: Rendering page...")
        text = render_page(gallery, date.today(), site_source=args.site_source, title=args.title)
        write_page(args.out, text)
    except OSError as e:
        logger.error("Gallery build failed: {}", e)
        return 1

    print(f"Generated {args.out} with {gallery.image_count} images in {gallery.album_count} albums")
    return 0


if __name__ == "__main__":
    sys.exit(main())
