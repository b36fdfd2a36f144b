import asyncio
from pathlib import Path

import pytest

from mediaoptim.errors import ReferenceRewriteError
from mediaoptim.rewrite import replace_references

GLOBS = ["src/content/**/*.{md,mdx,json}", "src/**/*.{astro,ts}"]


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


def test_absolute_and_relative_forms_are_rewritten(tmp_path: Path) -> None:
    mdx = _write(tmp_path / "src/content/work/a.mdx", "hero: /media/x.png\nthumb: ../media/x.png\n")
    astro = _write(tmp_path / "src/pages/index.astro", '<img src="/media/x.png" /><img src="/media/x.png" />')

    changed = asyncio.run(replace_references(tmp_path, "/media/x.png", "/media/x.webp", GLOBS))

    assert sorted(changed) == sorted([mdx.absolute(), astro.absolute()])
    assert mdx.read_text() == "hero: /media/x.webp\nthumb: ../media/x.webp\n"
    assert astro.read_text() == '<img src="/media/x.webp" /><img src="/media/x.webp" />'


def test_relative_pattern_rewrites_relative_references(tmp_path: Path) -> None:
    doc = _write(tmp_path / "src/content/page.json", '{"image": "../media/team/a.jpg"}')

    changed = asyncio.run(replace_references(tmp_path, "../media/team/a.jpg", "../media/team/a.webp", GLOBS))

    assert changed == [doc.absolute()]
    assert doc.read_text() == '{"image": "../media/team/a.webp"}'


def test_files_without_references_are_left_alone(tmp_path: Path) -> None:
    other = _write(tmp_path / "src/content/other.md", "no images here\n")
    before = other.stat().st_mtime_ns

    changed = asyncio.run(replace_references(tmp_path, "/media/x.png", "/media/x.webp", GLOBS))

    assert changed == []
    assert other.stat().st_mtime_ns == before


def test_files_outside_globs_are_not_touched(tmp_path: Path) -> None:
    readme = _write(tmp_path / "README.md", "/media/x.png\n")
    style = _write(tmp_path / "src/styles/site.css", "background: url(/media/x.png);\n")

    asyncio.run(replace_references(tmp_path, "/media/x.png", "/media/x.webp", GLOBS))

    assert readme.read_text() == "/media/x.png\n"
    assert style.read_text() == "background: url(/media/x.png);\n"


def test_undecodable_content_file_raises(tmp_path: Path) -> None:
    bad = tmp_path / "src/content/binary.md"
    bad.parent.mkdir(parents=True)
    bad.write_bytes(b"\xff\xfe\x00/media/x.png\xff")

    with pytest.raises(ReferenceRewriteError):
        asyncio.run(replace_references(tmp_path, "/media/x.png", "/media/x.webp", GLOBS))
