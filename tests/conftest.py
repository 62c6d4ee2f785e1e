from pathlib import Path

import pytest


@pytest.fixture
def make_tree(tmp_path):
    """Create files under tmp_path from a {relative_path: text} mapping."""

    def _make(files: dict[str, str]) -> Path:
        for rel, content in files.items():
            p = tmp_path / rel
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_text(content, encoding="utf-8")
        return tmp_path

    return _make
