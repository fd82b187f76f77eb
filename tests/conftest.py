from pathlib import Path

import pytest

CONFIG = """\
title: Test Blog
base_url: https://blog.example.com/
paginate: 2
menu:
  - name: Tags
    url: /tags/
    weight: 2
  - name: Home
    url: /
    weight: 1
"""


def write_post(
    root: Path,
    rel: str,
    date: str | None = "2026-01-01",
    draft: bool | None = False,
    title: str | None = None,
    tags: list[str] | None = None,
    body: str = "Some text.\n",
    extra: str = "",
) -> Path:
    lines = ["---"]
    if title is not None:
        lines.append(f'title: "{title}"')
    if date is not None:
        lines.append(f"date: {date}")
    if draft is not None:
        lines.append(f"draft: {'true' if draft else 'false'}")
    if tags:
        lines.append(f"tags: [{', '.join(tags)}]")
    if extra:
        lines.append(extra.rstrip("\n"))
    lines.append("---")
    path = root / "content" / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n\n" + body, encoding="utf-8")
    return path


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "blog"
    (root / "content" / "posts").mkdir(parents=True)
    (root / "quire.yaml").write_text(CONFIG, encoding="utf-8")
    return root
