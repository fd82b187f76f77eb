import logging

from conftest import write_post

from quire.store import ContentStore, FileContentLoader


def test_loader_skips_hidden_and_non_markdown(project):
    content = project / "content"
    write_post(project, "posts/b.md")
    write_post(project, "posts/a.md")
    write_post(project, "about.md")
    write_post(project, "_drafts/scratch.md")
    write_post(project, "posts/_partial.md")
    (content / "posts" / "notes.txt").write_text("x", encoding="utf-8")
    (content / "posts" / ".hidden.md").write_text("x", encoding="utf-8")

    files = FileContentLoader(content).iter_files()

    assert [p.relative_to(content).as_posix() for p in files] == [
        "about.md",
        "posts/a.md",
        "posts/b.md",
    ]


def test_missing_content_dir_is_empty(tmp_path):
    assert FileContentLoader(tmp_path / "content").iter_files() == []
    assert ContentStore(tmp_path / "content").load().documents == []


def test_malformed_document_is_skipped_with_one_warning(project, caplog):
    content = project / "content"
    write_post(project, "posts/good.md", title="Good")
    write_post(project, "posts/undated.md", date=None)
    (content / "posts" / "binary.md").write_bytes(b"\xff\xfe\x00bad")

    with caplog.at_level(logging.WARNING, logger="quire"):
        result = ContentStore(content).load()

    assert [d.title for d in result.documents] == ["Good"]
    assert sorted(p.path.name for p in result.problems) == ["binary.md", "undated.md"]
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 2
    undated = [r for r in warnings if "undated.md" in r.getMessage()]
    assert len(undated) == 1
    assert "missing required field 'date'" in undated[0].getMessage()


def test_impossible_calendar_date_is_skipped(project, caplog):
    write_post(project, "posts/good.md", title="Good")
    write_post(project, "posts/typo.md", date="2026-02-30")

    with caplog.at_level(logging.WARNING, logger="quire"):
        result = ContentStore(project / "content").load()

    assert [d.title for d in result.documents] == ["Good"]
    assert [p.path.name for p in result.problems] == ["typo.md"]
    assert "invalid frontmatter YAML" in result.problems[0].reason
    assert "typo.md" in caplog.text
