import subprocess

from click.testing import CliRunner
from conftest import write_post

from quire.cli import _get_content_sections, cli


def test_cli_new_scaffolds_project(tmp_path):
    runner = CliRunner()
    target = tmp_path / "mysite"
    result = runner.invoke(cli, ["new", str(target)])
    assert result.exit_code == 0
    assert (target / "quire.yaml").exists()
    assert (target / "content" / "posts" / "hello-world.md").exists()
    assert (target / "archetypes" / "default.md.jinja").exists()
    assert (target / ".gitignore").exists()
    assert (target / ".github" / "workflows" / "publish.yml").exists()
    assert (target / "static").is_dir()

    # fails on non-empty directory
    result = runner.invoke(cli, ["new", str(target)])
    assert result.exit_code != 0
    assert "non-empty directory" in result.output


def test_cli_new_site_builds(monkeypatch, tmp_path):
    runner = CliRunner()
    project = tmp_path / "mysite"
    runner.invoke(cli, ["new", str(project)])
    monkeypatch.chdir(project)

    result = runner.invoke(cli, ["build"], catch_exceptions=False)

    assert result.exit_code == 0
    assert "Built 1 documents (production)" in result.output
    assert (project / "public" / "posts" / "hello-world" / "index.html").exists()


def test_cli_build_reports_skipped_documents(monkeypatch, project):
    write_post(project, "posts/good.md")
    write_post(project, "posts/bad.md", date=None)
    monkeypatch.chdir(project)

    result = CliRunner().invoke(cli, ["build"], catch_exceptions=False)

    assert result.exit_code == 0
    assert "warning: Skipping malformed document" in result.output
    assert "Skipped 1 malformed document(s)" in result.output
    assert "Built 1 documents (production)" in result.output


def test_cli_build_drafts_and_output(monkeypatch, project, tmp_path):
    write_post(project, "posts/wip.md", draft=True)
    monkeypatch.chdir(project)
    output = tmp_path / "preview"

    result = CliRunner().invoke(
        cli, ["build", "--drafts", "--output", str(output)], catch_exceptions=False
    )

    assert result.exit_code == 0
    assert "(draft-preview)" in result.output
    assert (output / "posts" / "wip" / "index.html").exists()


def test_cli_build_verbose_shows_debug(monkeypatch, project):
    monkeypatch.chdir(project)
    result = CliRunner().invoke(cli, ["-v", "build"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "debug: Loaded 0 documents" in result.output


def test_cli_build_render_failure_exits_nonzero(monkeypatch, project):
    (project / "quire.yaml").write_text("theme: nowhere\n", encoding="utf-8")
    monkeypatch.chdir(project)

    result = CliRunner().invoke(cli, ["build"])

    assert result.exit_code == 1
    assert "Build failed:" in result.output
    assert "Theme 'nowhere' not found" in result.output
    assert "Previous output left untouched." in result.output


def test_cli_build_without_config(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(cli, ["build"])
    assert result.exit_code == 1
    assert "No quire.yaml found" in result.output


def test_cli_post_creates_draft(monkeypatch, project):
    monkeypatch.chdir(project)
    runner = CliRunner()

    result = runner.invoke(cli, ["post", "posts/new-idea", "--no-edit"], catch_exceptions=False)
    assert result.exit_code == 0
    assert "Created content/posts/new-idea.md" in result.output
    text = (project / "content" / "posts" / "new-idea.md").read_text(encoding="utf-8")
    assert "draft: true" in text

    result = runner.invoke(cli, ["post", "posts/new-idea", "--no-edit"])
    assert result.exit_code == 1
    assert "File already exists: content/posts/new-idea.md" in result.output
    assert (project / "content" / "posts" / "new-idea.md").read_text(encoding="utf-8") == text


def test_cli_post_rejects_escaping_path(monkeypatch, project):
    monkeypatch.chdir(project)
    result = CliRunner().invoke(cli, ["post", "../outside", "--no-edit"])
    assert result.exit_code == 1
    assert "Invalid content path" in result.output


def test_cli_post_opens_editor(monkeypatch, project):
    monkeypatch.chdir(project)
    opened = {}
    monkeypatch.setattr("quire.cli.click.edit", lambda filename=None: opened.update(f=filename))

    result = CliRunner().invoke(cli, ["post", "about"], catch_exceptions=False)

    assert result.exit_code == 0
    assert opened["f"] == str(project / "content" / "about.md")


def test_cli_post_prompts_for_target(monkeypatch, project):
    monkeypatch.chdir(project)
    responses = iter(["posts", "prompted-post"])

    class MockQuestion:
        def ask(self):
            return next(responses)

    monkeypatch.setattr("quire.cli.questionary.select", lambda *a, **k: MockQuestion())
    monkeypatch.setattr("quire.cli.questionary.text", lambda *a, **k: MockQuestion())

    result = CliRunner().invoke(cli, ["post", "--no-edit"], catch_exceptions=False)

    assert result.exit_code == 0
    assert (project / "content" / "posts" / "prompted-post.md").exists()


def test_cli_post_prompt_cancelled(monkeypatch, project):
    monkeypatch.chdir(project)

    class Cancelled:
        def ask(self):
            return None

    monkeypatch.setattr("quire.cli.questionary.select", lambda *a, **k: Cancelled())

    result = CliRunner().invoke(cli, ["post", "--no-edit"])

    assert result.exit_code == 1
    assert list((project / "content" / "posts").iterdir()) == []


def test_get_content_sections(tmp_path):
    content = tmp_path / "content"
    for name in ("notes", "posts", "_drafts", ".git"):
        (content / name).mkdir(parents=True)
    assert _get_content_sections(content) == ["posts", "notes", ". (root)"]
    assert _get_content_sections(tmp_path / "missing") == ["posts", ". (root)"]


def test_cli_serve(monkeypatch, project):
    monkeypatch.chdir(project)
    called = {}

    class DummyServer:
        def __init__(self, root, http_port=None, ws_port=None, include_drafts=False):
            called.update(root=root, port=http_port, ws_port=ws_port, drafts=include_drafts)

        def start(self):
            called["started"] = True

    monkeypatch.setattr("quire.server.PreviewServer", DummyServer)

    result = CliRunner().invoke(
        cli, ["serve", "--drafts", "--port", "5050", "--ws-port", "5051"], catch_exceptions=False
    )

    assert result.exit_code == 0
    assert called == {
        "root": project,
        "port": 5050,
        "ws_port": 5051,
        "drafts": True,
        "started": True,
    }


def test_cli_publish_to_directory(monkeypatch, project):
    with open(project / "quire.yaml", "a", encoding="utf-8") as f:
        f.write("deploy:\n  target: ../www\n")
    write_post(project, "posts/live.md")
    monkeypatch.chdir(project)

    result = CliRunner().invoke(cli, ["publish"], catch_exceptions=False)

    assert result.exit_code == 0
    assert "Deployed to directory" in result.output
    assert (project.parent / "www" / "posts" / "live" / "index.html").exists()


def test_cli_publish_deploy_failure(monkeypatch, project):
    with open(project / "quire.yaml", "a", encoding="utf-8") as f:
        f.write("deploy:\n  command: upload-site\n")
    monkeypatch.chdir(project)
    monkeypatch.setattr(
        "quire.publish.subprocess.run",
        lambda command, **kwargs: subprocess.CompletedProcess(command, 3, stdout="", stderr="denied"),
    )

    result = CliRunner().invoke(cli, ["publish"])

    assert result.exit_code == 1
    assert "Deploy failed: Deploy command exited with status 3: denied" in result.output


def test_cli_publish_build_failure_deploys_nothing(monkeypatch, project):
    (project / "quire.yaml").write_text(
        "theme: nowhere\ndeploy:\n  target: ../www\n", encoding="utf-8"
    )
    monkeypatch.chdir(project)

    result = CliRunner().invoke(cli, ["publish"])

    assert result.exit_code == 1
    assert "Nothing was deployed." in result.output
    assert not (project.parent / "www").exists()


def test_cli_publish_without_deploy_section(monkeypatch, project):
    monkeypatch.chdir(project)
    result = CliRunner().invoke(cli, ["publish"])
    assert result.exit_code == 1
    assert "No 'deploy' section" in result.output


def test_module_main_entrypoint():
    from quire.__main__ import main

    assert callable(main)


def test_main_invokes_cli(monkeypatch):
    import quire.cli as cli_mod

    called = {}
    monkeypatch.setattr(cli_mod, "cli", lambda: called.update(ran=True))
    cli_mod.main()
    assert called["ran"]


def test_cli_build_rejects_project_as_output(monkeypatch, project):
    monkeypatch.chdir(project)
    result = CliRunner().invoke(cli, ["build", "--output", "."])
    assert result.exit_code == 1
    assert "would replace the project directory" in result.output
    assert (project / "quire.yaml").exists()
