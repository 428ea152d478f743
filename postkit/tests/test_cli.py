"""Tests for CLI commands."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from postkit.cli import cli
from postkit.errors import PostkitError


@pytest.fixture
def config_file(tmp_path, posts_dir):
    """Config pointing at the sample posts and a temporary index."""
    path = tmp_path / "postkit.yaml"
    path.write_text(
        f"""
content:
  content_dir: {posts_dir.as_posix()}
storage:
  documents_path: {(tmp_path / "_index" / "documents.jsonl").as_posix()}
  manifest_path: {(tmp_path / "_index" / "manifest.json").as_posix()}
pipeline:
  workers: 2
  show_progress: false
logging:
  level: WARNING
""",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def runner():
    return CliRunner()


class TestBuildCommand:
    """Test CLI build command."""

    def test_build(self, runner, config_file, tmp_path):
        """Test a build renders every post and writes the store."""
        result = runner.invoke(cli, ["-c", str(config_file), "build"], obj={})

        assert result.exit_code == 0, result.output
        assert "✓ Rendered: 2/2 posts" in result.output
        assert (tmp_path / "_index" / "documents.jsonl").exists()

    def test_second_build_skips(self, runner, config_file):
        """Test unchanged posts are skipped on the next build."""
        runner.invoke(cli, ["-c", str(config_file), "build"], obj={})
        result = runner.invoke(cli, ["-c", str(config_file), "build"], obj={})

        assert result.exit_code == 0, result.output
        assert "Skipped: 2" in result.output

    def test_build_reports_errors(self, runner, config_file, posts_dir):
        """Test broken posts are listed without failing the build."""
        (posts_dir / "broken.md").write_text("---\ntitle: x\n", encoding="utf-8")

        result = runner.invoke(cli, ["-c", str(config_file), "build"], obj={})

        assert result.exit_code == 0, result.output
        assert "Errors: 1" in result.output
        assert "broken.md" in result.output

    def test_build_missing_directory(self, runner, config_file, tmp_path):
        """Test a missing content directory aborts."""
        result = runner.invoke(
            cli, ["-c", str(config_file), "build", "--content-dir", str(tmp_path / "nope")], obj={}
        )

        assert result.exit_code != 0
        assert "✗ Build failed" in result.output


class TestRenderCommand:
    """Test CLI render command."""

    def test_render(self, runner, config_file, posts_dir):
        """Test a post is printed with its identifier and body."""
        result = runner.invoke(cli, ["-c", str(config_file), "render", str(posts_dir / "2017-05-21-hello.md")], obj={})

        assert result.exit_code == 0, result.output
        assert "Identifier: /rails/2017/05/21/hello/" in result.output
        assert 'data-lang="ruby"' in result.output

    def test_render_json(self, runner, config_file, posts_dir):
        """Test --json prints the full document."""
        result = runner.invoke(
            cli, ["-c", str(config_file), "render", "--json", str(posts_dir / "2017-05-21-hello.md")], obj={}
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["identifier"] == "/rails/2017/05/21/hello/"
        assert data["categories"] == ["Rails"]

    def test_render_failure(self, runner, config_file, tmp_path):
        """Test a broken post aborts with its error."""
        broken = tmp_path / "broken.md"
        broken.write_text("---\ntitle: x\n", encoding="utf-8")

        result = runner.invoke(cli, ["-c", str(config_file), "render", str(broken)], obj={})

        assert result.exit_code != 0
        assert "✗ Render failed" in result.output
        assert "never closed" in result.output


class TestListCommand:
    """Test CLI list command."""

    def test_list_before_build(self, runner, config_file):
        """Test listing an empty index."""
        result = runner.invoke(cli, ["-c", str(config_file), "list"], obj={})

        assert result.exit_code == 0
        assert "No documents indexed" in result.output

    def test_list_all(self, runner, config_file):
        """Test posts are listed most recent first."""
        runner.invoke(cli, ["-c", str(config_file), "build"], obj={})

        result = runner.invoke(cli, ["-c", str(config_file), "list"], obj={})

        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert "/rails/2017/06/01/second-post/" in lines[0]
        assert "/rails/2017/05/21/hello/" in lines[1]
        assert "2 post(s)" in result.output

    def test_list_by_category(self, runner, config_file):
        """Test --category filters case-insensitively."""
        runner.invoke(cli, ["-c", str(config_file), "build"], obj={})

        result = runner.invoke(cli, ["-c", str(config_file), "list", "--category", "web"], obj={})

        assert "second-post" in result.output
        assert "hello" not in result.output
        assert "1 post(s)" in result.output

    def test_list_store_with_repeated_identifier(self, runner, config_file, tmp_path):
        """Test a hand-edited store with a repeated document aborts cleanly."""
        runner.invoke(cli, ["-c", str(config_file), "build"], obj={})
        documents = tmp_path / "_index" / "documents.jsonl"
        first = documents.read_text(encoding="utf-8").splitlines()[0]
        with documents.open("a", encoding="utf-8") as handle:
            handle.write(first + "\n")

        result = runner.invoke(cli, ["-c", str(config_file), "list"], obj={})

        assert result.exit_code != 0
        assert "✗ Could not read document store" in result.output
        assert "Duplicate identifier" in result.output
        assert not isinstance(result.exception, PostkitError)

    def test_list_by_date(self, runner, config_file):
        """Test --since limits the range."""
        runner.invoke(cli, ["-c", str(config_file), "build"], obj={})

        result = runner.invoke(cli, ["-c", str(config_file), "list", "--since", "2017-05-25"], obj={})

        assert "second-post" in result.output
        assert "1 post(s)" in result.output


class TestValidateCommand:
    """Test CLI validate command."""

    def test_validate_valid_config(self, runner, config_file):
        """Test validate with valid configuration."""
        result = runner.invoke(cli, ["-c", str(config_file), "validate"], obj={})

        assert result.exit_code == 0
        assert "✓ Configuration is valid" in result.output

    def test_validate_invalid_config(self, runner, tmp_path):
        """Test validate with an invalid setting."""
        bad = tmp_path / "bad.yaml"
        bad.write_text("categories:\n  order: random\n", encoding="utf-8")

        result = runner.invoke(cli, ["-c", str(bad), "validate"], obj={})

        assert result.exit_code != 0
        assert "✗ Configuration error" in result.output

    def test_validate_missing_config(self, runner, tmp_path):
        """Test validate with a missing file."""
        result = runner.invoke(cli, ["-c", str(tmp_path / "missing.yaml"), "validate"], obj={})

        assert result.exit_code != 0
        assert "Config not found" in result.output

    def test_validate_posts(self, runner, config_file, posts_dir):
        """Test validating a posts directory without writing the store."""
        result = runner.invoke(cli, ["-c", str(config_file), "validate", "--content-dir", str(posts_dir)], obj={})

        assert result.exit_code == 0, result.output
        assert "✓ All 2 posts are valid" in result.output

    def test_validate_bad_posts(self, runner, config_file, posts_dir):
        """Test a broken post fails validation."""
        (posts_dir / "broken.md").write_text("no front matter\n", encoding="utf-8")

        result = runner.invoke(cli, ["-c", str(config_file), "validate", "--content-dir", str(posts_dir)], obj={})

        assert result.exit_code != 0
        assert "broken.md" in result.output
