"""
Tests for the CreatorsCook CLI using click's CliRunner.

Only commands that run without Supabase or an LLM are executed; the
rest are checked through --help.
"""

import pytest
from unittest.mock import patch
from click.testing import CliRunner

from creatorscook.cli.main import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def no_logfire():
    with patch("creatorscook.cli.main.setup_logfire"):
        yield


class TestCheckCommand:

    def test_clean_script(self, runner):
        result = runner.invoke(cli, ["check"], input="Here is my morning routine with this greens powder.")

        assert result.exit_code == 0
        assert "Risk: LOW" in result.output
        assert "No compliance issues found" in result.output

    def test_platform_violation(self, runner):
        result = runner.invoke(cli, ["check"], input="This is guaranteed to cure your bloating.")

        assert result.exit_code == 0
        assert "Risk: HIGH" in result.output
        assert "Avoid making absolute guarantees" in result.output
        assert "Avoid medical claims" in result.output

    def test_brand_rules(self, runner):
        result = runner.invoke(
            cli,
            ["check", "-f", "cheap", "-r", "#ad"],
            input="So cheap and so tasty.",
        )

        assert result.exit_code == 0
        assert 'Forbidden keyword: "cheap"' in result.output
        assert "Try to include: #ad" in result.output

    def test_reads_file(self, runner):
        with runner.isolated_filesystem():
            with open("script.txt", "w") as f:
                f.write("Buy now while it lasts")

            result = runner.invoke(cli, ["check", "script.txt"])

        assert result.exit_code == 0
        assert "Sales pressure language may be restricted" in result.output


class TestHelp:

    @pytest.mark.parametrize("args,expected", [
        (["product", "--help"], ["create", "ingest", "regenerate", "cancel"]),
        (["product", "regenerate", "--help"], ["--focus", "--tone", "--length"]),
        (["script", "--help"], ["create", "analyze", "status"]),
    ])
    def test_help(self, runner, args, expected):
        result = runner.invoke(cli, args)

        assert result.exit_code == 0
        for text in expected:
            assert text in result.output
