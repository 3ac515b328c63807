"""Unit tests for the CLI: command registration and a local-ledger session."""

from __future__ import annotations

import re
from pathlib import Path

import pytest
from typer.testing import CliRunner

from mintforge.cli.app import app

runner = CliRunner()

HASH_RE = re.compile(r"\b[0-9a-f]{56}\b")


# ---------------------------------------------------------------------------
# Test: CLI help and registration
# ---------------------------------------------------------------------------


class TestCliApp:
    """The CLI must register all expected commands and show help."""

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert result.exit_code in (0, 2)
        assert "usage" in result.output.lower()

    @pytest.mark.parametrize(
        "command",
        [
            "keygen",
            "fund",
            "create-factory",
            "create-product",
            "get-products",
            "get-tag",
            "get-factory",
        ],
    )
    def test_command_registered(self, command: str):
        result = runner.invoke(app, [command, "--help"])
        assert result.exit_code == 0

    def test_argument_count_mismatch_is_a_usage_error(self):
        result = runner.invoke(app, ["create-product", "ab" * 28, "firefly-002"])
        assert result.exit_code == 2

    def test_invalid_marker(self, tmp_path: Path):
        result = runner.invoke(
            app,
            ["get-factory", "nothex", "--owner", "ab" * 28, "--ledger", str(tmp_path / "l.db")],
        )
        assert result.exit_code == 1
        assert "marker identity" in result.output

    def test_missing_key(self, tmp_path: Path):
        result = runner.invoke(
            app,
            ["fund", "--ledger", str(tmp_path / "l.db"), "--key", str(tmp_path / "none.skey")],
        )
        assert result.exit_code == 1
        assert "keygen" in result.output

    def test_invalid_network_is_reported(self, tmp_path: Path):
        result = runner.invoke(
            app,
            ["keygen", "--key", str(tmp_path / "owner.skey")],
            env={"MINTFORGE_NETWORK": "devnet"},
        )
        assert result.exit_code == 1
        assert "Unknown network" in result.output
        assert not (tmp_path / "owner.skey").exists()


# ---------------------------------------------------------------------------
# Test: full session against a temp ledger
# ---------------------------------------------------------------------------


class TestCliSession:
    @pytest.fixture
    def paths(self, tmp_path: Path) -> list[str]:
        return ["--ledger", str(tmp_path / "ledger.db"), "--key", str(tmp_path / "owner.skey")]

    def _create_factory(self, paths: list[str]) -> str:
        assert runner.invoke(app, ["keygen", *paths]).exit_code == 0
        assert runner.invoke(app, ["fund", *paths]).exit_code == 0
        result = runner.invoke(app, ["create-factory", *paths])
        assert result.exit_code == 0, result.output
        return HASH_RE.findall(result.output)[-1]

    def test_keygen_refuses_overwrite(self, paths: list[str]):
        assert runner.invoke(app, ["keygen", *paths]).exit_code == 0
        assert runner.invoke(app, ["keygen", *paths]).exit_code == 1
        assert runner.invoke(app, ["keygen", "--force", *paths]).exit_code == 0

    def test_factory_and_product_session(self, paths: list[str]):
        marker = self._create_factory(paths)

        created = runner.invoke(
            app, ["create-product", marker, "firefly-002", "organic-honey", *paths]
        )
        assert created.exit_code == 0, created.output
        assert "Product created" in created.output

        tag = runner.invoke(app, ["get-tag", marker, "firefly-002", *paths])
        assert tag.exit_code == 0
        assert "organic-honey" in tag.output

        listing = runner.invoke(app, ["get-products", marker, *paths])
        assert listing.exit_code == 0
        assert "firefly" in listing.output

        factory = runner.invoke(app, ["get-factory", marker, *paths])
        assert factory.exit_code == 0
        assert b"firefly-002".hex() in factory.output
        assert "active" in factory.output

        datum = runner.invoke(app, ["get-factory", marker, "--json", *paths])
        assert datum.exit_code == 0
        assert b"firefly-002".hex() in datum.output

    def test_duplicate_product_fails(self, paths: list[str]):
        marker = self._create_factory(paths)
        args = ["create-product", marker, "p1", "t", *paths]
        assert runner.invoke(app, args).exit_code == 0
        again = runner.invoke(app, args)
        assert again.exit_code == 1
        assert "DuplicateProductId" in again.output

    def test_seed_cannot_be_reused(self, paths: list[str]):
        assert runner.invoke(app, ["keygen", *paths]).exit_code == 0
        funded = runner.invoke(app, ["fund", *paths])
        seed = funded.output.strip().splitlines()[-1].strip()
        assert runner.invoke(app, ["create-factory", "--seed", seed, *paths]).exit_code == 0
        again = runner.invoke(app, ["create-factory", "--seed", seed, *paths])
        assert again.exit_code == 1
        assert "SeedAlreadySpent" in again.output

    def test_unknown_tag(self, paths: list[str]):
        marker = self._create_factory(paths)
        result = runner.invoke(app, ["get-tag", marker, "nobody", *paths])
        assert result.exit_code == 1
        assert "ResourceNotFound" in result.output

    def test_long_tag(self, paths: list[str]):
        marker = self._create_factory(paths)
        tag = "organic-honey " * 20
        created = runner.invoke(app, ["create-product", marker, "p1", tag, *paths])
        assert created.exit_code == 0, created.output
        assert runner.invoke(app, ["get-tag", marker, "p1", *paths]).exit_code == 0

    def test_product_provenance_from_env(self, paths: list[str]):
        env = {"MINTFORGE_PROVENANCE": "product"}
        assert runner.invoke(app, ["keygen", *paths], env=env).exit_code == 0
        assert runner.invoke(app, ["fund", *paths], env=env).exit_code == 0
        created = runner.invoke(app, ["create-factory", *paths], env=env)
        assert created.exit_code == 0, created.output
        marker = HASH_RE.findall(created.output)[-1]

        product = runner.invoke(
            app, ["create-product", marker, "firefly-002", "organic-honey", *paths], env=env
        )
        assert product.exit_code == 0, product.output
        tag = runner.invoke(app, ["get-tag", marker, "firefly-002", *paths], env=env)
        assert tag.exit_code == 0
        assert "organic-honey" in tag.output
        listing = runner.invoke(app, ["get-products", marker, *paths], env=env)
        assert listing.exit_code == 0
        assert "registry" in listing.output
