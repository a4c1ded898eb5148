from __future__ import annotations

from pathlib import Path

import click
import pytest
from click.testing import CliRunner

from unipkg.config import UniPkgConfig
from unipkg.context import UniPkgContext, pass_context


@pytest.mark.unit
class TestUniPkgContext:
    """Tests for UniPkgContext class."""

    def test_default_initialization(self) -> None:
        ctx = UniPkgContext()

        assert ctx.config_path is None
        assert ctx.verbose == 0
        assert ctx.color is True
        assert ctx.config is None

    def test_get_config_falls_back_to_defaults(self) -> None:
        ctx = UniPkgContext()

        config = ctx.get_config()

        assert config == UniPkgConfig()
        assert ctx.get_config() is config

    def test_get_config_returns_loaded(self) -> None:
        ctx = UniPkgContext()
        ctx.config = UniPkgConfig(local_repository=Path("/repo"))

        assert ctx.get_config().local_repository == Path("/repo")

    def test_slots_prevents_arbitrary_attributes(self) -> None:
        ctx = UniPkgContext()

        with pytest.raises(AttributeError):
            ctx.arbitrary_attribute = "value"  # type: ignore


@pytest.mark.unit
class TestPassContextDecorator:
    """Tests for pass_context decorator."""

    def test_injects_existing_context(self) -> None:
        seen = []
        existing = UniPkgContext()
        existing.verbose = 2

        @click.command()
        @pass_context
        def command(ctx: UniPkgContext) -> None:
            seen.append(ctx)

        result = CliRunner().invoke(command, [], obj=existing)

        assert result.exit_code == 0
        assert seen == [existing]

    def test_creates_context_when_missing(self) -> None:
        seen = []

        @click.command()
        @pass_context
        def command(ctx: UniPkgContext) -> None:
            seen.append(ctx)

        result = CliRunner().invoke(command, [])

        assert result.exit_code == 0
        assert isinstance(seen[0], UniPkgContext)
