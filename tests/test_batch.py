"""Test batch driver."""

from pathlib import Path

import pytest

from webwerk.errors import ConfigurationError, SiteOperationError
from webwerk.models import ModifyAction, OperationKind, ResultStatus, Site
from webwerk.services import BatchContext, BatchDriver, ConfirmationGate, ModifyOptions, SiteOperation
from webwerk.services.batch import HANDLERS

RESET = ModifyOptions(actions=[ModifyAction.DB_RESET])


def sites_for(base: Path, *names: str):
    return [Site.from_directory(base, name) for name in names]


def test_every_kind_has_a_handler() -> None:
    """Test the handler table covers every operation kind."""
    assert set(HANDLERS) == set(OperationKind)


def test_incomplete_handler_table_rejected(context) -> None:
    """Test a driver cannot be built with a kind left unhandled."""
    handlers = {k: v for k, v in HANDLERS.items() if k != OperationKind.MODIFY}
    with pytest.raises(TypeError, match="modify"):
        BatchDriver(context, handlers=handlers)


def test_all_sites_succeed(context, tmp_path: Path, make_site) -> None:
    """Test N healthy sites give N successes and exit code 0."""
    for name in ("a", "b", "c"):
        make_site(name)

    summary = BatchDriver(context).run(OperationKind.MODIFY, sites_for(tmp_path, "a", "b", "c"), RESET)

    assert summary.succeeded() == 3
    assert summary.failed() == 0
    assert summary.exit_code == 0


def test_fallback_success_counts_as_success(context, runner, tmp_path: Path, make_site) -> None:
    """Test a site whose primary fails but fallback succeeds is a success with one fallback run."""
    for name in ("a", "b"):
        make_site(name)
    site_b = Site.from_directory(tmp_path, "b")
    runner.on(
        "wp", "db", "reset", cwd=site_b.path, returncode=1, stderr="Error: Error establishing a database connection"
    )

    summary = BatchDriver(context).run(OperationKind.MODIFY, sites_for(tmp_path, "a", "b"), RESET)

    assert summary.succeeded() == 2
    assert summary.exit_code == 0
    creates = [c for c in runner.ran("mysql") if "CREATE DATABASE" in c.argv[-1]]
    assert len(creates) == 1
    assert "fallback" in summary.results[1].message


def test_failed_site_does_not_stop_batch(context, runner, tmp_path: Path, make_site) -> None:
    """Test a site failing both paths is counted and later sites still run."""
    for name in ("a", "b", "c"):
        make_site(name)
    site_b = Site.from_directory(tmp_path, "b")
    runner.on("wp", "db", "reset", cwd=site_b.path, returncode=1)
    runner.on("mysql", returncode=1, stderr="ERROR 1045 (28000): Access denied")

    summary = BatchDriver(context).run(OperationKind.MODIFY, sites_for(tmp_path, "a", "b", "c"), RESET)

    assert [r.status for r in summary.results] == [
        ResultStatus.SUCCESS,
        ResultStatus.FAILURE,
        ResultStatus.SUCCESS,
    ]
    assert "Access denied" in summary.results[1].message
    site_c = Site.from_directory(tmp_path, "c")
    assert [c for c in runner.ran("wp", "db", "reset") if c.cwd == site_c.path]
    assert summary.exit_code == 1


def test_missing_directory_fails_before_any_command(context, runner, tmp_path: Path, make_site) -> None:
    """Test a site that vanished is a failure and nothing runs against it."""
    make_site("a")
    ghost = Site.from_directory(tmp_path, "ghost")

    summary = BatchDriver(context).run(OperationKind.MODIFY, [ghost] + sites_for(tmp_path, "a"), RESET)

    assert summary.results[0].status == ResultStatus.FAILURE
    assert "not found" in summary.results[0].message
    assert all(c.cwd != ghost.path for c in runner.calls)
    assert summary.results[1].status == ResultStatus.SUCCESS


def test_missing_tool_aborts_before_sites(config, tmp_path: Path, make_site, fake_runner) -> None:
    """Test configuration errors propagate and no site is processed."""
    make_site("a")
    runner = fake_runner(missing=["wp"])
    context = BatchContext.build(config, ConfirmationGate(auto_confirm=True), runner=runner)

    with pytest.raises(ConfigurationError, match="wp"):
        BatchDriver(context).run(OperationKind.MODIFY, sites_for(tmp_path, "a"), RESET)
    assert runner.calls == []


def test_declined_gate_is_skipped_not_failed(config, runner, tmp_path: Path, make_site, answers) -> None:
    """Test declining the only gated step marks the site skipped."""
    make_site("a")
    gate = ConfirmationGate(input_func=answers("n"))
    context = BatchContext.build(config, gate, runner=runner)

    summary = BatchDriver(context).run(OperationKind.MODIFY, sites_for(tmp_path, "a"), RESET)

    assert summary.results[0].status == ResultStatus.SKIPPED
    assert summary.exit_code == 0
    assert runner.ran("wp", "db", "reset") == []


def test_auto_confirm_runs_gated_step_without_prompt(config, runner, tmp_path: Path, make_site, answers) -> None:
    """Test auto-confirm never prompts and the destructive path runs."""
    make_site("a")
    read = answers()
    context = BatchContext.build(config, ConfirmationGate(auto_confirm=True, input_func=read), runner=runner)

    summary = BatchDriver(context).run(OperationKind.MODIFY, sites_for(tmp_path, "a"), RESET)

    assert read.prompts == []
    assert summary.succeeded() == 1
    assert len(runner.ran("wp", "db", "reset")) == 1


class Exploding(SiteOperation):
    kind = OperationKind.UPDATE

    def process(self, site, result) -> None:
        result.done("first step")
        raise SiteOperationError("second step failed")


def test_site_operation_error_becomes_failure(context, tmp_path: Path, make_site) -> None:
    """Test a per-site fatal error is recorded as that site's failure."""
    make_site("a")
    make_site("b")
    handlers = dict(HANDLERS)
    handlers[OperationKind.UPDATE] = Exploding

    summary = BatchDriver(context, handlers=handlers).run(OperationKind.UPDATE, sites_for(tmp_path, "a", "b"))

    assert summary.failed() == 2
    assert summary.results[0].message == "second step failed"
    assert summary.results[0].steps == ["first step"]


class BrokenOnFirst(SiteOperation):
    kind = OperationKind.UPDATE

    def process(self, site, result) -> None:
        if site.name == "a":
            raise ValueError("invalid literal for int() with base 8: 'rw'")
        result.done("updated")


def test_unexpected_error_isolated_to_site(context, tmp_path: Path, make_site) -> None:
    """Test any other exception fails only the site that raised it."""
    make_site("a")
    make_site("b")
    handlers = dict(HANDLERS)
    handlers[OperationKind.UPDATE] = BrokenOnFirst

    summary = BatchDriver(context, handlers=handlers).run(OperationKind.UPDATE, sites_for(tmp_path, "a", "b"))

    assert [r.status for r in summary.results] == [ResultStatus.FAILURE, ResultStatus.SUCCESS]
    assert summary.results[0].message.startswith("ValueError: invalid literal")
    assert summary.exit_code == 1


class NeedsConfiguration(SiteOperation):
    kind = OperationKind.UPDATE

    def process(self, site, result) -> None:
        raise ConfigurationError("DB_PASSWORD missing")


def test_configuration_error_inside_site_aborts_batch(context, tmp_path: Path, make_site) -> None:
    """Test configuration errors still stop the whole run."""
    make_site("a")
    handlers = dict(HANDLERS)
    handlers[OperationKind.UPDATE] = NeedsConfiguration

    with pytest.raises(ConfigurationError, match="DB_PASSWORD"):
        BatchDriver(context, handlers=handlers).run(OperationKind.UPDATE, sites_for(tmp_path, "a"))
