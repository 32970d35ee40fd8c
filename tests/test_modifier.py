"""Test site modifier."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from webwerk.errors import ConfigurationError
from webwerk.models import ModifyAction, OperationKind, ResultStatus, Site
from webwerk.services import BatchContext, BatchDriver, ConfirmationGate, ModifyOptions, SiteModifier


def run_modify(context, sites, *actions: ModifyAction, **options):
    modify = ModifyOptions(actions=list(actions), **options)
    return BatchDriver(context).run(OperationKind.MODIFY, sites, modify)


@pytest.fixture
def site(tmp_path: Path, make_site) -> Site:
    make_site("shop")
    return Site.from_directory(tmp_path, "shop")


def test_options_need_an_action() -> None:
    """Test an empty action list is rejected."""
    with pytest.raises(ValidationError, match="At least one action"):
        ModifyOptions(actions=[])


def test_plugin_actions_need_a_plugin() -> None:
    """Test install, remove and update require a plugin name."""
    with pytest.raises(ValidationError, match="plugin name"):
        ModifyOptions(actions=[ModifyAction.REMOVE_PLUGIN])


def test_new_user_needs_an_email() -> None:
    """Test user creation requires an email address."""
    with pytest.raises(ValidationError, match="email"):
        ModifyOptions(actions=[ModifyAction.NEW_USER])


def test_every_action_has_a_handler(context) -> None:
    """Test the action table covers the whole enum."""
    modifier = SiteModifier(context, ModifyOptions(actions=[ModifyAction.LIST_PLUGINS]))
    assert set(modifier.actions) == set(ModifyAction)


def test_actions_run_in_given_order(context, runner, site: Site) -> None:
    """Test actions are applied in command line order."""
    summary = run_modify(context, [site], ModifyAction.BLOCK_INDEXING, ModifyAction.DEBUG_ON)

    assert summary.results[0].status == ResultStatus.SUCCESS
    wp_calls = [c.argv[1:] for c in runner.ran("wp")]
    assert wp_calls == [
        ["option", "update", "blog_public", "0"],
        ["config", "set", "--raw", "WP_DEBUG", "true"],
        ["config", "set", "--raw", "WP_DEBUG_LOG", "true"],
        ["config", "set", "--raw", "WP_DEBUG_DISPLAY", "false"],
    ]


def test_install_plugin(context, runner, site: Site) -> None:
    """Test a missing plugin is installed and activated."""
    summary = run_modify(context, [site], ModifyAction.INSTALL_PLUGIN, plugin="akismet")

    assert summary.results[0].message == "Installed akismet"
    assert runner.ran("wp", "plugin", "install", "akismet")
    assert runner.ran("wp", "plugin", "activate", "akismet")


def test_install_existing_plugin_is_noop(context, runner, site: Site) -> None:
    """Test an installed plugin is left alone."""
    (site.wp_content / "plugins" / "akismet").mkdir()

    summary = run_modify(context, [site], ModifyAction.INSTALL_PLUGIN, plugin="akismet")

    assert summary.results[0].status == ResultStatus.SUCCESS
    assert summary.results[0].message == "akismet already installed"
    assert runner.ran("wp", "plugin", "install") == []


def test_copy_plugin(context, runner, site: Site, tmp_path: Path) -> None:
    """Test a plugin directory is copied into the site and activated."""
    source = tmp_path / "sources" / "my-plugin"
    source.mkdir(parents=True)
    (source / "my-plugin.php").write_text("<?php\n")

    run_modify(context, [site], ModifyAction.COPY_PLUGIN, copy_from=source)

    assert (site.wp_content / "plugins" / "my-plugin" / "my-plugin.php").is_file()
    assert runner.ran("wp", "plugin", "activate", "my-plugin")


def test_missing_copy_source_is_fatal(context, runner, site: Site, tmp_path: Path) -> None:
    """Test a missing source directory aborts before any site is touched."""
    with pytest.raises(ConfigurationError, match="Plugin source not found"):
        run_modify(context, [site], ModifyAction.COPY_PLUGIN, copy_from=tmp_path / "nope")
    assert runner.calls == []


def test_hide_errors(context, site: Site) -> None:
    """Test debug lines are replaced by the hide-errors block."""
    site.wp_config.write_text(
        "<?php\ndefine('DB_NAME', 'db');\ndefine('WP_DEBUG', true);\ndefine('WP_DEBUG_LOG', true);\n"
    )

    run_modify(context, [site], ModifyAction.HIDE_ERRORS)

    content = site.wp_config.read_text()
    assert "define('WP_DEBUG', true);" not in content
    assert "WP_DEBUG_LOG" not in content
    assert "define('DB_NAME', 'db');" in content
    assert content.endswith("define('WP_DEBUG_DISPLAY', false);\n")


def test_license_defined_once(config, runner, site: Site) -> None:
    """Test running the license action twice writes the define only once."""
    config = config.model_copy(update={"settings": {"ACF_PRO_LICENSE": "acf-key"}})
    context = BatchContext.build(config, ConfirmationGate(auto_confirm=True), runner=runner)

    first = run_modify(context, [site], ModifyAction.LICENSE_ACF_PRO)
    second = run_modify(context, [site], ModifyAction.LICENSE_ACF_PRO)

    assert first.results[0].message == "ACF_PRO_LICENSE added"
    assert second.results[0].message == "ACF_PRO_LICENSE already present"
    assert site.wp_config.read_text().count("define('ACF_PRO_LICENSE', 'acf-key');") == 1


def test_missing_license_key_is_fatal(context, runner, site: Site) -> None:
    """Test a license action without a configured key aborts the batch."""
    with pytest.raises(ConfigurationError, match="WPMDB_LICENCE"):
        run_modify(context, [site], ModifyAction.LICENSE_WPMDB)
    assert runner.calls == []


def test_declined_user_creation_is_skipped(config, runner, site: Site, answers) -> None:
    """Test declining user creation skips the site."""
    read = answers("n")
    context = BatchContext.build(config, ConfirmationGate(input_func=read), runner=runner)

    summary = run_modify(context, [site], ModifyAction.NEW_USER, email="dev@example.com", password="pw")

    assert summary.results[0].status == ResultStatus.SKIPPED
    assert "Create user test with password pw" in read.prompts[0]
    assert runner.ran("wp", "user", "create") == []


def test_new_user_shares_password_across_sites(context, runner, tmp_path: Path, make_site) -> None:
    """Test every site of a batch gets the same generated password."""
    make_site("one")
    make_site("two")
    sites = [Site.from_directory(tmp_path, name) for name in ("one", "two")]

    run_modify(context, sites, ModifyAction.NEW_USER, email="dev@example.com")

    passwords = {c.argv[-2] for c in runner.ran("wp", "user", "create")}
    assert len(passwords) == 1
    assert passwords.pop().startswith("--user_pass=")


def test_failed_action_stops_site_only(context, runner, tmp_path: Path, make_site) -> None:
    """Test a failing action abandons the rest of that site but not the batch."""
    broken = make_site("broken")
    make_site("fine")
    runner.on("wp", "option", "update", returncode=1, stderr="Error: Database error", cwd=broken.resolve())
    sites = [Site.from_directory(tmp_path, name) for name in ("broken", "fine")]

    summary = run_modify(context, sites, ModifyAction.BLOCK_INDEXING, ModifyAction.DEBUG_OFF)

    assert [r.status for r in summary.results] == [ResultStatus.FAILURE, ResultStatus.SUCCESS]
    assert "Database error" in summary.results[0].message
    debug_sites = {c.cwd for c in runner.ran("wp", "config", "set")}
    assert debug_sites == {sites[1].path}


def test_git_log(context, runner, site: Site) -> None:
    """Test git log runs in wp-content with the requested count."""
    run_modify(context, [site], ModifyAction.GIT_LOG, log_count=3)

    call = runner.ran("git", "log")[0]
    assert call.argv == ["git", "log", "--graph", "--max-count=3"]
    assert call.cwd == site.wp_content


def test_rights_with_unknown_user(config, runner, site: Site) -> None:
    """Test ownership errors are counted instead of failing the site."""
    config = config.model_copy(update={"webserver_user": "webwerk-no-such-user"})
    context = BatchContext.build(config, ConfirmationGate(auto_confirm=True), runner=runner)

    summary = run_modify(context, [site], ModifyAction.RIGHTS)

    assert summary.results[0].status == ResultStatus.SUCCESS
    assert summary.results[0].message.startswith("Rights set with")


def test_db_export_uses_configured_database(context, runner, site: Site, tmp_path: Path) -> None:
    """Test exports are named after the site and written to the export directory."""
    runner.on("wp", "config", "get", "DB_NAME", stdout="shop_db\n")

    summary = run_modify(context, [site], ModifyAction.DB_EXPORT, export_dir=tmp_path / "dumps")

    assert summary.results[0].message == "Database export"
    export = runner.ran("wp", "db", "export")[0]
    assert export.argv[-1] == str((tmp_path / "dumps").resolve() / "shop.sql")


def test_db_reset_fallback_uses_site_database(context, runner, site: Site) -> None:
    """Test the MySQL fallback recreates the database named in wp-config.php."""
    runner.on("wp", "config", "get", "DB_NAME", stdout="shop_db\n")
    runner.on("wp", "db", "reset", returncode=1, stderr="Error: Access denied")

    summary = run_modify(context, [site], ModifyAction.DB_RESET)

    assert summary.results[0].message == "Database reset (MySQL fallback)"
    assert any("CREATE DATABASE IF NOT EXISTS `shop_db`" in c.argv[-1] for c in runner.ran("mysql"))


def test_db_clean_fallback_drops_prefixed_tables(context, runner, site: Site) -> None:
    """Test the MySQL fallback drops only tables with the site prefix."""
    runner.on("wp", "config", "get", "DB_NAME", stdout="shop_db\n")
    runner.on("wp", "config", "get", "table_prefix", stdout="shop_\n")
    runner.on("wp", "db", "clean", returncode=1, stderr="Error: unknown command")
    runner.on("mysql", stdout="shop_posts\nshop_options\n")

    summary = run_modify(context, [site], ModifyAction.DB_CLEAN)

    assert summary.results[0].status == ResultStatus.SUCCESS
    statements = [c.argv[-1] for c in runner.ran("mysql")]
    assert "--execute=SHOW TABLES LIKE 'shop_%';" in statements
    assert "--execute=DROP TABLE IF EXISTS `shop_posts`;" in statements
    assert "--execute=DROP TABLE IF EXISTS `shop_options`;" in statements


def test_declined_db_reset(config, runner, site: Site, answers) -> None:
    """Test declining the reset leaves the database alone."""
    context = BatchContext.build(config, ConfirmationGate(input_func=answers("no")), runner=runner)

    summary = run_modify(context, [site], ModifyAction.DB_RESET)

    assert summary.results[0].status == ResultStatus.SKIPPED
    assert runner.ran("wp", "db", "reset") == []
    assert runner.ran("mysql") == []
