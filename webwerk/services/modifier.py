"""Modifications applied to existing sites."""

import logging
import secrets
import shutil
from pathlib import Path
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from ..errors import ConfigurationError, SiteOperationError
from ..models import CommandResult, FallbackOutcome, ModifyAction, OperationKind, OperationResult, Site
from . import site_files
from .context import SiteOperation
from .installer import database_name_for
from .licenses import ACF_PRO, AKEEBA, WPMDB, LicenseService

logger = logging.getLogger(__name__)

PLUGIN_ACTIONS = (ModifyAction.INSTALL_PLUGIN, ModifyAction.REMOVE_PLUGIN, ModifyAction.UPDATE_PLUGIN)
GIT_ACTIONS = (ModifyAction.GIT_PULL, ModifyAction.GIT_LOG)
LICENSE_KEYS = {
    ModifyAction.LICENSE_ACF_PRO: ACF_PRO,
    ModifyAction.LICENSE_WPMDB: WPMDB,
    ModifyAction.LICENSE_AKEEBA: AKEEBA,
}

Action = Callable[[Site, OperationResult], None]


class ModifyOptions(BaseModel):
    """Actions to apply and their arguments."""

    actions: List[ModifyAction] = Field(default_factory=list, description="Applied in this order")
    plugin: Optional[str] = Field(None, description="Plugin slug for install, remove and update, or 'all'")
    copy_from: Optional[Path] = Field(None, description="Plugin directory copied into each site")
    user: str = Field("test", description="Login of the user to create")
    password: Optional[str] = Field(None, description="Password of the user to create")
    email: Optional[str] = Field(None, description="Email of the user to create")
    log_count: int = Field(10, description="Commits shown by git-log")
    sql_file: Optional[Path] = Field(None, description="Dump loaded by db-import")
    export_dir: Optional[Path] = Field(None, description="Where db-export writes, the site directory when unset")

    @model_validator(mode="after")
    def check_arguments(self) -> "ModifyOptions":
        """Make sure every action has the argument it needs."""
        if not self.actions:
            raise ValueError("At least one action is required")
        if self.plugin is None and any(a in PLUGIN_ACTIONS for a in self.actions):
            raise ValueError("Plugin actions need a plugin name")
        if self.copy_from is None and ModifyAction.COPY_PLUGIN in self.actions:
            raise ValueError("copy-plugin needs a source directory")
        if ModifyAction.NEW_USER in self.actions and not self.email:
            raise ValueError("new-user needs an email address")
        if self.sql_file is None and ModifyAction.DB_IMPORT in self.actions:
            raise ValueError("db-import needs a SQL file")
        return self


def _require(result: CommandResult, step: str) -> CommandResult:
    if not result.ok:
        raise SiteOperationError(f"{step} failed: {result.message}")
    return result


class SiteModifier(SiteOperation):
    """Applies a list of actions to each site."""

    kind = OperationKind.MODIFY
    options: ModifyOptions

    def __init__(self, context, options: ModifyOptions) -> None:
        super().__init__(context, options)
        self.licenses = LicenseService(context.config, context.wordpress)
        # One password for every site of the batch
        self.password = options.password or secrets.token_urlsafe(12)
        self.actions: Dict[ModifyAction, Action] = {
            ModifyAction.LIST_PLUGINS: self.list_plugins,
            ModifyAction.INSTALL_PLUGIN: self.install_plugin,
            ModifyAction.COPY_PLUGIN: self.copy_plugin,
            ModifyAction.REMOVE_PLUGIN: self.remove_plugin,
            ModifyAction.UPDATE_PLUGIN: self.update_plugin,
            ModifyAction.NEW_USER: self.new_user,
            ModifyAction.DEBUG_ON: self.debug_on,
            ModifyAction.DEBUG_OFF: self.debug_off,
            ModifyAction.HIDE_ERRORS: self.hide_errors,
            ModifyAction.BLOCK_INDEXING: self.block_indexing,
            ModifyAction.HTACCESS: self.htaccess,
            ModifyAction.LICENSE_ACF_PRO: self.license_acf_pro,
            ModifyAction.LICENSE_WPMDB: self.license_wpmdb,
            ModifyAction.LICENSE_AKEEBA: self.license_akeeba,
            ModifyAction.LICENSE_ALL: self.license_all,
            ModifyAction.GIT_PULL: self.git_pull,
            ModifyAction.GIT_LOG: self.git_log,
            ModifyAction.RIGHTS: self.rights,
            ModifyAction.DB_CHECK: self.db_check,
            ModifyAction.DB_EXPORT: self.db_export,
            ModifyAction.DB_IMPORT: self.db_import,
            ModifyAction.DB_OPTIMIZE: self.db_optimize,
            ModifyAction.DB_RESET: self.db_reset,
            ModifyAction.DB_CLEAN: self.db_clean,
        }
        missing = [action.value for action in ModifyAction if action not in self.actions]
        if missing:
            raise TypeError(f"No handler for modify actions: {', '.join(missing)}")

    def required_tools(self) -> List[str]:
        tools = self.context.config.wp_cli_argv[:1]
        if any(a in GIT_ACTIONS for a in self.options.actions):
            tools.append("git")
        return tools

    def prepare(self) -> None:
        config = self.context.config
        for action in self.options.actions:
            key = LICENSE_KEYS.get(action)
            if key and not config.get(key):
                raise ConfigurationError(f"{key} not found in environment")
        source = self.options.copy_from
        if ModifyAction.COPY_PLUGIN in self.options.actions and not source.is_dir():
            raise ConfigurationError(f"Plugin source not found: {source}")
        sql_file = self.options.sql_file
        if ModifyAction.DB_IMPORT in self.options.actions and not sql_file.is_file():
            raise ConfigurationError(f"SQL file not found: {sql_file}")

    def process(self, site: Site, result: OperationResult) -> None:
        for action in self.options.actions:
            logger.info("%s: %s", site.name, action.value)
            self.actions[action](site, result)

    # Plugins

    def _plugin_dir(self, site: Site, name: str) -> Path:
        return site.wp_content / "plugins" / name

    def list_plugins(self, site: Site, result: OperationResult) -> None:
        plugins = self.context.wordpress.plugin_list(site)
        for plugin in plugins:
            logger.info(
                "  %-40s %-10s %-10s %s",
                plugin.get("name", ""),
                plugin.get("status", ""),
                plugin.get("version", ""),
                plugin.get("update", ""),
            )
        result.done(f"{len(plugins)} plugins")

    def install_plugin(self, site: Site, result: OperationResult) -> None:
        name = self.options.plugin
        if self._plugin_dir(site, name).is_dir():
            logger.info("%s already exists", name)
            result.note(f"{name} already installed")
            return
        wp = self.context.wordpress
        _require(wp.install_plugin(site, name), f"Installing {name}")
        _require(wp.activate_plugin(site, name), f"Activating {name}")
        result.done(f"Installed {name}")

    def copy_plugin(self, site: Site, result: OperationResult) -> None:
        source = self.options.copy_from
        name = source.name
        target = self._plugin_dir(site, name)
        if target.is_dir():
            logger.info("%s already exists", name)
            result.note(f"{name} already installed")
            return
        logger.info("Copying %s from %s", name, source)
        shutil.copytree(source, target)
        _require(self.context.wordpress.activate_plugin(site, name), f"Activating {name}")
        result.done(f"Copied {name}")

    def remove_plugin(self, site: Site, result: OperationResult) -> None:
        name = self.options.plugin
        if not self._plugin_dir(site, name).is_dir():
            result.note(f"{name} not installed")
            return
        _require(self.context.wordpress.delete_plugin(site, name), f"Removing {name}")
        result.done(f"Removed {name}")

    def update_plugin(self, site: Site, result: OperationResult) -> None:
        name = self.options.plugin
        wp = self.context.wordpress
        if name != "all":
            _require(wp.update_plugin(site, name), f"Updating {name}")
            result.done(f"Updated {name}")
            return
        pending = wp.plugin_updates(site)
        if not pending:
            result.note("No plugin updates available")
            return
        if not self.context.gate.confirm(f"Update all {len(pending)} plugins on {site.name}?"):
            result.skip("Plugin updates skipped")
            return
        _require(wp.update_all_plugins(site), "Updating all plugins")
        result.done(f"{len(pending)} plugins updated")

    # Users

    def new_user(self, site: Site, result: OperationResult) -> None:
        user = self.options.user
        if not self.context.gate.confirm(f"Create user {user} with password {self.password} on {site.name}?"):
            logger.info("User creation aborted")
            result.skip(f"User {user} not created")
            return
        _require(
            self.context.wordpress.create_user(site, user, self.options.email, self.password),
            f"Creating user {user}",
        )
        result.done(f"Created user {user}")

    # wp-config.php

    def _set_debug(self, site: Site, enabled: bool) -> None:
        wp = self.context.wordpress
        value = "true" if enabled else "false"
        for name, setting in (("WP_DEBUG", value), ("WP_DEBUG_LOG", value), ("WP_DEBUG_DISPLAY", "false")):
            _require(wp.set_config_raw(site, name, setting), f"Setting {name}")

    def debug_on(self, site: Site, result: OperationResult) -> None:
        self._set_debug(site, True)
        result.done("Debugging is on")

    def debug_off(self, site: Site, result: OperationResult) -> None:
        self._set_debug(site, False)
        result.done("Debugging is off")

    def hide_errors(self, site: Site, result: OperationResult) -> None:
        if not site.wp_config.is_file():
            raise SiteOperationError(f"wp-config.php not found in {site.path}")
        site_files.hide_errors(site.wp_config)
        result.done("Errors hidden")

    def block_indexing(self, site: Site, result: OperationResult) -> None:
        logger.info("Disabling search engine indexing for %s", site.name)
        _require(self.context.wordpress.update_option(site, "blog_public", "0"), "Disabling search engine indexing")
        result.done("Search engine indexing disabled")

    def htaccess(self, site: Site, result: OperationResult) -> None:
        config = self.context.config
        content = site_files.render_htaccess(site_files.rewrite_base(site.path), force_ssl=config.force_ssl)
        site_files.write_htaccess(site.path, content, config.htaccess_permissions)
        result.done(".htaccess written")

    # Licenses

    def _license_note(self, result: OperationResult, key: str, written: bool) -> None:
        result.done(f"{key} added" if written else f"{key} already present")

    def license_acf_pro(self, site: Site, result: OperationResult) -> None:
        self._license_note(result, ACF_PRO, self.licenses.acf_pro(site))

    def license_wpmdb(self, site: Site, result: OperationResult) -> None:
        self._license_note(result, WPMDB, self.licenses.wpmdb(site))

    def license_akeeba(self, site: Site, result: OperationResult) -> None:
        self.licenses.akeeba(site)
        result.done(f"{AKEEBA} configured")

    def license_all(self, site: Site, result: OperationResult) -> None:
        count = self.licenses.all(site, enable_pull=True)
        result.done(f"{count} license keys configured")

    # Git

    def git_pull(self, site: Site, result: OperationResult) -> None:
        logger.info("Updating repository...")
        _require(self.context.git.pull(site.wp_content), "git pull")
        result.done("Repository updated")

    def git_log(self, site: Site, result: OperationResult) -> None:
        log = _require(self.context.git.log(site.wp_content, self.options.log_count), "git log")
        for line in log.stdout.splitlines():
            logger.info("  %s", line)
        result.done(f"Showed last {self.options.log_count} commits")

    # Filesystem

    def rights(self, site: Site, result: OperationResult) -> None:
        """Hand wp-content to the web server user and open up uploads."""
        config = self.context.config
        user = config.webserver_user or "www-data"
        group = config.webserver_group or user
        logger.info("Changing ownership of %s to %s:%s", site.wp_content, user, group)
        errors = site_files.change_owner(site.wp_content, user, group)
        uploads = site.wp_content / "uploads"
        if uploads.is_dir():
            errors += site_files.apply_permissions(uploads, config.upload_permissions, config.upload_permissions)
        if errors:
            logger.warning("%d paths could not be changed on %s", errors, site.name)
            result.note(f"Rights set with {errors} errors")
        else:
            result.done("Rights set")

    # Database

    def _db_name(self, site: Site) -> str:
        """Database of the site as wp-config.php names it."""
        return (
            self.context.wordpress.config_get(site, "DB_NAME")
            or self.context.config.db_name
            or database_name_for(site.path.name)
        )

    def _db_step(self, outcome: FallbackOutcome, result: OperationResult) -> None:
        if not outcome.ok:
            raise SiteOperationError(f"{outcome.label} failed: {outcome.message}")
        result.done(outcome.label + (" (MySQL fallback)" if outcome.used_fallback else ""))

    def db_check(self, site: Site, result: OperationResult) -> None:
        self._db_step(self.context.database.check(site), result)

    def db_export(self, site: Site, result: OperationResult) -> None:
        db_name = self._db_name(site)
        output_file = None
        if self.options.export_dir is not None:
            self.options.export_dir.mkdir(parents=True, exist_ok=True)
            output_file = self.options.export_dir.resolve() / f"{site.name}.sql"
        self._db_step(self.context.database.export(site, db_name, output_file), result)

    def db_import(self, site: Site, result: OperationResult) -> None:
        sql_file = self.options.sql_file.resolve()
        self._db_step(self.context.database.import_sql(site, self._db_name(site), sql_file), result)

    def db_optimize(self, site: Site, result: OperationResult) -> None:
        self._db_step(self.context.database.optimize(site, self._db_name(site)), result)

    def db_reset(self, site: Site, result: OperationResult) -> None:
        db_name = self._db_name(site)
        if not self.context.gate.confirm(f"Reset database {db_name} of {site.name}? All data will be lost."):
            result.skip("Database reset skipped")
            return
        self._db_step(self.context.database.reset(site, db_name), result)

    def db_clean(self, site: Site, result: OperationResult) -> None:
        db_name = self._db_name(site)
        if not self.context.gate.confirm(f"Drop all WordPress tables of {site.name}?"):
            result.skip("Database clean skipped")
            return
        prefix = self.context.wordpress.config_get(site, "table_prefix") or self.context.config.db_prefix
        self._db_step(self.context.database.clean(site, db_name, prefix), result)
