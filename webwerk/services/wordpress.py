"""Thin WP-CLI wrappers for one site."""

import json
import logging
from typing import Any, Dict, List, Optional

from ..models import CommandResult, Site
from .runner import CommandRunner

logger = logging.getLogger(__name__)


class WordPressService:
    """WP-CLI commands run inside a site directory."""

    def __init__(self, runner: CommandRunner) -> None:
        self.runner = runner

    def _json(self, result: CommandResult) -> List[Dict[str, Any]]:
        text = result.stdout.strip()
        # WP-CLI prints a plain "Success: ..." line instead of JSON when there is nothing to list
        if not result.ok or not text.startswith("["):
            return []
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            logger.warning("Could not parse WP-CLI output: %s", result.message)
            return []
        return data if isinstance(data, list) else []

    # Core

    def check_update(self, site: Site) -> CommandResult:
        return self.runner.wp(site.path, "core", "check-update", "--format=json")

    def core_updates(self, result: CommandResult) -> List[Dict[str, Any]]:
        """Available core versions from a check-update result."""
        return self._json(result)

    def core_update(self, site: Site, locale: str) -> CommandResult:
        return self.runner.wp(site.path, "core", "update", f"--locale={locale}", "--skip-themes")

    def core_download(self, site: Site, locale: str) -> CommandResult:
        return self.runner.wp(site.path, "core", "download", f"--locale={locale}", "--force")

    def config_create(
        self,
        site: Site,
        db_name: str,
        db_user: str,
        db_password: str,
        db_host: str,
        db_prefix: str,
        skip_check: bool = False,
    ) -> CommandResult:
        args = [
            "config",
            "create",
            f"--dbname={db_name}",
            f"--dbuser={db_user}",
            f"--dbpass={db_password}",
            f"--dbhost={db_host}",
            f"--dbprefix={db_prefix}",
            "--force",
        ]
        if skip_check:
            args.append("--skip-check")
        return self.runner.wp(site.path, *args)

    def core_install(
        self, site: Site, url: str, title: str, admin_user: str, admin_password: str, admin_email: str
    ) -> CommandResult:
        return self.runner.wp(
            site.path,
            "core",
            "install",
            f"--url={url}",
            f"--title={title}",
            f"--admin_user={admin_user}",
            f"--admin_password={admin_password}",
            f"--admin_email={admin_email}",
            "--skip-email",
        )

    def install_language(self, site: Site, locale: str) -> CommandResult:
        return self.runner.wp(site.path, "language", "core", "install", locale, "--activate")

    # Options and config

    def update_option(self, site: Site, name: str, value: str) -> CommandResult:
        return self.runner.wp(site.path, "option", "update", name, value)

    def set_config_raw(self, site: Site, name: str, value: str) -> CommandResult:
        return self.runner.wp(site.path, "config", "set", "--raw", name, value)

    # Plugins

    def plugin_updates(self, site: Site) -> List[Dict[str, Any]]:
        """Plugins with an update available, as WP-CLI reports them."""
        result = self.runner.wp(site.path, "plugin", "list", "--update=available", "--format=json")
        return self._json(result)

    def plugin_list(self, site: Site) -> List[Dict[str, Any]]:
        result = self.runner.wp(site.path, "plugin", "list", "--format=json")
        return self._json(result)

    def plugin_version(self, site: Site, name: str) -> str:
        result = self.runner.wp(site.path, "plugin", "get", name, "--field=version")
        if not result.ok or not result.lines():
            return "unknown"
        return result.lines()[0]

    def update_plugin(self, site: Site, name: str, minor: bool = False) -> CommandResult:
        args = ["plugin", "update", name]
        if minor:
            args.append("--minor")
        return self.runner.wp(site.path, *args)

    def update_all_plugins(self, site: Site, minor: bool = False) -> CommandResult:
        args = ["plugin", "update", "--all"]
        if minor:
            args.append("--minor")
        return self.runner.wp(site.path, *args)

    def install_plugin(self, site: Site, name: str) -> CommandResult:
        return self.runner.wp(site.path, "plugin", "install", name)

    def activate_plugin(self, site: Site, name: str) -> CommandResult:
        return self.runner.wp(site.path, "plugin", "activate", name)

    def activate_all_plugins(self, site: Site) -> CommandResult:
        return self.runner.wp(site.path, "plugin", "activate", "--all")

    def delete_plugin(self, site: Site, name: str) -> CommandResult:
        return self.runner.wp(site.path, "plugin", "delete", name)

    def active_plugin_count(self, site: Site) -> Optional[int]:
        result = self.runner.wp(site.path, "plugin", "list", "--status=active", "--format=count")
        if not result.ok or not result.lines():
            return None
        try:
            return int(result.lines()[0])
        except ValueError:
            return None

    # Users

    def create_user(self, site: Site, username: str, email: str, password: str) -> CommandResult:
        return self.runner.wp(
            site.path,
            "user",
            "create",
            username,
            email,
            f"--user_pass={password}",
            "--role=administrator",
        )

    def migrate_setting(self, site: Site, name: str, value: str) -> CommandResult:
        return self.runner.wp(site.path, "migrate", "setting", "update", name, value)

    def config_get(self, site: Site, name: str) -> Optional[str]:
        result = self.runner.wp(site.path, "config", "get", name)
        if not result.ok or not result.lines():
            return None
        return result.lines()[0]
