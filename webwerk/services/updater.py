"""WordPress core and plugin updates."""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..errors import SiteOperationError
from ..models import CommandResult, GitMode, OperationKind, OperationResult, Site
from .context import SiteOperation

logger = logging.getLogger(__name__)


class UpdateOptions(BaseModel):
    """What an update run touches."""

    core: bool = Field(True, description="Check and apply WordPress core updates")
    minor: bool = Field(False, description="Restrict plugin updates to minor versions")
    git_mode: GitMode = Field(GitMode.OFF, description="Commit plugin updates in wp-content")
    summary_commit: bool = Field(False, description="One commit for all plugins instead of one each")
    exclude: List[str] = Field(default_factory=list, description="Plugin names never updated")

    @field_validator("exclude", mode="before")
    @classmethod
    def split_exclude(cls, v: Any) -> Any:
        """Accept the comma-separated form used on the command line."""
        if v is None:
            return []
        if isinstance(v, str):
            return [name.strip() for name in v.split(",") if name.strip()]
        return v

    def is_excluded(self, plugin: str) -> bool:
        return plugin in self.exclude


def summary_commit_message(changes: List[str], today: Optional[date] = None) -> str:
    """Commit message listing every plugin updated in one run."""
    today = today or date.today()
    header = f"chore: update {len(changes)} plugins {today.strftime('%d-%m-%y')}"
    return "\n".join([header, "-" * 32, ""] + changes) + "\n"


class SiteUpdater(SiteOperation):
    """Updates core and plugins of one site."""

    kind = OperationKind.UPDATE
    options: UpdateOptions

    def __init__(self, context, options: Optional[UpdateOptions] = None) -> None:
        super().__init__(context, options or UpdateOptions())

    def required_tools(self) -> List[str]:
        tools = self.context.config.wp_cli_argv[:1]
        if self.options.git_mode != GitMode.OFF:
            tools.append("git")
        return tools

    def process(self, site: Site, result: OperationResult) -> None:
        check = self.check_site(site, result)
        if self.options.core:
            self.update_core(site, result, check)
        if self.options.git_mode == GitMode.OFF:
            self.update_plugins_simple(site, result)
        else:
            self.update_plugins_with_git(site, result)

    def check_site(self, site: Site, result: OperationResult) -> CommandResult:
        """Make sure WP-CLI can talk to the site before changing anything."""
        check = self.context.wordpress.check_update(site)
        if not check.ok:
            raise SiteOperationError(f"Site check failed: {check.message}")
        result.note("Site is functional")
        return check

    def update_core(self, site: Site, result: OperationResult, check: CommandResult) -> None:
        updates = self.context.wordpress.core_updates(check)
        if not updates:
            logger.info("WordPress core is up to date")
            result.note("Core is up to date")
            return

        version = updates[0].get("version", "latest")
        logger.info("WordPress core update available: %s", version)
        if not self.context.gate.confirm(f"Proceed with core update to {version} on {site.name}?"):
            logger.info("Core update skipped by user")
            result.skip("Core update skipped")
            return

        locale = self.context.config.wp_locale
        outcome = self.context.wordpress.core_update(site, locale)
        if outcome.ok:
            logger.info("WordPress core updated to %s", version)
            result.done(f"Core updated to {version}")
        else:
            logger.warning("Core update failed for site %s: %s", site.name, outcome.message)
            result.note(f"Core update failed: {outcome.message}")

    def _pending_plugins(self, site: Site) -> List[Dict[str, Any]]:
        pending = []
        for plugin in self.context.wordpress.plugin_updates(site):
            name = plugin.get("name", "")
            if self.options.is_excluded(name):
                logger.info("Skipping excluded plugin: %s", name)
                continue
            pending.append(plugin)
        return pending

    def update_plugins_simple(self, site: Site, result: OperationResult) -> None:
        """Update plugins in place without touching version control."""
        pending = self._pending_plugins(site)
        if not pending:
            logger.info("No plugin updates available")
            result.note("No plugin updates available")
            return

        for plugin in pending:
            logger.info(
                "  %s %s → %s", plugin.get("name"), plugin.get("version", "?"), plugin.get("update_version", "?")
            )
        if not self.context.gate.confirm(f"{len(pending)} plugins will be updated on {site.name}. Proceed?"):
            logger.info("Plugin updates cancelled by user")
            result.skip("Plugin updates skipped")
            return

        wp = self.context.wordpress
        if not self.options.exclude:
            outcome = wp.update_all_plugins(site, minor=self.options.minor)
            if outcome.ok:
                result.done(f"{len(pending)} plugins updated")
            else:
                logger.warning("Plugin updates failed for site %s: %s", site.name, outcome.message)
                result.note(f"Plugin updates failed: {outcome.message}")
            return

        failed = []
        for plugin in pending:
            outcome = wp.update_plugin(site, plugin["name"], minor=self.options.minor)
            if not outcome.ok:
                logger.warning("Failed to update plugin %s: %s", plugin["name"], outcome.message)
                failed.append(plugin["name"])
        updated = len(pending) - len(failed)
        if updated:
            result.done(f"{updated} plugins updated")
        if failed:
            result.note(f"Plugin updates failed: {', '.join(failed)}")

    def update_plugins_with_git(self, site: Site, result: OperationResult) -> None:
        """Update plugins one by one and record each change in the wp-content repository."""
        git = self.context.git
        wp = self.context.wordpress
        repo = site.wp_content

        logger.info("Updating repository...")
        pulled = git.pull(repo)
        if not pulled.ok:
            logger.warning("Git pull failed or no remote repository")

        pending = self._pending_plugins(site)
        if not pending:
            logger.info("No plugin updates available")
            result.note("No plugin updates available")
            return

        question = f"{len(pending)} plugins will be updated and committed on {site.name}. Proceed?"
        if not self.context.gate.confirm(question):
            logger.info("Plugin updates cancelled by user")
            result.skip("Plugin updates skipped")
            return

        changes: List[str] = []
        for plugin in pending:
            name = plugin["name"]
            old_version = wp.plugin_version(site, name)
            logger.info("Updating %s", name)
            outcome = wp.update_plugin(site, name, minor=self.options.minor)
            if not outcome.ok:
                logger.error("Failed to update plugin: %s", name)
                result.note(f"Failed to update plugin: {name}")
                continue

            new_version = wp.plugin_version(site, name)
            if old_version == new_version:
                logger.warning("Plugin %s version unchanged after update", name)
                continue

            change = f"{name}: {old_version} → {new_version}"
            if not git.add(repo, f"plugins/{name}").ok:
                logger.warning("Failed to stage changes for %s", name)
                continue

            if not self.options.summary_commit:
                committed = git.commit(repo, f"chore: update plugin {change}")
                if not committed.ok:
                    logger.warning("Failed to commit update for %s: %s", name, committed.message)
                    result.note(f"Commit failed for {name}")
                    continue
                logger.info("Committed update for %s", name)
            changes.append(change)

        if self.options.summary_commit and changes:
            logger.info("Creating summary commit for %d plugins", len(changes))
            committed = git.commit(repo, summary_commit_message(changes))
            if not committed.ok:
                logger.error("Failed to create summary commit: %s", committed.message)
                result.note(f"Summary commit failed: {committed.message}")
                return
            logger.info("Summary commit created successfully")

        if not changes:
            result.note("No plugins changed")
            return
        result.done(f"{len(changes)} plugins updated")
        self.push(site, result)

    def push(self, site: Site, result: OperationResult) -> None:
        """Push commits; with auto-confirm only when push mode was requested."""
        gate = self.context.gate
        if gate.auto_confirm:
            if self.options.git_mode != GitMode.PUSH:
                logger.info("Auto-push disabled")
                return
        elif not gate.confirm(f"Push {site.name} to remote repository?"):
            logger.info("Changes not pushed to remote repository")
            result.skip("Push skipped")
            return

        pushed = self.context.git.push(site.wp_content)
        if pushed.ok:
            logger.info("Changes pushed to remote repository")
            result.done("Pushed to remote")
        else:
            logger.error("Failed to push changes: %s", pushed.message)
            result.note(f"Push failed: {pushed.message}")
