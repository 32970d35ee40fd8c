"""Local WordPress installation."""

import logging
import re
import secrets
import shutil
from typing import List, Optional

from pydantic import BaseModel, Field

from ..errors import ConfigurationError, SiteOperationError
from ..models import CommandResult, InstallMode, OperationKind, OperationResult, Site
from ..utils.config import Config
from . import site_files
from .context import SiteOperation, mysql_factory_for
from .database import DatabaseService, MysqlClient
from .licenses import LicenseService
from .wordpress import WordPressService

logger = logging.getLogger(__name__)

DDEV_DB = "db"
REQUIRED_FILES = ("wp-config.php", "index.php", "wp-load.php")
REQUIRED_DIRS = ("wp-content", "wp-includes", "wp-admin")
DOWNLOAD_MARKERS = ("wp-config-sample.php", "index.php", "wp-includes")


class InstallOptions(BaseModel):
    """How sites are installed."""

    mode: InstallMode = Field(InstallMode.FULL, description="full, minimal or ddev")


class InstallSettings(BaseModel):
    """Values derived for one site from the configuration and its directory name."""

    db_name: str
    db_user: str
    db_password: str
    db_host: str
    url: str
    title: str
    admin_password: str
    password_generated: bool = False
    repo_url: Optional[str] = None


def database_name_for(directory: str) -> str:
    """Database name derived from a directory name."""
    return re.sub(r"[^a-zA-Z0-9]", "_", directory)


def repo_url_for(config: Config, directory: str) -> Optional[str]:
    """Repository cloned into wp-content, built from the git settings unless set explicitly."""
    if config.repo_url:
        return config.repo_url
    if config.git_ssh_host:
        return f"{config.git_ssh_host}:{config.git_user}/{directory}.git"
    if config.git_protocol == "https":
        return f"https://{config.git_host}/{config.git_user}/{directory}.git"
    if config.git_protocol == "ssh":
        return f"git@{config.git_host}:{config.git_user}/{directory}.git"
    return None


def derive_settings(config: Config, site: Site, mode: InstallMode) -> InstallSettings:
    """Work out database, URL, title and credentials for a site."""
    directory = site.path.name
    password = config.wp_admin_password
    generated = password is None
    if generated:
        password = secrets.token_urlsafe(12)

    if mode == InstallMode.DDEV:
        return InstallSettings(
            db_name=DDEV_DB,
            db_user=DDEV_DB,
            db_password=DDEV_DB,
            db_host=DDEV_DB,
            url=f"https://{directory}.ddev.site",
            title=config.wp_title or f"test{directory.upper()}",
            admin_password=password,
            password_generated=generated,
            repo_url=repo_url_for(config, directory),
        )

    return InstallSettings(
        db_name=config.db_name or database_name_for(directory),
        db_user=config.db_user,
        db_password=config.db_password,
        db_host=config.db_host,
        url=config.wp_url or f"{config.local_url_base}/{directory}",
        title=config.wp_title or f"test{directory.upper()}",
        admin_password=password,
        password_generated=generated,
        repo_url=repo_url_for(config, directory),
    )


def _require(result: CommandResult, step: str) -> CommandResult:
    if not result.ok:
        raise SiteOperationError(f"{step} failed: {result.message}")
    return result


class SiteInstaller(SiteOperation):
    """Installs WordPress into a site directory."""

    kind = OperationKind.INSTALL
    options: InstallOptions

    def __init__(self, context, options: Optional[InstallOptions] = None) -> None:
        super().__init__(context, options or InstallOptions())

    @property
    def mode(self) -> InstallMode:
        return self.options.mode

    def required_tools(self) -> List[str]:
        if self.mode == InstallMode.DDEV:
            return ["ddev", "git"]
        tools = self.context.config.wp_cli_argv[:1] + ["php", "mysql"]
        if self.mode == InstallMode.FULL:
            tools.append("git")
        return tools

    def prepare(self) -> None:
        if self.mode == InstallMode.DDEV:
            return
        config = self.context.config
        logger.info("Validating database connection...")
        client = MysqlClient(self.context.runner, config.db_host, config.db_user, config.db_password)
        if not client.test_connection().ok:
            raise ConfigurationError(
                f"Cannot connect to database with provided credentials (host: {config.db_host}, "
                f"user: {config.db_user})"
            )
        logger.info("Database connection validated")

    def _services(self):
        """WP-CLI and database services, routed through ddev in ddev mode."""
        if self.mode != InstallMode.DDEV:
            return self.context.wordpress, self.context.database
        runner = self.context.runner.with_wp_cli(["ddev", "wp"])
        ddev_config = self.context.config.model_copy(
            update={"db_host": DDEV_DB, "db_user": DDEV_DB, "db_password": DDEV_DB}
        )
        return WordPressService(runner), DatabaseService(runner, mysql_factory_for(ddev_config, runner))

    def process(self, site: Site, result: OperationResult) -> None:
        config = self.context.config
        settings = derive_settings(config, site, self.mode)
        question = f"Install WordPress ({self.mode.value}) into {site.path}?"
        if self.mode != InstallMode.DDEV:
            question += f" Database {settings.db_name} will be reset."
        if not self.context.gate.confirm(question):
            logger.info("Installation of %s skipped by user", site.name)
            result.skip("Installation skipped")
            return

        logger.info("Starting %s WordPress installation for: %s", self.mode.value, site.name)
        wp, database = self._services()

        if self.mode == InstallMode.DDEV:
            self.start_ddev(site, result)
        self.download(wp, site, result)
        self.create_config(wp, site, settings, result)
        if self.mode != InstallMode.DDEV:
            outcome = database.reset(site, settings.db_name)
            if not outcome.ok:
                raise SiteOperationError(f"Database reset failed: {outcome.message}")
            result.done("Database reset" + (" (MySQL fallback)" if outcome.used_fallback else ""))
        self.install_core(wp, site, settings, result)
        self.write_htaccess(site, result)
        self.disable_indexing(wp, site, result)
        if self.mode != InstallMode.MINIMAL:
            self.clone_repository(wp, site, settings, result)
            count = LicenseService(config, wp).all(site)
            result.done(f"{count} license keys configured")
        self.set_permissions(site, result)
        self.validate(site, database, result)
        logger.info("WordPress installation of %s completed", site.name)

    def start_ddev(self, site: Site, result: OperationResult) -> None:
        runner = self.context.runner
        args = ["ddev", "config", "--project-type=wordpress", "--docroot=.", f"--project-name={site.path.name}"]
        php_version = self.context.config.get("DDEV_PHP_VERSION")
        if php_version:
            args.append(f"--php-version={php_version}")
        logger.info("Initializing DDEV configuration")
        _require(runner.run(args, cwd=site.path), "DDEV configuration")
        logger.info("Starting DDEV containers")
        _require(runner.run(["ddev", "start"], cwd=site.path), "DDEV start")
        result.done(f"DDEV project started: https://{site.path.name}.ddev.site")

    def download(self, wp: WordPressService, site: Site, result: OperationResult) -> None:
        locale = self.context.config.wp_locale
        logger.info("Downloading WordPress core (locale: %s)", locale)
        _require(wp.core_download(site, locale), "WordPress download")
        missing = [name for name in DOWNLOAD_MARKERS if not (site.path / name).exists()]
        if missing:
            raise SiteOperationError(f"WordPress download incomplete, missing: {', '.join(missing)}")
        result.done("Core downloaded")

    def create_config(
        self, wp: WordPressService, site: Site, settings: InstallSettings, result: OperationResult
    ) -> None:
        config = self.context.config
        logger.info("Creating wp-config.php (database %s on %s)", settings.db_name, settings.db_host)
        if site.wp_config.exists():
            logger.warning("Removing existing wp-config.php")
            site.wp_config.unlink()
        _require(
            wp.config_create(
                site,
                settings.db_name,
                settings.db_user,
                settings.db_password,
                settings.db_host,
                config.db_prefix,
                skip_check=self.mode == InstallMode.DDEV,
            ),
            "wp-config.php creation",
        )
        site_files.append_to_config(site.wp_config, site_files.enhanced_config_block(config.settings))
        site_files.set_mode(site.wp_config, config.config_permissions)
        result.done("wp-config.php created")

    def install_core(
        self, wp: WordPressService, site: Site, settings: InstallSettings, result: OperationResult
    ) -> None:
        config = self.context.config
        logger.info("Installing WordPress: %s (%s)", settings.title, settings.url)
        _require(
            wp.core_install(
                site,
                settings.url,
                settings.title,
                config.wp_admin_user,
                settings.admin_password,
                config.wp_admin_email,
            ),
            "WordPress installation",
        )
        if config.wp_locale != "en_US" and not wp.install_language(site, config.wp_locale).ok:
            logger.warning("Failed to set language to %s", config.wp_locale)
        if not wp.update_option(site, "timezone_string", config.wp_timezone).ok:
            logger.warning("Failed to set timezone")
        if settings.password_generated:
            logger.info("Admin credentials - User: %s, Password: %s", config.wp_admin_user, settings.admin_password)
        result.done(f"WordPress installed at {settings.url}")

    def write_htaccess(self, site: Site, result: OperationResult) -> None:
        config = self.context.config
        content = site_files.render_htaccess(
            site_files.rewrite_base(site.path),
            force_ssl=config.force_ssl,
            hardened=True,
            settings=config.settings,
        )
        site_files.write_htaccess(site.path, content, config.htaccess_permissions)
        result.done(".htaccess created")

    def disable_indexing(self, wp: WordPressService, site: Site, result: OperationResult) -> None:
        if not self.context.config.disable_search_indexing:
            logger.info("Search engine indexing enabled (production mode)")
            return
        _require(wp.update_option(site, "blog_public", "0"), "Disabling search engine indexing")
        result.done("Search engine indexing disabled")

    def clone_repository(
        self, wp: WordPressService, site: Site, settings: InstallSettings, result: OperationResult
    ) -> None:
        if not settings.repo_url:
            logger.warning("No repository URL specified, skipping git clone")
            result.note("No repository to clone")
            return

        target = site.wp_content
        if target.is_dir():
            logger.warning("Removing existing %s directory", target.name)
            shutil.rmtree(target)
        _require(self.context.git.clone(settings.repo_url, target), f"Cloning {settings.repo_url}")
        git_dir = target / ".git"
        if git_dir.is_dir():
            shutil.rmtree(git_dir)
        result.done("Repository cloned into wp-content")

        if self.context.config.auto_activate_plugins:
            if wp.activate_all_plugins(site).ok:
                logger.info("All plugins activated (total active: %s)", wp.active_plugin_count(site))
            else:
                logger.warning("Some plugins failed to activate")

    def set_permissions(self, site: Site, result: OperationResult) -> None:
        config = self.context.config
        if config.webserver_user:
            if site_files.change_owner(site.path, config.webserver_user, config.webserver_group):
                logger.warning("Could not set ownership (insufficient permissions)")
        if site_files.apply_permissions(site.path, config.dir_permissions, config.file_permissions):
            logger.warning("Could not set all file permissions")
        uploads = site.wp_content / "uploads"
        if uploads.is_dir():
            site_files.apply_permissions(uploads, config.upload_permissions, config.upload_permissions)
        # wp-config.php keeps its restricted mode
        if site.wp_config.exists():
            site_files.set_mode(site.wp_config, config.config_permissions)
        result.done("File permissions configured")

    def validate(self, site: Site, database: DatabaseService, result: OperationResult) -> None:
        """Check core files, directories and the database once everything is in place."""
        errors = [f"missing file {name}" for name in REQUIRED_FILES if not (site.path / name).is_file()]
        errors += [f"missing directory {name}" for name in REQUIRED_DIRS if not (site.path / name).is_dir()]
        if not database.check(site).ok:
            errors.append("database connection failed")
        if errors:
            raise SiteOperationError(f"Validation failed: {'; '.join(errors)}")
        result.done("Installation validated")
