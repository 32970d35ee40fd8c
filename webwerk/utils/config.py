"""Configuration management."""

import logging
import os
import re
import shlex
import stat
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from dotenv import dotenv_values
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_ENV_FILE = ".env"
DEFAULT_KEYS_FILE = "~/.keys"

# Keys whose values are never shown in status output.
SECRET_KEYS = (
    "DB_PASSWORD",
    "WP_ADMIN_PASSWORD",
    "WP_MOD_DEFAULT_PASSWORD",
    "ACF_PRO_LICENSE",
    "WPMDB_LICENCE",
    "AKEEBA_DOWNLOAD_ID",
)


class Config(BaseModel):
    """Application configuration."""

    # Site selection
    base_dir: Path = Field(Path("."), description="Directory holding the WordPress sites")

    # Tools
    wp_cli_path: str = Field("wp", description="WP-CLI executable, may be multi-word (ddev wp)")

    # Database
    db_host: str = Field("localhost", description="Database host")
    db_user: str = Field("wordpress", description="Database user")
    db_password: str = Field("", description="Database password")
    db_name: Optional[str] = Field(None, description="Database name, derived from the site when unset")
    db_prefix: str = Field("wp_", description="WordPress table prefix")

    # WordPress
    wp_locale: str = Field("en_US", description="Locale for core download and update")
    wp_timezone: str = Field("UTC", description="Timezone string set after install")
    wp_url: Optional[str] = Field(None, description="Site URL, derived from the site when unset")
    wp_title: Optional[str] = Field(None, description="Site title, derived from the site when unset")
    wp_admin_user: str = Field("admin", description="Admin user created on install")
    wp_admin_email: str = Field("admin@example.com", description="Admin email")
    wp_admin_password: Optional[str] = Field(None, description="Admin password, generated when unset")
    local_url_base: str = Field("localhost", description="URL prefix for local installs")

    # Git
    repo_url: Optional[str] = Field(None, description="Repository cloned into wp-content")
    git_ssh_host: Optional[str] = Field(None, description="SSH host alias from ~/.ssh/config")
    git_protocol: str = Field("https", description="https or ssh")
    git_host: str = Field("github.com", description="Git server host")
    git_user: str = Field("webwerk", description="Git organisation or user")

    # Behaviour
    auto_confirm: bool = Field(False, description="Answer yes to every confirmation prompt")
    force_ssl: bool = Field(False, description="Force HTTPS redirects in .htaccess")
    disable_search_indexing: bool = Field(True, description="Set blog_public=0 on install")
    auto_activate_plugins: bool = Field(True, description="Activate plugins after cloning")

    # Filesystem
    webserver_user: Optional[str] = Field(None, description="Owner for site files")
    webserver_group: Optional[str] = Field(None, description="Group for site files")
    dir_permissions: str = Field("755", description="Mode for directories")
    file_permissions: str = Field("644", description="Mode for files")
    upload_permissions: str = Field("755", description="Mode for wp-content/uploads")
    htaccess_permissions: str = Field("644", description="Mode for .htaccess")
    config_permissions: str = Field("600", description="Mode for wp-config.php")

    # Logging
    log_dir: Path = Field(Path("."), description="Directory for webwerk-<category>.log files")
    log_level: str = Field("INFO", description="Logging level")

    # Everything that was loaded, for keys without a typed field
    settings: Dict[str, str] = Field(default_factory=dict)

    class Config:
        """Pydantic configuration."""

        frozen = True

    @field_validator(
        "dir_permissions",
        "file_permissions",
        "upload_permissions",
        "htaccess_permissions",
        "config_permissions",
    )
    @classmethod
    def validate_mode(cls, v: str) -> str:
        """Permission modes are octal strings such as 644."""
        v = v.strip()
        if not re.fullmatch(r"[0-7]{3,4}", v):
            raise ValueError(f"Invalid permission mode '{v}', expected octal like 644")
        return v

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get a raw setting, treating empty values as unset."""
        value = self.settings.get(key)
        if value is None or value == "":
            return default
        return value

    @property
    def wp_cli_argv(self) -> List[str]:
        """WP-CLI executable split into an argument vector."""
        return shlex.split(self.wp_cli_path)

    def masked_settings(self) -> Dict[str, str]:
        """Settings with secret values hidden."""
        return {
            key: ("********" if key in SECRET_KEYS and value else value)
            for key, value in sorted(self.settings.items())
        }


def merge_sources(
    environ: Mapping[str, str], env_file: Optional[Path], keys_file: Optional[Path]
) -> Dict[str, str]:
    """Merge settings; the environment wins over the env file, which wins over the keys file."""
    merged: Dict[str, str] = {}
    if keys_file is not None and keys_file.is_file():
        _warn_if_exposed(keys_file)
        merged.update(_read_key_values(keys_file))
    if env_file is not None and env_file.is_file():
        merged.update(_read_key_values(env_file))
    merged.update(environ)
    return merged


def load_config(
    env_file: Optional[Path] = None,
    keys_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """Load configuration from environment variables, .env and ~/.keys."""
    if environ is None:
        environ = dict(os.environ)
    if env_file is None:
        env_file = Path(environ.get("WEBWERK_ENV_FILE", DEFAULT_ENV_FILE))
    if keys_file is None:
        keys_file = Path(environ.get("WEBWERK_KEYS_FILE", DEFAULT_KEYS_FILE)).expanduser()

    values = merge_sources(environ, env_file, keys_file)

    config_dict = {
        "base_dir": Path(values.get("WORDPRESS_BASE_DIR") or "."),
        "wp_cli_path": values.get("WP_CLI_PATH") or "wp",
        "db_host": values.get("DB_HOST") or "localhost",
        "db_user": values.get("DB_USER") or "wordpress",
        "db_password": values.get("DB_PASSWORD", ""),
        "db_name": values.get("DB_NAME") or None,
        "db_prefix": values.get("DB_PREFIX") or "wp_",
        "wp_locale": values.get("WP_LOCALE") or "en_US",
        "wp_timezone": values.get("WP_TIMEZONE") or "UTC",
        "wp_url": values.get("WP_URL") or None,
        "wp_title": values.get("WP_TITLE") or None,
        "wp_admin_user": values.get("WP_ADMIN_USER") or "admin",
        "wp_admin_email": values.get("WP_ADMIN_EMAIL") or "admin@example.com",
        "wp_admin_password": values.get("WP_ADMIN_PASSWORD") or None,
        "local_url_base": values.get("LOCAL_URL_BASE") or "localhost",
        "repo_url": values.get("REPO_URL") or None,
        "git_ssh_host": values.get("GIT_SSH_HOST") or None,
        "git_protocol": values.get("GIT_PROTOCOL") or "https",
        "git_host": values.get("GIT_HOST") or "github.com",
        "git_user": values.get("GIT_USER") or "webwerk",
        "auto_confirm": _get_bool(values, "AUTO_UPDATE_CONFIRM", False),
        "force_ssl": _get_bool(values, "FORCE_SSL", False),
        "disable_search_indexing": _get_bool(values, "DISABLE_SEARCH_INDEXING", True),
        "auto_activate_plugins": _get_bool(values, "AUTO_ACTIVATE_PLUGINS", True),
        "webserver_user": values.get("WEBSERVER_USER") or None,
        "webserver_group": values.get("WEBSERVER_GROUP") or values.get("WEBSERVER_USER") or None,
        "dir_permissions": values.get("DIR_PERMISSIONS") or "755",
        "file_permissions": values.get("FILE_PERMISSIONS") or "644",
        "upload_permissions": values.get("UPLOAD_PERMISSIONS") or "755",
        "htaccess_permissions": values.get("HTACCESS_FILE_PERMISSIONS") or "644",
        "config_permissions": values.get("CONFIG_FILE_PERMISSIONS") or "600",
        "log_dir": Path(values.get("WEBWERK_LOG_DIR") or "."),
        "log_level": values.get("LOG_LEVEL") or "INFO",
        "settings": values,
    }

    try:
        return Config(**config_dict)
    except ValidationError as e:
        problems = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
        raise ConfigurationError(f"Invalid configuration: {problems}") from e


def _read_key_values(path: Path) -> Dict[str, str]:
    """Read a KEY=value file, dropping keys without a value."""
    return {key: value for key, value in dotenv_values(path).items() if value is not None}


def _warn_if_exposed(path: Path) -> None:
    """Warn when a secrets file is readable by group or others."""
    mode = path.stat().st_mode
    if mode & (stat.S_IRWXG | stat.S_IRWXO):
        logger.warning("%s is accessible by other users, run: chmod 600 %s", path, path)


def _get_bool(values: Mapping[str, str], key: str, default: bool) -> bool:
    """Get a boolean flag from the merged settings."""
    raw = values.get(key)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "y", "on")
