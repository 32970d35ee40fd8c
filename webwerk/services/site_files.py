"""Edits to files inside a site: .htaccess, wp-config.php and permissions."""

import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Mapping, Optional

from .. import __version__

logger = logging.getLogger(__name__)

FORCE_SSL_RULES = (
    "RewriteCond %{HTTPS} !=on\n"
    "RewriteRule ^ https://%{HTTP_HOST}%{REQUEST_URI} [L,R=301]"
)

HARDENING_RULES = """
# Security Headers
<IfModule mod_headers.c>
    Header always set X-Content-Type-Options nosniff
    Header always set X-Frame-Options SAMEORIGIN
    Header always set X-XSS-Protection "1; mode=block"
    Header always set Referrer-Policy "strict-origin-when-cross-origin"
</IfModule>

# Disable XML-RPC
<Files xmlrpc.php>
    Order Allow,Deny
    Deny from all
</Files>

# Protect wp-config.php
<Files wp-config.php>
    Order Allow,Deny
    Deny from all
</Files>

# Disable directory browsing
Options -Indexes

# PHP Configuration
<IfModule mod_php.c>
    php_value upload_max_filesize {upload_max_filesize}
    php_value post_max_size {post_max_size}
    php_value max_execution_time {max_execution_time}
    php_value max_input_vars {max_input_vars}
    php_value memory_limit {memory_limit}
</IfModule>
"""

HIDE_ERRORS_BLOCK = """ini_set('display_errors','Off');
ini_set('error_reporting', E_ALL );
define('WP_DEBUG', false);
define('WP_DEBUG_DISPLAY', false);
"""

# Defaults for keys read through Config.get
PHP_DEFAULTS = {
    "PHP_UPLOAD_MAX_FILESIZE": "64M",
    "PHP_POST_MAX_SIZE": "64M",
    "PHP_MAX_EXECUTION_TIME": "300",
    "PHP_MAX_INPUT_VARS": "3000",
    "WP_MEMORY_LIMIT": "256M",
    "WP_MAX_MEMORY_LIMIT": "512M",
}


def rewrite_base(site_path: Path) -> str:
    """RewriteBase for a site served from ``/<parent>/<dir>``."""
    return f"/{site_path.parent.name}/{site_path.name}"


def render_htaccess(
    base: str,
    force_ssl: bool = False,
    hardened: bool = False,
    settings: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Render the WordPress rewrite rules.

    Args:
        base: RewriteBase path
        force_ssl: Emit active HTTPS redirect rules instead of commented ones
        hardened: Append security headers, file protection and PHP limits
        settings: Raw settings providing PHP limits for the hardened block

    Returns:
        .htaccess content
    """
    if force_ssl:
        ssl = "# Force HTTPS\n" + FORCE_SSL_RULES
    else:
        ssl = "# Force HTTPS (disabled)\n" + "\n".join(f"# {line}" for line in FORCE_SSL_RULES.splitlines())

    content = (
        f"# WordPress .htaccess - Generated by webwerk v{__version__}\n"
        "\n"
        "<IfModule mod_rewrite.c>\n"
        "RewriteEngine On\n"
        "\n"
        f"{ssl}\n"
        "\n"
        "RewriteRule .* - [E=HTTP_AUTHORIZATION:%{HTTP:Authorization}]\n"
        f"RewriteBase {base}\n"
        "RewriteRule ^index\\.php$ - [L]\n"
        "RewriteCond %{REQUEST_FILENAME} !-f\n"
        "RewriteCond %{REQUEST_FILENAME} !-d\n"
        f"RewriteRule . {base}/index.php [L]\n"
        "</IfModule>\n"
    )
    if hardened:
        values = dict(PHP_DEFAULTS)
        values.update({k: v for k, v in (settings or {}).items() if k in PHP_DEFAULTS and v})
        content += HARDENING_RULES.format(
            upload_max_filesize=values["PHP_UPLOAD_MAX_FILESIZE"],
            post_max_size=values["PHP_POST_MAX_SIZE"],
            max_execution_time=values["PHP_MAX_EXECUTION_TIME"],
            max_input_vars=values["PHP_MAX_INPUT_VARS"],
            memory_limit=values["WP_MEMORY_LIMIT"],
        )
    return content


def write_htaccess(site_path: Path, content: str, mode: str = "644") -> Path:
    """Write .htaccess into the site and apply its mode."""
    target = site_path / ".htaccess"
    target.write_text(content)
    set_mode(target, mode)
    logger.info(".htaccess created with RewriteBase: %s", rewrite_base(site_path))
    return target


def _php_bool(value: Optional[str], default: bool) -> str:
    if value is None or value == "":
        return "true" if default else "false"
    return "true" if value.strip().lower() in ("1", "true", "yes", "on") else "false"


def enhanced_config_block(settings: Mapping[str, str]) -> str:
    """Extra defines appended to a freshly created wp-config.php."""
    memory = settings.get("WP_MEMORY_LIMIT") or PHP_DEFAULTS["WP_MEMORY_LIMIT"]
    max_memory = settings.get("WP_MAX_MEMORY_LIMIT") or PHP_DEFAULTS["WP_MAX_MEMORY_LIMIT"]
    defines = [
        ("DISALLOW_FILE_EDIT", _php_bool(settings.get("DISABLE_FILE_EDITING"), True)),
        ("FORCE_SSL_ADMIN", _php_bool(settings.get("FORCE_SSL_ADMIN"), False)),
        ("WP_MEMORY_LIMIT", f"'{memory}'"),
        ("WP_MAX_MEMORY_LIMIT", f"'{max_memory}'"),
        ("WP_DEBUG", _php_bool(settings.get("WP_DEBUG_DEFAULT"), False)),
        ("WP_DEBUG_LOG", _php_bool(settings.get("WP_DEBUG_LOG_DEFAULT"), False)),
        ("WP_DEBUG_DISPLAY", _php_bool(settings.get("WP_DEBUG_DISPLAY_DEFAULT"), False)),
    ]
    lines = [
        "",
        "/**",
        " * Enhanced WordPress Configuration",
        f" * Generated by webwerk v{__version__}",
        f" * {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        " */",
        "",
    ]
    for name, value in defines:
        lines.append(f"if (!defined('{name}')) {{")
        lines.append(f"    define('{name}', {value});")
        lines.append("}")
        lines.append("")
    if _php_bool(settings.get("DISABLE_XML_RPC"), False) == "true":
        lines.append("add_filter('xmlrpc_enabled', '__return_false');")
    if _php_bool(settings.get("HIDE_WP_VERSION"), False) == "true":
        lines.append("remove_action('wp_head', 'wp_generator');")
    lines.append("")
    return "\n".join(lines)


def append_to_config(wp_config: Path, text: str) -> None:
    with open(wp_config, "a") as f:
        f.write(text)


def append_define(wp_config: Path, constant: str, value: str, label: str) -> bool:
    """
    Append a guarded define unless the constant already appears in the file.

    Returns:
        True when the define was written, False when it was already present
    """
    if constant in wp_config.read_text():
        logger.info("%s already exists in %s", constant, wp_config.name)
        return False
    append_to_config(
        wp_config,
        f"\n/* {label} */\n"
        f"if (!defined('{constant}')) {{\n"
        f"    define('{constant}', '{value}');\n"
        "}\n",
    )
    return True


def hide_errors(wp_config: Path) -> None:
    """Drop every DEBUG line and append settings that keep errors off screen."""
    kept = [line for line in wp_config.read_text().splitlines(keepends=True) if "DEBUG" not in line]
    content = "".join(kept)
    if content and not content.endswith("\n"):
        content += "\n"
    wp_config.write_text(content + HIDE_ERRORS_BLOCK)


def set_mode(path: Path, mode: str) -> None:
    """chmod with an octal string such as ``644``."""
    os.chmod(path, int(mode, 8))


def apply_permissions(root: Path, dir_mode: str, file_mode: str) -> int:
    """
    Apply directory and file modes below ``root``.

    Returns:
        Number of paths that could not be changed
    """
    errors = 0
    targets = [(root, dir_mode)]
    for dirpath, dirnames, filenames in os.walk(root):
        base = Path(dirpath)
        targets.extend((base / d, dir_mode) for d in dirnames)
        targets.extend((base / f, file_mode) for f in filenames)
    for path, mode in targets:
        if path.is_symlink():
            continue
        try:
            set_mode(path, mode)
        except OSError as e:
            logger.debug("chmod %s %s failed: %s", mode, path, e)
            errors += 1
    return errors


def change_owner(root: Path, user: str, group: Optional[str]) -> int:
    """
    Recursively change ownership below ``root``.

    Returns:
        Number of paths that could not be changed
    """
    errors = 0
    paths = [root]
    for dirpath, dirnames, filenames in os.walk(root):
        base = Path(dirpath)
        paths.extend(base / name for name in dirnames + filenames)
    for path in paths:
        try:
            shutil.chown(path, user=user, group=group or user)
        except (OSError, LookupError) as e:
            logger.debug("chown %s failed: %s", path, e)
            errors += 1
    return errors
