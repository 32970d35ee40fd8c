"""Closed sets of operation kinds and modes."""

from enum import Enum


class OperationKind(str, Enum):
    """Operation the batch driver applies to every site."""

    INSTALL = "install"
    UPDATE = "update"
    MODIFY = "modify"


class InstallMode(str, Enum):
    """WordPress installation flavour."""

    FULL = "full"
    MINIMAL = "minimal"
    DDEV = "ddev"


class GitMode(str, Enum):
    """How plugin updates are recorded in the wp-content repository."""

    OFF = "off"
    COMMIT = "commit"
    PUSH = "push"


class ModifyAction(str, Enum):
    """Modification applied to an existing site."""

    LIST_PLUGINS = "list-plugins"
    INSTALL_PLUGIN = "install-plugin"
    COPY_PLUGIN = "copy-plugin"
    REMOVE_PLUGIN = "remove-plugin"
    UPDATE_PLUGIN = "update-plugin"
    NEW_USER = "new-user"
    DEBUG_ON = "debug-on"
    DEBUG_OFF = "debug-off"
    HIDE_ERRORS = "hide-errors"
    BLOCK_INDEXING = "block-indexing"
    HTACCESS = "htaccess"
    LICENSE_ACF_PRO = "license-acf-pro"
    LICENSE_WPMDB = "license-wpmdb"
    LICENSE_AKEEBA = "license-akeeba"
    LICENSE_ALL = "license-all"
    GIT_PULL = "git-pull"
    GIT_LOG = "git-log"
    RIGHTS = "rights"
    DB_CHECK = "db-check"
    DB_EXPORT = "db-export"
    DB_IMPORT = "db-import"
    DB_OPTIMIZE = "db-optimize"
    DB_RESET = "db-reset"
    DB_CLEAN = "db-clean"
