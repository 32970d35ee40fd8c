"""Services package."""

from .batch import BatchDriver
from .confirm import ConfirmationGate
from .context import BatchContext, SiteOperation
from .database import DatabaseService, FallbackExecutor, MysqlClient
from .git import GitService
from .installer import InstallOptions, SiteInstaller
from .modifier import ModifyOptions, SiteModifier
from .registry import SiteRegistry
from .runner import CommandRunner
from .updater import SiteUpdater, UpdateOptions
from .wordpress import WordPressService

__all__ = [
    "BatchContext",
    "BatchDriver",
    "CommandRunner",
    "ConfirmationGate",
    "DatabaseService",
    "FallbackExecutor",
    "GitService",
    "InstallOptions",
    "ModifyOptions",
    "MysqlClient",
    "SiteInstaller",
    "SiteModifier",
    "SiteOperation",
    "SiteRegistry",
    "SiteUpdater",
    "UpdateOptions",
    "WordPressService",
]
