"""Commercial plugin license keys written into a site."""

import logging
from typing import Dict, List

from ..errors import SiteOperationError
from ..models import Site
from ..utils.config import Config
from . import site_files
from .wordpress import WordPressService

logger = logging.getLogger(__name__)

ACF_PRO = "ACF_PRO_LICENSE"
WPMDB = "WPMDB_LICENCE"
AKEEBA = "AKEEBA_DOWNLOAD_ID"

LABELS: Dict[str, str] = {
    ACF_PRO: "ACF Pro License Key",
    WPMDB: "WP Migrate DB Pro License Key",
    AKEEBA: "Akeeba Download ID",
}


class LicenseService:
    """Adds license keys from the secrets file to wp-config.php or the options table."""

    def __init__(self, config: Config, wordpress: WordPressService) -> None:
        self.config = config
        self.wordpress = wordpress

    def available(self) -> List[str]:
        """License keys that have a value configured."""
        return [key for key in LABELS if self.config.get(key)]

    def _value(self, key: str) -> str:
        value = self.config.get(key)
        if not value:
            raise SiteOperationError(f"{key} not found in environment")
        return value

    def _require_config(self, site: Site) -> None:
        if not site.wp_config.is_file():
            raise SiteOperationError(f"wp-config.php not found in {site.path}")

    def define(self, site: Site, key: str) -> bool:
        """Append the license define; False when it was already there."""
        value = self._value(key)
        self._require_config(site)
        written = site_files.append_define(site.wp_config, key, value, LABELS[key])
        if written:
            logger.info("%s added to wp-config.php", LABELS[key])
        return written

    def acf_pro(self, site: Site) -> bool:
        return self.define(site, ACF_PRO)

    def wpmdb(self, site: Site, enable_pull: bool = False) -> bool:
        written = self.define(site, WPMDB)
        if enable_pull:
            logger.info("Activating pull setting")
            if not self.wordpress.migrate_setting(site, "pull", "on").ok:
                logger.warning("Could not enable WP Migrate DB pull on %s", site.name)
        return written

    def akeeba(self, site: Site) -> bool:
        """Store the download ID as an option and as a define in wp-config.php."""
        value = self._value(AKEEBA)
        result = self.wordpress.update_option(site, "akeeba_download_id", value)
        if not result.ok:
            raise SiteOperationError(f"Failed to set Akeeba Download ID in database: {result.message}")
        logger.info("Akeeba Download ID added to database")
        if site.wp_config.is_file():
            site_files.append_define(site.wp_config, AKEEBA, value, LABELS[AKEEBA])
        return True

    def all(self, site: Site, enable_pull: bool = False) -> int:
        """Set up every configured license key; returns how many were handled."""
        count = 0
        for key in self.available():
            if key == ACF_PRO:
                self.acf_pro(site)
            elif key == WPMDB:
                self.wpmdb(site, enable_pull=enable_pull)
            else:
                self.akeeba(site)
            count += 1
        if count:
            logger.info("%d license keys configured", count)
        else:
            logger.info("No license keys were configured")
        return count
