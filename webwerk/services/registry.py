"""Resolution of the set of sites a batch works on."""

import logging
from pathlib import Path
from typing import List, Optional

from ..models import Site
from .confirm import ConfirmationGate

logger = logging.getLogger(__name__)


class SiteRegistry:
    """Builds the working set of sites below a base directory."""

    def __init__(self, base_dir: Path, gate: ConfirmationGate) -> None:
        """
        Initialize the registry.

        Args:
            base_dir: Directory holding the site directories
            gate: Used for the rename-or-skip and include prompts
        """
        self.base_dir = base_dir
        self.gate = gate

    def resolve(self, sites: Optional[str] = None, all_sites: bool = False, interactive: bool = True) -> List[Site]:
        """
        Resolve sites with exactly one strategy.

        Args:
            sites: Comma-separated site names
            all_sites: Discover every WordPress site under the base directory
            interactive: Ask before including discovered sites

        Returns:
            Resolved sites in processing order
        """
        if sites and all_sites:
            raise ValueError("Use either an explicit site list or all sites, not both")
        if sites:
            return self.from_list(sites)
        if all_sites:
            return self.discover(interactive=interactive)
        return [Site.from_base(self.base_dir)]

    def from_list(self, names: str) -> List[Site]:
        """Resolve a comma-separated list, asking what to do about missing names."""
        resolved: List[Site] = []
        for raw in names.split(","):
            name = raw.strip().rstrip("/")
            if not name:
                continue
            site = self._validate_name(name)
            if site is not None:
                resolved.append(site)
        return resolved

    def _is_site_dir(self, name: str) -> bool:
        """True for an existing directory strictly below the base directory."""
        base = self.base_dir.resolve()
        path = (base / name).resolve()
        return base in path.parents and path.is_dir()

    def _validate_name(self, name: str) -> Optional[Site]:
        """Return the site for a name, or None when the operator skips it."""
        while not self._is_site_dir(name):
            answer = self.gate.ask(f"{self.base_dir / name} not found! Type [n]ew name or [c]ontinue...")
            if answer == "n":
                # An empty answer keeps the old name and asks again
                new_name = self.gate.ask("Enter new name").strip().rstrip("/")
                if new_name:
                    name = new_name
            elif answer == "c":
                logger.info("Skipping missing site: %s", name)
                return None
        return Site.from_directory(self.base_dir, name)

    def scan(self) -> List[Site]:
        """List immediate subdirectories carrying the WordPress marker."""
        if not self.base_dir.is_dir():
            logger.error("Base directory not found: %s", self.base_dir)
            return []
        found = []
        for entry in sorted(self.base_dir.iterdir()):
            if not entry.is_dir():
                continue
            site = Site.from_directory(self.base_dir, entry.name)
            if site.is_wordpress:
                logger.debug("Found %s", site.name)
                found.append(site)
        return found

    def discover(self, interactive: bool = True) -> List[Site]:
        """Discover WordPress sites, asking per candidate in interactive mode."""
        selected = []
        for site in self.scan():
            if interactive and not self.gate.confirm(f"Found {site.name}. Should it be processed?"):
                continue
            selected.append(site)
        return selected
