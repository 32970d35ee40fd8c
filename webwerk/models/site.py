"""Site model."""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

# A directory is treated as a WordPress installation when this exists in it.
WP_MARKER = "wp-content"


class Site(BaseModel):
    """One WordPress installation directory under management."""

    name: str = Field(description="Name relative to the base directory")
    path: Path = Field(description="Absolute path of the site directory")
    is_wordpress: bool = Field(False, description="Whether the WordPress marker was found")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Strip trailing slashes left over from directory listings."""
        v = v.strip().rstrip("/")
        if not v:
            raise ValueError("Site name cannot be empty")
        return v

    @classmethod
    def from_directory(cls, base_dir: Path, name: str) -> "Site":
        """Build a site for ``name`` below ``base_dir``."""
        path = (base_dir / name).resolve()
        return cls(name=name, path=path, is_wordpress=(path / WP_MARKER).is_dir())

    @classmethod
    def from_base(cls, base_dir: Path) -> "Site":
        """Build a site for the base directory itself."""
        path = base_dir.resolve()
        return cls(name=path.name or str(path), path=path, is_wordpress=(path / WP_MARKER).is_dir())

    def exists(self) -> bool:
        """Check the site directory is present on disk."""
        return self.path.is_dir()

    @property
    def wp_content(self) -> Path:
        return self.path / WP_MARKER

    @property
    def wp_config(self) -> Path:
        return self.path / "wp-config.php"

    class Config:
        """Pydantic configuration."""

        frozen = True
