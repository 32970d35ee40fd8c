"""Commands package."""

from .install import install
from .modify import modify
from .status import status
from .update import update

__all__ = ["install", "modify", "status", "update"]
