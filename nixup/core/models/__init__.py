"""
Domain models — Pydantic types for nixup.

All models are re-exported here for convenient access:

    from nixup.core.models import NixupConfig, InstalledPackage, UpdateReport, Receipt
"""

from nixup.core.models.config import NixupConfig
from nixup.core.models.package import (
    InstalledPackage,
    StatusRecord,
    UpdateRecord,
    UpdateReport,
)
from nixup.core.models.receipt import Receipt

__all__ = [
    # config.py
    "NixupConfig",
    # package.py
    "InstalledPackage",
    "StatusRecord",
    "UpdateRecord",
    "UpdateReport",
    # receipt.py
    "Receipt",
]
