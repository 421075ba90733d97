"""Release keystore management."""

from .service import KeystoreManager, distinguished_name

__all__ = ["KeystoreManager", "distinguished_name"]
