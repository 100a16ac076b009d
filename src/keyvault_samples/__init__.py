"""Key Vault control-plane and data-plane samples with a classified retry helper."""

__version__ = "0.1.0"
