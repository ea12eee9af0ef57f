"""
Shrub - genome annotation database loader

Loads roles, functions, subsystems and clusters into the Shrub database,
assigning collision-free IDs whether one loader or several are writing.
"""

__version__ = "0.1.0"

# Re-export core objects for convenience
from shrub.core.config.models import ShrubConfig
from shrub.core.erdb import ERDB
from shrub.core.ids import create_allocator
from shrub.core.loader import DBLoader

__all__ = ["DBLoader", "ERDB", "ShrubConfig", "create_allocator", "__version__"]
