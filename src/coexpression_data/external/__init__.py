"""External data sources."""

from .protein_atlas import ProteinAtlasClient, parse_profile

__all__ = ["ProteinAtlasClient", "parse_profile"]
