"""Router modules for the study API."""

# Import all available routers
from . import drafts, generation, ping, study

__all__ = ["drafts", "generation", "ping", "study"]
