"""SEO redirect engine: rule storage, matching, hit tracking and CSV transfer."""

__version__ = "0.1.0"
