"""PDF conversion API: async job lifecycle behind a usage-metered gateway."""

__version__ = "1.0.0"
