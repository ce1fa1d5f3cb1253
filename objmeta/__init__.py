"""objmeta: versioned tags, metadata and access grants for stored objects."""

__version__ = "0.1.0"
