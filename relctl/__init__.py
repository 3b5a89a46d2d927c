"""relctl: semantic version tags, tracking branches and manifest bumps for releases."""

__version__ = "0.3.0"
