"""Login-gated, time-limited IP whitelisting on a Zoraxy reverse proxy."""

__version__ = "0.1.0"
