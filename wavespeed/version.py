"""Version information for the WaveSpeed Python SDK."""

VERSION = "0.2.0"
