"""Version information."""

# License: BSD 3 clause

# Format expected by setup.py and docs
# Do not edit manually, version changes are made on release through git tags.

__version__ = "0.1.0"
