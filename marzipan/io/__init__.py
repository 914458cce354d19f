"""Configuration parsing for the command line and the Python API."""
