"""Command-line interface for Gitlet."""
