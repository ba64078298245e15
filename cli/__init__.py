"""
Krishna108 - Command Line Interface

Main CLI entry point for the daily devotional pipeline.
"""
from cli.main import app, main

__all__ = ["app", "main"]
