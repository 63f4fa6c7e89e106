"""Readers for detailed session logs and pre-parsed ascension logs."""

from .log_parser import detect_dialect, parse, parse_log_file
from .batch import parse_log_files

__all__ = ["detect_dialect", "parse", "parse_log_file", "parse_log_files"]
