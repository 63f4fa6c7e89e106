"""
Parser configuration.

Holds the settings shared by the single-file parsers, the batch runner
and the command-line interface.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


def _default_workers() -> int:
    return min(32, (os.cpu_count() or 1) + 4)


@dataclass(frozen=True)
class ParserConfig:
    """
    Immutable parser settings.

    Frozen so one instance can be shared by every worker of a batch run.
    """

    include_notes: bool = True
    max_parallel_workers: int = _default_workers()
    encoding: Optional[str] = None  # None means the platform default
    reference_data_dir: Optional[Path] = None
    log_file_glob: str = "*.txt"
    max_line_length: int = 450

    @classmethod
    def from_args(cls, args) -> "ParserConfig":
        """
        Build a config from parsed command-line arguments.

        Args:
            args: argparse namespace; missing attributes keep their defaults

        Returns:
            New ParserConfig
        """
        kwargs = {}
        if getattr(args, "no_notes", False):
            kwargs["include_notes"] = False
        workers = getattr(args, "workers", None)
        if workers:
            kwargs["max_parallel_workers"] = workers
        encoding = getattr(args, "encoding", None)
        if encoding:
            kwargs["encoding"] = encoding
        data_dir = getattr(args, "data_dir", None)
        if data_dir:
            kwargs["reference_data_dir"] = Path(data_dir)
        return cls(**kwargs)
