"""
Batch Log Parsing.

Parses many log files in parallel on a thread pool. Each file gets its own
holder; failures are collected and do not stop the batch.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..config import ParserConfig
from ..exceptions import AscensionLogError, LogParseError
from ..logdata.holder import LogDataHolder
from ..services.reference_data import get_reference_data
from .log_parser import parse_log_file

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParseFailure:
    """A log file that could not be parsed."""

    file: str
    last_turn: Optional[int]
    message: str

    def __str__(self) -> str:
        if self.last_turn is None:
            return f"{self.file}: {self.message}"
        return f"{self.file} (last turn {self.last_turn}): {self.message}"


class ParseErrorLog:
    """Append-only failure list shared by the workers of a batch."""

    def __init__(self):
        self._failures: List[ParseFailure] = []
        self._lock = threading.Lock()

    def add(self, failure: ParseFailure) -> None:
        with self._lock:
            self._failures.append(failure)

    @property
    def failures(self) -> List[ParseFailure]:
        with self._lock:
            return list(self._failures)

    def __len__(self) -> int:
        with self._lock:
            return len(self._failures)


@dataclass
class BatchResult:
    """Holders of the parsed files, keyed by file path, plus the failures."""

    holders: Dict[str, LogDataHolder] = field(default_factory=dict)
    failures: List[ParseFailure] = field(default_factory=list)
    cancelled: bool = False

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)


class BatchLogParser:
    """
    Parser for many log files at once.

    Example:
        >>> parser = BatchLogParser(ParserConfig(max_parallel_workers=4))
        >>> result = parser.parse_files(Path("logs").glob("*.txt"))
    """

    def __init__(self, config: Optional[ParserConfig] = None):
        self.config = config or ParserConfig()
        self.error_log = ParseErrorLog()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._cancelled = threading.Event()

    def parse_files(self, paths: Iterable) -> BatchResult:
        """
        Parse the given files in parallel.

        Args:
            paths: Log file paths

        Returns:
            BatchResult with one holder per successfully parsed file
        """
        paths = [Path(p) for p in paths]
        reference = get_reference_data(self.config.reference_data_dir)
        result = BatchResult()
        logger.info(
            f"Parsing {len(paths)} log files with {self.config.max_parallel_workers} workers"
        )

        with ThreadPoolExecutor(max_workers=self.config.max_parallel_workers) as executor:
            self._executor = executor
            future_to_path: Dict[Future, Path] = {}
            for path in paths:
                if self._cancelled.is_set():
                    break
                future_to_path[executor.submit(parse_log_file, path, self.config, reference)] = path

            for future in as_completed(future_to_path):
                path = future_to_path[future]
                if future.cancelled():
                    continue
                try:
                    result.holders[str(path)] = future.result()
                except AscensionLogError as e:
                    last_turn = e.last_turn if isinstance(e, LogParseError) else None
                    logger.error(f"Failed to parse {path}: {e}")
                    self.error_log.add(ParseFailure(str(path), last_turn, str(e)))
                if self._cancelled.is_set():
                    break
        self._executor = None

        result.failures = self.error_log.failures
        result.cancelled = self._cancelled.is_set()
        logger.info(
            f"Batch finished: {len(result.holders)} parsed, {len(result.failures)} failed"
        )
        return result

    def parse_directory(self, directory) -> BatchResult:
        """Parse every file in a directory matching the configured glob."""
        paths = sorted(Path(directory).glob(self.config.log_file_glob))
        return self.parse_files(paths)

    def cancel(self) -> None:
        """Stop submitting work and drop queued parses; running parses still finish."""
        self._cancelled.set()
        executor = self._executor
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)
        logger.info("Batch parse cancelled")


def parse_log_files(paths: Iterable, config: Optional[ParserConfig] = None) -> BatchResult:
    """
    Convenience function to parse several log files.

    Args:
        paths: Log file paths
        config: Parser settings

    Returns:
        BatchResult
    """
    return BatchLogParser(config).parse_files(paths)
