"""
Per-request workspace staging.

Mirrors a canonical report template directory into a fresh temporary
directory so that concurrent renders never share renderer-written output.
Directories are recreated, files are symlinked to the canonical copies
(zero-copy). Also prepares the shared Quarto filters directory once per
process.
"""

import os
import shutil
import tempfile
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from dotenv import load_dotenv

from neoipc_reporting.contexts.staging.logger import _log_debug, _log_info
from neoipc_reporting.exceptions import TemplateNotFoundError

load_dotenv()

FILTERS_SOURCE_PATH = Path(os.getenv("FILTERS_SOURCE_PATH", "/reports/filters"))
STAGING_MAX_WORKERS = int(os.getenv("STAGING_MAX_WORKERS", "8"))

WORKSPACE_PREFIX = "quarto_report_"
LOG_FILE_NAME = "quarto-log.json"
SHARED_TOOLING_DIR_NAME = "filters"

# Files in a template directory that are never linked into a workspace
EXCLUDED_FILES = (".gitignore",)


def _collect_tree(source: Path, exclude: Iterable[str]) -> Tuple[List[Path], List[Path]]:
    """Return (directories, files) below source as paths relative to it."""
    excluded = set(exclude)
    directories = []
    files = []

    for root, dirnames, filenames in os.walk(source):
        relative_root = Path(root).relative_to(source)
        directories.extend(relative_root / name for name in dirnames)
        files.extend(relative_root / name for name in filenames if name not in excluded)

    return directories, files


def mirror_tree(
    source: Path,
    target: Path,
    exclude: Iterable[str] = EXCLUDED_FILES,
    max_workers: Optional[int] = None,
) -> int:
    """
    Mirror a directory tree using real directories and symlinked files.

    Every directory below source is created under target; every file (except
    the excluded names) becomes a symlink pointing at the absolute path of the
    canonical file. Both phases run on a thread pool.

    Args:
        source: Canonical directory to mirror (must exist)
        target: Existing directory to mirror into
        exclude: File names that are skipped wherever they occur
        max_workers: Thread pool size (default: STAGING_MAX_WORKERS)

    Returns:
        Number of files linked
    """
    source = source.resolve()
    directories, files = _collect_tree(source, exclude)

    with ThreadPoolExecutor(max_workers=max_workers or STAGING_MAX_WORKERS) as pool:
        # list() re-raises the first worker exception
        list(pool.map(lambda rel: (target / rel).mkdir(parents=True, exist_ok=True), directories))
        list(pool.map(lambda rel: os.symlink(source / rel, target / rel), files))

    return len(files)


class Workspace:
    """
    An ephemeral directory holding one request's view of a template.

    Attributes:
        path: Root of the workspace
        source: Canonical template directory it mirrors
    """

    def __init__(self, path: Path, source: Path):
        self.path = path
        self.source = source
        self._released = False
        self._lock = threading.Lock()

    @property
    def log_path(self) -> Path:
        """Location the renderer writes its JSON-stream diagnostic log to."""
        return self.path / LOG_FILE_NAME

    @property
    def released(self) -> bool:
        return self._released

    @classmethod
    def create(
        cls,
        template_dir: Path,
        temp_root: Optional[Path] = None,
        max_workers: Optional[int] = None,
    ) -> "Workspace":
        """
        Stage a fresh workspace for a template directory.

        Args:
            template_dir: Canonical template directory
            temp_root: Parent for the workspace (default: system temp dir)
            max_workers: Thread pool size for mirroring

        Returns:
            The staged Workspace

        Raises:
            TemplateNotFoundError: If template_dir does not exist
        """
        template_dir = Path(template_dir)
        if not template_dir.is_dir():
            raise TemplateNotFoundError(template_dir)

        path = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX, dir=temp_root))
        workspace = cls(path, template_dir)
        try:
            linked = mirror_tree(template_dir, path, max_workers=max_workers)
        except BaseException:
            workspace.release()
            raise

        _log_debug(f"Staged {template_dir} into {path} ({linked} files linked)")
        return workspace

    def release(self) -> None:
        """Delete the workspace tree. Runs at most once and never raises."""
        with self._lock:
            if self._released:
                return
            self._released = True

        try:
            shutil.rmtree(self.path)
        except OSError as e:
            _log_debug(f"Ignoring failure to delete workspace {self.path}: {e}")
        else:
            _log_debug(f"Released workspace {self.path}")

    def __enter__(self) -> "Workspace":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"Workspace(path={str(self.path)!r}, source={str(self.source)!r})"


# Process-wide state for the shared filters directory
_shared_tooling_dir: Optional[Path] = None
_shared_tooling_lock = threading.Lock()


def default_shared_tooling_dir() -> Path:
    return Path(tempfile.gettempdir()) / SHARED_TOOLING_DIR_NAME


def _prepare_shared_tooling(source: Path, target: Path) -> Path:
    if target.exists():
        _log_debug(f"Shared tooling already present at {target}")
        return target

    if not source.is_dir():
        raise TemplateNotFoundError(source)

    try:
        target.mkdir(parents=True)
    except FileExistsError:
        # Another process got there first
        _log_debug(f"Shared tooling created concurrently at {target}")
        return target

    linked = mirror_tree(source, target, exclude=())
    _log_info(f"Prepared shared tooling at {target} ({linked} files linked)")
    return target


def ensure_shared_tooling(source: Optional[Path] = None, target: Optional[Path] = None) -> Path:
    """
    Prepare the shared Quarto filters directory once per process.

    The first caller mirrors the canonical filters directory into the temp
    dir; every later caller returns the already prepared path. A directory
    that already exists (from an earlier run or a concurrent process) is
    accepted as prepared.

    Args:
        source: Canonical filters directory (default: FILTERS_SOURCE_PATH)
        target: Shared location (default: <tmp>/filters)

    Returns:
        Path to the shared filters directory

    Raises:
        TemplateNotFoundError: If it must be created and source does not exist
    """
    global _shared_tooling_dir

    if _shared_tooling_dir is not None:
        return _shared_tooling_dir

    with _shared_tooling_lock:
        if _shared_tooling_dir is None:
            _shared_tooling_dir = _prepare_shared_tooling(
                Path(source) if source is not None else FILTERS_SOURCE_PATH,
                Path(target) if target is not None else default_shared_tooling_dir(),
            )

    return _shared_tooling_dir
