"""File-based storage for project definitions and evaluation results.

Provides operations for:
- Project files (tree, criteria and alternatives)
- Results files (immutable, timestamped, with a latest.json mirror)
"""

import json
import logging
import re
from pathlib import Path

from lsp_engine.consts import DEFAULT_DATA_DIR, PROJECTS_DIRNAME, RESULTS_DIRNAME
from lsp_engine.models.model_storage import ProjectFile, ResultsFile

logger = logging.getLogger(__name__)


def _slug(name: str) -> str:
    """File-system safe version of a project name."""
    slug = re.sub(r"[^A-Za-z0-9._-]+", "_", name.strip()).strip("._")
    return slug or "project"


class FileManager:
    """File-based storage manager for LSP projects.

    Directory structure:
        data/
        ├── projects/{name}.json                          # Project definitions
        ├── results/{name}/{timestamp}_results.json       # Immutable evaluation runs
        └── results/{name}/latest.json                    # Most recent run
    """

    def __init__(self, data_dir: Path | str = DEFAULT_DATA_DIR):
        """Initialize FileManager with data directory.

        Args:
            data_dir: Root directory for all data files.
        """
        self.data_dir = Path(data_dir)
        self._projects_dir = self.data_dir / PROJECTS_DIRNAME
        self._results_dir = self.data_dir / RESULTS_DIRNAME

    def _ensure_dirs(self, *dirs: Path) -> None:
        """Create directories if they don't exist."""
        for d in dirs:
            d.mkdir(parents=True, exist_ok=True)

    # === PROJECT OPERATIONS ===

    def project_path(self, name: str) -> Path:
        return self._projects_dir / f"{_slug(name)}.json"

    def save_project(self, project: ProjectFile) -> Path:
        """Save a project definition, replacing any previous version.

        Args:
            project: Project to store.

        Returns:
            Path to the saved file.
        """
        self._ensure_dirs(self._projects_dir)
        path = self.project_path(project.name)
        path.write_text(project.model_dump_json(indent=2, by_alias=True), encoding="utf-8")
        logger.info(f"Saved project: {path} ({len(project.tree.nodes)} nodes)")
        return path

    def load_project(self, name: str) -> ProjectFile | None:
        """Load a stored project by name.

        Returns:
            ProjectFile if found, None otherwise.
        """
        path = self.project_path(name)
        if not path.exists():
            logger.warning(f"Project not found: {path}")
            return None
        return self.read_project_file(path)

    def list_projects(self) -> list[str]:
        """List stored project names, sorted."""
        if not self._projects_dir.exists():
            return []
        return sorted(f.stem for f in self._projects_dir.glob("*.json"))

    @staticmethod
    def read_project_file(path: Path | str) -> ProjectFile:
        """Read and validate a project JSON file from any location.

        Raises:
            FileNotFoundError: If the file does not exist.
            pydantic.ValidationError: If the content is not a valid project.
        """
        path = Path(path)
        data = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(data, dict) and "name" not in data:
            data["name"] = path.stem
        return ProjectFile.model_validate(data)

    # === RESULTS OPERATIONS ===

    def _project_results_dir(self, name: str) -> Path:
        return self._results_dir / _slug(name)

    def save_results(self, results_file: ResultsFile) -> Path:
        """Save an evaluation run with timestamp and update latest.json.

        Args:
            results_file: Results to store.

        Returns:
            Path to the timestamped results file.
        """
        results_dir = self._project_results_dir(results_file.project_name)
        self._ensure_dirs(results_dir)

        content = results_file.model_dump_json(indent=2)
        stamp = results_file.computed_at.strftime("%Y%m%d_%H%M%S_%f")
        path = results_dir / f"{stamp}_results.json"
        path.write_text(content, encoding="utf-8")
        logger.info(f"Saved results: {path} ({len(results_file.results)} alternatives)")

        (results_dir / "latest.json").write_text(content, encoding="utf-8")
        logger.debug(f"Updated latest.json for {results_file.project_name}")
        return path

    def load_results(self, name: str, timestamp: str | None = None) -> ResultsFile | None:
        """Load an evaluation run.

        Args:
            name: Project name.
            timestamp: Optional run stamp (as returned by list_results). If None, loads latest.

        Returns:
            ResultsFile if found, None otherwise.
        """
        results_dir = self._project_results_dir(name)
        path = results_dir / (f"{timestamp}_results.json" if timestamp else "latest.json")
        if not path.exists():
            logger.warning(f"Results not found: {path}")
            return None
        return ResultsFile.model_validate_json(path.read_text(encoding="utf-8"))

    def list_results(self, name: str) -> list[str]:
        """List run stamps for a project, newest first."""
        results_dir = self._project_results_dir(name)
        if not results_dir.exists():
            return []
        return sorted((f.stem.removesuffix("_results") for f in results_dir.glob("*_results.json")), reverse=True)
