"""Pipeline orchestration for evaluating a project's alternatives.

This module coordinates all steps of an evaluation run:
1. Load the project (file path, stored name or in-memory ProjectFile)
2. Validate the criterion tree and its elementary criteria
3. Evaluate every alternative
4. Rank alternatives and store results
"""

import logging
from datetime import UTC, datetime
from pathlib import Path

from lsp_engine.consts import DEFAULT_DATA_DIR
from lsp_engine.errors import InvalidInput
from lsp_engine.evaluators.scoring import breakpoints
from lsp_engine.evaluators.tree_evaluator import TreeEvaluator, rank_alternatives
from lsp_engine.models.model_eval import AlternativeResult, EvalSettings
from lsp_engine.models.model_storage import ProjectFile, ResultsFile
from lsp_engine.storage.file_manager import FileManager

logger = logging.getLogger(__name__)


def resolve_project(project: ProjectFile | Path | str, data_dir: Path | None = None) -> ProjectFile:
    """Load a project from a JSON path or from the data directory by name.

    Raises:
        FileNotFoundError: If neither a file nor a stored project matches.
    """
    if isinstance(project, ProjectFile):
        return project

    path = Path(project)
    if path.is_file():
        return FileManager.read_project_file(path)

    file_manager = FileManager(Path(data_dir) if data_dir else DEFAULT_DATA_DIR)
    loaded = file_manager.load_project(str(project))
    if loaded is None:
        raise FileNotFoundError(f"Project not found: {project}")
    return loaded


def validate_project(project: ProjectFile) -> list[str]:
    """Collect every problem that would prevent or degrade evaluation.

    Returns:
        Human-readable problem descriptions (empty if the project is clean).
    """
    tree = project.tree
    numbers = tree.node_numbers()
    problems = tree.check_complete()

    for leaf_id in project.missing_query_specs():
        leaf = tree.node(leaf_id)
        problems.append(f"leaf {numbers[leaf_id]} '{leaf.name}' has no elementary criterion")

    for node_id in project.unknown_query_specs():
        if node_id in tree.nodes:
            problems.append(
                f"node {numbers[node_id]} '{tree.node(node_id).name}' is not a leaf "
                "but has an elementary criterion"
            )
        else:
            problems.append(f"elementary criterion for unknown node '{node_id}'")

    for node_id, spec in project.query_specs.items():
        try:
            breakpoints(spec)
        except InvalidInput as e:
            label = numbers.get(node_id, node_id)
            problems.append(f"criterion of node {label}: {e}")

    return problems


def run_evaluation_pipeline(
    project: ProjectFile | Path | str,
    data_dir: Path | None = None,
    output: Path | None = None,
    workers: int | None = None,
    save: bool = False,
    settings: EvalSettings | None = None,
) -> tuple[ResultsFile, list[AlternativeResult]]:
    """Run full pipeline: load → validate → evaluate → rank/store.

    Args:
        project: ProjectFile, path to a project JSON file or stored project name.
        data_dir: Data directory path. Uses default if None.
        output: Optional path to write the results JSON to.
        workers: Thread count for batch evaluation. Uses settings if None.
        save: If True, store results under the data directory.
        settings: Evaluation settings. Uses defaults if None.

    Returns:
        Tuple of (results_file, ranking) where ranking lists results best first.

    Raises:
        DomainError: If the criterion tree is incomplete.
    """
    start_time = datetime.now(UTC)
    data_dir = Path(data_dir) if data_dir else DEFAULT_DATA_DIR

    # Step 1: Load
    logger.info("Step 1/4: Loading project...")
    project_file = resolve_project(project, data_dir)
    logger.info(
        f"Loaded project '{project_file.name}': {len(project_file.tree.nodes)} nodes, "
        f"{len(project_file.alternatives)} alternatives"
    )

    # Step 2: Validate
    logger.info("Step 2/4: Validating criterion tree...")
    project_file.tree.require_complete()
    for leaf_id in project_file.missing_query_specs():
        logger.warning(f"Leaf {leaf_id} has no elementary criterion and will be undefined")

    # Step 3: Evaluate
    logger.info("Step 3/4: Evaluating alternatives...")
    evaluator = TreeEvaluator(settings)
    results = evaluator.evaluate_batch(
        project_file.tree,
        project_file.query_specs,
        project_file.alternatives,
        workers=workers,
    )
    issue_count = sum(len(result.issues) for result in results.values())
    if issue_count:
        logger.warning(f"{issue_count} leaf value(s) could not be scored and were excluded")

    # Step 4: Rank and store
    logger.info("Step 4/4: Ranking alternatives...")
    ranking = rank_alternatives(results.values())
    results_file = ResultsFile(
        project_name=project_file.name,
        node_numbers=project_file.tree.node_numbers(),
        node_names={node.id: node.name for node in project_file.tree.iter_preorder()},
        results=results,
        ranking=[result.alternative_id for result in ranking],
    )

    if save:
        FileManager(data_dir).save_results(results_file)
    if output:
        output = Path(output)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(results_file.model_dump_json(indent=2), encoding="utf-8")
        logger.info(f"Wrote results to {output}")

    elapsed = (datetime.now(UTC) - start_time).total_seconds()
    logger.info(f"Pipeline complete in {elapsed:.2f}s")
    return results_file, ranking
