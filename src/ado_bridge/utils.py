from collections.abc import Sequence
from typing import TYPE_CHECKING

from ado_bridge import logger
from ado_bridge.exceptions import PipelineNotFoundError

if TYPE_CHECKING:
    from ado_bridge.azure.models import Artifact, ValidationResult

HEADS_PREFIX = "refs/heads/"
GITHUB_REPOSITORY_TYPE = "GitHub"


def equals(left: str | None, right: str | None) -> bool:
    if left is None or right is None:
        return left is right
    return left.strip().lower() == right.strip().lower()


def github_branch_name(ref: str | None) -> str | None:
    """Turn ``refs/heads/<branch>`` into ``<branch>``, leave tags and PR refs alone."""
    if ref and ref.startswith(HEADS_PREFIX):
        return ref.removeprefix(HEADS_PREFIX)
    return ref


def format_branch(branch_name: str | None) -> str | None:
    """
    Format a branch for a build or release request.

    Azure DevOps accepts bare branch names for GitHub-backed definitions, so a
    fully qualified ``refs/heads/`` ref is shortened. Empty names become ``None``.
    """
    if not branch_name:
        return None
    return branch_name.removeprefix(HEADS_PREFIX)


def ensure_valid_pipeline(project_name: str, pipeline_name: str, definitions: Sequence):
    if not definitions:
        raise PipelineNotFoundError(
            f"Pipeline named '{pipeline_name}' not found in project '{project_name}'"
        )
    if len(definitions) > 1:
        logger.warning(
            "Found %d pipelines named '%s' in project '%s', using the first one",
            len(definitions),
            pipeline_name,
            project_name,
        )


def is_github_artifact(artifact: "Artifact") -> bool:
    return equals(artifact.type, GITHUB_REPOSITORY_TYPE)


def error_and_warning_messages(
    validation_results: "Sequence[ValidationResult]",
) -> tuple[str, str]:
    errors = []
    warnings = []
    for result in validation_results:
        if equals(result.result, "error"):
            errors.append(result.message or "")
        elif equals(result.result, "warning"):
            warnings.append(result.message or "")
    return " ".join(errors), " ".join(warnings)


def release_variables(variables: dict[str, str] | None) -> dict[str, dict] | None:
    if variables is None:
        return None
    return {name: {"value": value} for name, value in variables.items()}
