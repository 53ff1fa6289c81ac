import json
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from ado_bridge import logger
from ado_bridge.exceptions import InvalidInputError
from ado_bridge.utils import github_branch_name


def _action_input(name: str, **kwargs) -> Any:
    # The runner exposes `with:` inputs as INPUT_<NAME> with dashes preserved.
    return Field(
        validation_alias=AliasChoices(
            f"INPUT_{name.upper()}", name.upper().replace("-", "_")
        ),
        **kwargs,
    )


class Config(BaseSettings):
    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    # Defaults let the required-input check run when a variable is unset.
    AZURE_DEVOPS_PROJECT_URL: str = _action_input(
        "azure-devops-project-url", default="", validate_default=True
    )
    AZURE_PIPELINE_NAME: str = _action_input(
        "azure-pipeline-name", default="", validate_default=True
    )
    AZURE_DEVOPS_TOKEN: str = _action_input(
        "azure-devops-token", default="", validate_default=True
    )
    AZURE_PIPELINE_VARIABLES: Annotated[dict[str, str] | None, NoDecode] = (
        _action_input("azure-pipeline-variables", default=None)
    )
    AZURE_PIPELINE_BRANCH: str | None = _action_input(
        "azure-pipeline-branch", default=None
    )

    POLL_INTERVAL: float = 60
    WAIT_FOR_RELEASE: bool = False
    API_VERSION: str = "6.0"

    OVERRIDE_LOGGING: Literal[
        "CRITICAL",
        "FATAL",
        "ERROR",
        "WARNING",
        "WARN",
        "INFO",
        "DEBUG",
        "NOTSET",
    ] = "INFO"

    STERILE: bool = False

    METRICS_PUSHGATEWAY_URL: str | None = None

    @field_validator(
        "AZURE_DEVOPS_PROJECT_URL",
        "AZURE_PIPELINE_NAME",
        "AZURE_DEVOPS_TOKEN",
        mode="before",
    )
    @classmethod
    def _required_input(cls, value, info):
        if value is None or not str(value).strip():
            name = info.field_name.lower().replace("_", "-")
            raise InvalidInputError(f"Input required and not supplied: {name}")
        return str(value).strip()

    @field_validator("AZURE_PIPELINE_BRANCH", "METRICS_PUSHGATEWAY_URL", mode="before")
    @classmethod
    def _optional_input(cls, value):
        if value is None or not str(value).strip():
            return None
        return str(value).strip()

    @field_validator("AZURE_PIPELINE_VARIABLES", mode="before")
    @classmethod
    def _parse_variables(cls, value):
        if value is None:
            return None
        if isinstance(value, str):
            if not value.strip():
                return None
            try:
                value = json.loads(value)
            except json.JSONDecodeError as e:
                raise InvalidInputError(
                    f"Pipeline variables are not valid JSON: {e}"
                ) from e
        if not isinstance(value, dict):
            raise InvalidInputError("Pipeline variables must be a JSON object")
        return {
            str(key): item if isinstance(item, str) else json.dumps(item)
            for key, item in value.items()
        }

    @field_validator("POLL_INTERVAL")
    @classmethod
    def _non_negative_interval(cls, value: float) -> float:
        if value < 0:
            raise ValueError("POLL_INTERVAL must not be negative")
        return value

    def print_config(self):
        """Print configuration values with sensitive attributes masked"""
        sensitive_attrs = {"AZURE_DEVOPS_TOKEN"}

        logger.info("=== Pipeline Bridge Configuration ===")
        for field_name, field_value in self.model_dump().items():
            if field_name in sensitive_attrs:
                logger.info(f"{field_name}: ***")
            else:
                logger.info(f"{field_name}: {field_value}")
        logger.info("=====================================")


class SourceReference(BaseSettings):
    """Source control metadata of the calling GitHub workflow run."""

    model_config = SettingsConfigDict(frozen=True)

    GITHUB_REPOSITORY: str
    GITHUB_REF: str
    GITHUB_SHA: str

    @property
    def branch_name(self) -> str:
        return github_branch_name(self.GITHUB_REF)
