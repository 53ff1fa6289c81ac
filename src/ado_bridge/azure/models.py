from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class AzureModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class WebLink(AzureModel):
    href: str


class Links(AzureModel):
    web: WebLink | None = None


class ProjectReference(AzureModel):
    id: str
    name: str | None = None


class BuildRepository(AzureModel):
    id: str
    type: str


class DefinitionReference(AzureModel):
    id: int
    name: str | None = None


class BuildDefinition(AzureModel):
    id: int
    name: str
    project: ProjectReference
    repository: BuildRepository | None = None


class BuildStatus(StrEnum):
    none = "none"
    in_progress = "inProgress"
    completed = "completed"
    cancelling = "cancelling"
    postponed = "postponed"
    not_started = "notStarted"
    all = "all"


class BuildResult(StrEnum):
    none = "none"
    succeeded = "succeeded"
    partially_succeeded = "partiallySucceeded"
    failed = "failed"
    canceled = "canceled"


class BuildReason(StrEnum):
    manual = "manual"
    individual_ci = "individualCI"
    triggered = "triggered"


class ValidationResult(AzureModel):
    result: str | None = None
    message: str | None = None


class BuildRequest(AzureModel):
    definition: DefinitionReference
    project: ProjectReference
    source_branch: str | None = Field(default=None, alias="sourceBranch")
    source_version: str | None = Field(default=None, alias="sourceVersion")
    reason: BuildReason = BuildReason.triggered
    parameters: str | None = None
    repository: BuildRepository | None = None


class Build(AzureModel):
    id: int
    build_number: str | None = Field(default=None, alias="buildNumber")
    status: BuildStatus | None = None
    result: BuildResult | None = None
    validation_results: list[ValidationResult] = Field(
        default_factory=list, alias="validationResults"
    )
    links: Links | None = Field(default=None, alias="_links")


class ArtifactDefinition(AzureModel):
    id: str | None = None
    name: str | None = None


class ArtifactSourceReference(AzureModel):
    definition: ArtifactDefinition | None = None


class Artifact(AzureModel):
    alias: str
    type: str | None = None
    definition_reference: ArtifactSourceReference | None = Field(
        default=None, alias="definitionReference"
    )


class ReleaseDefinition(AzureModel):
    id: int
    name: str
    artifacts: list[Artifact] = Field(default_factory=list)


class ReleaseReason(StrEnum):
    none = "none"
    manual = "manual"
    continuous_integration = "continuousIntegration"
    schedule = "schedule"


class BuildVersion(AzureModel):
    id: str
    source_branch: str | None = Field(default=None, alias="sourceBranch")
    source_repository_type: str = Field(alias="sourceRepositoryType")
    source_repository_id: str = Field(alias="sourceRepositoryId")
    source_version: str = Field(alias="sourceVersion")


class ArtifactMetadata(AzureModel):
    alias: str
    instance_reference: BuildVersion = Field(alias="instanceReference")


class ConfigurationVariableValue(AzureModel):
    value: str


class ReleaseStartMetadata(AzureModel):
    definition_id: int = Field(alias="definitionId")
    reason: ReleaseReason = ReleaseReason.continuous_integration
    artifacts: list[ArtifactMetadata] = Field(default_factory=list)
    variables: dict[str, ConfigurationVariableValue] | None = None


class EnvironmentStatus(StrEnum):
    undefined = "undefined"
    not_started = "notStarted"
    in_progress = "inProgress"
    succeeded = "succeeded"
    canceled = "canceled"
    rejected = "rejected"
    queued = "queued"
    scheduled = "scheduled"
    partially_succeeded = "partiallySucceeded"


class ReleaseCondition(AzureModel):
    condition_type: str | None = Field(default=None, alias="conditionType")
    name: str | None = None
    value: str | None = None
    result: bool | None = None


class ReleaseEnvironment(AzureModel):
    id: int | None = None
    name: str
    status: EnvironmentStatus = EnvironmentStatus.undefined
    conditions: list[ReleaseCondition] = Field(default_factory=list)


class Release(AzureModel):
    id: int
    name: str | None = None
    status: str | None = None
    environments: list[ReleaseEnvironment] = Field(default_factory=list)
    links: Links | None = Field(default=None, alias="_links")


class RunStatus(StrEnum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"


class RunOutcome(StrEnum):
    none = "none"
    succeeded = "succeeded"
    failed = "failed"
    canceled = "canceled"


class RunResult(AzureModel):
    """Pipeline-type independent view of a triggered run."""

    id: int
    status: RunStatus
    outcome: RunOutcome = RunOutcome.none
    web_url: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status == RunStatus.completed

    @property
    def succeeded(self) -> bool:
        return self.is_terminal and self.outcome == RunOutcome.succeeded


def web_url(links: Links | None) -> str | None:
    if links is None or links.web is None:
        return None
    return links.web.href


def build_run_result(build: Build) -> RunResult:
    if build.status in (
        BuildStatus.not_started,
        BuildStatus.postponed,
        BuildStatus.none,
        None,
    ):
        status = RunStatus.pending
    elif build.status in (BuildStatus.in_progress, BuildStatus.cancelling):
        status = RunStatus.in_progress
    else:
        status = RunStatus.completed

    if status != RunStatus.completed:
        outcome = RunOutcome.none
    elif build.result == BuildResult.succeeded:
        outcome = RunOutcome.succeeded
    elif build.result == BuildResult.canceled:
        outcome = RunOutcome.canceled
    else:
        outcome = RunOutcome.failed

    return RunResult(
        id=build.id, status=status, outcome=outcome, web_url=web_url(build.links)
    )


def _will_start(
    environment: ReleaseEnvironment, statuses: dict[str, EnvironmentStatus]
) -> bool:
    """A stage that has not started yet but is triggered without a manual action."""
    for condition in environment.conditions:
        if condition.result:
            return True
        condition_type = (condition.condition_type or "").lower()
        if condition_type == "event" and condition.name == "ReleaseStarted":
            return True
        if (
            condition_type == "environmentstate"
            and statuses.get(condition.name) == EnvironmentStatus.succeeded
        ):
            return True
    return False


def release_run_result(release: Release) -> RunResult:
    statuses = [environment.status for environment in release.environments]
    by_name = {
        environment.name: environment.status for environment in release.environments
    }
    active = {
        EnvironmentStatus.in_progress,
        EnvironmentStatus.queued,
        EnvironmentStatus.scheduled,
    }
    idle = {EnvironmentStatus.not_started, EnvironmentStatus.undefined}

    # Stages behind a manual trigger never start on their own and do not keep
    # the release open.
    if any(status in active for status in statuses):
        status = RunStatus.in_progress
    elif any(
        environment.status in idle and _will_start(environment, by_name)
        for environment in release.environments
    ):
        status = RunStatus.pending
    else:
        status = RunStatus.completed

    if status != RunStatus.completed:
        outcome = RunOutcome.none
    elif EnvironmentStatus.rejected in statuses:
        outcome = RunOutcome.failed
    elif EnvironmentStatus.canceled in statuses:
        outcome = RunOutcome.canceled
    elif EnvironmentStatus.partially_succeeded in statuses:
        outcome = RunOutcome.failed
    else:
        outcome = RunOutcome.succeeded

    return RunResult(
        id=release.id, status=status, outcome=outcome, web_url=web_url(release.links)
    )
