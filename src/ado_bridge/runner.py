import asyncio
import json
from collections.abc import Awaitable, Callable

from ado_bridge import actions, log, logger, metrics, utils
from ado_bridge.azure import AzureDevOps
from ado_bridge.azure.models import (
    ArtifactMetadata,
    BuildRepository,
    BuildRequest,
    BuildVersion,
    DefinitionReference,
    ProjectReference,
    ReleaseStartMetadata,
    RunResult,
    build_run_result,
    release_run_result,
)
from ado_bridge.config import Config, SourceReference
from ado_bridge.exceptions import (
    PipelineNotFoundError,
    PipelineValidationError,
    RunFailedError,
)
from ado_bridge.url import get_project_name


class PipelineRunner:
    def __init__(self, config: Config, source: SourceReference, client: AzureDevOps):
        self.config = config
        self.source = source
        self.client = client
        self.project_name = get_project_name(config.AZURE_DEVOPS_PROJECT_URL)
        self.pipeline_name = config.AZURE_PIPELINE_NAME

    def target_branch(self) -> str | None:
        """Branch override if one was given, otherwise the branch of the workflow run."""
        return utils.format_branch(
            self.config.AZURE_PIPELINE_BRANCH or self.source.branch_name
        )

    async def start(self) -> RunResult | None:
        with actions.group("Branch info"):
            logger.info(
                'Input azure-pipeline-branch: "%s"', self.config.AZURE_PIPELINE_BRANCH
            )
            logger.info('GitHub GITHUB_REF: "%s"', self.source.GITHUB_REF)
            logger.info('GitHub repository: "%s"', self.source.GITHUB_REPOSITORY)
            logger.info('Extracted GitHub branch: "%s"', self.source.branch_name)

        try:
            logger.debug('Triggering Yaml pipeline : "%s"', self.pipeline_name)
            return await self.run_yaml_pipeline()
        except PipelineNotFoundError as e:
            logger.debug("%s", e)
            logger.debug('Triggering Designer pipeline : "%s"', self.pipeline_name)
            return await self.run_designer_pipeline()

    async def run_yaml_pipeline(self) -> RunResult | None:
        definitions = await self.client.get_build_definitions(
            self.project_name, self.pipeline_name
        )
        utils.ensure_valid_pipeline(self.project_name, self.pipeline_name, definitions)

        with metrics.track_pipeline_run("yaml"):
            definition = await self.client.get_build_definition(
                self.project_name, definitions[0].id
            )
            log.log_pipeline_object(definition)

            request = self.build_request(definition)
            log.log_pipeline_trigger_input(request)

            if self.config.STERILE:
                logger.info("Sterile mode: skipping build queueing")
                return None

            queued = await self.client.queue_build(request.project.id, request)
            log.log_pipeline_trigger_output(queued)
            if queued.validation_results:
                errors, warnings = utils.error_and_warning_messages(
                    queued.validation_results
                )
                raise PipelineValidationError(f"Errors: {errors} Warnings: {warnings}")

            metrics.pipelines_triggered_total.labels("yaml").inc()
            log.log_pipeline_triggered(self.pipeline_name, self.project_name)
            result = build_run_result(queued)
            self.report(result)
            log.log_output_url(result.web_url)

            result = await self.wait_for_completion(
                "yaml",
                lambda: self._poll_build(queued.id),
            )

            logger.info('Build Status = "%s"', result.status)
            logger.info('Build Result = "%s"', result.outcome)
            if not result.succeeded:
                raise RunFailedError("Build failed or canceled.")

            logger.info("Build succeed.")
            log.log_output_url(result.web_url)
            return result

    async def _poll_build(self, build_id: int) -> RunResult:
        build = await self.client.get_build(self.project_name, build_id)
        return build_run_result(build)

    def build_request(self, definition) -> BuildRequest:
        source_branch = None
        source_version = None
        repository = definition.repository

        repository_id = repository.id.strip() if repository else None
        repository_type = repository.type.strip() if repository else None

        with actions.group("Repository matching"):
            logger.info('Pipeline repository ID: "%s"', repository_id)
            logger.info('GitHub repository: "%s"', self.source.GITHUB_REPOSITORY)
            logger.info('Pipeline repository type: "%s"', repository_type)
            logger.info('Expected type: "%s"', utils.GITHUB_REPOSITORY_TYPE)

        if utils.equals(
            repository_id, self.source.GITHUB_REPOSITORY
        ) and utils.equals(repository_type, utils.GITHUB_REPOSITORY_TYPE):
            logger.debug("pipeline is linked to same Github repo")
            source_branch = self.target_branch()
            source_version = self.source.GITHUB_SHA
            logger.info("Final target branch for Azure DevOps: %s", source_branch)
        elif self.config.AZURE_PIPELINE_BRANCH:
            logger.info(
                "Pipeline is not linked to same Github repo, but custom branch specified"
            )
            source_branch = utils.format_branch(self.config.AZURE_PIPELINE_BRANCH)
            logger.info("Using custom branch for non-GitHub pipeline: %s", source_branch)
        else:
            logger.debug("pipeline is not linked to same Github repo")

        variables = self.config.AZURE_PIPELINE_VARIABLES
        return BuildRequest(
            definition=DefinitionReference(id=definition.id),
            project=ProjectReference(id=definition.project.id),
            source_branch=source_branch,
            source_version=source_version,
            parameters=json.dumps(variables) if variables is not None else None,
            repository=(
                BuildRepository(id=repository_id, type=repository_type)
                if source_branch and repository is not None
                else None
            ),
        )

    async def run_designer_pipeline(self) -> RunResult | None:
        definitions = await self.client.get_release_definitions(
            self.project_name, self.pipeline_name
        )
        utils.ensure_valid_pipeline(self.project_name, self.pipeline_name, definitions)

        with metrics.track_pipeline_run("designer"):
            definition = definitions[0]
            log.log_pipeline_object(definition)

            metadata = self.release_metadata(definition)
            log.log_pipeline_trigger_input(metadata)

            if self.config.STERILE:
                logger.info("Sterile mode: skipping release creation")
                return None

            release = await self.client.create_release(self.project_name, metadata)
            metrics.pipelines_triggered_total.labels("designer").inc()
            log.log_pipeline_triggered(self.pipeline_name, self.project_name)
            log.log_pipeline_trigger_output(release)

            result = release_run_result(release)
            self.report(result)
            log.log_output_url(result.web_url)

            if not self.config.WAIT_FOR_RELEASE:
                return result

            result = await self.wait_for_completion(
                "designer",
                lambda: self._poll_release(release.id),
            )
            logger.info('Release Status = "%s"', result.status)
            logger.info('Release Result = "%s"', result.outcome)
            if not result.succeeded:
                raise RunFailedError("Release failed or canceled.")

            logger.info("Release succeed.")
            return result

    async def _poll_release(self, release_id: int) -> RunResult:
        release = await self.client.get_release(self.project_name, release_id)
        return release_run_result(release)

    def release_metadata(self, definition) -> ReleaseStartMetadata:
        artifacts = []
        github_artifacts = [
            a for a in definition.artifacts if utils.is_github_artifact(a)
        ]

        if not github_artifacts:
            logger.debug("Pipeline is not linked to any GitHub artifact")
        else:
            logger.debug(
                "Pipeline is linked to GitHub artifact. Looking for a matching repository"
            )
            for artifact in github_artifacts:
                reference = artifact.definition_reference
                if reference is None or reference.definition is None:
                    continue
                if not utils.equals(
                    reference.definition.name, self.source.GITHUB_REPOSITORY
                ):
                    continue

                target_branch = self.target_branch()
                logger.info("Final target branch for Azure DevOps: %s", target_branch)
                logger.debug("pipeline is linked to same Github repo")
                artifacts.append(
                    ArtifactMetadata(
                        alias=artifact.alias,
                        instance_reference=BuildVersion(
                            id=self.source.GITHUB_SHA,
                            source_branch=target_branch,
                            source_repository_type=utils.GITHUB_REPOSITORY_TYPE,
                            source_repository_id=self.source.GITHUB_REPOSITORY,
                            source_version=self.source.GITHUB_SHA,
                        ),
                    )
                )

        return ReleaseStartMetadata(
            definition_id=definition.id,
            artifacts=artifacts,
            variables=utils.release_variables(self.config.AZURE_PIPELINE_VARIABLES),
        )

    async def wait_for_completion(
        self,
        pipeline_type: str,
        poll: Callable[[], Awaitable[RunResult]],
    ) -> RunResult:
        """Poll until the run is terminal, the first poll happens right away."""
        result = None
        while result is None or not result.is_terminal:
            if result is not None:
                await asyncio.sleep(self.config.POLL_INTERVAL)
            result = await poll()
            metrics.run_status_polls_total.labels(pipeline_type).inc()
            logger.debug('Run status = "%s"', result.status)

        metrics.pipeline_runs_completed_total.labels(
            pipeline_type, result.outcome
        ).inc()
        return result

    def report(self, result: RunResult):
        actions.set_output("run-id", str(result.id))
        if result.web_url:
            actions.set_output("pipeline-url", result.web_url)
