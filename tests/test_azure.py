import aiohttp
import pytest
from unittest.mock import MagicMock

from ado_bridge import metrics
from ado_bridge.azure import AzureDevOps
from ado_bridge.azure.models import (
    ArtifactMetadata,
    BuildRequest,
    BuildStatus,
    BuildVersion,
    DefinitionReference,
    EnvironmentStatus,
    ProjectReference,
    ReleaseStartMetadata,
)


@pytest.mark.asyncio
async def test_client_urls(config, session):
    client = AzureDevOps(session=session, config=config)

    assert client.collection_url == "https://dev.azure.com/test_org"
    assert client.release_url == "https://vsrm.dev.azure.com/test_org"
    assert client._auth == aiohttp.BasicAuth("", "abc")
    assert "Authorization" not in client._headers


@pytest.mark.asyncio
async def test_get_build_definitions(config, make_response):
    session = MagicMock()
    session.get.return_value = make_response(
        {"count": 1, "value": [{"id": 12, "name": "test-pipeline", "path": "\\"}]}
    )

    client = AzureDevOps(session=session, config=config)
    definitions = await client.get_build_definitions("test_project", "test-pipeline")

    assert definitions == [DefinitionReference(id=12, name="test-pipeline")]
    session.get.assert_called_once()
    url = session.get.call_args[0][0]
    kwargs = session.get.call_args[1]
    assert url == "https://dev.azure.com/test_org/test_project/_apis/build/definitions"
    assert kwargs["params"] == {"api-version": "6.0", "name": "test-pipeline"}
    assert kwargs["auth"] == aiohttp.BasicAuth("", "abc")


@pytest.mark.asyncio
async def test_get_build_definition(config, make_response):
    session = MagicMock()
    session.get.return_value = make_response(
        {
            "id": 12,
            "name": "test-pipeline",
            "project": {"id": "project-guid", "name": "test_project"},
            "repository": {"id": "test_org/test_repo", "type": "GitHub"},
            "process": {"yamlFilename": "azure-pipelines.yml"},
        }
    )

    client = AzureDevOps(session=session, config=config)
    definition = await client.get_build_definition("test_project", 12)

    assert definition.id == 12
    assert definition.project.id == "project-guid"
    assert definition.repository.id == "test_org/test_repo"
    assert definition.repository.type == "GitHub"
    assert session.get.call_args[0][0].endswith("/_apis/build/definitions/12")


@pytest.mark.asyncio
async def test_queue_build(config, make_response):
    session = MagicMock()
    session.post.return_value = make_response(
        {
            "id": 345,
            "buildNumber": "20240101.1",
            "status": "notStarted",
            "_links": {"web": {"href": "https://dev.azure.com/test_org/build/345"}},
        }
    )

    request = BuildRequest(
        definition=DefinitionReference(id=12),
        project=ProjectReference(id="project-guid"),
        source_branch="main",
        source_version="abc123",
    )

    client = AzureDevOps(session=session, config=config)
    build = await client.queue_build("project-guid", request)

    assert build.id == 345
    assert build.status == BuildStatus.not_started
    assert build.links.web.href == "https://dev.azure.com/test_org/build/345"
    assert build.validation_results == []

    url = session.post.call_args[0][0]
    kwargs = session.post.call_args[1]
    assert url == "https://dev.azure.com/test_org/project-guid/_apis/build/builds"
    assert kwargs["params"] == {"api-version": "6.0", "ignoreWarnings": "true"}
    assert kwargs["json"] == {
        "definition": {"id": 12},
        "project": {"id": "project-guid"},
        "sourceBranch": "main",
        "sourceVersion": "abc123",
        "reason": "triggered",
    }


@pytest.mark.asyncio
async def test_get_release_definitions(config, make_response):
    session = MagicMock()
    session.get.return_value = make_response(
        {
            "count": 1,
            "value": [
                {
                    "id": 7,
                    "name": "test-pipeline",
                    "artifacts": [
                        {
                            "alias": "_test_repo",
                            "type": "GitHub",
                            "definitionReference": {
                                "definition": {
                                    "id": "test_org/test_repo",
                                    "name": "test_org/test_repo",
                                }
                            },
                        }
                    ],
                }
            ],
        }
    )

    client = AzureDevOps(session=session, config=config)
    definitions = await client.get_release_definitions("test_project", "test-pipeline")

    assert len(definitions) == 1
    assert definitions[0].artifacts[0].alias == "_test_repo"
    assert (
        definitions[0].artifacts[0].definition_reference.definition.name
        == "test_org/test_repo"
    )

    url = session.get.call_args[0][0]
    kwargs = session.get.call_args[1]
    assert (
        url
        == "https://vsrm.dev.azure.com/test_org/test_project/_apis/release/definitions"
    )
    assert kwargs["params"]["searchText"] == "test-pipeline"
    assert kwargs["params"]["isExactNameMatch"] == "true"
    assert kwargs["params"]["$expand"] == "artifacts"


@pytest.mark.asyncio
async def test_create_release(config, make_response):
    session = MagicMock()
    session.post.return_value = make_response(
        {
            "id": 99,
            "name": "Release-99",
            "environments": [{"id": 1, "name": "Stage 1", "status": "notStarted"}],
            "_links": {"web": {"href": "https://dev.azure.com/test_org/release/99"}},
        }
    )

    metadata = ReleaseStartMetadata(
        definition_id=7,
        artifacts=[
            ArtifactMetadata(
                alias="_test_repo",
                instance_reference=BuildVersion(
                    id="abc123",
                    source_branch="main",
                    source_repository_type="GitHub",
                    source_repository_id="test_org/test_repo",
                    source_version="abc123",
                ),
            )
        ],
        variables={"environment": {"value": "staging"}},
    )

    client = AzureDevOps(session=session, config=config)
    release = await client.create_release("test_project", metadata)

    assert release.id == 99
    assert release.environments[0].status == EnvironmentStatus.not_started

    kwargs = session.post.call_args[1]
    assert kwargs["json"] == {
        "definitionId": 7,
        "reason": "continuousIntegration",
        "artifacts": [
            {
                "alias": "_test_repo",
                "instanceReference": {
                    "id": "abc123",
                    "sourceBranch": "main",
                    "sourceRepositoryType": "GitHub",
                    "sourceRepositoryId": "test_org/test_repo",
                    "sourceVersion": "abc123",
                },
            }
        ],
        "variables": {"environment": {"value": "staging"}},
    }


@pytest.mark.asyncio
async def test_http_error_is_raised_and_counted(config, make_response):
    response = make_response(status=401)
    response.raise_for_status.side_effect = aiohttp.ClientResponseError(
        request_info=MagicMock(), history=(), status=401, message="Unauthorized"
    )
    session = MagicMock()
    session.get.return_value = response

    def sample(name, labels):
        return metrics.registry.get_sample_value(name, labels) or 0

    calls_before = sample(
        "ado_bridge_azure_api_calls_total",
        {"endpoint": "build/builds/{id}", "method": "GET", "status_code": "401"},
    )
    errors_before = sample(
        "ado_bridge_azure_api_call_errors_total",
        {
            "endpoint": "build/builds/{id}",
            "method": "GET",
            "error_type": "ClientResponseError",
        },
    )

    client = AzureDevOps(session=session, config=config)
    with pytest.raises(aiohttp.ClientResponseError):
        await client.get_build("test_project", 345)

    assert (
        sample(
            "ado_bridge_azure_api_calls_total",
            {"endpoint": "build/builds/{id}", "method": "GET", "status_code": "401"},
        )
        == calls_before + 1
    )
    assert (
        sample(
            "ado_bridge_azure_api_call_errors_total",
            {
                "endpoint": "build/builds/{id}",
                "method": "GET",
                "error_type": "ClientResponseError",
            },
        )
        == errors_before + 1
    )
