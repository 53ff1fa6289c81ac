import pytest
import aiohttp
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock, Mock

from ado_bridge import logger
from ado_bridge.config import Config, SourceReference


@pytest.fixture
def config():
    config = Config(
        AZURE_DEVOPS_PROJECT_URL="https://dev.azure.com/test_org/test_project",
        AZURE_PIPELINE_NAME="test-pipeline",
        AZURE_DEVOPS_TOKEN="abc",
        AZURE_PIPELINE_VARIABLES=None,
        AZURE_PIPELINE_BRANCH=None,
        POLL_INTERVAL=0,
        WAIT_FOR_RELEASE=False,
        OVERRIDE_LOGGING="DEBUG",
        STERILE=False,
        METRICS_PUSHGATEWAY_URL=None,
    )

    logger.setLevel(config.OVERRIDE_LOGGING)

    return config


@pytest.fixture
def source():
    return SourceReference(
        GITHUB_REPOSITORY="test_org/test_repo",
        GITHUB_REF="refs/heads/feature-branch",
        GITHUB_SHA="abc123def456",
    )


@pytest.fixture(autouse=True)
def github_output(tmp_path, monkeypatch):
    output_file = tmp_path / "github_output"
    output_file.touch()
    monkeypatch.setenv("GITHUB_OUTPUT", str(output_file))
    return output_file


def mock_response(data=None, status=200):
    response = MagicMock()
    response.status = status
    response.raise_for_status = Mock()
    response.json = AsyncMock(return_value=data)
    response.__aenter__.return_value = response
    response.__aexit__.return_value = None
    return response


@pytest_asyncio.fixture
async def session():
    async with aiohttp.ClientSession() as session:
        yield session


@pytest.fixture
def make_response():
    return mock_response


@pytest.fixture(autouse=True)
def reset_logging_handlers():
    yield
    logger.handlers.clear()
