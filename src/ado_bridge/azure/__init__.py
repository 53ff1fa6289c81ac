from typing import Any

import aiohttp

from ado_bridge import logger, metrics
from ado_bridge.config import Config
from ado_bridge.url import get_collection_url, get_release_url
from ado_bridge.azure.models import (
    Build,
    BuildDefinition,
    BuildRequest,
    DefinitionReference,
    Release,
    ReleaseDefinition,
    ReleaseStartMetadata,
)


class AzureDevOps:
    def __init__(self, session: aiohttp.ClientSession, config: Config):
        self.session = session
        self.config = config
        self.collection_url = get_collection_url(config.AZURE_DEVOPS_PROJECT_URL)
        self.release_url = get_release_url(self.collection_url)
        self._auth = aiohttp.BasicAuth("", config.AZURE_DEVOPS_TOKEN)
        self._headers = {"Accept": "application/json"}

    def _params(self, **params) -> dict[str, str]:
        return {"api-version": self.config.API_VERSION, **params}

    async def _get(self, url: str, endpoint: str, params: dict[str, str]) -> Any:
        logger.debug("GET %s", url)
        with metrics.track_azure_api_call(endpoint, "GET"):
            async with self.session.get(
                url, params=params, headers=self._headers, auth=self._auth
            ) as resp:
                metrics.azure_api_calls_total.labels(
                    endpoint, "GET", str(resp.status)
                ).inc()
                resp.raise_for_status()
                return await resp.json()

    async def _post(
        self, url: str, endpoint: str, params: dict[str, str], payload: dict
    ) -> Any:
        logger.debug("POST %s", url)
        with metrics.track_azure_api_call(endpoint, "POST"):
            async with self.session.post(
                url,
                params=params,
                json=payload,
                headers=self._headers,
                auth=self._auth,
            ) as resp:
                metrics.azure_api_calls_total.labels(
                    endpoint, "POST", str(resp.status)
                ).inc()
                resp.raise_for_status()
                return await resp.json()

    def build_url(self, project: str, path: str) -> str:
        return f"{self.collection_url}/{project}/_apis/build/{path}"

    def release_api_url(self, project: str, path: str) -> str:
        return f"{self.release_url}/{project}/_apis/release/{path}"

    async def get_build_definitions(
        self, project: str, name: str
    ) -> list[DefinitionReference]:
        data = await self._get(
            self.build_url(project, "definitions"),
            "build/definitions",
            self._params(name=name),
        )
        return [DefinitionReference.model_validate(item) for item in data["value"]]

    async def get_build_definition(
        self, project: str, definition_id: int
    ) -> BuildDefinition:
        data = await self._get(
            self.build_url(project, f"definitions/{definition_id}"),
            "build/definitions/{id}",
            self._params(),
        )
        return BuildDefinition.model_validate(data)

    async def queue_build(
        self, project_id: str, build: BuildRequest, ignore_warnings: bool = True
    ) -> Build:
        data = await self._post(
            self.build_url(project_id, "builds"),
            "build/builds",
            self._params(ignoreWarnings=str(ignore_warnings).lower()),
            build.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        return Build.model_validate(data)

    async def get_build(self, project: str, build_id: int) -> Build:
        data = await self._get(
            self.build_url(project, f"builds/{build_id}"),
            "build/builds/{id}",
            self._params(),
        )
        return Build.model_validate(data)

    async def get_release_definitions(
        self, project: str, name: str
    ) -> list[ReleaseDefinition]:
        data = await self._get(
            self.release_api_url(project, "definitions"),
            "release/definitions",
            self._params(
                searchText=name, isExactNameMatch="true", **{"$expand": "artifacts"}
            ),
        )
        return [ReleaseDefinition.model_validate(item) for item in data["value"]]

    async def create_release(
        self, project: str, metadata: ReleaseStartMetadata
    ) -> Release:
        data = await self._post(
            self.release_api_url(project, "releases"),
            "release/releases",
            self._params(),
            metadata.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        return Release.model_validate(data)

    async def get_release(self, project: str, release_id: int) -> Release:
        data = await self._get(
            self.release_api_url(project, f"releases/{release_id}"),
            "release/releases/{id}",
            self._params(),
        )
        return Release.model_validate(data)
