from yarl import URL

from ado_bridge.exceptions import InvalidProjectUrlError


def _parse(project_url: str) -> tuple[URL, tuple[str, ...]]:
    url = URL(project_url.strip())
    if not url.scheme or not url.host:
        raise InvalidProjectUrlError(
            f"Project URL '{project_url}' must be absolute, e.g. https://dev.azure.com/organization/project"
        )
    segments = tuple(part for part in url.parts if part not in ("", "/"))
    if not segments:
        raise InvalidProjectUrlError(
            f"Project URL '{project_url}' does not contain a project name"
        )
    return url, segments


def get_collection_url(project_url: str) -> str:
    """
    Return the organization / collection part of a project URL.

    ``https://dev.azure.com/org/project`` becomes ``https://dev.azure.com/org`` and
    ``https://server:8080/tfs/DefaultCollection/project`` becomes
    ``https://server:8080/tfs/DefaultCollection``.
    """
    url, segments = _parse(project_url)
    collection = url.with_path("/" + "/".join(segments[:-1]), encoded=False)
    return str(collection.with_query(None).with_fragment(None)).rstrip("/")


def get_project_name(project_url: str) -> str:
    _, segments = _parse(project_url)
    return segments[-1]


def get_release_url(collection_url: str) -> str:
    """Release management lives on a separate host for the hosted service."""
    url = URL(collection_url)
    host = url.host or ""
    if host == "dev.azure.com":
        url = url.with_host("vsrm.dev.azure.com")
    elif host.endswith(".visualstudio.com") and ".vsrm." not in host:
        organization = host.removesuffix(".visualstudio.com")
        url = url.with_host(f"{organization}.vsrm.visualstudio.com")
    return str(url).rstrip("/")
