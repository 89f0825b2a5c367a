"""
Tooth metadata route.

Serves the manifest, readme and available versions of one tooth version,
read live from GitHub and the Go module proxy.
"""

import logging
import re
from typing import List, Optional

from fastapi import APIRouter, Depends, Request

from tooth_index.api.dependencies import get_source_client
from tooth_index.api.responses import error_response, success_response
from tooth_index.api.tooth_metadata import ToothMetadata, is_valid_version_string, parse_accept_language
from tooth_index.core.exceptions import UpstreamError, UpstreamNotFound, ValidationError
from tooth_index.fetcher.base import HttpSourceClient, gather
from tooth_index.fetcher.github import GITHUB_RAW_URL
from tooth_index.fetcher.levilamina import GOPROXY_URL, escape_for_goproxy, strip_go_version


logger = logging.getLogger(__name__)

TOOTH_PATH_RE = re.compile(r'^github\.com/(?P<owner>[a-zA-Z0-9-]+)/(?P<repo>[a-zA-Z0-9_.-]+)$')

router = APIRouter()


def fetch_tooth_metadata(client: HttpSourceClient, owner: str, repo: str, version: str) -> ToothMetadata:
    url = f"{GITHUB_RAW_URL}/{owner}/{repo}/v{version}/tooth.json"
    text = client.get_text(url)
    if text is None:
        raise UpstreamNotFound(f"Failed to fetch tooth.json: {url} not found", url)
    return ToothMetadata.from_json_string(text)


def fetch_readme_for_language(
    client: HttpSourceClient,
    owner: str,
    repo: str,
    version: str,
    language: Optional[str]
) -> Optional[str]:
    filename = f"README.{language}.md" if language else "README.md"
    try:
        return client.get_text(f"{GITHUB_RAW_URL}/{owner}/{repo}/v{version}/{filename}")
    except UpstreamError as e:
        logger.debug(f"No {filename} for {owner}/{repo}@v{version}: {e}")
        return None


def fetch_readme(
    client: HttpSourceClient,
    owner: str,
    repo: str,
    version: str,
    languages: List[str]
) -> Optional[str]:
    """
    Fetch the readme best matching the accepted languages.

    Every candidate is requested concurrently; the first existing one in
    preference order wins, with the plain README.md last.

    Returns:
        Readme content, or None if the tooth has no readme at that version.
    """
    candidates = [*languages, None]
    readmes = gather(*(
        (lambda language=language: fetch_readme_for_language(client, owner, repo, version, language))
        for language in candidates
    ))
    for readme in readmes:
        if readme is not None:
            return readme
    return None


def fetch_version_list(client: HttpSourceClient, owner: str, repo: str) -> List[str]:
    url = f"{GOPROXY_URL}/github.com/{escape_for_goproxy(owner)}/{escape_for_goproxy(repo)}/@v/list"
    text = client.get_text(url)
    if text is None:
        raise UpstreamNotFound(f"Failed to fetch version list: {url} not found", url)
    return [strip_go_version(line.strip()) for line in text.split('\n') if line.strip()]


@router.get("/{tooth:path}/{version}")
def get_tooth(
    tooth: str,
    version: str,
    request: Request,
    client: HttpSourceClient = Depends(get_source_client)
):
    """
    Get the metadata of one tooth version.

    ``tooth`` is a tooth path such as ``github.com/owner/repo`` and
    ``version`` a semantic version without the ``v`` prefix.
    """
    try:
        match = TOOTH_PATH_RE.match(tooth)
        if match is None:
            raise ValidationError("Invalid parameter - tooth.")
        if not is_valid_version_string(version):
            raise ValidationError("Invalid parameter - version.")

        owner = match.group("owner")
        repo = match.group("repo")
        languages = parse_accept_language(request.headers.get("accept-language", ""))

        metadata, readme, available_versions = gather(
            lambda: fetch_tooth_metadata(client, owner, repo, version),
            lambda: fetch_readme(client, owner, repo, version, languages),
            lambda: fetch_version_list(client, owner, repo),
        )

        return success_response({
            "tooth": metadata.tooth,
            "version": metadata.version,
            "name": metadata.name,
            "description": metadata.description,
            "author": metadata.author,
            "available_versions": available_versions,
            "readme": readme,
            "tags": metadata.tags,
            "dependencies": metadata.dependencies,
        })

    except ValidationError as e:
        return error_response(400, str(e))
    except UpstreamError as e:
        return error_response(e.status_code, e.message)
    except Exception:
        logger.exception(f"Failed to serve tooth {tooth}@{version}")
        return error_response(500, "Internal server error.")
