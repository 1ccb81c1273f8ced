"""
Client for a GitHub-style Releases API.

Resolves a version tag, or "latest", to a ReleaseDescriptor. Transient
failures (timeouts, dropped connections, 5xx, rate limiting) are retried with
a delay that grows with the attempt number; everything else fails at once.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests

from libresolver.libresolver_config import ResolverConfig
from libresolver.libresolver_exceptions import (
    InvalidReleasePayload,
    LibresolverException,
    NetworkError,
    ReleaseNotFound,
)
from libresolver.libresolver_logger import LibresolverLogger
from libresolver.runtime_dependency_models import ReleaseDescriptor

RETRYABLE_STATUS = (429, 500, 502, 503, 504)

# pages of the release list searched for a stable release
MAX_RELEASE_PAGES = 10


class ReleaseClient:
    """
    Talks to the release host and maps its answers to ReleaseDescriptor objects.
    """

    def __init__(
        self,
        logger: LibresolverLogger,
        session: Optional[requests.Session] = None,
        api_base_url: str = "https://api.github.com",
        user_agent: str = "libresolver",
        api_version: str = "2022-11-28",
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        releases_per_page: int = 100,
    ):
        """
        Args:
            logger: Logger for progress and error messages
            session: HTTP session, a new requests.Session by default
            timeout: Per-attempt timeout in seconds
            max_retries: Retries after the first attempt for transient failures
            retry_base_delay: Delay before retry n is retry_base_delay * n seconds
            sleep: Used between retries
            releases_per_page: Page size when listing releases
        """
        self.logger = logger
        self.session = session or requests.Session()
        self.api_base_url = api_base_url.rstrip("/")
        self.user_agent = user_agent
        self.api_version = api_version
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.sleep = sleep
        self.releases_per_page = releases_per_page

    @classmethod
    def from_config(
        cls,
        config: ResolverConfig,
        logger: LibresolverLogger,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "ReleaseClient":
        return cls(
            logger,
            session=session,
            api_base_url=config.api_base_url,
            user_agent=config.user_agent,
            api_version=config.api_version,
            timeout=config.timeout,
            max_retries=config.max_retries,
            retry_base_delay=config.retry_base_delay,
            sleep=sleep,
        )

    def build_headers(self, token: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": self.user_agent,
            "X-GitHub-Api-Version": self.api_version,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def release_url(self, owner: str, repo: str, version: Optional[str] = None) -> str:
        """
        The tag endpoint for a concrete version, the "latest" endpoint otherwise.
        """
        base = f"{self.api_base_url}/repos/{owner}/{repo}/releases"
        if not version or version.strip().lower() == "latest":
            return f"{base}/latest"
        return f"{base}/tags/{version.strip()}"

    def resolve(
        self,
        owner: str,
        repo: str,
        version: str = "latest",
        token: Optional[str] = None,
    ) -> ReleaseDescriptor:
        """
        Resolve `version` to a release.

        If "latest" cannot be resolved, all releases are listed and the first
        stable one in server order is used instead.

        Raises:
            ReleaseNotFound: The tag does not exist, or nothing could be resolved
            NetworkError: A concrete tag could not be fetched after all retries
        """
        if not version or version.strip().lower() == "latest":
            return self._resolve_latest(owner, repo, token)
        return self._resolve_tag(owner, repo, version.strip(), token)

    def list_releases(
        self,
        owner: str,
        repo: str,
        token: Optional[str] = None,
        page: int = 1,
    ) -> List[ReleaseDescriptor]:
        """
        List one page of releases in the order the server returns them (newest first).
        """
        url = f"{self.api_base_url}/repos/{owner}/{repo}/releases?per_page={self.releases_per_page}&page={page}"
        action = f"listing releases of {owner}/{repo}"
        payload = self._get_json(url, token, action)
        if not isinstance(payload, list):
            raise InvalidReleasePayload(
                f"Expected a list of releases, got {type(payload).__name__}", action=action
            )
        return [ReleaseDescriptor.from_api(item) for item in payload]

    def _resolve_latest(self, owner: str, repo: str, token: Optional[str]) -> ReleaseDescriptor:
        url = self.release_url(owner, repo)
        try:
            release = ReleaseDescriptor.from_api(
                self._get_json(url, token, f"resolving latest release of {owner}/{repo}")
            )
            self.logger.log(f"Latest release of {owner}/{repo} is {release.tag}", logging.INFO)
            return release
        except LibresolverException as e:
            self.logger.log(
                f"Could not resolve latest release of {owner}/{repo} ({e}); falling back to the release list",
                logging.WARNING,
            )
            latest_error = e

        action = f"selecting the newest stable release of {owner}/{repo}"
        listed = 0
        for page in range(1, MAX_RELEASE_PAGES + 1):
            try:
                releases = self.list_releases(owner, repo, token, page=page)
            except LibresolverException as e:
                raise ReleaseNotFound(
                    f"No release of {owner}/{repo} could be resolved", action=action, cause=e
                ) from latest_error

            listed += len(releases)
            for release in releases:
                if not release.is_prerelease and not release.is_draft:
                    self.logger.log(f"Using release {release.tag} from the release list", logging.INFO)
                    return release
            if len(releases) < self.releases_per_page:
                break

        raise ReleaseNotFound(
            f"{owner}/{repo} has no stable release ({listed} listed)",
            action=action,
            cause=latest_error,
        )

    def _resolve_tag(self, owner: str, repo: str, tag: str, token: Optional[str]) -> ReleaseDescriptor:
        action = f"resolving release {tag} of {owner}/{repo}"
        last_error: Optional[ReleaseNotFound] = None
        for candidate in self._tag_variants(tag):
            try:
                payload = self._get_json(self.release_url(owner, repo, candidate), token, action)
            except InvalidReleasePayload:
                raise
            except ReleaseNotFound as e:
                last_error = e
                continue
            release = ReleaseDescriptor.from_api(payload)
            self.logger.log(f"Resolved {owner}/{repo} release {release.tag}", logging.INFO)
            return release

        raise ReleaseNotFound(
            f"Release {tag} of {owner}/{repo} does not exist", action=action, cause=last_error
        )

    @staticmethod
    def _tag_variants(tag: str) -> List[str]:
        """
        Tags are published both as "1.2.3" and "v1.2.3"; try the given form first.
        """
        if tag[:1] in ("v", "V") and tag[1:2].isdigit():
            return [tag, tag[1:]]
        if tag[:1].isdigit():
            return [tag, f"v{tag}"]
        return [tag]

    @staticmethod
    def _is_retryable(response: requests.Response) -> bool:
        if response.status_code in RETRYABLE_STATUS:
            return True
        # GitHub reports an exhausted rate limit as 403
        return response.status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0"

    def _get_json(self, url: str, token: Optional[str], action: str) -> Any:
        """
        GET `url` and decode the JSON body, retrying transient failures.

        Raises:
            ReleaseNotFound: On 404
            InvalidReleasePayload: If the body is not JSON
            NetworkError: On exhausted retries or a non-retryable error status
        """
        headers = self.build_headers(token)
        attempt = 0

        while True:
            attempt += 1
            try:
                response = self.session.get(url, headers=headers, timeout=self.timeout)
            except (requests.Timeout, requests.ConnectionError) as e:
                if attempt <= self.max_retries:
                    self._wait(attempt, url, str(e))
                    continue
                raise NetworkError(
                    f"Request to {url} failed after {attempt} attempts", action=action, cause=e
                ) from e
            except requests.RequestException as e:
                raise NetworkError(f"Request to {url} failed", action=action, cause=e) from e

            status = response.status_code
            if status == 200:
                try:
                    return response.json()
                except ValueError as e:
                    raise InvalidReleasePayload(
                        f"Response from {url} is not JSON", action=action, cause=e
                    ) from e

            if self._is_retryable(response):
                if attempt <= self.max_retries:
                    self._wait(attempt, url, f"HTTP {status}")
                    continue
                raise NetworkError(
                    f"HTTP {status} from {url} after {attempt} attempts", status=status, action=action
                )

            if status == 404:
                raise ReleaseNotFound(f"HTTP 404 from {url}", action=action)

            raise NetworkError(f"HTTP {status} from {url}", status=status, action=action)

    def _wait(self, attempt: int, url: str, reason: str) -> None:
        delay = self.retry_base_delay * attempt
        self.logger.log(
            f"Attempt {attempt} for {url} failed ({reason}); retrying in {delay:.1f}s",
            logging.WARNING,
        )
        self.sleep(delay)
