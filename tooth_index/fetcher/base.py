"""
Base classes and interfaces for package fetchers.

This module provides the HTTP source client used to talk to upstream hosts and
the abstract base class that every ecosystem fetcher implements.
"""

import abc
import logging
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, as_completed, wait
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

import requests
from requests.adapters import HTTPAdapter
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from urllib3.util.retry import Retry

from tooth_index.core.exceptions import NormalizationError, UpstreamError
from tooth_index.core.interfaces import (
    FetcherConfig, Package, RepositoryDescriptor, VersionSource
)


logger = logging.getLogger(__name__)

RETRY_STATUSES = (429, 500, 502, 503, 504)
NOT_FOUND_STATUSES = (404, 410)


class RetryableStatusError(Exception):
    """Raised internally when an upstream answers with a retryable status."""

    def __init__(self, response: requests.Response):
        super().__init__(f"Retryable status {response.status_code}")
        self.response = response


def gather(*calls: Callable[[], Any]) -> List[Any]:
    """
    Run callables concurrently and return their results in call order.

    Args:
        *calls: Zero-argument callables.

    Returns:
        List of results, one per callable.

    Raises:
        Exception: The first exception raised by a callable, in call order.
    """
    if not calls:
        return []
    with ThreadPoolExecutor(max_workers=len(calls)) as executor:
        futures = [executor.submit(call) for call in calls]
        return [future.result() for future in futures]


class HttpSourceClient:
    """
    Thin HTTP client for one upstream data source.

    Transient failures (connection errors, timeouts, 429 and 5xx responses) are
    retried with exponential backoff. Not-found responses are returned as None.
    """

    def __init__(self, config: Optional[FetcherConfig] = None, headers: Optional[Dict[str, str]] = None):
        """
        Initialize the source client.

        Args:
            config: Configuration for the fetcher. If None, uses default configuration.
            headers: Optional headers to include in all requests.
        """
        self.config = config or FetcherConfig()
        self.headers = {"User-Agent": self.config.user_agent}
        self.headers.update(headers or {})
        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        """
        Create a requests session with retry logic.

        Returns:
            A configured requests session.
        """
        session = requests.Session()

        retry_strategy = Retry(
            total=self.config.retry_count,
            backoff_factor=0.5,
            status_forcelist=list(RETRY_STATUSES),
            allowed_methods=["GET", "HEAD"],
            raise_on_status=False
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        return session

    def _send(self, url: str, headers: Dict[str, str]) -> requests.Response:
        retrying = Retrying(
            retry=retry_if_exception_type((
                requests.exceptions.ConnectionError,
                requests.exceptions.Timeout,
                RetryableStatusError,
            )),
            stop=stop_after_attempt(self.config.retry_count),
            wait=wait_exponential(multiplier=self.config.retry_backoff, max=10),
            reraise=True,
        )

        for attempt in retrying:
            with attempt:
                response = self.session.get(url, headers=headers, timeout=self.config.request_timeout)
                if response.status_code in RETRY_STATUSES:
                    raise RetryableStatusError(response)
        return response

    def get(self, url: str, headers: Optional[Dict[str, str]] = None) -> Optional[requests.Response]:
        """
        Issue a GET request.

        Args:
            url: URL to fetch.
            headers: Optional headers merged over the client headers.

        Returns:
            The response, or None if the resource does not exist.

        Raises:
            UpstreamError: If the request fails after retries or returns an error status.
        """
        merged_headers = dict(self.headers)
        merged_headers.update(headers or {})

        try:
            response = self._send(url, merged_headers)
        except RetryableStatusError as e:
            status = e.response.status_code
            raise UpstreamError(status, f"GET {url} failed with status {status}", url)
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            raise UpstreamError(502, f"GET {url} failed: {e}", url)

        logger.debug(f"GET {url} {response.status_code}")

        if response.status_code in NOT_FOUND_STATUSES:
            return None
        if response.status_code >= 400:
            raise UpstreamError(
                response.status_code,
                f"GET {url} failed with status {response.status_code}: {response.text[:200]}",
                url
            )
        return response

    def get_text(self, url: str, headers: Optional[Dict[str, str]] = None) -> Optional[str]:
        """Fetch a URL as text, or None if it does not exist."""
        response = self.get(url, headers)
        if response is None:
            return None
        return response.text

    def get_json(self, url: str, headers: Optional[Dict[str, str]] = None) -> Optional[Any]:
        """
        Fetch a URL as JSON.

        Returns:
            Parsed JSON, or None if the resource does not exist or is empty.

        Raises:
            NormalizationError: If the response is not valid JSON.
        """
        response = self.get(url, headers)
        if response is None or not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            logger.debug(f"Response content (first 500 chars): {response.text[:500]}")
            raise NormalizationError(f"Failed to parse JSON from {url}: {e}")

    def close(self) -> None:
        self.session.close()


class PackageFetcher(abc.ABC):
    """
    Abstract base class for package fetchers.

    One subclass exists per ecosystem. Subclasses discover candidate
    repositories and resolve each candidate to a normalized Package; fetch()
    turns that into a lazy stream of packages.
    """

    def __init__(
        self,
        config: Optional[FetcherConfig] = None,
        client: Optional[HttpSourceClient] = None,
        source_priority: Optional[Sequence[VersionSource]] = None
    ):
        """
        Initialize the package fetcher.

        Args:
            config: Configuration for the fetcher. If None, uses default configuration.
            client: HTTP client to use. If None, one is created from the configuration.
            source_priority: Source priority used when normalizing versions.
        """
        self.config = config or FetcherConfig()
        self.client = client or HttpSourceClient(self.config)
        self.source_priority = list(source_priority) if source_priority else None

    @abc.abstractmethod
    def get_ecosystem_name(self) -> str:
        """
        Get the name of the ecosystem, used as registry key and platform tag.

        Returns:
            Name of the ecosystem.
        """
        pass

    @abc.abstractmethod
    def discover(self) -> Iterator[RepositoryDescriptor]:
        """
        Discover candidate repositories.

        Returns:
            Iterator over repository descriptors.

        Raises:
            DiscoveryError: If the discovery search fails.
        """
        pass

    @abc.abstractmethod
    def resolve(self, descriptor: RepositoryDescriptor) -> Optional[Package]:
        """
        Resolve one candidate to a normalized package.

        Args:
            descriptor: Candidate repository.

        Returns:
            The package, or None if the candidate is not a valid, versioned package.
        """
        pass

    def fetch(self) -> Iterator[Package]:
        """
        Fetch all packages of this ecosystem.

        Candidates are resolved concurrently, with at most
        ``config.concurrent_requests`` in flight. A failing candidate is logged
        and skipped. Each call restarts discovery.

        Returns:
            Iterator over normalized packages, in completion order.

        Raises:
            DiscoveryError: If the discovery search fails.
        """
        name = self.get_ecosystem_name()
        max_workers = self.config.concurrent_requests
        logger.info(f"Fetching {name} packages...")

        executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=f"{name}-fetch")
        pending: Dict[Future, RepositoryDescriptor] = {}
        emitted = 0

        try:
            for descriptor in self.discover():
                pending[executor.submit(self._resolve_candidate, descriptor)] = descriptor

                if len(pending) >= max_workers:
                    done, _ = wait(pending, return_when=FIRST_COMPLETED)
                    for future in done:
                        pending.pop(future)
                        package = future.result()
                        if package is not None:
                            emitted += 1
                            yield package

            for future in as_completed(list(pending)):
                pending.pop(future)
                package = future.result()
                if package is not None:
                    emitted += 1
                    yield package
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        logger.info(f"Done fetching {name} packages ({emitted} packages)")

    def _resolve_candidate(self, descriptor: RepositoryDescriptor) -> Optional[Package]:
        try:
            return self.resolve(descriptor)
        except Exception as e:
            logger.error(f"Failed to fetch {self.get_ecosystem_name()} package {descriptor.full_name}: {e}")
            return None

    def close(self) -> None:
        self.client.close()
