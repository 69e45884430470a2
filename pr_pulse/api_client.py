"""HTTP client for provider REST APIs with retries, auth and error mapping."""

import logging
from typing import Callable, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import AuthError, ProviderAPIError, TransientFetchError


DEFAULT_TIMEOUT_SECONDS = 30.0
USER_AGENT = 'pr-pulse'


class APIClient:
    """Handles authenticated REST requests with retry logic and pagination."""

    def __init__(self, base_url: str, token: str = None, timeout: float = DEFAULT_TIMEOUT_SECONDS,
                 accept: str = 'application/vnd.github+json'):
        """Initialize the API client.

        Args:
            base_url: API root, e.g. https://api.github.com
            token: Bearer token sent with every request
            timeout: Per-request timeout in seconds
            accept: Value of the Accept header
        """
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.timeout = timeout
        self.session = requests.Session()

        # Pool size = 2 lists * 10 items * 2 sub-fetches = 40 + buffer
        adapter = HTTPAdapter(
            pool_connections=50,
            pool_maxsize=50,
            max_retries=Retry(
                total=3,
                backoff_factor=0.3,
                status_forcelist=[500, 502, 503, 504],
                allowed_methods=['GET'],
            )
        )
        self.session.mount('https://', adapter)
        self.session.mount('http://', adapter)

        self.session.headers.update({
            'Accept': accept,
            'User-Agent': USER_AGENT,
        })
        if self.token:
            self.session.headers['Authorization'] = f'Bearer {self.token}'
            logging.debug(f"Initialized API client for {self.base_url} with token")
        else:
            logging.warning(f"No token provided for {self.base_url}. Requests will be unauthenticated.")

    def url_for(self, endpoint: str) -> str:
        """Resolve an endpoint relative to the base URL (absolute URLs pass through)."""
        if endpoint.startswith('http://') or endpoint.startswith('https://'):
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def get(self, endpoint: str, params: Dict = None) -> requests.Response:
        """Make a single GET request and map failures to PR Pulse errors.

        Args:
            endpoint: Path relative to the base URL, or an absolute URL
            params: Query parameters

        Returns:
            Response object with a 2xx status

        Raises:
            AuthError: The credential was rejected (401)
            TransientFetchError: Network failure, timeout, 5xx or rate limit
            ProviderAPIError: Any other non-2xx status
        """
        url = self.url_for(endpoint)
        logging.debug(f"GET {url} params={params}")

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise TransientFetchError(f"Request to {url} timed out: {e}") from e
        except requests.exceptions.RetryError as e:
            raise TransientFetchError(f"Request to {url} failed after retries: {e}") from e
        except requests.exceptions.ConnectionError as e:
            raise TransientFetchError(f"Could not connect to {url}: {e}") from e

        self._raise_for_status(url, response)
        return response

    def get_json(self, endpoint: str, params: Dict = None):
        """GET an endpoint and decode its JSON body.

        Raises:
            ProviderAPIError: The body is not valid JSON
        """
        response = self.get(endpoint, params)
        try:
            return response.json()
        except ValueError as e:
            raise ProviderAPIError(f"Invalid JSON from {response.url}: {e}", response.status_code) from e

    def get_paginated(self, endpoint: str, params: Dict = None,
                      should_continue: Optional[Callable[[List[Dict]], bool]] = None) -> List[Dict]:
        """Fetch all pages of a paginated list endpoint.

        Args:
            endpoint: The API endpoint
            params: Query parameters
            should_continue: Optional callback function that takes a page of results and returns
                           False to stop pagination early, True to continue

        Returns:
            List of all items from all pages, in API order
        """
        results = []
        page = 1
        per_page = 100

        params = dict(params or {})
        params['per_page'] = per_page

        while True:
            logging.debug(f"Fetching page {page} from {endpoint}")
            data = self.get_json(endpoint, dict(params, page=page))

            if not data:
                break

            if not isinstance(data, list):
                raise ProviderAPIError(f"Expected a list from {endpoint}, got {type(data).__name__}")

            results.extend(data)

            if should_continue and not should_continue(data):
                logging.debug(f"Early termination triggered at page {page}")
                break

            if len(data) < per_page:
                break

            page += 1

        logging.debug(f"Fetched {len(results)} total items from {endpoint}")
        return results

    def close(self):
        """Release pooled connections."""
        self.session.close()

    @staticmethod
    def _raise_for_status(url: str, response: requests.Response):
        status = response.status_code
        if 200 <= status < 300:
            return

        message = _error_message(response)

        if status == 401:
            raise AuthError(f"Credential rejected by {url}: {message}")

        if status in (403, 429) and _is_rate_limited(response):
            raise TransientFetchError(f"Rate limit exceeded for {url}: {message}", status)

        if status == 429 or status >= 500:
            raise TransientFetchError(f"API error {status} for {url}: {message}", status)

        raise ProviderAPIError(f"API error {status} for {url}: {message}", status)


def _is_rate_limited(response: requests.Response) -> bool:
    if response.headers.get('X-RateLimit-Remaining') == '0':
        return True
    return 'Retry-After' in response.headers


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.reason or f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get('message'):
        return body['message']
    return response.reason or f"HTTP {response.status_code}"
