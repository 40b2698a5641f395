import logging

import requests

from schoolbooks.errors import HttpClientError

log = logging.getLogger(__name__)


class HttpClient:
    """One configured ``requests.Session`` per external service.

    Built once in ``create_app`` and handed to whoever needs it through
    ``app.extensions``. Transport errors surface as ``HttpClientError``
    carrying the underlying message; nothing is retried.
    """

    BASE_HEADERS = {"Content-Type": "application/json"}
    MAX_REDIRECTS = 10

    def __init__(self, timeout: float = 10.0, session: requests.Session | None = None):
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.max_redirects = self.MAX_REDIRECTS

    def _request(self, method: str, url: str, headers: dict | None = None, **kwargs) -> requests.Response:
        merged = {**self.BASE_HEADERS, **(headers or {})}
        try:
            return self.session.request(
                method, url, headers=merged, timeout=self.timeout, allow_redirects=True, **kwargs
            )
        except requests.RequestException as e:
            log.warning("%s %s failed: %s", method, url, e)
            raise HttpClientError(f"HTTP error: {e}") from e

    def get(self, url: str, headers: dict | None = None) -> str:
        return self._request("GET", url, headers).text

    def post(self, url: str, data, headers: dict | None = None) -> str:
        return self._request("POST", url, headers, json=data).text

    def put(self, url: str, data, headers: dict | None = None) -> str:
        return self._request("PUT", url, headers, json=data).text

    def patch(self, url: str, data, headers: dict | None = None) -> str:
        return self._request("PATCH", url, headers, json=data).text

    def delete(self, url: str, headers: dict | None = None):
        r = self._request("DELETE", url, headers)
        if r.status_code != 200:
            raise HttpClientError(f"Delete request failed with status code: {r.status_code}")
        return r.json()

    def encoded_post(self, url: str, data: dict, headers: dict | None = None) -> str:
        form_headers = {**(headers or {}), "Content-Type": "application/x-www-form-urlencoded"}
        return self._request("POST", url, form_headers, data=data).text
