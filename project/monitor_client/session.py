import logging

import requests

from .exceptions import GENERIC_ERROR_MESSAGE, ApiError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


class Session:
    """
    Connection to the monitoring API for one signed-in user.

    Holds the base URL, the bearer token and the logged-in user; every
    request-issuing function in ``monitor_client.api`` takes one explicitly.
    """

    def __init__(self, base_url, token=None, user=None, timeout=DEFAULT_TIMEOUT, http=None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.user = user
        self.timeout = timeout
        self.http = http or requests.Session()

    @property
    def is_authenticated(self):
        return bool(self.token)

    def headers(self):
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def request(self, method, path, **kwargs):
        """
        Issue a request and return the ``requests.Response``.

        Raises:
            ApiError: transport failure or any 4xx/5xx answer.
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.http.request(method, url, headers=self.headers(), timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise ApiError(GENERIC_ERROR_MESSAGE) from exc

        if response.status_code >= 400:
            raise ApiError(_server_message(response), status_code=response.status_code)
        return response

    def sign_out(self):
        self.token = None
        self.user = None


def _server_message(response):
    try:
        body = response.json()
    except ValueError:
        return GENERIC_ERROR_MESSAGE
    if isinstance(body, dict) and isinstance(body.get("message"), str) and body["message"]:
        return body["message"]
    return GENERIC_ERROR_MESSAGE
