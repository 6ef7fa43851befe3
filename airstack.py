import logging

import requests

from errors import AirstackError

logger = logging.getLogger(__name__)


class AirstackClient:
    def __init__(self, api_url: str, api_key: str | None, timeout: float = 10):
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = timeout

    def query(self, query: str, variables: dict) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = self.api_key

        try:
            res = requests.post(
                self.api_url,
                json={"query": query, "variables": variables},
                headers=headers,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            raise AirstackError("Airstack request timed out.")
        except requests.exceptions.RequestException as e:
            raise AirstackError(f"Airstack request failed: {e}") from e

        if res.status_code != 200:
            raise AirstackError(f"HTTP {res.status_code}: {res.text}")

        try:
            payload = res.json()
        except ValueError as e:
            raise AirstackError("Airstack returned a non-JSON body") from e

        if not isinstance(payload, dict):
            raise AirstackError("Airstack returned an unexpected payload")

        errors = payload.get("errors")
        if errors:
            if not isinstance(errors, list):
                errors = [errors]
            messages = "; ".join(
                err.get("message", "unknown") if isinstance(err, dict) else str(err) for err in errors
            )
            raise AirstackError(f"Airstack query failed: {messages}")

        data = payload.get("data") or {}
        if not isinstance(data, dict):
            raise AirstackError("Airstack returned an unexpected data payload")

        logger.debug("Airstack response: %s", payload)
        return data
