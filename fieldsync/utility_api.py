"""
HTTP client for the remote utility-management API.

All calls are JSON POSTs under a fixed base URL. Authenticated calls carry the
bearer credential in the ``trongateToken`` header; login sends none.
"""

import logging
from typing import Any, Dict, Optional

import requests


logger = logging.getLogger(__name__)

TOKEN_HEADER = "trongateToken"

LOGIN = "gateman/login"
SERVICE_AREAS = "api_get/get_service_areas"
SERVICE_ZONES = "api_get/get_service_zones"
METER_BOOKS = "api_get/get_meter_books"
METER_SHEETS = "api_get/get_meter_sheets"
TASK_TYPES = "technician/get_task_types"
TASK_ACTIONS = "technician/get_task_actions"
ACCOUNT_TYPES = "api_get/get_account_types"
TARIFF_CHARGE_CATEGORIES = "api_get/get_tariff_charge_categories"
MATERIAL_PIPELINES = "api_get/get_material_pipelines"
METER_SIZES = "api_get/get_meter_sizes"
TARIFF_CATEGORIES = "api_get/get_tariff_categories"
READING_CASES = "meter_reader/get_reading_cases"
READING_ANOMALIES = "meter_reader/get_reading_anom"
READING_ANOMALY_CASES = "meter_reader/get_reading_anom_cases"
INCIDENT_TYPES = "api_get/get_incidents"
ASSIGNED_SHEETS = "meter_reader/get_assigned_sheets"


class UtilityApiError(Exception):
    """The remote API answered with something that cannot be used."""


class UtilityApiClient:
    """
    Thin wrapper over a ``requests.Session``.

    There is no retry policy: a failed call is reported once and the caller
    decides whether that means "no data" or an error.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def post(
        self,
        path: str,
        token: Optional[str] = None,
        body: Optional[Any] = None,
    ) -> requests.Response:
        """Send one POST. Transport failures propagate as ``requests`` exceptions."""
        url = f"{self.base_url}/{path}"
        headers = {"Content-Type": "application/json"}
        if token is not None:
            headers[TOKEN_HEADER] = token
        response = self.session.post(url, headers=headers, json=body, timeout=self.timeout)
        logger.debug("POST %s -> %s", path, response.status_code)
        return response

    def fetch(
        self,
        path: str,
        token: str,
        body: Optional[Any] = None,
        strict: bool = False,
    ) -> Optional[Dict[str, Any]]:
        """
        Fetch a response envelope.

        Returns None when the remote had nothing to give: unreachable, non-2xx,
        or an empty body. With ``strict`` the first two raise UtilityApiError
        instead. A body that is not a JSON object always raises.
        """
        try:
            response = self.post(path, token=token, body=body)
        except requests.exceptions.RequestException as exc:
            if strict:
                raise UtilityApiError(f"{path} request failed: {exc}") from exc
            logger.warning("Request failed: POST %s - %s", path, exc)
            return None

        if not response.ok:
            if strict:
                raise UtilityApiError(f"{path} returned HTTP {response.status_code}")
            logger.warning("POST %s returned HTTP %s, treating as no data", path, response.status_code)
            return None

        if not response.text or not response.text.strip():
            return None
        return self._decode(path, response)

    def login(self, username: str, password: str) -> Optional[Dict[str, Any]]:
        """Return the raw login payload, or None when the remote rejects the credentials."""
        response = self.post(LOGIN, body={"username": username, "password": password})
        if not response.ok:
            return None
        return self._decode(LOGIN, response)

    @staticmethod
    def _decode(path: str, response: requests.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise UtilityApiError(f"{path} returned a body that is not JSON") from exc
        if not isinstance(data, dict):
            raise UtilityApiError(f"{path} returned {type(data).__name__}, expected an object")
        return data
