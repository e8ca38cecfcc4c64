import logging
import requests
from typing import Dict, Optional

from slotpi_be.exceptions import PaymentProviderException

logger = logging.getLogger(__name__)


class PiPlatformClient:
    """
    Thin HTTP client for the Pi Network platform API.

    Payment endpoints authenticate with the app's server API key (``Key``). Any non-2xx
    response raises PaymentProviderException carrying the status and response body.
    """

    def __init__(self, api_base: str, api_key: str, timeout: int = 10, session: Optional[requests.Session] = None):
        self.api_base = api_base.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config):
        return cls(
            api_base=config['PI_API_BASE'],
            api_key=config['PI_SERVER_API_KEY'],
            timeout=config.get('PI_API_TIMEOUT_SECONDS', 10),
        )

    def _server_headers(self) -> Dict[str, str]:
        return {'Authorization': f"Key {self.api_key}"}

    def _request(self, method: str, path: str, headers: Dict[str, str], json_body: Optional[Dict] = None) -> Dict:
        url = f"{self.api_base}{path}"
        try:
            response = self.session.request(method, url, headers=headers, json=json_body, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Pi API {method} {path} failed: {e}")
            raise PaymentProviderException(
                status_message="Could not reach the Pi platform.",
                details={'path': path, 'error': str(e)}
            ) from e

        if not response.ok:
            body = response.text
            logger.warning(f"Pi API {method} {path} returned {response.status_code}: {body}")
            raise PaymentProviderException(
                status_message=f"Pi API error {response.status_code}",
                details={'path': path, 'provider_status': response.status_code},
                provider_status=response.status_code,
                provider_body=body,
            )

        if not response.content:
            return {}
        return response.json()

    def get_payment(self, payment_id: str) -> Dict:
        return self._request('GET', f"/payments/{payment_id}", self._server_headers())

    def approve_payment(self, payment_id: str) -> Dict:
        return self._request('POST', f"/payments/{payment_id}/approve", self._server_headers())

    def complete_payment(self, payment_id: str, txid: str) -> Dict:
        return self._request('POST', f"/payments/{payment_id}/complete", self._server_headers(), {'txid': txid})
