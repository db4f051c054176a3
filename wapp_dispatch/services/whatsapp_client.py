"""
WhatsApp Cloud API client - send messages and manage media through the Graph API

Thin wrapper over the provider's HTTP endpoints. It does not know about
jobs or contacts; the dispatcher decides what to send and this client
only shapes the request and maps HTTP failures to UpstreamError.
"""
import httpx
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..core.exceptions import ConfigurationError, UpstreamError
from ..schemas.jobs import MediaRef

logger = logging.getLogger(__name__)


@dataclass
class WhatsAppClientConfig:
    """WhatsApp Cloud API configuration"""
    base_url: str = "https://graph.facebook.com/v21.0"
    access_token: Optional[str] = None
    phone_number_id: Optional[str] = None
    template_language: str = "en_US"
    timeout: float = 30.0

    @classmethod
    def from_settings(cls, settings) -> "WhatsAppClientConfig":
        return cls(
            base_url=settings.whatsapp_graph_url,
            access_token=settings.whatsapp_access_token,
            phone_number_id=settings.whatsapp_phone_number_id,
            template_language=settings.whatsapp_template_language,
            timeout=settings.whatsapp_timeout,
        )


def build_template_components(
    body_params: List[str],
    button_params: List[str],
    media_ref: Optional[MediaRef] = None,
) -> List[Dict[str, Any]]:
    """
    Build the `components` array of a template message.

    HEADER carries the media link (documents keep their filename),
    BODY binds the positional text parameters, and every button parameter
    becomes its own url-button component with its index.
    """
    components: List[Dict[str, Any]] = []

    if media_ref is not None:
        media: Dict[str, Any] = {"link": media_ref.url}
        if media_ref.type == "document" and media_ref.filename:
            media["filename"] = media_ref.filename
        components.append({
            "type": "header",
            "parameters": [{"type": media_ref.type, media_ref.type: media}],
        })

    if body_params:
        components.append({
            "type": "body",
            "parameters": [{"type": "text", "text": param} for param in body_params],
        })

    for index, param in enumerate(button_params or []):
        components.append({
            "type": "button",
            "sub_type": "url",
            "index": str(index),
            "parameters": [{"type": "text", "text": param}],
        })

    return components


class WhatsAppCloudClient:
    """
    Client for the WhatsApp Cloud API.

    Pass a shared httpx.AsyncClient to reuse one connection pool across
    components; otherwise the client creates and owns its own.
    """

    def __init__(
        self,
        config: WhatsAppClientConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ):
        if not config.access_token:
            raise ConfigurationError("WhatsApp access token is not configured")
        if not config.phone_number_id:
            raise ConfigurationError("WhatsApp phone number id is not configured")
        self.config = config
        self._client = http_client
        self._owns_client = http_client is None
        self.logger = logger or logging.getLogger(__name__)

    @property
    def headers(self) -> Dict[str, str]:
        """HTTP headers for Graph API requests"""
        return {
            "Authorization": f"Bearer {self.config.access_token}",
            "Accept": "application/json",
        }

    def _url(self, path: str) -> str:
        return f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get HTTP client (lazy initialization)"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.config.timeout)
            self._owns_client = True
        return self._client

    async def close(self):
        """Close the HTTP client if this instance created it"""
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        json_data: dict = None,
        data: dict = None,
        files: dict = None,
    ) -> Dict[str, Any]:
        """
        Perform a Graph API request

        Args:
            method: HTTP method
            path: path below the versioned Graph URL
            json_data: JSON body
            data, files: multipart form fields and files

        Returns:
            Parsed JSON response

        Raises:
            UpstreamError: HTTP error status (status_code set) or network
                failure / timeout (no status_code, retryable)
        """
        client = await self._get_client()

        try:
            response = await client.request(
                method=method,
                url=self._url(path),
                json=json_data,
                data=data,
                files=files,
                headers=self.headers,
                timeout=self.config.timeout,
            )
        except httpx.TimeoutException as e:
            self.logger.error(f"WhatsApp API timeout: {method} {path}")
            raise UpstreamError(
                message="WhatsApp API request timeout",
                details={"path": path, "error": str(e)},
            ) from e
        except httpx.TransportError as e:
            self.logger.error(f"WhatsApp API connection error: {e}")
            raise UpstreamError(
                message="Cannot connect to WhatsApp API",
                details={"path": path, "error": str(e)},
            ) from e

        self.logger.debug(f"WhatsApp {method} {path} -> {response.status_code}")

        if response.status_code >= 400:
            error_detail: Any = response.text
            error_code = None
            try:
                error_json = response.json().get("error", {})
                error_detail = error_json.get("message", error_detail)
                error_code = error_json.get("code")
            except (ValueError, AttributeError):
                pass

            self.logger.error(f"WhatsApp API error: {response.status_code} - {error_detail}")
            raise UpstreamError(
                message=f"WhatsApp API error: {error_detail}",
                status_code=response.status_code,
                details={"path": path, "response": error_detail, "code": error_code},
            )

        try:
            return response.json()
        except ValueError:
            return {"raw": response.text}

    # ==================== MESSAGING ====================

    async def _send(self, payload: Dict[str, Any]) -> str:
        result = await self._request(
            "POST", f"{self.config.phone_number_id}/messages", json_data=payload
        )
        messages = result.get("messages") or []
        if not messages or not messages[0].get("id"):
            raise UpstreamError(
                message="WhatsApp API accepted the request but returned no message id",
                details={"response": result},
                retryable=False,
            )
        return messages[0]["id"]

    async def send_text(self, to: str, body: str) -> str:
        """
        Send a free-form text message

        Returns:
            Provider message id
        """
        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": to,
            "type": "text",
            "text": {"preview_url": False, "body": body},
        }
        message_id = await self._send(payload)
        self.logger.info(f"Text message sent, id: {message_id}")
        return message_id

    async def send_template(
        self,
        to: str,
        template_name: str,
        body_params: List[str],
        button_params: List[str],
        media_ref: Optional[MediaRef] = None,
    ) -> str:
        """
        Send a pre-approved template message.

        Parameter counts are not checked here; a mismatch with the
        template definition comes back as a 400 from the provider.

        Returns:
            Provider message id
        """
        template: Dict[str, Any] = {
            "name": template_name,
            "language": {"code": self.config.template_language},
        }
        components = build_template_components(body_params, button_params, media_ref)
        if components:
            template["components"] = components

        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": to,
            "type": "template",
            "template": template,
        }
        message_id = await self._send(payload)
        self.logger.info(f"Template '{template_name}' sent, id: {message_id}")
        return message_id

    # ==================== MEDIA ====================

    async def upload_media(self, media_type: str, file_name: str, mime_type: str, data: bytes) -> str:
        """
        Upload bytes to provider-native media storage

        Returns:
            Opaque media id
        """
        result = await self._request(
            "POST",
            f"{self.config.phone_number_id}/media",
            data={"messaging_product": "whatsapp", "type": mime_type},
            files={"file": (file_name, data, mime_type)},
        )
        media_id = result.get("id")
        if not media_id:
            raise UpstreamError(
                message="WhatsApp API returned no media id",
                details={"response": result},
                retryable=False,
            )
        self.logger.info(f"Media uploaded: {file_name} ({media_type}, {len(data)} bytes) -> {media_id}")
        return media_id

    async def get_media(self, media_id: str) -> Dict[str, Any]:
        """Get media url, mime type, checksum and size"""
        result = await self._request("GET", media_id)
        return {
            "id": result.get("id", media_id),
            "url": result.get("url"),
            "mime_type": result.get("mime_type"),
            "sha256": result.get("sha256"),
            "file_size": result.get("file_size"),
        }

    async def delete_media(self, media_id: str) -> Dict[str, Any]:
        """Delete media from provider storage"""
        result = await self._request("DELETE", media_id)
        return {"success": bool(result.get("success"))}

    async def health_check(self) -> bool:
        """Check that the configured phone number is reachable with the current token"""
        try:
            await self._request("GET", self.config.phone_number_id)
            return True
        except UpstreamError as e:
            self.logger.warning(f"WhatsApp health check failed: {e.message}")
            return False
