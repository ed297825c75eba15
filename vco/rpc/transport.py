"""HTTPS transport for the VCO client."""

import logging
import os
import ssl
import tempfile
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from ..core.errors import ClientTimeout, ConfigError, TransportFailure
from .config import Config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawResponse:
    """An HTTP response as seen by the envelope codecs."""

    status_code: int
    content: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)
    cookies: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


class Transport:
    """Raw HTTP exchanges with the orchestrator; no domain knowledge.

    Non-2xx responses are returned to the caller. Connection and TLS failures
    raise :class:`TransportFailure`, expired deadlines :class:`ClientTimeout`.
    """

    def __init__(self, config: Config, client: Optional[httpx.AsyncClient] = None) -> None:
        self.config = config
        self._temp_files: List[str] = []
        self.client = client or self._create_async_http_client()

    def _create_async_http_client(self) -> httpx.AsyncClient:
        """Create an async HTTP client with TLS configuration."""
        headers = {"User-Agent": self.config.user_agent}
        if self.config.verify_ssl:
            ssl_context = ssl.create_default_context(cafile=self.config.ca_bundle)
        else:
            logger.warning(f"TLS verification disabled for {self.config.fqdn}")
            ssl_context = ssl.create_default_context()
            ssl_context.check_hostname = False
            ssl_context.verify_mode = ssl.CERT_NONE

        if not self.config.keystore_path:
            return httpx.AsyncClient(verify=ssl_context, headers=headers)

        logger.debug(f"Client certificate keystore: {self.config.keystore_path}")

        password = self.config.keystore_password
        try:
            with open(self.config.keystore_path, "rb") as f:
                p12_data = f.read()
            private_key, cert, additional_certs = pkcs12.load_key_and_certificates(
                p12_data, password.encode() if password else None
            )
        except (OSError, ValueError) as e:
            raise ConfigError(f"Cannot read keystore {self.config.keystore_path}: {e}") from e

        if private_key is None or cert is None:
            raise ConfigError("Failed to load private key or certificate from keystore")

        cert_chain = [cert]
        if additional_certs:
            cert_chain.extend(additional_certs)

        with tempfile.NamedTemporaryFile(mode="wb", delete=False, suffix=".pem") as cert_file:
            for certificate in cert_chain:
                cert_file.write(certificate.public_bytes(serialization.Encoding.PEM))
            cert_path = cert_file.name
            self._temp_files.append(cert_path)

        with tempfile.NamedTemporaryFile(mode="wb", delete=False, suffix=".key") as key_file:
            key_file.write(
                private_key.private_bytes(
                    encoding=serialization.Encoding.PEM,
                    format=serialization.PrivateFormat.PKCS8,
                    encryption_algorithm=serialization.NoEncryption(),
                )
            )
            key_path = key_file.name
            self._temp_files.append(key_path)

        ssl_context.load_cert_chain(cert_path, key_path)
        return httpx.AsyncClient(verify=ssl_context, headers=headers)

    async def send(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        timeout: Optional[float] = None,
    ) -> RawResponse:
        """Perform one HTTP exchange."""
        if timeout is None:
            timeout = self.config.request_timeout
        try:
            response = await self.client.request(
                method,
                url,
                headers=headers,
                params=params,
                json=json,
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            logger.error(f"{method} {url} timed out after {timeout}s")
            raise ClientTimeout(f"{method} {url} timed out", timeout=timeout) from e
        except httpx.ConnectError as e:
            logger.error(f"Connection to {url} failed. Is the orchestrator reachable?")
            raise TransportFailure(f"Connection to {url} failed: {e}") from e
        except httpx.TransportError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise TransportFailure(f"{method} {url} failed: {e}") from e
        finally:
            # Credentials travel only as the session manager attaches them.
            self.client.cookies.clear()

        if response.status_code >= 400:
            logger.debug(f"{method} {url} -> {response.status_code}")

        return RawResponse(
            status_code=response.status_code,
            content=response.content,
            headers=dict(response.headers),
            cookies={cookie.name: cookie.value for cookie in response.cookies.jar},
        )

    async def aclose(self) -> None:
        """Close the HTTP client and remove temporary key material."""
        await self.client.aclose()
        for temp_file in self._temp_files:
            try:
                os.unlink(temp_file)
            except OSError:
                pass
        self._temp_files.clear()
