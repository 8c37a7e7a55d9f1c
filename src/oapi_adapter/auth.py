"""TC3-HMAC-SHA256 request signing (Tencent Cloud API v3)."""

from __future__ import annotations

import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, Mapping, Optional, Tuple
from urllib.parse import quote

from .exceptions import ConfigurationError
from .models import TencentCloudAuth


logger = logging.getLogger(__name__)

ALGORITHM = "TC3-HMAC-SHA256"
REQUEST_TYPE = "tc3_request"
SCHEME_NAME = "TencentCloudAuth"
DEFAULT_SERVICE = "service"

_SIGNED_HEADER_NAMES = {"content-type", "host"}
_SERVICE_HEADER = "x-tc-service"


@dataclass(frozen=True)
class CanonicalRequest:
    text: str
    signed_headers: str


class TencentCloudSigner:
    def __init__(self, credentials: TencentCloudAuth, clock=time.time) -> None:
        if not credentials.secret_id or not credentials.secret_key:
            raise ConfigurationError(
                f"{SCHEME_NAME} requires both secretId and secretKey to sign requests"
            )
        self.credentials = credentials
        self._clock = clock

    def sign(
        self,
        method: str,
        path: str,
        query: Iterable[Tuple[str, str]],
        headers: Mapping[str, str],
        body: Optional[str],
    ) -> Dict[str, str]:
        """Return the header set for the request, including ``Authorization``.

        ``path`` is accepted for symmetry with the request but the canonical
        URI is always ``/``.
        """
        timestamp = int(self._clock())
        date = datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d")
        service = self._service(headers)

        candidate = self._candidate_headers(headers, timestamp)
        canonical = self._canonical_request(method, query, candidate, body)

        credential_scope = f"{date}/{service}/{REQUEST_TYPE}"
        string_to_sign = "\n".join(
            [ALGORITHM, str(timestamp), credential_scope, _sha256_hex(canonical.text)]
        )

        secret_date = _hmac(f"TC3{self.credentials.secret_key}".encode("utf-8"), date)
        secret_service = _hmac(secret_date, service)
        secret_signing = _hmac(secret_service, REQUEST_TYPE)
        signature = hmac.new(
            secret_signing, string_to_sign.encode("utf-8"), hashlib.sha256
        ).hexdigest()

        signed: Dict[str, str] = {}
        for key, value in candidate.items():
            if key in (_SERVICE_HEADER, "authorization"):
                continue
            signed[_format_header_key(key)] = value
        signed["Authorization"] = (
            f"{ALGORITHM} Credential={self.credentials.secret_id}/{credential_scope}, "
            f"SignedHeaders={canonical.signed_headers}, Signature={signature}"
        )
        logger.debug(
            "Signed request scope=%s headers=%s", credential_scope, canonical.signed_headers
        )
        return signed

    def _service(self, headers: Mapping[str, str]) -> str:
        if self.credentials.service:
            return self.credentials.service
        host = next((v for k, v in headers.items() if k.lower() == "host"), None)
        if host:
            return host.split(".")[0]
        return DEFAULT_SERVICE

    def _candidate_headers(self, headers: Mapping[str, str], timestamp: int) -> Dict[str, str]:
        candidate = {key.lower(): str(value) for key, value in headers.items()}
        credentials = self.credentials
        if credentials.action and "x-tc-action" not in candidate:
            candidate["x-tc-action"] = credentials.action.lower()
        if credentials.version and "x-tc-version" not in candidate:
            candidate["x-tc-version"] = credentials.version
        if credentials.region and "x-tc-region" not in candidate:
            candidate["x-tc-region"] = credentials.region
        candidate["x-tc-timestamp"] = str(timestamp)
        if credentials.token:
            candidate["x-tc-token"] = credentials.token
        return candidate

    def _canonical_request(
        self,
        method: str,
        query: Iterable[Tuple[str, str]],
        headers: Mapping[str, str],
        body: Optional[str],
    ) -> CanonicalRequest:
        signed_names = sorted(key for key in headers if key in _SIGNED_HEADER_NAMES)
        canonical_headers = "".join(f"{key}:{headers[key]}\n" for key in signed_names)
        signed_headers = ";".join(signed_names)
        canonical_query = "&".join(
            f"{_encode_component(key)}={_encode_component(value)}"
            for key, value in sorted(query, key=lambda item: item[0])
        )
        text = "\n".join(
            [
                method.upper(),
                "/",
                canonical_query,
                canonical_headers,
                signed_headers,
                _sha256_hex(body or ""),
            ]
        )
        return CanonicalRequest(text=text, signed_headers=signed_headers)


def sign_request(
    method: str,
    path: str,
    query: Iterable[Tuple[str, str]],
    headers: Mapping[str, str],
    body: Optional[str],
    credentials: TencentCloudAuth,
) -> Dict[str, str]:
    return TencentCloudSigner(credentials).sign(method, path, query, headers, body)


def _format_header_key(key: str) -> str:
    parts = key.split("-")
    return "-".join("TC" if part == "tc" else part[:1].upper() + part[1:] for part in parts)


def _encode_component(value: str) -> str:
    # unreserved characters plus !~*'()
    return quote(str(value), safe="-_.!~*'()")


def _sha256_hex(message: str) -> str:
    return hashlib.sha256(message.encode("utf-8")).hexdigest()


def _hmac(key: bytes, message: str) -> bytes:
    return hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()
