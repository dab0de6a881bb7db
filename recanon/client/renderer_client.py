# =============================================================================
# recanon -- RENDERER CLIENT
# File:   recanon/client/renderer_client.py
# =============================================================================
#
# HTTP client for the deterministic renderer. The only module that performs
# network IO.
#
# ENDPOINTS
# ---------
#   GET  /health
#   POST /render   body: {code, seed, vars, execution}
#   POST /verify   body: {snapshot, expectedHash}
#                     or {snapshot, expectedPosterHash, expectedAnimationHash}
#
# ERROR MAPPING
# -------------
#   connection failure / timeout          -> TransportError
#   HTTP 429                              -> TransportError("rate limit exceeded")
#   non-2xx naming a renderer rule code   -> ProtocolViolationError(rule)
#   any other non-2xx                     -> TransportError
#   2xx with unparsable JSON or no hash   -> MalformedResponseError
#
# Responses are normalized into RenderResult / VerifyResult so callers never
# see the static-vs-animation wire shapes.
# =============================================================================

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from recanon.bundle.schema import MODE_LOOP, MODE_STATIC, Snapshot
from recanon.client.config import RendererConfig
from recanon.verification.errors import (
    MalformedResponseError,
    ProtocolViolationError,
    TransportError,
)

RATE_LIMIT_STATUS: int = 429

# Checked in this order; the first rule named in an error body wins.
PROTOCOL_RULE_CODES = (
    "INVALID_CODE",
    "LOOP_MODE_ERROR",
    "INVALID_REQUEST",
    "PROTOCOL_VIOLATION",
    "createCanvas",
)


# =============================================================================
# SECTION 1 -- NORMALIZED RESULTS
# =============================================================================

@dataclass(frozen=True)
class RenderResult:
    """
    Normalized /render answer.

    poster_hash is the static image hash in static mode and the poster frame
    hash in loop mode. animation_hash is None in static mode.
    """
    mode:             str
    poster_hash:      str
    animation_hash:   Optional[str] = None
    mime:             str = "image/png"
    poster_base64:    str = ""
    animation_base64: str = ""
    frames:           Optional[int] = None
    fps:              Optional[int] = None
    width:            Optional[int] = None
    height:           Optional[int] = None
    metadata:         Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class VerifyResult:
    """
    Normalized /verify answer.

    verified, poster_verified and animation_verified are the renderer's own
    opinion. Callers recompute the verdict from the computed hashes.
    """
    mode:                    str
    verified:                bool
    computed_poster_hash:    str
    computed_animation_hash: Optional[str] = None
    poster_verified:         Optional[bool] = None
    animation_verified:      Optional[bool] = None
    protocol_compliant:      Optional[bool] = None
    metadata:                Dict[str, Any] = field(default_factory=dict)


# =============================================================================
# SECTION 2 -- RESPONSE HELPERS
# =============================================================================

def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return response.text


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    status = response.status_code
    message = _error_message(response)
    if status == RATE_LIMIT_STATUS:
        raise TransportError(
            "TransportError: rate limit exceeded" + (": " + message if message else ""),
            status_code=status,
        )
    body_text = response.text
    for rule in PROTOCOL_RULE_CODES:
        if rule in body_text:
            raise ProtocolViolationError(
                f"ProtocolViolationError: renderer rejected the snapshot ({rule}): {message}",
                rule=rule,
                status_code=status,
            )
    raise TransportError(
        f"TransportError: renderer returned HTTP {status}: {message or response.reason_phrase}",
        status_code=status,
    )


def _json_object(response: httpx.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError as exc:
        raise MalformedResponseError(
            "MalformedResponseError: renderer response is not valid JSON: " + str(exc)
        ) from exc
    if not isinstance(body, dict):
        raise MalformedResponseError(
            "MalformedResponseError: renderer response must be a JSON object; got "
            + type(body).__name__
        )
    return body


def _hash_field(body: Dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
    return ""


def _optional_int(body: Dict[str, Any], key: str) -> Optional[int]:
    value = body.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _optional_bool(body: Dict[str, Any], key: str) -> Optional[bool]:
    value = body.get(key)
    return value if isinstance(value, bool) else None


def _metadata(body: Dict[str, Any]) -> Dict[str, Any]:
    value = body.get("metadata")
    return dict(value) if isinstance(value, dict) else {}


def parse_render_response(body: Dict[str, Any]) -> RenderResult:
    if body.get("type") == "animation":
        return RenderResult(
            mode=MODE_LOOP,
            poster_hash=_hash_field(body, "posterHash", "imageHash"),
            animation_hash=_hash_field(body, "animationHash") or None,
            mime=body.get("mime") or "video/mp4",
            poster_base64=body.get("posterBase64") or body.get("imageBase64") or "",
            animation_base64=body.get("animationBase64") or "",
            frames=_optional_int(body, "frames"),
            fps=_optional_int(body, "fps"),
            width=_optional_int(body, "width"),
            height=_optional_int(body, "height"),
            metadata=_metadata(body),
        )
    poster = _hash_field(body, "imageHash")
    if not poster:
        raise MalformedResponseError(
            "MalformedResponseError: render response carries no imageHash"
        )
    return RenderResult(
        mode=MODE_STATIC,
        poster_hash=poster,
        mime=body.get("mime") or "image/png",
        poster_base64=body.get("imageBase64") or "",
        metadata=_metadata(body),
    )


# =============================================================================
# SECTION 3 -- CLIENT
# =============================================================================

class RendererClient:
    """
    Synchronous renderer client over httpx.

    transport is passed straight to httpx.Client; tests inject
    httpx.MockTransport. Use as a context manager or call close().
    """

    def __init__(
        self,
        config:    RendererConfig,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = config
        self._client = httpx.Client(
            base_url=config.base_url,
            timeout=config.timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    @property
    def base_url(self) -> str:
        return self._config.base_url

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RendererClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> httpx.Response:
        try:
            response = self._client.request(method, path, json=body)
        except httpx.TimeoutException as exc:
            raise TransportError(
                f"TransportError: renderer request timed out after {self._config.timeout}s: {exc}",
                timed_out=True,
            ) from exc
        except httpx.RequestError as exc:
            raise TransportError(
                f"TransportError: failed to connect to renderer at {self.base_url}: {exc}"
            ) from exc
        _raise_for_status(response)
        return response

    def health(self) -> Dict[str, Any]:
        """Health payload. Raises TransportError when the renderer is unreachable."""
        return _json_object(self._request("GET", "/health"))

    def is_available(self) -> bool:
        try:
            self.health()
        except (TransportError, ProtocolViolationError, MalformedResponseError):
            return False
        return True

    def render(self, snapshot: Snapshot) -> RenderResult:
        """
        POST /render. The snapshot is sent at the top level of the body.

        A loop answer without an animation hash is returned as is; the
        caller decides whether the mode required it.
        """
        response = self._request("POST", "/render", snapshot.to_request())
        result = parse_render_response(_json_object(response))
        if not result.poster_hash:
            raise MalformedResponseError(
                "MalformedResponseError: render response carries no poster hash"
            )
        return result

    def verify_static(self, snapshot: Snapshot, expected_hash: str) -> VerifyResult:
        response = self._request(
            "POST",
            "/verify",
            {"snapshot": snapshot.to_request(), "expectedHash": expected_hash},
        )
        body = _json_object(response)
        computed = _hash_field(body, "computedHash", "computedPosterHash")
        if not computed:
            raise MalformedResponseError(
                "MalformedResponseError: verify response carries no computedHash"
            )
        return VerifyResult(
            mode=MODE_STATIC,
            verified=body.get("verified") is True,
            computed_poster_hash=computed,
            protocol_compliant=_optional_bool(body, "protocolCompliant"),
            metadata=_metadata(body),
        )

    def verify_loop(
        self,
        snapshot:                Snapshot,
        expected_poster_hash:    str,
        expected_animation_hash: str,
    ) -> VerifyResult:
        """
        Loop verification always sends both expected hashes; expectedHash is
        never used in loop mode.
        """
        response = self._request(
            "POST",
            "/verify",
            {
                "snapshot": snapshot.to_request(),
                "expectedPosterHash": expected_poster_hash,
                "expectedAnimationHash": expected_animation_hash,
            },
        )
        body = _json_object(response)
        poster = _hash_field(body, "computedPosterHash")
        if not poster:
            raise MalformedResponseError(
                "MalformedResponseError: loop verify response carries no computedPosterHash"
            )
        return VerifyResult(
            mode=MODE_LOOP,
            verified=body.get("verified") is True,
            computed_poster_hash=poster,
            computed_animation_hash=_hash_field(body, "computedAnimationHash") or None,
            poster_verified=_optional_bool(body, "posterVerified"),
            animation_verified=_optional_bool(body, "animationVerified"),
            metadata=_metadata(body),
        )
