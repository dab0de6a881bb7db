# tests/conftest.py
# Shared fixtures: snapshots, sealed bundles, a fixed clock and a fake
# deterministic renderer served through httpx.MockTransport.

from __future__ import annotations

import dataclasses
import hashlib
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx
import pytest

from recanon.bundle.schema import (
    Baseline,
    ClaimSource,
    GenericClaimDetails,
    Snapshot,
    build_claim,
    create_empty_claim_bundle,
    make_execution,
)
from recanon.client.config import RendererConfig
from recanon.client.renderer_client import RendererClient

RENDERER_URL = "http://renderer.test"

SKETCH_CODE = (
    "function setup() {\n"
    "  background(VAR[0]);\n"
    "}\n"
    "function draw() {\n"
    "  circle(random(width), random(height), VAR[1]);\n"
    "}"
)


def _is_loop(snapshot: Dict[str, Any]) -> bool:
    execution = snapshot.get("execution") or {}
    return execution.get("loop") is True or (execution.get("frames") or 1) > 1


def _digest(kind: str, snapshot: Dict[str, Any]) -> str:
    payload = {k: snapshot.get(k) for k in ("code", "seed", "vars", "execution")}
    raw = kind + "|" + json.dumps(payload, sort_keys=True)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class FakeRenderer:
    """
    Deterministic stand-in for the renderer.

    Hashes are SHA-256 over the snapshot, so any change to code, seed, vars
    or execution changes them. Knobs:
      error_status / error_body -- answer every request with this error.
      drop_animation            -- loop answers omit the animation hash.
      animation_salt            -- perturbs only the animation hash.
      raw_body                  -- answer 200 with this literal body.
    """

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.error_status: Optional[int] = None
        self.error_body: Any = None
        self.drop_animation: bool = False
        self.animation_salt: str = ""
        self.raw_body: Optional[str] = None
        self.on_request = None

    def poster_hash(self, snapshot: Dict[str, Any]) -> str:
        return _digest("poster", snapshot)

    def animation_hash(self, snapshot: Dict[str, Any]) -> str:
        return _digest("animation" + self.animation_salt, snapshot)

    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.on_request is not None:
            self.on_request(request)
        if self.error_status is not None:
            if isinstance(self.error_body, str):
                return httpx.Response(self.error_status, text=self.error_body)
            return httpx.Response(self.error_status, json=self.error_body or {})
        if self.raw_body is not None:
            return httpx.Response(200, text=self.raw_body)

        path = request.url.path
        if path == "/health":
            return httpx.Response(200, json={"status": "ok", "protocol_version": "1.2.0"})

        body = json.loads(request.content)
        if path == "/render":
            return httpx.Response(200, json=self._render(body))
        if path == "/verify":
            return httpx.Response(200, json=self._verify(body))
        return httpx.Response(404, json={"error": "not found"})

    def _render(self, snapshot: Dict[str, Any]) -> Dict[str, Any]:
        poster = self.poster_hash(snapshot)
        if not _is_loop(snapshot):
            return {
                "type": "static",
                "mime": "image/png",
                "imageHash": poster,
                "imageBase64": "iVBORw0KGgo=",
                "metadata": {"protocol": "nexart", "protocolVersion": "1.2.0"},
            }
        answer = {
            "type": "animation",
            "mime": "video/mp4",
            "posterHash": poster,
            "posterBase64": "iVBORw0KGgo=",
            "animationHash": self.animation_hash(snapshot),
            "animationBase64": "AAAAIGZ0eXA=",
            "frames": snapshot["execution"]["frames"],
            "fps": 30,
            "width": 1950,
            "height": 2400,
            "metadata": {"protocol": "nexart"},
        }
        if self.drop_animation:
            del answer["animationHash"]
        return answer

    def _verify(self, body: Dict[str, Any]) -> Dict[str, Any]:
        snapshot = body["snapshot"]
        poster = self.poster_hash(snapshot)
        if "expectedAnimationHash" not in body:
            return {
                "verified": poster == body.get("expectedHash"),
                "computedHash": poster,
                "expectedHash": body.get("expectedHash"),
                "protocolCompliant": True,
            }
        answer = {
            "mode": "loop",
            "verified": True,
            "posterVerified": True,
            "animationVerified": True,
            "computedPosterHash": poster,
            "computedAnimationHash": self.animation_hash(snapshot),
            "expectedPosterHash": body.get("expectedPosterHash"),
            "expectedAnimationHash": body.get("expectedAnimationHash"),
        }
        if self.drop_animation:
            del answer["computedAnimationHash"]
        return answer


class FixedClock:
    """Callable clock advancing one second per call."""

    def __init__(self, start: datetime) -> None:
        self._now = start

    def __call__(self) -> datetime:
        current = self._now
        self._now = current + timedelta(seconds=1)
        return current


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 1, 20, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def transport(renderer: FakeRenderer) -> httpx.MockTransport:
    return httpx.MockTransport(renderer.handle)


@pytest.fixture
def client(transport: httpx.MockTransport):
    with RendererClient(RendererConfig(base_url=RENDERER_URL), transport=transport) as c:
        yield c


@pytest.fixture
def static_snapshot() -> Snapshot:
    return Snapshot(code=SKETCH_CODE, seed=12345, vars=(50,) * 10)


@pytest.fixture
def loop_snapshot() -> Snapshot:
    return Snapshot(code=SKETCH_CODE, seed=12345, vars=(50,) * 10, execution=make_execution(True))


@pytest.fixture
def static_baseline(renderer: FakeRenderer, static_snapshot: Snapshot) -> Baseline:
    return Baseline(poster_hash=renderer.poster_hash(static_snapshot.to_request()))


@pytest.fixture
def loop_baseline(renderer: FakeRenderer, loop_snapshot: Snapshot) -> Baseline:
    request = loop_snapshot.to_request()
    return Baseline(
        poster_hash=renderer.poster_hash(request),
        animation_hash=renderer.animation_hash(request),
    )


@pytest.fixture
def draft_bundle(static_snapshot: Snapshot):
    details = GenericClaimDetails(
        title="City marathon record",
        statement="The 2025 city marathon was won in 2:05:11.",
        event_date="2025-10-12",
        subject="athletics",
    )
    bundle = create_empty_claim_bundle("generic")
    return dataclasses.replace(
        bundle,
        claim=build_claim("generic", details),
        sources=(ClaimSource(label="Official results", url="https://example.org/results"),),
        snapshot=static_snapshot,
    )


@pytest.fixture
def sealed_static_bundle(draft_bundle, static_baseline):
    return draft_bundle.with_baseline(static_baseline, "2026-01-20T12:00:00+00:00")


@pytest.fixture
def sealed_loop_bundle(draft_bundle, loop_snapshot, loop_baseline):
    draft = dataclasses.replace(draft_bundle, snapshot=loop_snapshot)
    return draft.with_baseline(loop_baseline, "2026-01-20T12:00:00+00:00")
