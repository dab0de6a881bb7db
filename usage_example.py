# usage_example.py
# Minimal usage example for recanon.verification.verifier.Verifier.
# This file is not part of the recanon package. For reference only.
# Contacts the renderer named by RECANON_RENDERER_URL (or the default).

import dataclasses

from recanon import (
    InMemoryClaimStore,
    RendererClient,
    RendererConfig,
    Verifier,
    create_empty_claim_bundle,
    serialize_bundle,
)
from recanon.bundle import ClaimSource, GenericClaimDetails, Snapshot, build_claim
from recanon.verification.tamper import tamper_var

# Inputs
code: str = (
    "function setup() {\n"
    "  background(VAR[0]);\n"
    "}\n"
    "function draw() {\n"
    "  circle(random(width), random(height), VAR[1]);\n"
    "}"
)
details = GenericClaimDetails(
    title="City marathon record",
    statement="The 2025 city marathon was won in 2:05:11.",
    event_date="2025-10-12",
    subject="athletics",
)
draft = dataclasses.replace(
    create_empty_claim_bundle("generic"),
    claim=build_claim("generic", details),
    sources=(ClaimSource(label="Official results", url="https://example.org/results"),),
    snapshot=Snapshot(code=code, seed=12345, vars=(50,) * 10),
)

with RendererClient(RendererConfig.resolve()) as client:
    verifier = Verifier(client, store=InMemoryClaimStore())

    # Seal: render once, capture the baseline.
    state = verifier.seal_bundle(draft)
    print(f"seal:   {state.name}")
    sealed = verifier.sealed_bundle

    # Save the sealed claim.
    print(f"save:   {verifier.save().name}")

    # Re-verify the exported bundle text.
    text = serialize_bundle(sealed)
    print(f"check:  {verifier.check_bundle(text).name}")

    # One var changed by 1 no longer reproduces the baseline.
    state = verifier.check_against_baseline(tamper_var(sealed.snapshot), sealed.baseline)
    print(f"tamper: {state.name} ({state.failure.field_name})")

# Expected output:
# seal:   verified
# save:   saved
# check:  verified
# tamper: failed (posterHash)
