# recanon/version.py
# Version constants. Single authoritative definition.
# Referenced by the bundle schema, the migration adapter and the codec
# for version stamping. A change to CLAIM_BUNDLE_VERSION requires a new
# migration step in recanon/bundle/migration.py.

PACKAGE_VERSION: str = "1.0.0"

# Canonical bundle format written by this package.
CLAIM_BUNDLE_VERSION: str = "recanon.event.v1"

# Pre-claim "verification bundle" format: top-level snapshot plus
# expectedImageHash / expectedAnimationHash. Read-only.
LEGACY_VERIFICATION_FORMAT: str = "recanon.verify.v0"

# Backtest artifact bundles carried an artifactVersion field. Recognised,
# never upgraded.
LEGACY_ARTIFACT_FORMAT: str = "recanon.artifact.v0"

# Renderer protocol declared in bundle.canonical.
CANONICAL_VIA: str = "proxy"
CANONICAL_PROTOCOL: str = "nexart"
CANONICAL_PROTOCOL_VERSION: str = "1.2.0"
