# recanon/verification/__init__.py
# Bundle validation and hash verification.
#
# ENTRY POINT:
#   python -m recanon.verification.run_check --bundle [path]
#       [--renderer-url URL] [--validate-only]
#
# Submodules are imported directly (recanon.verification.bundle_validator,
# recanon.verification.verifier, ...). This package imports nothing itself,
# because recanon.bundle depends on its error and mode modules.
