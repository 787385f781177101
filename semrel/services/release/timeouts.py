from __future__ import annotations

# Default bound for any single external call made by a step.
STEP_TIMEOUT_SECONDS = 5 * 60.0

# gh auth/status checks
GH_TIMEOUT_SECONDS = 60.0
