"""Release domain: commit classification, versioning and the step pipeline."""
