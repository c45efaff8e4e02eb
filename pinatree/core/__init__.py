"""Tree submission pipeline: ingestion, extraction, location, form, submission, map."""
