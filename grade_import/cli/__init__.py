"""Command line interface (`python -m grade_import.cli`)."""
