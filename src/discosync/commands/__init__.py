"""CLI commands: ``generate`` (dispatch and reconcile) and ``list``."""
