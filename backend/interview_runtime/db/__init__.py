"""Relational attempt store: invitations, attempts/transcripts, rubrics and reports."""
