"""Rename a generated Flutter template into its own project.

This package contains:
- Input validation for the new name, app id, version and icon files
- Field-scoped edits of pubspec.yaml
- An ordered literal substitution pass over the platform/source trees
- Launcher icon generation against a temporarily augmented pubspec.yaml
- A coordinator that runs the phases in order and reports the outcome
"""
